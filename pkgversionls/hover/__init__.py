"""Hover resolution and rendering."""
from .formatting import format_hover
from .resolver import HoverResolver, HoverResult, Relation

__all__ = ["HoverResolver", "HoverResult", "Relation", "format_hover"]
