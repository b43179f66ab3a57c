"""Structural scanning of package.json documents."""
from .locator import DependencyBlock, KeyMatch, locate
from .model import Document, Span, SpanKind, scan

__all__ = ["DependencyBlock", "Document", "KeyMatch", "Span", "SpanKind", "locate", "scan"]
