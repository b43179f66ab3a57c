"""Server-side state shared across requests."""
from .document_store import DocumentStore
from .version_cache import RegistryEntry, VersionCache

__all__ = ['DocumentStore', 'RegistryEntry', 'VersionCache']
