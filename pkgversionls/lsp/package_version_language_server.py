from __future__ import annotations

from pygls.lsp.server import LanguageServer

from pkgversionls.config import ServerSettings
from pkgversionls.hover.resolver import HoverResolver
from pkgversionls.lsp.capabilities.capabilities import CapabilityManager
from pkgversionls.lsp.text_sync_manager import TextSyncManager
from pkgversionls.registry.client import RegistryClient
from pkgversionls.workspace.document_store import DocumentStore
from pkgversionls.workspace.version_cache import VersionCache


class PackageVersionLanguageServer(LanguageServer):
    """
    Language Server with package-version specific attributes.

    Attributes:
        settings: Active configuration
        version_cache: Latest-version cache shared by all hover requests
        hover_resolver: Maps document positions to hover results
        document_store: Scanned snapshots of open package.json documents
    """

    def __init__(self, name: str, version: str):
        super().__init__(name, version)

        self.settings = ServerSettings()
        self.version_cache: VersionCache | None = None
        self.hover_resolver: HoverResolver | None = None
        self.document_store = DocumentStore()
        self.capability_manager: CapabilityManager | None = None
        self.text_sync_manager: TextSyncManager | None = None

        self.configure(self.settings)

    def configure(self, settings: ServerSettings) -> None:
        """Build the registry client, cache and resolver for settings."""
        self.settings = settings
        client = RegistryClient(
            registry=settings.registry,
            scope_registries=settings.scope_registries,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
        )
        self.version_cache = VersionCache(client, ttl=settings.cache_ttl)
        self.hover_resolver = HoverResolver(self.version_cache)

    async def reconfigure(self, settings: ServerSettings) -> None:
        """Swap in services for settings and close the ones they replace."""
        previous = self.version_cache
        self.configure(settings)
        if previous is not None:
            await previous.aclose()

    async def close_services(self) -> None:
        """Stop accepting lookups and wait for in-flight registry fetches."""
        if self.version_cache is not None:
            await self.version_cache.aclose()
