from lsprotocol.types import (
    INITIALIZE,
    SHUTDOWN,
    TEXT_DOCUMENT_HOVER,
    HoverParams,
    InitializeParams,
    LogMessageParams,
    MessageType,
)

from pkgversionls import __version__
from pkgversionls.config import ServerSettings
from pkgversionls.lsp.capabilities.capabilities import CapabilityManager
from pkgversionls.lsp.package_version_language_server import (
    PackageVersionLanguageServer,
)
from pkgversionls.lsp.text_sync_manager import TextSyncManager


def create_server() -> PackageVersionLanguageServer:
    """
    Creates and returns a configured Language Server instance.

    The server works without any configuration; settings sent by the editor
    in ``initializationOptions`` replace the defaults during ``initialize``.
    """
    server = PackageVersionLanguageServer("pkgversionls", __version__)

    # Text sync must exist before capabilities so they can register hooks.
    server.text_sync_manager = TextSyncManager(server)
    server.text_sync_manager.register_handlers()

    server.capability_manager = CapabilityManager(server)
    server.capability_manager.register_all()

    @server.feature(INITIALIZE)
    async def initialize(ls: PackageVersionLanguageServer, params: InitializeParams):
        """Apply editor-provided settings."""
        settings = ServerSettings.from_options(params.initialization_options)
        await ls.reconfigure(settings)

        scopes = ", ".join(sorted(settings.scope_registries)) or "none"
        ls.window_log_message(
            LogMessageParams(
                MessageType.Info,
                f"pkgversionls {__version__}: registry {settings.registry}, "
                f"scoped registries: {scopes}",
            )
        )

    @server.feature(TEXT_DOCUMENT_HOVER)
    async def hover(ls: PackageVersionLanguageServer, params: HoverParams):
        if ls.capability_manager:
            return await ls.capability_manager.handle_hover(params)
        return None

    @server.feature(SHUTDOWN)
    async def shutdown(ls: PackageVersionLanguageServer, params):
        """Stop accepting lookups; in-flight fetches finish first."""
        await ls.close_services()

    return server
