"""
Text Synchronization Manager

Manages LSP text sync events and provides hook extension points
for components that keep per-document state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from lsprotocol.types import (
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    LogMessageParams,
    MessageType,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
)

if TYPE_CHECKING:
    from pkgversionls.lsp.package_version_language_server import (
        PackageVersionLanguageServer,
    )

logger = logging.getLogger(__name__)

# Type aliases for hook signatures
OnChangeHook = Callable[[DidChangeTextDocumentParams], Awaitable[None]]
OnCloseHook = Callable[[DidCloseTextDocumentParams], Awaitable[None]]


class TextSyncManager:
    """
    Manages text document synchronization and hook broadcasting.

    pygls keeps the document text in ``server.workspace``; this manager only
    lets other components react to document changes and closes. Opening a
    document needs no hooks. Hooks run in registration order and a failing
    hook does not stop the others.

    Usage:
        text_sync = TextSyncManager(server)
        text_sync.register_handlers()
        server.text_sync_manager = text_sync

        document_store.register_text_sync_hooks(text_sync)
    """

    def __init__(self, server: PackageVersionLanguageServer) -> None:
        self.server = server

        # Hook registries for each event type
        self._on_change_hooks: list[OnChangeHook] = []
        self._on_close_hooks: list[OnCloseHook] = []

    def add_on_change_hook(self, hook: OnChangeHook) -> None:
        """
        Register a hook for document change events.

        Change hooks run on every keystroke; only invalidate state here.
        """
        self._on_change_hooks.append(hook)

    def add_on_close_hook(self, hook: OnCloseHook) -> None:
        """Register a hook for document close events."""
        self._on_close_hooks.append(hook)

    async def _broadcast(self, hooks: list, event: str, params) -> None:
        """
        Call every hook with params.

        Errors are caught and logged to the client so one hook can't break
        the others.
        """
        for hook in hooks:
            try:
                await hook(params)
            except Exception as e:
                self.server.window_log_message(
                    LogMessageParams(
                        type=MessageType.Error,
                        message=f"Error in {event} hook {hook.__name__}: "
                                f"{type(e).__name__}: {e}"
                    )
                )

    async def _broadcast_on_change(self, params: DidChangeTextDocumentParams) -> None:
        await self._broadcast(self._on_change_hooks, "on_change", params)

    async def _broadcast_on_close(self, params: DidCloseTextDocumentParams) -> None:
        await self._broadcast(self._on_close_hooks, "on_close", params)

    def register_handlers(self) -> None:
        """
        Register LSP text synchronization handlers with the server.

        Registers handlers for:
        - textDocument/didOpen (logged; pygls stores the text)
        - textDocument/didChange
        - textDocument/didClose
        """

        @self.server.feature(TEXT_DOCUMENT_DID_OPEN)
        async def did_open(
            ls: PackageVersionLanguageServer,
            params: DidOpenTextDocumentParams,
        ) -> None:
            logger.debug("Document opened: %s", params.text_document.uri)

        @self.server.feature(TEXT_DOCUMENT_DID_CHANGE)
        async def did_change(
            ls: PackageVersionLanguageServer,
            params: DidChangeTextDocumentParams,
        ) -> None:
            # The workspace already holds the new text at this point.
            await self._broadcast_on_change(params)

        @self.server.feature(TEXT_DOCUMENT_DID_CLOSE)
        async def did_close(
            ls: PackageVersionLanguageServer,
            params: DidCloseTextDocumentParams,
        ) -> None:
            logger.debug("Document closed: %s", params.text_document.uri)
            await self._broadcast_on_close(params)
