"""
Snapshots of open package.json documents.

Keeps one Document per URI so repeated hovers over an unchanged document
reuse the same structural scan. A snapshot is replaced when the editor
reports a new document version and dropped when the document closes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lsprotocol.types import DidChangeTextDocumentParams, DidCloseTextDocumentParams

from pkgversionls.document.model import Document

if TYPE_CHECKING:
    from pkgversionls.lsp.text_sync_manager import TextSyncManager


def is_package_json(uri: str) -> bool:
    path = uri.split("?", 1)[0].split("#", 1)[0]
    return path.endswith("/package.json") or path == "package.json"


class DocumentStore:
    """Per-URI cache of Document snapshots keyed by document version."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}

    def __len__(self) -> int:
        return len(self._documents)

    def get(self, uri: str, text: str, version: int | None = None) -> Document:
        """
        Return the snapshot for uri, creating a new one if the text changed.

        The version alone is not trusted: some clients reuse versions for
        unsaved buffers, so the text is compared too.
        """
        current = self._documents.get(uri)
        if current is not None and current.version == version and current.text == text:
            return current

        document = Document(text=text, uri=uri, version=version)
        self._documents[uri] = document
        return document

    def discard(self, uri: str) -> None:
        self._documents.pop(uri, None)

    def register_text_sync_hooks(self, text_sync: TextSyncManager) -> None:
        """Drop snapshots when documents change or close."""
        text_sync.add_on_change_hook(self._on_change)
        text_sync.add_on_close_hook(self._on_close)

    async def _on_change(self, params: DidChangeTextDocumentParams) -> None:
        self.discard(params.text_document.uri)

    async def _on_close(self, params: DidCloseTextDocumentParams) -> None:
        self.discard(params.text_document.uri)
