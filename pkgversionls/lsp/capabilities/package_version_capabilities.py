"""
Package version LSP capabilities.

Provides hover information for dependency names in package.json files.
"""

from lsprotocol.types import (
    Hover,
    HoverParams,
    MarkupContent,
    MarkupKind,
    Position,
    Range,
)

from pkgversionls.document.model import Document
from pkgversionls.hover.formatting import format_hover
from pkgversionls.hover.resolver import HoverResult
from pkgversionls.lsp.capabilities.capabilities import HoverCapability
from pkgversionls.workspace.document_store import is_package_json


class PackageVersionHoverCapability(HoverCapability):
    """Shows the latest published version of the dependency under the cursor."""

    @property
    def name(self) -> str:
        return "package_version_hover"

    @property
    def description(self) -> str:
        return "Show the latest published version of npm dependencies on hover"

    def register(self) -> None:
        text_sync = self.server.text_sync_manager
        if text_sync:
            self.server.document_store.register_text_sync_hooks(text_sync)

    async def can_handle(self, params: HoverParams) -> bool:
        """Only package.json documents are handled."""
        return (
            self.server.hover_resolver is not None
            and is_package_json(params.text_document.uri)
        )

    async def hover(self, params: HoverParams) -> Hover | None:
        """Provide hover information for the dependency at the cursor."""
        uri = params.text_document.uri
        doc = self.server.workspace.get_text_document(uri)
        document = self.server.document_store.get(uri, doc.source, doc.version)

        # Client columns may be UTF-16 units; Document offsets are code points.
        position = doc.position_codec.position_from_client_units(doc.lines, params.position)
        offset = document.offset_at(position.line, position.character)
        result = await self.server.hover_resolver.resolve_hover(document, offset)  # type: ignore
        if result is None:
            return None

        return Hover(
            contents=MarkupContent(kind=MarkupKind.Markdown, value=format_hover(result)),
            range=doc.position_codec.range_to_client_units(
                doc.lines, _span_range(document, result)
            ),
        )


def _span_range(document: Document, result: HoverResult) -> Range:
    start_line, start_col = document.position_at(result.span.start)
    end_line, end_col = document.position_at(result.span.end)
    return Range(
        start=Position(line=start_line, character=start_col),
        end=Position(line=end_line, character=end_col),
    )
