"""
LSP Capabilities Manager

This module manages LSP feature handlers using a plugin architecture.
Each capability decides for itself whether it can answer a request; the
manager routes requests to the capable handlers and isolates their errors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from lsprotocol.types import (
    Hover,
    HoverParams,
    LogMessageParams,
    MessageType,
)


if TYPE_CHECKING:
    from pkgversionls.lsp.package_version_language_server import (
        PackageVersionLanguageServer,
    )


class Capability(ABC):
    """
    Base class for all LSP capability handlers.

    Each capability can handle one or more LSP features and decides whether
    it can handle a specific request based on context.
    """

    def __init__(self, server: PackageVersionLanguageServer) -> None:
        self.server = server

    def register(self) -> None:
        """
        Register extra hooks with the server.

        Called once when the capability manager is set up.
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this capability."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this capability does."""
        pass

    @abstractmethod
    async def can_handle(self, params) -> bool:
        """Check if the capability can handle the request."""
        pass


class HoverCapability(Capability):
    """Base class for hover capabilities."""

    @abstractmethod
    async def can_handle(self, params: HoverParams) -> bool:
        """Check if this capability can handle the hover request."""
        pass

    @abstractmethod
    async def hover(self, params: HoverParams) -> Hover | None:
        """Provide hover information."""
        pass


class CapabilityManager:
    """
    Central manager for all LSP capabilities.

    Usage:
        # In server construction
        manager = CapabilityManager(server)
        manager.register_all()
    """

    def __init__(
        self,
        server: PackageVersionLanguageServer,
        capabilities: dict[str, Capability] | None = None,
    ):
        self.server = server

        # Default capabilities
        if capabilities is None:
            from pkgversionls.lsp.capabilities.package_version_capabilities import (
                PackageVersionHoverCapability,
            )

            capabilities = {
                "package_version_hover": PackageVersionHoverCapability(server),
            }

        self.capabilities = capabilities
        self._registered = False

    def register_all(self) -> None:
        """Register all capabilities with the server."""
        if self._registered:
            return

        for capability in self.capabilities.values():
            capability.register()

        self._registered = True

    def get_capability(self, name: str) -> Capability | None:
        """Get a specific capability by name"""
        return self.capabilities.get(name)

    def get_capabilities_by_type(self, capability_type: type) -> list[Capability]:
        """Get all capabilities of a specific type (e.g., all HoverCapability)."""
        return [
            cap
            for cap in self.capabilities.values()
            if isinstance(cap, capability_type)
        ]

    async def handle_hover(self, params: HoverParams) -> Hover | None:
        """
        Handle hover requests by delegating to capable handlers.

        Returns the first non-None hover result. A failing capability is
        logged to the client and skipped.
        """
        for capability in self.get_capabilities_by_type(HoverCapability):
            try:
                if await capability.can_handle(params):
                    result = await capability.hover(params)  # pyright: ignore
                    if result:
                        return result
            except Exception as e:
                self.server.window_log_message(
                    LogMessageParams(
                        type=MessageType.Error,
                        message=f"Hover error in {capability.name}: "
                                f"{type(e).__name__}: {e}"
                    )
                )

        return None
