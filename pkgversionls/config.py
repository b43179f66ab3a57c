"""
Server configuration.

Settings come from the ``initializationOptions`` the editor sends with the
``initialize`` request. Every option is optional; the server runs with the
defaults when the editor sends nothing.

Example (editor settings)::

    {
        "registry": "https://registry.npmjs.org",
        "scopeRegistries": {"@mycorp": "https://npm.mycorp.example"},
        "cacheTtl": 600,
        "requestTimeout": 10,
        "maxRetries": 2
    }
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY = "https://registry.npmjs.org"
DEFAULT_CACHE_TTL = 600.0
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_MAX_RETRIES = 2


@dataclass
class ServerSettings:
    """Runtime settings for the registry client and version cache."""

    registry: str = DEFAULT_REGISTRY
    scope_registries: dict[str, str] = field(default_factory=dict)
    cache_ttl: float = DEFAULT_CACHE_TTL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES

    @classmethod
    def from_options(cls, options: Any) -> ServerSettings:
        """
        Build settings from LSP initialization options.

        Unknown keys are ignored. Values of the wrong type are logged and
        replaced by the default.
        """
        settings = cls()
        if not isinstance(options, Mapping):
            if options is not None:
                logger.warning("Ignoring non-object initializationOptions: %r", options)
            return settings

        registry = options.get("registry")
        if registry is not None:
            if isinstance(registry, str) and registry.startswith(("http://", "https://")):
                settings.registry = registry.rstrip("/")
            else:
                logger.warning("Ignoring invalid registry URL: %r", registry)

        scopes = options.get("scopeRegistries")
        if scopes is not None:
            if isinstance(scopes, Mapping):
                for scope, url in scopes.items():
                    if (
                        isinstance(scope, str)
                        and isinstance(url, str)
                        and url.startswith(("http://", "https://"))
                    ):
                        if not scope.startswith("@"):
                            scope = f"@{scope}"
                        settings.scope_registries[scope] = url.rstrip("/")
                    else:
                        logger.warning("Ignoring scope registry %r -> %r", scope, url)
            else:
                logger.warning("Ignoring invalid scopeRegistries: %r", scopes)

        settings.cache_ttl = _positive_number(
            options.get("cacheTtl"), "cacheTtl", settings.cache_ttl
        )
        settings.request_timeout = _positive_number(
            options.get("requestTimeout"), "requestTimeout", settings.request_timeout
        )

        retries = options.get("maxRetries")
        if retries is not None:
            if isinstance(retries, int) and not isinstance(retries, bool) and retries >= 0:
                settings.max_retries = retries
            else:
                logger.warning("Ignoring invalid maxRetries: %r", retries)

        return settings


def _positive_number(value: Any, name: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return float(value)
    logger.warning("Ignoring invalid %s: %r", name, value)
    return default
