"""
npm registry client.

Async HTTP client that looks up the latest published version of a package.

Provides:
- Local package name validation (no request for invalid names)
- Per-scope registry selection
- Timeout and retry with exponential backoff for transient failures
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from pkgversionls import __version__
from pkgversionls.config import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_REGISTRY,
    DEFAULT_REQUEST_TIMEOUT,
)
from pkgversionls.errors import (
    InvalidPackageNameError,
    PackageNotFoundError,
    RegistryError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

USER_AGENT = f"pkgversionls/{__version__}"
MAX_NAME_LENGTH = 214
BACKOFF_BASE = 0.25

# Same character classes npm accepts; legacy packages may contain capitals.
_NAME_RE = re.compile(
    r"^(?:@[a-z0-9\-*~][a-z0-9\-*._~]*/)?[a-z0-9\-~][a-z0-9\-._~]*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class PackageMetadata:
    """Information about the latest published version of a package."""

    name: str
    version: str
    description: str | None = None
    homepage: str | None = None
    published: datetime | None = None


def validate_package_name(name: str) -> None:
    """Raise InvalidPackageNameError if name can't be a registry package."""
    if not name or not name.strip():
        raise InvalidPackageNameError("Package name is empty")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidPackageNameError(f"Package name is too long: {name[:40]}...")
    if ".." in name.split("/") or "\\" in name or "%" in name:
        raise InvalidPackageNameError(f"Package name contains path characters: {name}")
    if not _NAME_RE.match(name):
        raise InvalidPackageNameError(f"Invalid package name: {name}")


def parse_metadata(name: str, data: Any) -> PackageMetadata:
    """Extract the latest version's metadata from a registry document."""
    if not isinstance(data, dict):
        raise PackageNotFoundError(name)

    dist_tags = data.get("dist-tags")
    latest = dist_tags.get("latest") if isinstance(dist_tags, dict) else None
    if not isinstance(latest, str) or not latest:
        raise PackageNotFoundError(name)

    versions = data.get("versions")
    info = versions.get(latest) if isinstance(versions, dict) else None
    if not isinstance(info, dict):
        info = {}

    description = info.get("description", data.get("description"))
    homepage = info.get("homepage", data.get("homepage"))

    published = None
    times = data.get("time")
    if isinstance(times, dict) and isinstance(times.get(latest), str):
        try:
            published = datetime.fromisoformat(times[latest].replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparsable publish time for %s@%s", name, latest)

    return PackageMetadata(
        name=name,
        version=latest,
        description=description if isinstance(description, str) else None,
        homepage=homepage if isinstance(homepage, str) else None,
        published=published,
    )


class RegistryClient:
    """
    Client for npm-compatible package registries.

    Usage:
        async with RegistryClient() as client:
            version = await client.fetch_latest_version("left-pad")
    """

    def __init__(
        self,
        registry: str = DEFAULT_REGISTRY,
        scope_registries: Mapping[str, str] | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize registry client.

        Args:
            registry: Default registry URL
            scope_registries: Registry URL per package scope ("@scope")
            timeout: Request timeout in seconds
            max_retries: Retries after the first attempt for transient failures
            transport: Custom httpx transport (tests)
            sleep: Coroutine used for backoff delays (tests)
        """
        self.registry = registry.rstrip("/")
        self.scope_registries = dict(scope_registries or {})
        self.timeout = timeout
        self.max_retries = max_retries
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "User-Agent": USER_AGENT,
                    "Accept": "application/json",
                },
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> RegistryClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def registry_for(self, name: str) -> str:
        """Return the registry URL serving a package."""
        if name.startswith("@") and "/" in name:
            scope = name.split("/", 1)[0]
            return self.scope_registries.get(scope, self.registry).rstrip("/")
        return self.registry

    def package_url(self, name: str) -> str:
        return f"{self.registry_for(name)}/{quote(name, safe='@')}"

    async def fetch_latest_version(self, name: str) -> str:
        """Return the version the registry tags as latest."""
        metadata = await self.fetch_metadata(name)
        return metadata.version

    async def fetch_metadata(self, name: str) -> PackageMetadata:
        """
        Fetch metadata for the latest version of a package.

        Raises:
            InvalidPackageNameError: name fails validation (no request made)
            PackageNotFoundError: registry returned 404 or another non-retryable 4xx
            RegistryError: a non-retryable request failure or an invalid body
            TransientNetworkError: timeouts, connection errors or 5xx/429
                responses persisted through every retry
        """
        validate_package_name(name)
        url = self.package_url(name)
        client = await self._get_client()

        last_error: Exception | None = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                delay = BACKOFF_BASE * (2 ** (attempt - 1))
                logger.warning(
                    "Retrying %s in %.2fs (attempt %d/%d): %s",
                    name, delay, attempt + 1, self.max_retries + 1, last_error,
                )
                await self._sleep(delay)

            try:
                response = await client.get(url)
            except httpx.TransportError as e:
                # Timeouts and connection failures are retried.
                last_error = e
                continue
            except httpx.RequestError as e:
                # Redirect loops and undecodable bodies fail at once.
                raise RegistryError(
                    f"Request for {name} failed: {type(e).__name__}: {e}"
                ) from e

            if response.status_code == 429 or response.status_code >= 500:
                last_error = RegistryError(f"HTTP {response.status_code}")
                continue

            if response.status_code >= 400:
                raise PackageNotFoundError(name, response.status_code)

            try:
                data = response.json()
            except ValueError as e:
                raise RegistryError(f"Invalid JSON from registry for {name}") from e

            metadata = parse_metadata(name, data)
            logger.info("Fetched %s@%s from %s", name, metadata.version, url)
            return metadata

        raise TransientNetworkError(
            f"Registry unavailable for {name} after {self.max_retries + 1} attempts: "
            f"{last_error}"
        ) from last_error
