"""
Version cache for registry lookups.

Memoizes the latest-version metadata per package with a time-to-live and
makes sure at most one registry request per package is in flight at any
time: concurrent lookups for the same name join the pending task.

Per-name states:
    absent -> pending -> resolved
    absent -> pending -> stale-on-failure (previous entry kept and returned)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from pkgversionls.config import DEFAULT_CACHE_TTL
from pkgversionls.errors import RegistryError, ServiceClosedError
from pkgversionls.registry.client import PackageMetadata

logger = logging.getLogger(__name__)


class MetadataFetcher(Protocol):
    async def fetch_metadata(self, name: str) -> PackageMetadata: ...


@dataclass(frozen=True)
class RegistryEntry:
    """Cached registry result for one package."""

    metadata: PackageMetadata
    fetched_at: float
    ttl: float

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def version(self) -> str:
        return self.metadata.version

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at < self.ttl


class VersionCache:
    """
    Latest-version cache with request de-duplication.

    Usage:
        cache = VersionCache(RegistryClient())
        version = await cache.resolve("left-pad")

        # Shutdown: wait for in-flight fetches, then close the client
        await cache.aclose()
    """

    def __init__(
        self,
        client: MetadataFetcher,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.ttl = ttl
        self.clock = clock

        self._entries: dict[str, RegistryEntry] = {}
        self._pending: dict[str, asyncio.Task[RegistryEntry]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, name: str) -> RegistryEntry | None:
        """Return the stored entry for name, fresh or not."""
        return self._entries.get(name)

    def is_pending(self, name: str) -> bool:
        return name in self._pending

    async def resolve(self, name: str) -> str:
        """Return the latest version of a package."""
        entry = await self.lookup(name)
        return entry.version

    async def lookup(self, name: str) -> RegistryEntry:
        """
        Return the registry entry for a package.

        A fresh entry is returned without suspending. Otherwise the caller
        joins the pending fetch for the name, starting one if needed.
        Cancelling the caller does not cancel the shared fetch.

        Raises:
            ServiceClosedError: the cache was closed
            RegistryError: the fetch failed and no previous entry exists
        """
        entry = self._entries.get(name)
        if entry is not None and entry.is_fresh(self.clock()):
            logger.debug("Cache hit for %s", name)
            return entry

        if self._closed:
            raise ServiceClosedError("Version cache is closed")

        task = self._pending.get(name)
        if task is None:
            task = asyncio.ensure_future(self._fetch(name))
            task.add_done_callback(_consume_exception)
            self._pending[name] = task
        else:
            logger.debug("Joining pending lookup for %s", name)

        return await asyncio.shield(task)

    async def _fetch(self, name: str) -> RegistryEntry:
        try:
            metadata = await self.client.fetch_metadata(name)
        except RegistryError as e:
            previous = self._entries.get(name)
            if previous is None:
                raise
            logger.warning("Serving stale %s@%s: %s", name, previous.version, e)
            return previous
        finally:
            self._pending.pop(name, None)

        entry = RegistryEntry(metadata=metadata, fetched_at=self.clock(), ttl=self.ttl)
        self._entries[name] = entry
        return entry

    def invalidate(self, name: str) -> None:
        """Drop the stored entry for name; a pending fetch is left alone."""
        self._entries.pop(name, None)

    def clear(self) -> None:
        self._entries.clear()

    async def aclose(self) -> None:
        """
        Stop accepting lookups, let in-flight fetches finish, close the client.

        Fresh entries can still be read after closing.
        """
        self._closed = True
        pending = list(self._pending.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        aclose = getattr(self.client, "aclose", None)
        if aclose is not None:
            await aclose()


def _consume_exception(task: asyncio.Task) -> None:
    # Every joiner may have been cancelled; keep asyncio from warning.
    if not task.cancelled():
        task.exception()
