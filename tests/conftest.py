"""Shared fixtures: a fake registry client and a controllable clock."""

from __future__ import annotations

import asyncio

import pytest

from pkgversionls.registry.client import PackageMetadata


PACKAGE_JSON = """{
  "name": "demo",
  "version": "1.0.0",
  "scripts": {
    "test": "node test.js"
  },
  "dependencies": {
    "left-pad": "^1.0.0",
    "express": "^4.17.1"
  },
  "devDependencies": {
    "jest": "~29.0.0"
  }
}
"""


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRegistryClient:
    """
    Stands in for RegistryClient.

    ``results`` maps package names to PackageMetadata or to an exception to
    raise. While ``gate`` is set, fetches wait on it.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.results: dict[str, PackageMetadata | Exception] = {}
        self.gate: asyncio.Event | None = None
        self.closed = False

    def publish(self, name: str, version: str, **kwargs) -> None:
        self.results[name] = PackageMetadata(name=name, version=version, **kwargs)

    async def fetch_metadata(self, name: str) -> PackageMetadata:
        self.calls.append(name)
        if self.gate is not None:
            await self.gate.wait()
        result = self.results[name]
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return FakeRegistryClient()


@pytest.fixture
def package_json():
    return PACKAGE_JSON


@pytest.fixture
def offset_in():
    def _offset_in(text: str, needle: str, delta: int = 1) -> int:
        """Offset of needle in text plus delta (default: just inside the opening quote)."""
        return text.index(needle) + delta

    return _offset_in
