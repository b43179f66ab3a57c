"""
Tests for pkgversionls/hover/resolver.py

End-to-end through the document model, key locator and version cache with
a fake registry client.
"""
from __future__ import annotations

import asyncio

import httpx
import pytest

from pkgversionls.document.locator import DependencyBlock
from pkgversionls.document.model import Document
from pkgversionls.errors import PackageNotFoundError, RegistryError, TransientNetworkError
from pkgversionls.hover.formatting import format_hover
from pkgversionls.hover.resolver import (
    HoverResolver,
    LookupFailure,
    Relation,
    compare,
)
from pkgversionls.registry.client import RegistryClient
from pkgversionls.workspace.version_cache import VersionCache

LEFT_PAD = """{
  "name": "demo",
  "dependencies": {
    "left-pad": "^1.0.0"
  }
}
"""


@pytest.fixture
def cache(registry, clock):
    return VersionCache(registry, ttl=600, clock=clock)


@pytest.fixture
def resolver(cache):
    return HoverResolver(cache)


class TestResolveHover:

    @pytest.mark.asyncio
    async def test_latest_within_range(self, resolver, registry, offset_in):
        registry.publish("left-pad", "1.0.1")
        document = Document(LEFT_PAD)

        result = await resolver.resolve_hover(document, offset_in(LEFT_PAD, '"left-pad"'))

        assert result.name == "left-pad"
        assert result.block is DependencyBlock.DEPENDENCIES
        assert result.declared_range == "^1.0.0"
        assert result.latest_version == "1.0.1"
        assert result.relation is Relation.SATISFIED
        assert result.error is None
        assert not result.stale

    @pytest.mark.asyncio
    async def test_newer_major_available(self, resolver, registry, offset_in):
        registry.publish("left-pad", "2.0.0")
        document = Document(LEFT_PAD)

        result = await resolver.resolve_hover(document, offset_in(LEFT_PAD, '"left-pad"'))

        assert result.latest_version == "2.0.0"
        assert result.relation is Relation.NEWER_AVAILABLE

    @pytest.mark.asyncio
    async def test_no_hover_outside_dependency_keys(self, resolver, registry, package_json):
        for name, version in [("left-pad", "1.3.0"), ("express", "4.19.2"), ("jest", "29.7.0")]:
            registry.publish(name, version)
        document = Document(package_json)
        key_ranges = {}
        for name in ("left-pad", "express", "jest"):
            start = package_json.index(f'"{name}"')
            value_start = package_json.index('"', start + len(name) + 2)
            key_ranges[name] = (start, value_start)

        for offset in range(len(package_json) + 1):
            result = await resolver.resolve_hover(document, offset)
            inside = [n for n, (s, e) in key_ranges.items() if s <= offset < e]
            if inside:
                assert result is not None and result.name == inside[0]
            else:
                assert result is None, offset

    @pytest.mark.asyncio
    async def test_no_hover_makes_no_request(self, resolver, registry, package_json, offset_in):
        document = Document(package_json)

        assert await resolver.resolve_hover(document, offset_in(package_json, '"name"')) is None
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_second_hover_within_ttl_is_cached(self, resolver, registry, offset_in):
        registry.publish("left-pad", "1.0.1")
        offset = offset_in(LEFT_PAD, '"left-pad"')

        await resolver.resolve_hover(Document(LEFT_PAD), offset)
        await resolver.resolve_hover(Document(LEFT_PAD), offset)

        assert registry.calls == ["left-pad"]

    @pytest.mark.asyncio
    async def test_concurrent_hovers_share_one_request(self, resolver, registry, offset_in):
        registry.publish("left-pad", "1.0.1")
        registry.gate = asyncio.Event()
        document = Document(LEFT_PAD)
        offset = offset_in(LEFT_PAD, '"left-pad"')

        tasks = [
            asyncio.create_task(resolver.resolve_hover(document, offset))
            for _ in range(20)
        ]
        await asyncio.sleep(0)
        registry.gate.set()
        results = await asyncio.gather(*tasks)

        assert registry.calls == ["left-pad"]
        assert {r.latest_version for r in results} == {"1.0.1"}

    @pytest.mark.asyncio
    async def test_not_found(self, resolver, registry, cache, offset_in):
        registry.results["left-pad"] = PackageNotFoundError("left-pad", 404)

        result = await resolver.resolve_hover(
            Document(LEFT_PAD), offset_in(LEFT_PAD, '"left-pad"')
        )

        assert result.error is LookupFailure.NOT_FOUND
        assert result.relation is Relation.UNKNOWN
        assert result.declared_range == "^1.0.0"
        assert "not found" in format_hover(result)
        assert cache.get("left-pad") is None

    @pytest.mark.asyncio
    async def test_registry_unavailable(self, resolver, registry, offset_in):
        registry.results["left-pad"] = TransientNetworkError("down")

        result = await resolver.resolve_hover(
            Document(LEFT_PAD), offset_in(LEFT_PAD, '"left-pad"')
        )

        assert result.error is LookupFailure.UNAVAILABLE
        assert result.latest_version is None

    @pytest.mark.asyncio
    async def test_bad_registry_response(self, resolver, registry, offset_in):
        registry.results["left-pad"] = RegistryError("Invalid JSON")

        result = await resolver.resolve_hover(
            Document(LEFT_PAD), offset_in(LEFT_PAD, '"left-pad"')
        )

        assert result.error is LookupFailure.UNAVAILABLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.TooManyRedirects("redirect loop"), httpx.DecodingError("bad gzip")],
    )
    async def test_http_request_errors_give_unavailable_hover(self, clock, offset_in, error):
        def handler(request):
            raise error

        client = RegistryClient(transport=httpx.MockTransport(handler))
        cache = VersionCache(client, clock=clock)
        resolver = HoverResolver(cache)

        result = await resolver.resolve_hover(
            Document(LEFT_PAD), offset_in(LEFT_PAD, '"left-pad"')
        )

        assert result.error is LookupFailure.UNAVAILABLE
        assert result.relation is Relation.UNKNOWN
        assert cache.get("left-pad") is None
        await cache.aclose()

    @pytest.mark.asyncio
    async def test_stale_data_after_failed_refresh(self, resolver, registry, clock, offset_in):
        registry.publish("left-pad", "1.0.1")
        offset = offset_in(LEFT_PAD, '"left-pad"')
        await resolver.resolve_hover(Document(LEFT_PAD), offset)

        clock.advance(601)
        registry.results["left-pad"] = TransientNetworkError("down")
        result = await resolver.resolve_hover(Document(LEFT_PAD), offset)

        assert result.latest_version == "1.0.1"
        assert result.stale
        assert result.error is None

    @pytest.mark.asyncio
    async def test_invalid_name_makes_no_request(self):
        resolver = HoverResolver(VersionCache(RegistryClient()))
        text = '{"dependencies": {"../evil": "1.0.0"}}'

        result = await resolver.resolve_hover(Document(text), text.index("evil"))

        assert result.error is LookupFailure.INVALID_NAME
        assert result.name == "../evil"

    @pytest.mark.asyncio
    async def test_malformed_document(self, resolver, registry, offset_in):
        registry.publish("left-pad", "1.0.1")
        text = LEFT_PAD.rstrip().rstrip("}")

        result = await resolver.resolve_hover(Document(text), offset_in(text, '"left-pad"'))

        assert result.latest_version == "1.0.1"
        assert result.relation is Relation.SATISFIED

    @pytest.mark.asyncio
    async def test_closed_cache_gives_no_hover(self, resolver, cache, offset_in):
        await cache.aclose()

        assert await resolver.resolve_hover(
            Document(LEFT_PAD), offset_in(LEFT_PAD, '"left-pad"')
        ) is None


class TestCompare:

    @pytest.mark.parametrize(
        "declared, latest, relation",
        [
            ("^1.0.0", "1.0.1", Relation.SATISFIED),
            ("^1.0.0", "2.0.0", Relation.NEWER_AVAILABLE),
            ("~1.2.0", "1.2.9", Relation.SATISFIED),
            ("~1.2.0", "1.3.0", Relation.NEWER_AVAILABLE),
            ("1.x", "1.9.0", Relation.SATISFIED),
            (">=1.0.0 <2.0.0", "1.5.0", Relation.SATISFIED),
            ("^1.0.0 || ^2.0.0", "2.1.0", Relation.SATISFIED),
            ("1.2.3", "1.2.3", Relation.SATISFIED),
            ("1.2.3", "1.2.4", Relation.NEWER_AVAILABLE),
            ("^3.0.0", "2.0.0", Relation.UNKNOWN),
            ("^1.0.0", "1.0.0-beta.1", Relation.UNKNOWN),
            (">=1.0.0 <2.0.0", "2.0.0", Relation.NEWER_AVAILABLE),
            ("<1.0.0 || >=3.0.0", "2.0.0", Relation.UNKNOWN),
            ("1.0.0 - 2.0.0", "2.5.0", Relation.NEWER_AVAILABLE),
            ("1.x", "2.0.0", Relation.NEWER_AVAILABLE),
            ("*", "5.0.0", Relation.SATISFIED),
            ("", "5.0.0", Relation.SATISFIED),
            ("latest", "5.0.0", Relation.UNKNOWN),
            ("file:../local", "1.0.0", Relation.UNKNOWN),
            ("github:user/repo", "1.0.0", Relation.UNKNOWN),
            ("user/repo#main", "1.0.0", Relation.UNKNOWN),
            ("npm:other@^1.0.0", "1.0.0", Relation.UNKNOWN),
            ("^1.0.0", "not-a-version", Relation.UNKNOWN),
            (None, "1.0.0", Relation.UNKNOWN),
            ("^1.0.0", None, Relation.UNKNOWN),
        ],
    )
    def test_compare(self, declared, latest, relation):
        assert compare(declared, latest) is relation
