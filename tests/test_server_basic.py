"""
Basic tests for the package version language server.

These tests verify that the server can be created and has the expected features registered.
"""

import pytest
from lsprotocol.types import (
    SHUTDOWN,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_HOVER,
)

from pkgversionls import __version__
from pkgversionls.__main__ import main
from pkgversionls.config import ServerSettings
from pkgversionls.lsp.server import create_server


def test_server_creation():
    """Test that the server can be created successfully."""
    server = create_server()
    assert server is not None
    assert server.name == "pkgversionls"
    assert server.version == __version__


def test_server_has_hover_feature():
    """Test that hover feature is registered."""
    server = create_server()

    assert TEXT_DOCUMENT_HOVER in server.protocol.fm._features


def test_server_has_text_sync_features():
    server = create_server()

    for feature in (TEXT_DOCUMENT_DID_OPEN, TEXT_DOCUMENT_DID_CHANGE, TEXT_DOCUMENT_DID_CLOSE):
        assert feature in server.protocol.fm._features


def test_server_has_shutdown_feature():
    server = create_server()

    assert SHUTDOWN in server.protocol.fm._features


def test_server_works_without_configuration():
    """Test that the core services exist before initialize."""
    server = create_server()

    assert server.version_cache is not None
    assert server.hover_resolver is not None
    assert server.hover_resolver.cache is server.version_cache
    assert server.capability_manager.get_capability("package_version_hover") is not None


def test_configure_replaces_services():
    server = create_server()
    old_cache = server.version_cache

    server.configure(ServerSettings(registry="https://mirror.example", cache_ttl=30))

    assert server.version_cache is not old_cache
    assert server.version_cache.ttl == 30
    assert server.version_cache.client.registry == "https://mirror.example"
    assert server.hover_resolver.cache is server.version_cache


@pytest.mark.asyncio
async def test_reconfigure_closes_replaced_services():
    server = create_server()
    old_cache = server.version_cache
    old_http = await old_cache.client._get_client()

    await server.reconfigure(ServerSettings(cache_ttl=30))

    assert old_cache.closed
    assert old_http.is_closed
    assert not server.version_cache.closed
    assert server.version_cache.ttl == 30
    await server.close_services()


@pytest.mark.asyncio
async def test_close_services_stops_lookups():
    server = create_server()

    await server.close_services()

    assert server.version_cache.closed


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])

    assert exc_info.value.code == 0
    assert capsys.readouterr().out.strip() == f"pkgversionls {__version__}"
