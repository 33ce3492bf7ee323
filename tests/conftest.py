"""Shared pytest fixtures."""

from __future__ import annotations

import os

# Force settings to use test-safe defaults before any import
os.environ.setdefault("PANELSYNC_API_KEY", "")
os.environ.setdefault("DIRECTADMIN_HOST", "")
os.environ.setdefault("PANELSYNC_SERVERS_JSON", "")

import pytest
from httpx import ASGITransport, AsyncClient

from panelsync.models.server import ServerRecord
from panelsync.services.reconcile import DirectAdminService
from tests.mock_directadmin import ADMIN, FakeDirectAdmin


@pytest.fixture
def fake_da():
    """Provide a fresh FakeDirectAdmin."""
    return FakeDirectAdmin()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def sleeps():
    """Delays requested by retry policies, recorded instead of slept."""
    return []


@pytest.fixture
def no_sleep(sleeps):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def service(fake_da, no_sleep):
    """Reconciliation service wired to the fake panel."""
    return DirectAdminService(ADMIN, transport=fake_da.transport, sleep=no_sleep)


@pytest.fixture
async def client(fake_da, no_sleep, monkeypatch):
    """Async test client with every service pointed at the fake panel."""
    import panelsync.deps as deps_mod
    from panelsync.config import settings
    from panelsync.services import server_registry

    monkeypatch.setattr(settings, "panelsync_api_key", "")

    original_servers = dict(server_registry._servers)
    server_registry._servers.clear()
    server_registry.register_server(
        ServerRecord(
            id="srv1",
            name="Test panel",
            host=ADMIN.host,
            port=ADMIN.port,
            username=ADMIN.username,
            password=ADMIN.password,
        ),
    )

    def _factory(credential):
        return DirectAdminService(
            credential, transport=fake_da.transport, sleep=no_sleep,
        )

    monkeypatch.setattr(deps_mod, "service_factory", _factory)

    from panelsync.main import app as fastapi_app

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Restore
    server_registry._servers.clear()
    server_registry._servers.update(original_servers)
