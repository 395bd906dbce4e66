"""Shared pytest fixtures."""

from __future__ import annotations

import os

# Force settings to use test-safe defaults before any import
os.environ.setdefault("HOMELAB_API_KEY", "")
os.environ.setdefault("HOMELAB_KUBECTL_BIN", "kubectl")
os.environ.setdefault("HOMELAB_FLUX_BIN", "flux")
os.environ.setdefault("HOMELAB_TALOSCTL_BIN", "talosctl")

import pytest
from httpx import ASGITransport, AsyncClient

from homelab.services.aggregator import Aggregator
from tests.mock_cli import MockRunner


@pytest.fixture
def mock_runner():
    """Provide a fresh MockRunner."""
    return MockRunner()


@pytest.fixture
def agg(mock_runner):
    """Aggregator wired to the mock runner."""
    return Aggregator(runner=mock_runner)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client(agg, monkeypatch):
    """Async test client with the mock-backed aggregator injected."""
    import homelab.config as cfg_mod
    import homelab.routers.tools as rt

    monkeypatch.setattr(cfg_mod.settings, "api_key", "")
    monkeypatch.setattr(rt, "aggregator", agg)

    from homelab.main import app as fastapi_app

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
