"""
Pytest configuration and fixtures for Compose Studio service tests.
"""

from __future__ import annotations

import asyncio
import os

# Set test environment variables before importing config
os.environ.setdefault("STUDIO_STORAGE_DIR", "")
os.environ.setdefault("ENVIRONMENT", "test")

import httpx  # noqa: E402
import pytest_asyncio  # noqa: E402

from backend.config import settings  # noqa: E402
from backend.main import app  # noqa: E402
from backend.session import open_workspace  # noqa: E402
from studio.kernel.history import MemoryStorage  # noqa: E402


@pytest_asyncio.fixture
async def storage():
    return MemoryStorage()


@pytest_asyncio.fixture
async def workspace(storage):
    """
    Fresh workspace per test. ASGITransport does not run the lifespan, so the
    fixture installs the session on app.state itself.
    """
    ws = open_workspace(settings, storage)
    app.state.workspace = ws
    app.state.workspace_lock = asyncio.Lock()
    yield ws
    app.state.workspace = None
    app.state.workspace_lock = None


@pytest_asyncio.fixture
async def async_client(workspace):
    """Async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
