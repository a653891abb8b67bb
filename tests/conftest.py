"""
Test Configuration
==================

Pytest configuration with fixtures shared by unit and integration tests.
"""

import os

# Settings are read on first import, so the test environment is set up front
os.environ.setdefault("ESSENCE_SSE_ENVIRONMENT", "testing")
os.environ.setdefault("ESSENCE_SSE_LOG_LEVEL", "DEBUG")
os.environ.setdefault("ESSENCE_SSE_SSE_HEARTBEAT_INTERVAL_SECONDS", "0")

import pytest
import pytest_asyncio
from typing import AsyncGenerator

import httpx

from essence_sse.api.main import create_app
from essence_sse.sse import AbortSignal, Emitter

from tests.fixtures.sse_fixtures import CallbackRecorder


@pytest.fixture
def abort_signal() -> AbortSignal:
    """Fresh abort signal."""
    return AbortSignal()


@pytest.fixture
def recorder() -> CallbackRecorder:
    """Collects data and error callbacks."""
    return CallbackRecorder()


@pytest.fixture
def emitter(abort_signal: AbortSignal, recorder: CallbackRecorder) -> Emitter:
    """Unopened emitter on the ``progress`` channel reporting into ``recorder``."""
    return Emitter(abort_signal, "progress", on_error=recorder.on_error, heartbeat_interval=0)


@pytest_asyncio.fixture
async def api_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the demo FastAPI application."""
    transport = httpx.ASGITransport(app=create_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file paths."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
