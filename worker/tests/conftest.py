import asyncio
import sys
from pathlib import Path

import httpx
import pytest

# Ensure the `leadgen` package is importable when running pytest from the repo root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def sleeps(monkeypatch):
    """Record asyncio.sleep delays instead of waiting."""
    recorded = []

    async def fake_sleep(delay, *args, **kwargs):
        recorded.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return recorded


@pytest.fixture
def mock_client():
    """Factory for an httpx.AsyncClient answering from a handler function."""

    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory
