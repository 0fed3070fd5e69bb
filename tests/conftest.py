"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from codechat.api.app import app
from codechat.catalog.models import ContentItem
from codechat.chat.state import ChatStateStore


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_item() -> Callable[..., ContentItem]:
    """Factory for content rows."""

    def _make(item_id: int = 1, **fields: Any) -> ContentItem:
        fields.setdefault("name", f"example_{item_id}.py")
        fields.setdefault("version", "2.9.3")
        fields.setdefault("content", f"def example_{item_id}(): pass")
        return ContentItem(id=item_id, **fields)

    return _make


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "chat.json"


@pytest.fixture
def state_store(state_path: Path) -> ChatStateStore:
    return ChatStateStore(state_path, default_version="1.0.0")
