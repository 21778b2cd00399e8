"""Tests for knowledge search and assistant endpoints."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from taxline.main import app


@pytest_asyncio.fixture
async def api_client() -> AsyncGenerator[AsyncClient, None]:
    """Create API client over the bundled knowledge base."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.mark.asyncio
async def test_search_articles(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/knowledge/search", params={"q": "overtime"})
    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "overtime"
    assert data["results"]
    assert all(
        "overtime" in (article["title"] + article["content"]).lower()
        for article in data["results"]
    )


@pytest.mark.asyncio
async def test_search_short_query(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/knowledge/search", params={"q": "a"})
    assert response.json()["results"] == []

    response = await api_client.get("/api/knowledge/search")
    assert response.json() == {"query": "", "results": []}


@pytest.mark.asyncio
async def test_ask_assistant_topic(api_client: AsyncClient) -> None:
    response = await api_client.post(
        "/api/assistant", json={"question": "What's new in 2025?"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Emily"
    assert data["kind"] == "topic"
    assert data["topic"] == "new for 2025"


@pytest.mark.asyncio
async def test_ask_assistant_greeting(api_client: AsyncClient) -> None:
    response = await api_client.post("/api/assistant", json={"question": "Hi Emily"})
    data = response.json()
    assert data["kind"] == "greeting"
    assert data["topic"] is None
    assert data["answer"].startswith("Hello! I'm Emily")


@pytest.mark.asyncio
async def test_ask_assistant_requires_question(api_client: AsyncClient) -> None:
    response = await api_client.post("/api/assistant", json={})
    assert response.status_code == 422
