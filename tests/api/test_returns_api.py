"""Tests for saved-return API endpoints."""

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from taxline.api.deps import get_store
from taxline.main import app
from taxline.persistence.store import (
    FileReturnStore,
    ReturnStore,
    SavedReturnRecord,
    StoreError,
)

RETURN_DATA = {
    "profile": {"tax_type": "federal-1040", "filing_status": "single"},
    "fields": {"line1a": "64225.00"},
}


class BrokenStore:
    """Store whose every operation fails."""

    async def save(
        self, email: str, data: dict[str, Any], user_name: str | None = None
    ) -> SavedReturnRecord:
        raise StoreError("connection refused")

    async def load(self, email: str) -> SavedReturnRecord | None:
        raise StoreError("connection refused")

    async def update(self, return_id: str, data: dict[str, Any]) -> SavedReturnRecord | None:
        raise StoreError("connection refused")

    async def delete(self, return_id: str) -> bool:
        raise StoreError("connection refused")


async def _client_for(store: ReturnStore) -> AsyncClient:
    async def override_get_store() -> ReturnStore:
        return store

    app.dependency_overrides[get_store] = override_get_store
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def api_client(tmp_path: Path) -> AsyncGenerator[AsyncClient, None]:
    """Create API client over a file-backed store."""
    client = await _client_for(FileReturnStore(str(tmp_path / "saved-returns.json")))
    async with client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_save_and_load(api_client: AsyncClient) -> None:
    """Save a return and load it back by email."""
    save_response = await api_client.post(
        "/api/save",
        json={"email": "Pat@Example.com", "data": RETURN_DATA, "user_name": "Pat"},
    )
    assert save_response.status_code == 200
    saved = save_response.json()
    assert saved["success"] is True
    assert saved["message"] == "Tax return saved successfully"

    load_response = await api_client.get("/api/load/pat@example.com")
    assert load_response.status_code == 200
    loaded = load_response.json()
    assert loaded["success"] is True
    assert loaded["data"]["id"] == saved["id"]
    assert loaded["data"]["email"] == "pat@example.com"
    assert loaded["data"]["user_name"] == "Pat"
    assert loaded["data"]["data"] == RETURN_DATA
    assert "last_modified" in loaded["data"]


@pytest.mark.asyncio
async def test_save_same_email_overwrites(api_client: AsyncClient) -> None:
    """A second save under the same email keeps the same record."""
    first = await api_client.post(
        "/api/save", json={"email": "pat@example.com", "data": RETURN_DATA}
    )
    second = await api_client.post(
        "/api/save",
        json={"email": "pat@example.com", "data": {"fields": {"line1a": "1.00"}}},
    )
    assert first.json()["id"] == second.json()["id"]

    loaded = (await api_client.get("/api/load/pat@example.com")).json()
    assert loaded["data"]["data"] == {"fields": {"line1a": "1.00"}}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"data": RETURN_DATA},
        {"email": "  ", "data": RETURN_DATA},
        {"email": "pat@example.com"},
        {"email": "pat@example.com", "data": {}},
    ],
)
async def test_save_requires_email_and_data(
    api_client: AsyncClient, payload: dict[str, Any]
) -> None:
    response = await api_client.post("/api/save", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "Email and data are required"


@pytest.mark.asyncio
async def test_load_missing(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/load/nobody@example.com")
    assert response.status_code == 404
    assert response.json()["detail"] == "No saved return found for this email"


@pytest.mark.asyncio
async def test_update_and_delete(api_client: AsyncClient) -> None:
    """Update replaces data by id; delete removes the record."""
    saved = (
        await api_client.post(
            "/api/save", json={"email": "pat@example.com", "data": RETURN_DATA}
        )
    ).json()

    update_response = await api_client.put(
        f"/api/update/{saved['id']}", json={"data": {"fields": {"line1a": "10.00"}}}
    )
    assert update_response.status_code == 200
    assert update_response.json() == {
        "success": True,
        "message": "Tax return updated successfully",
    }
    loaded = (await api_client.get("/api/load/pat@example.com")).json()
    assert loaded["data"]["data"] == {"fields": {"line1a": "10.00"}}

    delete_response = await api_client.delete(f"/api/delete/{saved['id']}")
    assert delete_response.status_code == 200
    assert delete_response.json()["message"] == "Tax return deleted successfully"

    assert (await api_client.get("/api/load/pat@example.com")).status_code == 404
    assert (await api_client.delete(f"/api/delete/{saved['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_update_validation(api_client: AsyncClient) -> None:
    missing_data = await api_client.put("/api/update/abc", json={})
    assert missing_data.status_code == 400
    assert missing_data.json()["detail"] == "Data is required"

    unknown = await api_client.put("/api/update/abc", json={"data": RETURN_DATA})
    assert unknown.status_code == 404
    assert unknown.json()["detail"] == "Tax return not found"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("method", "url", "body", "detail"),
    [
        ("POST", "/api/save", {"email": "pat@example.com", "data": RETURN_DATA}, "save"),
        ("GET", "/api/load/pat@example.com", None, "load"),
        ("PUT", "/api/update/abc", {"data": RETURN_DATA}, "update"),
        ("DELETE", "/api/delete/abc", None, "delete"),
    ],
)
async def test_store_failure_returns_503(
    method: str, url: str, body: dict[str, Any] | None, detail: str
) -> None:
    """Store errors surface as 503 with a generic message."""
    client = await _client_for(BrokenStore())
    try:
        response = await client.request(method, url, json=body)
    finally:
        await client.aclose()
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["detail"] == f"Failed to {detail} data"
