"""Tests for the saved-return stores."""

from pathlib import Path

import orjson
import pytest
from sqlalchemy.exc import OperationalError

from taxline.persistence.store import (
    CorruptRecordError,
    FileReturnStore,
    SqlReturnStore,
    StoreError,
    create_return_store,
    normalize_email,
)

DATA = {"profile": {"tax_type": "federal-1040", "filing_status": "single"}, "fields": {}}


@pytest.fixture(params=["sql", "file"])
def store(request: pytest.FixtureRequest, sql_store: SqlReturnStore, file_store: FileReturnStore):
    """Run each behavior test against both backends."""
    return sql_store if request.param == "sql" else file_store


class TestReturnStore:
    """Behavior shared by both backends."""

    @pytest.mark.asyncio
    async def test_save_then_load(self, store) -> None:
        saved = await store.save("pat@example.com", DATA, "Pat")
        loaded = await store.load("pat@example.com")
        assert loaded is not None
        assert loaded.id == saved.id
        assert loaded.data == DATA
        assert loaded.user_name == "Pat"

    @pytest.mark.asyncio
    async def test_load_missing(self, store) -> None:
        assert await store.load("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_save_overwrites_same_email(self, store) -> None:
        """Second save keeps the id and replaces the data."""
        first = await store.save("pat@example.com", DATA)
        second = await store.save("PAT@example.com ", {"fields": {"line1a": "5.00"}})
        assert second.id == first.id
        loaded = await store.load("pat@example.com")
        assert loaded.data == {"fields": {"line1a": "5.00"}}

    @pytest.mark.asyncio
    async def test_user_name_kept_when_omitted(self, store) -> None:
        await store.save("pat@example.com", DATA, "Pat")
        record = await store.save("pat@example.com", DATA)
        assert record.user_name == "Pat"

    @pytest.mark.asyncio
    async def test_update(self, store) -> None:
        saved = await store.save("pat@example.com", DATA)
        updated = await store.update(saved.id, {"fields": {"line2b": "1.00"}})
        assert updated is not None
        assert updated.data == {"fields": {"line2b": "1.00"}}
        assert updated.last_modified >= saved.last_modified

    @pytest.mark.asyncio
    async def test_update_unknown(self, store) -> None:
        assert await store.update("missing-id", DATA) is None

    @pytest.mark.asyncio
    async def test_delete(self, store) -> None:
        saved = await store.save("pat@example.com", DATA)
        assert await store.delete(saved.id) is True
        assert await store.load("pat@example.com") is None
        assert await store.delete(saved.id) is False

    @pytest.mark.asyncio
    async def test_check(self, store) -> None:
        assert await store.check() is True


class TestFileReturnStore:
    """File backend specifics."""

    @pytest.mark.asyncio
    async def test_document_is_json_array(self, file_store: FileReturnStore) -> None:
        await file_store.save("a@example.com", DATA)
        await file_store.save("b@example.com", DATA)
        items = orjson.loads(Path(file_store.url).read_bytes())
        assert [item["email"] for item in items] == ["a@example.com", "b@example.com"]

    @pytest.mark.asyncio
    async def test_corrupt_document(self, file_store: FileReturnStore) -> None:
        Path(file_store.url).write_text("{not json")
        with pytest.raises(CorruptRecordError):
            await file_store.load("a@example.com")
        assert await file_store.check() is False

    @pytest.mark.asyncio
    async def test_non_array_document(self, file_store: FileReturnStore) -> None:
        Path(file_store.url).write_text('{"email": "a@example.com"}')
        with pytest.raises(CorruptRecordError, match="JSON array"):
            await file_store.load("a@example.com")

    @pytest.mark.asyncio
    async def test_malformed_record(self, file_store: FileReturnStore) -> None:
        Path(file_store.url).write_text('[{"email": "a@example.com"}]')
        with pytest.raises(CorruptRecordError, match="Malformed"):
            await file_store.load("a@example.com")

    @pytest.mark.asyncio
    async def test_memory_filesystem(self) -> None:
        store = FileReturnStore("memory://taxline-tests/saved-returns.json")
        saved = await store.save("mem@example.com", DATA)
        assert (await store.load("mem@example.com")).id == saved.id
        assert await store.delete(saved.id)


class TestSqlReturnStore:
    """SQL backend specifics."""

    @pytest.mark.asyncio
    async def test_database_failure_raises_store_error(self, sql_store: SqlReturnStore) -> None:
        class BrokenSession:
            async def __aenter__(self):
                raise OperationalError("SELECT", {}, Exception("database is down"))

            async def __aexit__(self, *exc_info) -> None:
                return None

        broken = SqlReturnStore(lambda: BrokenSession())
        with pytest.raises(StoreError):
            await broken.load("pat@example.com")
        with pytest.raises(StoreError):
            await broken.save("pat@example.com", DATA)
        assert await broken.check() is False


def test_normalize_email() -> None:
    assert normalize_email("  Pat@Example.COM ") == "pat@example.com"


def test_create_return_store_file(monkeypatch, tmp_path: Path) -> None:
    from taxline.core.config import settings

    monkeypatch.setattr(settings, "return_store", "file")
    monkeypatch.setattr(settings, "return_file_url", str(tmp_path / "r.json"))
    store = create_return_store()
    assert isinstance(store, FileReturnStore)


def test_create_return_store_database_requires_factory(monkeypatch) -> None:
    from taxline.core.config import settings

    monkeypatch.setattr(settings, "return_store", "database")
    with pytest.raises(ValueError, match="session factory"):
        create_return_store()
