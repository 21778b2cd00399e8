"""Tests for engine and session factory helpers."""

import pytest
from sqlalchemy import inspect

from taxline.core.database import create_engine, create_session_factory, create_tables
from taxline.persistence.store import SqlReturnStore


@pytest.mark.asyncio
async def test_sqlite_engine_creates_tables() -> None:
    """sqlite engines skip pool sizing and get tables from metadata."""
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    try:
        await create_tables(engine)
        async with engine.connect() as conn:
            tables = await conn.run_sync(lambda sync: inspect(sync).get_table_names())
        assert "saved_returns" in tables

        store = SqlReturnStore(create_session_factory(engine))
        record = await store.save("pat@example.com", {"fields": {}})
        assert (await store.load("pat@example.com")).id == record.id
    finally:
        await engine.dispose()
