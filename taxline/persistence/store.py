"""Saved-return stores keyed by email.

Two interchangeable backends implement the ReturnStore protocol:
- SqlReturnStore: the `saved_returns` table through SQLAlchemy async
- FileReturnStore: a single JSON document through fsspec

Saves are unconditional upserts keyed by email: the last write wins and no
history is kept. Backend failures surface as StoreError so callers can keep
working with in-memory state.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime
from typing import Any, Protocol

import orjson
from pydantic import BaseModel, ValidationError
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taxline.core.config import settings
from taxline.core.logging import get_logger
from taxline.models.base import utcnow
from taxline.models.saved_return import SavedReturn
from taxline.persistence.files import read_document, write_document

logger = get_logger(__name__)


class StoreError(Exception):
    """Raised when the backing store cannot complete an operation."""


class CorruptRecordError(StoreError):
    """Raised when stored data cannot be parsed."""


class SavedReturnRecord(BaseModel):
    """A saved return as seen by callers of a store."""

    id: str
    email: str
    user_name: str | None = None
    data: dict[str, Any]
    last_modified: datetime


def normalize_email(email: str) -> str:
    """Canonical store key for an email address."""
    return email.strip().lower()


class ReturnStore(Protocol):
    """Persistence service for in-progress returns."""

    async def save(
        self, email: str, data: dict[str, Any], user_name: str | None = None
    ) -> SavedReturnRecord: ...

    async def load(self, email: str) -> SavedReturnRecord | None: ...

    async def update(
        self, return_id: str, data: dict[str, Any]
    ) -> SavedReturnRecord | None: ...

    async def delete(self, return_id: str) -> bool: ...

    async def check(self) -> bool: ...


# =============================================================================
# SQL backend
# =============================================================================


def _to_record(row: SavedReturn) -> SavedReturnRecord:
    return SavedReturnRecord(
        id=row.id,
        email=row.email,
        user_name=row.user_name,
        data=row.data,
        last_modified=row.last_modified,
    )


class SqlReturnStore:
    """ReturnStore backed by the saved_returns table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(
        self, email: str, data: dict[str, Any], user_name: str | None = None
    ) -> SavedReturnRecord:
        """Insert or overwrite the return saved under email.

        A concurrent first save for the same email loses the insert race on
        the unique constraint; it is retried once as an overwrite.
        """
        key = normalize_email(email)
        for attempt in range(2):
            try:
                return await self._upsert(key, data, user_name)
            except IntegrityError as exc:
                if attempt == 1:
                    raise StoreError(f"Failed to save return: {exc}") from exc
                logger.info("return_save_retry_after_conflict")
            except SQLAlchemyError as exc:
                logger.exception("return_save_failed", error=str(exc))
                raise StoreError(f"Failed to save return: {exc}") from exc
        raise StoreError("Failed to save return")

    async def _upsert(
        self, email: str, data: dict[str, Any], user_name: str | None
    ) -> SavedReturnRecord:
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    select(SavedReturn).where(SavedReturn.email == email)
                )
                row = result.scalar_one_or_none()
                created = row is None
                if row is None:
                    row = SavedReturn(id=str(uuid.uuid4()), email=email)
                    session.add(row)
                row.data = data
                if user_name:
                    row.user_name = user_name
                row.last_modified = utcnow()
                await session.commit()
                record = _to_record(row)
            except Exception:
                await session.rollback()
                raise

        logger.info("return_saved", return_id=record.id, created=created)
        return record

    async def load(self, email: str) -> SavedReturnRecord | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(SavedReturn).where(SavedReturn.email == normalize_email(email))
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("return_load_failed", error=str(exc))
            raise StoreError(f"Failed to load return: {exc}") from exc

        if row is None:
            return None
        if not isinstance(row.data, dict):
            raise CorruptRecordError(f"Saved return {row.id} has malformed data")
        return _to_record(row)

    async def update(
        self, return_id: str, data: dict[str, Any]
    ) -> SavedReturnRecord | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(SavedReturn, return_id)
                if row is None:
                    return None
                row.data = data
                row.last_modified = utcnow()
                await session.commit()
                record = _to_record(row)
        except SQLAlchemyError as exc:
            logger.exception("return_update_failed", error=str(exc))
            raise StoreError(f"Failed to update return: {exc}") from exc

        logger.info("return_updated", return_id=return_id)
        return record

    async def delete(self, return_id: str) -> bool:
        try:
            async with self._session_factory() as session:
                row = await session.get(SavedReturn, return_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("return_delete_failed", error=str(exc))
            raise StoreError(f"Failed to delete return: {exc}") from exc

        logger.info("return_deleted", return_id=return_id)
        return True

    async def check(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.exception("database_health_check_failed", error=str(e))
            return False
        return True


# =============================================================================
# File backend
# =============================================================================


class FileReturnStore:
    """ReturnStore backed by one JSON array document.

    Writes are serialized within the process by a lock; the whole document
    is rewritten on every change.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self._lock = asyncio.Lock()

    async def _read_all(self) -> list[SavedReturnRecord]:
        try:
            content = await read_document(self.url)
        except OSError as exc:
            raise StoreError(f"Failed to read {self.url}: {exc}") from exc
        if not content:
            return []

        try:
            items = orjson.loads(content)
        except orjson.JSONDecodeError as exc:
            raise CorruptRecordError(f"Saved returns document is not JSON: {exc}") from exc
        if not isinstance(items, list):
            raise CorruptRecordError("Saved returns document must be a JSON array")

        try:
            return [SavedReturnRecord.model_validate(item) for item in items]
        except ValidationError as exc:
            raise CorruptRecordError(f"Malformed saved return: {exc}") from exc

    async def _write_all(self, records: list[SavedReturnRecord]) -> None:
        payload = orjson.dumps(
            [record.model_dump(mode="json") for record in records],
            option=orjson.OPT_INDENT_2,
        )
        try:
            await write_document(self.url, payload)
        except OSError as exc:
            logger.exception("return_document_write_failed", error=str(exc))
            raise StoreError(f"Failed to write {self.url}: {exc}") from exc

    async def save(
        self, email: str, data: dict[str, Any], user_name: str | None = None
    ) -> SavedReturnRecord:
        key = normalize_email(email)
        async with self._lock:
            records = await self._read_all()
            existing = next((r for r in records if r.email == key), None)
            record = SavedReturnRecord(
                id=existing.id if existing else str(uuid.uuid4()),
                email=key,
                user_name=user_name or (existing.user_name if existing else None),
                data=data,
                last_modified=utcnow(),
            )
            if existing is None:
                records.append(record)
            else:
                records[records.index(existing)] = record
            await self._write_all(records)

        logger.info("return_saved", return_id=record.id, created=existing is None)
        return record

    async def load(self, email: str) -> SavedReturnRecord | None:
        key = normalize_email(email)
        records = await self._read_all()
        return next((r for r in records if r.email == key), None)

    async def update(
        self, return_id: str, data: dict[str, Any]
    ) -> SavedReturnRecord | None:
        async with self._lock:
            records = await self._read_all()
            for index, existing in enumerate(records):
                if existing.id == return_id:
                    record = existing.model_copy(
                        update={"data": data, "last_modified": utcnow()}
                    )
                    records[index] = record
                    await self._write_all(records)
                    break
            else:
                return None

        logger.info("return_updated", return_id=return_id)
        return record

    async def delete(self, return_id: str) -> bool:
        async with self._lock:
            records = await self._read_all()
            remaining = [r for r in records if r.id != return_id]
            if len(remaining) == len(records):
                return False
            await self._write_all(remaining)

        logger.info("return_deleted", return_id=return_id)
        return True

    async def check(self) -> bool:
        try:
            await self._read_all()
        except StoreError as e:
            logger.exception("return_document_health_check_failed", error=str(e))
            return False
        return True


def create_return_store(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> ReturnStore:
    """Create the store selected by settings.return_store.

    Args:
        session_factory: Required for the database backend.

    Raises:
        ValueError: If the database backend is selected without a factory.
    """
    if settings.return_store == "file":
        return FileReturnStore(settings.return_file_url)
    if session_factory is None:
        raise ValueError("Database return store requires a session factory")
    return SqlReturnStore(session_factory)
