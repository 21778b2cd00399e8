"""Saved-return persistence keyed by email.

Provides a SQL-backed store and an fsspec document store behind one
ReturnStore protocol.
"""

from taxline.persistence.files import get_filesystem, read_document, write_document
from taxline.persistence.store import (
    CorruptRecordError,
    FileReturnStore,
    ReturnStore,
    SavedReturnRecord,
    SqlReturnStore,
    StoreError,
    create_return_store,
    normalize_email,
)

__all__ = [
    "CorruptRecordError",
    "FileReturnStore",
    "ReturnStore",
    "SavedReturnRecord",
    "SqlReturnStore",
    "StoreError",
    "create_return_store",
    "get_filesystem",
    "normalize_email",
    "read_document",
    "write_document",
]
