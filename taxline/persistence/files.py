"""fsspec helpers for document-backed storage.

Resolves a storage URL (local path, file://, memory://, s3://, gs://) to a
filesystem and path, and reads/writes whole documents off the event loop.
"""

import asyncio
import os
from urllib.parse import urlparse

import fsspec


def get_filesystem(url: str) -> fsspec.AbstractFileSystem:
    """Get filesystem for URL, auto-detecting protocol.

    Examples:
        get_filesystem("/var/lib/taxline/returns.json") -> LocalFileSystem
        get_filesystem("memory://returns.json") -> MemoryFileSystem
        get_filesystem("s3://bucket/returns.json") -> S3FileSystem
    """
    parsed = urlparse(url)
    if not parsed.scheme or parsed.scheme == "file":
        return fsspec.filesystem("file")
    return fsspec.filesystem(parsed.scheme)


def resolve_path(url: str) -> str:
    """Strip the protocol from a storage URL, keeping what fsspec expects."""
    parsed = urlparse(url)
    if not parsed.scheme or parsed.scheme == "file":
        return parsed.path if parsed.path else url
    return f"{parsed.netloc}{parsed.path}" if parsed.netloc else parsed.path


def _is_local(url: str) -> bool:
    scheme = urlparse(url).scheme
    return not scheme or scheme == "file"


async def document_exists(url: str) -> bool:
    """Check whether the document at url exists."""
    fs = get_filesystem(url)
    return await asyncio.to_thread(fs.exists, resolve_path(url))


async def read_document(url: str) -> bytes | None:
    """Read a whole document.

    Returns:
        Document bytes, or None if it does not exist yet.
    """
    fs = get_filesystem(url)
    path = resolve_path(url)
    try:
        return await asyncio.to_thread(_read_sync, fs, path)
    except FileNotFoundError:
        return None


async def write_document(url: str, content: bytes) -> str:
    """Replace a whole document.

    Local writes go to a sibling temp file that is then moved into place, so
    readers never observe a partial document.

    Returns:
        Resolved path written to.
    """
    fs = get_filesystem(url)
    path = resolve_path(url)
    if _is_local(url):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        await asyncio.to_thread(_write_local_atomic, path, content)
    else:
        await asyncio.to_thread(_write_sync, fs, path, content)
    return path


def _read_sync(fs: fsspec.AbstractFileSystem, path: str) -> bytes:
    with fs.open(path, "rb") as f:
        return f.read()


def _write_sync(fs: fsspec.AbstractFileSystem, path: str, content: bytes) -> None:
    with fs.open(path, "wb") as f:
        f.write(content)


def _write_local_atomic(path: str, content: bytes) -> None:
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "wb") as f:
        f.write(content)
    os.replace(tmp_path, path)
