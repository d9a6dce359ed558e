"""Local fallback cache.

The cache is a narrow capability, not authoritative storage: it mirrors
state as a crash-recovery hedge and holds legacy data awaiting migration.
Once remote data exists, the remote document wins.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .exceptions import DocumentParseError

KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


@runtime_checkable
class LocalCache(Protocol):
    """Key/value byte store on the local device."""

    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def clear(self, key: str) -> None: ...


class MemoryCache:
    """In-process cache, used in tests and when no persistent store is wanted."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self.data: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = value

    def clear(self, key: str) -> None:
        self.data.pop(key, None)


class FileCache:
    """
    Persistent cache storing one file per key under a directory.

    Writes go through a temporary file and an atomic rename, so a crash
    mid-write leaves the previous value intact.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not KEY_PATTERN.match(key):
            raise ValueError(f"Invalid cache key: {key!r}")
        return self.directory / key

    def get(self, key: str) -> bytes | None:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def clear(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def get_json(cache: LocalCache, key: str) -> Any | None:
    """
    Read and decode a JSON value.

    Raises:
        DocumentParseError: If the cached value is not valid JSON
    """
    raw = cache.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DocumentParseError(f"cache:{key}", str(e)) from e


def set_json(cache: LocalCache, key: str, value: Any) -> None:
    cache.set(key, json.dumps(value, ensure_ascii=False).encode())
