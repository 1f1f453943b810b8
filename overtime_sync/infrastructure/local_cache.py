"""
Local persistence for overtime-sync.

Two storage backends (a directory of JSON files for the device, an in-memory
dict for sessions and tests) and the LocalCache that keeps a full collection
snapshot under one stable key.

The cache never raises to its caller: a missing or corrupt snapshot loads as an
empty collection, and a failed write is logged and dropped. The remote copy and
the next successful cycle make up for it.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from pydantic import ValidationError

from overtime_sync.infrastructure.abstract import AbstractKeyValueStorage, KeyValueStorage
from overtime_sync.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

# Stable storage keys shared by every device build.
RECORDS_CACHE_KEY = "overtime_records_v2"
USERS_CACHE_KEY = "app_users"
WEBHOOK_URL_KEY = "google_sheet_url"
SESSION_USER_KEY = "logged_user"


class FileStorage(AbstractKeyValueStorage):
    """
    Persist each key as ``<directory>/<key>.json``.

    Writes go through a temporary file and an atomic rename so a crash never
    leaves a half-written snapshot behind.
    """

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class MemoryStorage(AbstractKeyValueStorage):
    """Process-lifetime storage; used for session scope and in tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class LocalCache(Generic[T]):
    """
    A persisted snapshot of one whole collection.

    Parameters
    ----------
    storage : KeyValueStorage
        Backend holding the serialized snapshot.
    key : str
        Storage key of the snapshot.
    parse : callable
        Converts the decoded JSON array into items; may raise ValidationError.
    dump : callable
        Converts items into a JSON-serializable list.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        parse: Callable[[Any], List[T]],
        dump: Callable[[Iterable[T]], List[Any]],
    ) -> None:
        self.storage = storage
        self.key = key
        self._parse = parse
        self._dump = dump

    def load(self) -> List[T]:
        """Return the cached collection, or an empty one if absent or corrupt."""
        try:
            raw = self.storage.get(self.key)
        except UnicodeDecodeError:
            log.warning("[CACHE CORRUPT] Snapshot is not valid UTF-8", extra={"key": self.key})
            return []
        except OSError:
            log.exception("[CACHE READ FAILED]", extra={"key": self.key})
            return []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("[CACHE CORRUPT] Unparseable snapshot ignored", extra={"key": self.key})
            return []
        if not isinstance(data, list):
            log.warning("[CACHE CORRUPT] Snapshot is not a list", extra={"key": self.key})
            return []
        try:
            return self._parse(data)
        except ValidationError as exc:
            log.warning(
                "[CACHE CORRUPT] Snapshot failed validation",
                extra={"key": self.key, "errors": exc.error_count()},
            )
            return []

    def save(self, items: Iterable[T]) -> None:
        """Persist the collection; failures are logged, never raised."""
        payload = json.dumps(self._dump(items), ensure_ascii=False)
        try:
            self.storage.set(self.key, payload)
        except OSError:
            log.exception("[CACHE WRITE FAILED]", extra={"key": self.key})

    def clear(self) -> None:
        self.storage.delete(self.key)


__all__ = [
    "FileStorage",
    "LocalCache",
    "MemoryStorage",
    "RECORDS_CACHE_KEY",
    "SESSION_USER_KEY",
    "USERS_CACHE_KEY",
    "WEBHOOK_URL_KEY",
]
