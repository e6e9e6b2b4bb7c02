"""Key/value storage backends.

A backend stores strings under string keys.  Synchronous backends return
results directly; asynchronous backends return coroutines.  Each backend
declares which kind it is through a ``kind`` attribute so the storage
manager never has to inspect returned values.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Sequence
from enum import StrEnum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pyathrok.exceptions import AthrokStorageError

_logger = logging.getLogger(__name__)


class BackendKind(StrEnum):
    SYNC = "sync"
    ASYNC = "async"


@runtime_checkable
class SyncStorage(Protocol):
    """Synchronous key/value storage."""

    def get_keys(self) -> Sequence[str]: ...

    def get_item(self, name: str) -> str | None: ...

    def set_item(self, name: str, value: str) -> None: ...

    def remove_item(self, name: str) -> None: ...


@runtime_checkable
class AsyncStorage(Protocol):
    """Asynchronous key/value storage.

    Implementations must set ``kind = BackendKind.ASYNC``.
    """

    kind: BackendKind

    async def get_keys(self) -> Sequence[str]: ...

    async def get_item(self, name: str) -> str | None: ...

    async def set_item(self, name: str, value: str) -> None: ...

    async def remove_item(self, name: str) -> None: ...


Storage = SyncStorage | AsyncStorage


def backend_kind(storage: Any) -> BackendKind:
    """Return the declared kind of *storage* (``SYNC`` when undeclared)."""
    return BackendKind(getattr(storage, "kind", BackendKind.SYNC))


class UninitializedStorage:
    """Stand-in used before a real backend is installed.

    Every operation logs a warning and returns a safe default, so callers
    never need to check whether storage exists.
    """

    kind = BackendKind.SYNC

    def _warn(self, operation: str) -> None:
        _logger.warning("Attempted to access storage before initialization, method: %s", operation)

    def get_keys(self) -> list[str]:
        self._warn("get_keys")
        return []

    def get_item(self, name: str) -> str | None:
        self._warn("get_item")
        return None

    def set_item(self, name: str, value: str) -> None:
        self._warn("set_item")

    def remove_item(self, name: str) -> None:
        self._warn("remove_item")


class MemoryStorage:
    """Dict-backed synchronous storage."""

    kind = BackendKind.SYNC

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_keys(self) -> list[str]:
        return list(self._data)

    def get_item(self, name: str) -> str | None:
        return self._data.get(name)

    def set_item(self, name: str, value: str) -> None:
        self._data[name] = value

    def remove_item(self, name: str) -> None:
        self._data.pop(name, None)


class AsyncMemoryStorage:
    """Dict-backed asynchronous storage."""

    kind = BackendKind.ASYNC

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get_keys(self) -> list[str]:
        return list(self._data)

    async def get_item(self, name: str) -> str | None:
        return self._data.get(name)

    async def set_item(self, name: str, value: str) -> None:
        self._data[name] = value

    async def remove_item(self, name: str) -> None:
        self._data.pop(name, None)


class JsonFileStorage:
    """Synchronous storage backed by a single JSON object file.

    The file is loaded lazily on first access and rewritten atomically
    (write to a temporary sibling, then rename) on every mutation.  A
    missing file reads as empty storage.
    """

    kind = BackendKind.SYNC

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._data: dict[str, str] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if self._data is not None:
            return self._data
        if not self._path.exists():
            self._data = {}
            return self._data
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise AthrokStorageError(f"Cannot read storage file: {exc}", path=str(self._path)) from exc
        if not isinstance(raw, dict):
            raise AthrokStorageError("Storage file does not contain a JSON object", path=str(self._path))
        bad = sorted(k for k, v in raw.items() if not isinstance(v, str))
        if bad:
            raise AthrokStorageError(f"Storage file has non-string values for keys: {bad}", path=str(self._path))
        self._data = raw
        _logger.debug("Loaded %d entries from %s", len(self._data), self._path)
        return self._data

    def _dump(self) -> None:
        data = self._load()
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise AthrokStorageError(f"Cannot write storage file: {exc}", path=str(self._path)) from exc

    def get_keys(self) -> list[str]:
        return list(self._load())

    def get_item(self, name: str) -> str | None:
        return self._load().get(name)

    def set_item(self, name: str, value: str) -> None:
        self._load()[name] = value
        self._dump()

    def remove_item(self, name: str) -> None:
        if self._load().pop(name, None) is not None:
            self._dump()
