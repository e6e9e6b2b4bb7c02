"""Per-key persistence handlers.

A :class:`StorageHandler` reads its key's restored record from the
storage manager (checking the version tag and migrating stale data) and
writes new values back with a debounce: a burst of writes within the
debounce window results in a single backend write carrying the last value.

Containers without persistence use :class:`UninitializedStorageHandler`,
which never finds anything and never writes.
"""

from __future__ import annotations

import enum
import functools
import logging
import threading
from collections.abc import Mapping
from typing import Any, Final, Generic, Literal, TypeVar

from pydantic import ValidationError

from pyathrok._constants import persistence_key
from pyathrok.config import PersistConfig
from pyathrok.models.records import PersistedRecord
from pyathrok.storage.manager import StorageManager
from pyathrok.storage.scheduling import Cancellable

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class NotFoundType(enum.Enum):
    """Type of the :data:`NOT_FOUND` sentinel."""

    NOT_FOUND = "NOT_FOUND"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND: Final = NotFoundType.NOT_FOUND
"""Returned by ``get_item`` when there is no usable stored value."""


def _coerce_record(entry: Any) -> PersistedRecord | None:
    if isinstance(entry, PersistedRecord):
        return entry
    if isinstance(entry, Mapping):
        try:
            return PersistedRecord.model_validate(entry)
        except ValidationError:
            return None
    return None


class StorageHandler(Generic[T]):
    """Versioned reads and debounced writes for a single store key."""

    def __init__(
        self,
        manager: StorageManager,
        store_name: str,
        config: PersistConfig | None = None,
    ) -> None:
        self._manager = manager
        self._key = persistence_key(store_name)
        self.config = config or PersistConfig()
        self._pending: Cancellable | None = None
        self._pending_value: Any = None
        self._generation = 0
        self._lock = threading.Lock()
        manager.register_handler(self)

    @property
    def key(self) -> str:
        return self._key

    @property
    def pending(self) -> bool:
        """Whether a debounced write is scheduled."""
        return self._pending is not None

    def get_item(self) -> T | Literal[NotFoundType.NOT_FOUND]:
        """Return the stored value for this key, or :data:`NOT_FOUND`.

        A record with a matching version (both unset counts as matching) is
        returned verbatim.  A mismatched record is passed through
        ``config.migrate`` when one is configured and discarded otherwise.
        """
        if not self._manager.is_persist_data_restored:
            _logger.debug("Reading %s before persisted data was restored", self._key)

        record = _coerce_record(self._manager.persist_data.get(self._key))
        if record is None:
            return NOT_FOUND

        if record.version == self.config.version:
            return record.value  # type: ignore[no-any-return]

        if self.config.migrate is not None:
            _logger.debug("Migrating %s from version %s to %s", self._key, record.version, self.config.version)
            return self.config.migrate(record.value)  # type: ignore[no-any-return]

        _logger.debug(
            "Discarding %s: stored version %s does not match %s",
            self._key,
            record.version,
            self.config.version,
        )
        return NOT_FOUND

    def set_item(self, value: T) -> None:
        """Schedule *value* to be written after the debounce window.

        Any write still pending is cancelled and replaced.  The backend write
        is not awaited and its outcome is not reported.
        """
        with self._lock:
            self._drop_pending()
            self._generation += 1
            self._pending_value = value
            self._pending = self._manager.scheduler.call_later(
                self.config.debounce_time, functools.partial(self._fire, self._generation)
            )

    def flush(self) -> None:
        """Perform the pending write immediately, if there is one."""
        with self._lock:
            if self._pending is None:
                return
            self._pending.cancel()
            value = self._take_pending()
        self._write(value)

    def cancel(self) -> None:
        """Drop the pending write, if there is one."""
        with self._lock:
            self._drop_pending()

    def _drop_pending(self) -> None:
        if self._pending is None:
            return
        self._pending.cancel()
        self._take_pending()

    def _take_pending(self) -> Any:
        value = self._pending_value
        self._pending = None
        self._pending_value = None
        return value

    def _fire(self, generation: int) -> None:
        # A timer thread may fire after its slot was replaced or flushed.
        with self._lock:
            if self._pending is None or generation != self._generation:
                return
            value = self._take_pending()
        self._write(value)

    def _write(self, value: Any) -> None:
        record = PersistedRecord(value=self.config.partial(value), version=self.config.version)
        payload = record.to_json()
        _logger.debug("Persisting %s (%d bytes)", self._key, len(payload))
        self._manager.write_item(self._key, payload)


class UninitializedStorageHandler(Generic[T]):
    """Handler for containers without persistence."""

    key: str | None = None
    pending = False

    def __init__(self) -> None:
        self.config = PersistConfig(enable=False)

    def get_item(self) -> Literal[NotFoundType.NOT_FOUND]:
        return NOT_FOUND

    def set_item(self, value: T) -> None:
        pass

    def flush(self) -> None:
        pass

    def cancel(self) -> None:
        pass
