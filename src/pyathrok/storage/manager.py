"""Storage manager: the registry of persisted keys and restored records.

One manager is created per application and passed to every container
that persists.  It owns the active backend, the in-memory cache of
records restored at startup and the set of keys that must be persisted.
The key set itself is mirrored to the backend under a fixed config key so
the next process start knows what to restore.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import weakref
from collections.abc import Callable, Coroutine, Iterable
from typing import TYPE_CHECKING, Any

from pyathrok._constants import CONFIG_LABEL, is_persistence_key
from pyathrok.exceptions import AthrokConfigError
from pyathrok.models.records import PersistedRecord, RegistryConfigRecord, decode_record, decode_registry_config
from pyathrok.storage.backends import (
    AsyncStorage,
    BackendKind,
    Storage,
    SyncStorage,
    UninitializedStorage,
    backend_kind,
)
from pyathrok.storage.scheduling import DefaultScheduler, Scheduler

if TYPE_CHECKING:
    from pyathrok.storage.handler import StorageHandler

_logger = logging.getLogger(__name__)


class StorageManager:
    """Registry of persistence keys, restored records and the active backend.

    Usage::

        manager = StorageManager()
        await manager.ainitialize(AsyncMemoryStorage())
        counter = create_store({"count": 0}, name="counter", persist=PersistConfig(), manager=manager)

    Debounced writes use :class:`DefaultScheduler` unless another scheduler
    is given, so containers work with and without a running event loop.
    Writes to an asynchronous backend need the loop ``ainitialize`` ran on;
    once it has stopped they are logged and dropped.
    """

    def __init__(self, *, scheduler: Scheduler | None = None) -> None:
        self.scheduler: Scheduler = scheduler or DefaultScheduler()
        self.storage: Storage = UninitializedStorage()
        self.persist_data: dict[str, PersistedRecord] = {}
        self._kind = BackendKind.SYNC
        self._persistence_keys: dict[str, None] = {}
        self._restored = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending_writes: set[asyncio.Task[Any]] = set()
        self._handlers: weakref.WeakSet[StorageHandler[Any]] = weakref.WeakSet()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_persist_data_restored(self) -> bool:
        """Whether the startup restore pass has completed."""
        return self._restored

    @property
    def is_initialized(self) -> bool:
        return not isinstance(self.storage, UninitializedStorage)

    @property
    def backend_kind(self) -> BackendKind:
        return self._kind

    @property
    def persistence_keys(self) -> tuple[str, ...]:
        return tuple(self._persistence_keys)

    def get_persistence_keys(self) -> list[str]:
        """Return the registered persistence keys in registration order."""
        return list(self._persistence_keys)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self, storage: SyncStorage) -> None:
        """Install a synchronous backend and restore persisted records.

        Reads the registry config, merges its keys into the current key set,
        writes the merged set back, then caches every persisted record.
        Backend exceptions propagate unchanged.
        """
        if backend_kind(storage) is BackendKind.ASYNC:
            raise AthrokConfigError("asynchronous storage must be installed with 'await ainitialize(storage)'")

        self._install(storage, BackendKind.SYNC)
        config = decode_registry_config(storage.get_item(CONFIG_LABEL))
        self._merge_keys(config.keys)
        self._sync_persistent_config()

        for key in self._restorable_keys():
            self._cache_record(key, storage.get_item(key))
        self._mark_restored()

    async def ainitialize(self, storage: Storage) -> None:
        """Install a backend of either kind and restore persisted records.

        For asynchronous backends the config read, the config write and the
        per-key reads happen in that order; the per-key reads are issued
        concurrently and all complete before the manager reports itself
        restored.
        """
        self._loop = asyncio.get_running_loop()
        if backend_kind(storage) is not BackendKind.ASYNC:
            self.initialize(storage)  # type: ignore[arg-type]
            return

        async_storage: AsyncStorage = storage  # type: ignore[assignment]
        self._install(async_storage, BackendKind.ASYNC)
        config = decode_registry_config(await async_storage.get_item(CONFIG_LABEL))
        self._merge_keys(config.keys)
        await async_storage.set_item(CONFIG_LABEL, self._config_record().to_json())

        keys = self._restorable_keys()
        values = await asyncio.gather(*(async_storage.get_item(key) for key in keys))
        for key, raw in zip(keys, values, strict=True):
            self._cache_record(key, raw)
        self._mark_restored()

    def _install(self, storage: Storage, kind: BackendKind) -> None:
        self.storage = storage
        self._kind = kind
        _logger.debug("Installed %s storage backend %s", kind, type(storage).__name__)

    def _merge_keys(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._persistence_keys.setdefault(key, None)

    def _restorable_keys(self) -> list[str]:
        return [key for key in self._persistence_keys if is_persistence_key(key)]

    def _cache_record(self, key: str, raw: str | None) -> None:
        record = decode_record(raw)
        if record is not None:
            self.persist_data[key] = record

    def _mark_restored(self) -> None:
        self._restored = True
        _logger.debug(
            "Persist data restored: %d of %d keys had records",
            len(self.persist_data),
            len(self._persistence_keys),
        )

    # ------------------------------------------------------------------
    # Key registration
    # ------------------------------------------------------------------

    def register_handler(self, handler: StorageHandler[Any]) -> None:
        """Track *handler* and register its key for persistence."""
        self._handlers.add(handler)
        self.set_persistence_key(handler.key)

    def set_persistence_key(self, key: str) -> None:
        """Add *key* to the persisted key set and re-sync the config record."""
        self._persistence_keys.setdefault(key, None)
        self._sync_persistent_config()

    def clear_persistence(self, key: str) -> None:
        """Stop persisting *key* and delete its stored record."""
        self._persistence_keys.pop(key, None)
        self.persist_data.pop(key, None)
        self.remove_item(key)
        self._sync_persistent_config()

    def _config_record(self) -> RegistryConfigRecord:
        return RegistryConfigRecord(keys=list(self._persistence_keys))

    def _sync_persistent_config(self) -> None:
        if not self.is_initialized:
            return
        self.write_item(CONFIG_LABEL, self._config_record().to_json())

    # ------------------------------------------------------------------
    # Backend writes
    # ------------------------------------------------------------------

    def write_item(self, key: str, value: str) -> None:
        """Write *value* under *key* without waiting for completion."""
        if self._kind is BackendKind.ASYNC:
            storage: AsyncStorage = self.storage  # type: ignore[assignment]
            self._submit("write", key, functools.partial(storage.set_item, key, value))
            return
        self.storage.set_item(key, value)

    def remove_item(self, key: str) -> None:
        """Delete *key* from the backend without waiting for completion."""
        if self._kind is BackendKind.ASYNC:
            storage: AsyncStorage = self.storage  # type: ignore[assignment]
            self._submit("removal", key, functools.partial(storage.remove_item, key))
            return
        self.storage.remove_item(key)

    def _submit(self, action: str, key: str, operation: Callable[[], Coroutine[Any, Any, None]]) -> None:
        """Run an asynchronous backend operation as a tracked background task.

        The task starts on the running loop when called from a coroutine, and
        is handed to the loop captured by :meth:`ainitialize` when called from
        another thread (a timer thread, for instance).  With neither loop
        available the operation is dropped with a warning.
        """
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None:
            self._track(running.create_task(operation()))
            return

        loop = self._loop
        if loop is not None and loop.is_running():
            loop.call_soon_threadsafe(self._start, operation)
            return

        _logger.warning("No running event loop for asynchronous storage, dropped %s of %s", action, key)

    def _start(self, operation: Callable[[], Coroutine[Any, Any, None]]) -> None:
        self._track(asyncio.get_running_loop().create_task(operation()))

    def _track(self, task: asyncio.Task[Any]) -> None:
        self._pending_writes.add(task)
        task.add_done_callback(self._on_write_done)

    def _on_write_done(self, task: asyncio.Task[Any]) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Background storage write failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait for in-flight asynchronous writes to finish."""
        while self._pending_writes:
            await asyncio.wait(set(self._pending_writes))

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def shutdown(self, *, flush: bool = True) -> None:
        """Reset the manager to its uninitialized state.

        Pending debounced writes are written first when *flush* is true and
        dropped otherwise.  Asynchronous writes started here keep running;
        await :meth:`drain` to wait for them, or use :meth:`aclose`.
        """
        for handler in list(self._handlers):
            if flush:
                handler.flush()
            else:
                handler.cancel()
        self.storage = UninitializedStorage()
        self._kind = BackendKind.SYNC
        self.persist_data.clear()
        self._restored = False
        self._loop = None
        _logger.debug("Storage manager shut down")

    async def aclose(self) -> None:
        """Flush pending writes, wait for them and shut down."""
        self.shutdown(flush=True)
        await self.drain()
