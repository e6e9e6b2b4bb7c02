"""State containers.

A container holds a live value, notifies subscribed listeners when the
value changes and forwards every change to its storage handler.  On first
access it hydrates exactly once: the initial value is combined with any
persisted value according to the container's :class:`MergeStrategy`, and
the result is kept for the lifetime of the container.  Later changes in
the backend are never re-read.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

from pyathrok.config import PersistConfig, StoreConfig
from pyathrok.exceptions import AthrokConfigError
from pyathrok.state.merge import MergeStrategy
from pyathrok.storage.handler import NOT_FOUND, StorageHandler, UninitializedStorageHandler
from pyathrok.storage.manager import StorageManager

_logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]
Update = T | Callable[[T], T]


class Container(Generic[T]):
    """A unit of managed state exposing ``get``, ``set`` and ``subscribe``.

    Parameters
    ----------
    initial_value
        Value used when nothing usable is persisted.
    strategy : MergeStrategy
        ``RECORD`` merges a stored mapping over a copy of the initial value
        with the configured merge function; ``REPLACE`` uses the stored
        value wholesale.
    manager : StorageManager or None
        Storage manager; required when *config* enables persistence.
    config : StoreConfig or None
        Store name and persistence settings.
    """

    def __init__(
        self,
        initial_value: T,
        *,
        strategy: MergeStrategy = MergeStrategy.REPLACE,
        manager: StorageManager | None = None,
        config: StoreConfig | None = None,
    ) -> None:
        self._initial_value = initial_value
        self._strategy = MergeStrategy(strategy)
        self._config = config or StoreConfig()
        self._value: T = initial_value
        self._hydrated = False
        self._listeners: dict[object, Listener[T]] = {}
        self._handler = self._build_handler(manager)

    def _build_handler(self, manager: StorageManager | None) -> StorageHandler[T] | UninitializedStorageHandler[T]:
        config = self._config
        if config.persist is None or not config.persist.enable:
            return UninitializedStorageHandler()
        if manager is None:
            raise AthrokConfigError(f"store {config.name!r} enables persistence but no storage manager was given")
        # StoreConfig guarantees a name whenever persistence is enabled.
        return StorageHandler(manager, str(config.name), config.persist)

    @property
    def name(self) -> str | None:
        return self._config.name

    @property
    def strategy(self) -> MergeStrategy:
        return self._strategy

    @property
    def handler(self) -> StorageHandler[T] | UninitializedStorageHandler[T]:
        return self._handler

    @property
    def initial_value(self) -> T:
        return self._initial_value

    @property
    def is_hydrated(self) -> bool:
        return self._hydrated

    def get(self) -> T:
        """Return the current value, hydrating from storage on first call."""
        if not self._hydrated:
            self._hydrate()
        return self._value

    def set(self, update: Update[T]) -> None:
        """Replace the value, or apply *update* if it is callable.

        Listeners are called synchronously, in subscription order, with the
        new value; the new value is then handed to the storage handler.
        """
        current = self.get()
        new_value: T = update(current) if callable(update) else update
        self._value = new_value
        for listener in list(self._listeners.values()):
            listener(new_value)
        self._handler.set_item(new_value)

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        """Register *listener* and return a function that removes it."""
        token = object()
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def _hydrate(self) -> None:
        value = self._initial_value
        stored = self._handler.get_item()
        if stored is not NOT_FOUND:
            value = self._combine(stored)
        self._value = value
        self._hydrated = True
        _logger.debug("Hydrated store %r (persisted data used: %s)", self.name, stored is not NOT_FOUND)

    def _combine(self, stored: Any) -> T:
        initial = self._initial_value
        if self._strategy is MergeStrategy.RECORD and isinstance(initial, Mapping) and isinstance(stored, Mapping):
            return self._handler.config.merge(copy.copy(initial), stored)  # type: ignore[no-any-return]
        return stored  # type: ignore[no-any-return]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, strategy={self._strategy}, hydrated={self._hydrated})"


def create_state(
    initial_value: T,
    *,
    name: str | None = None,
    persist: PersistConfig | None = None,
    manager: StorageManager | None = None,
    strategy: MergeStrategy = MergeStrategy.REPLACE,
) -> Container[T]:
    """Create a value-style container.

    By default a persisted value replaces the initial value wholesale.
    """
    return Container(
        initial_value,
        strategy=strategy,
        manager=manager,
        config=StoreConfig(name=name, persist=persist),
    )


def create_store(
    initial_value: Mapping[str, Any],
    *,
    name: str | None = None,
    persist: PersistConfig | None = None,
    manager: StorageManager | None = None,
) -> Container[Any]:
    """Create a record-style container.

    The initial value must be a mapping; persisted fields are merged over
    it, stored fields winning on conflicts.
    """
    if not isinstance(initial_value, Mapping):
        raise AthrokConfigError(f"store initial value must be a mapping, got {type(initial_value).__name__}")
    return Container(
        initial_value,
        strategy=MergeStrategy.RECORD,
        manager=manager,
        config=StoreConfig(name=name, persist=persist),
    )
