"""pyathrok - State containers with debounced, versioned persistence."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyathrok")
except PackageNotFoundError:
    __version__ = "0+local"
from pyathrok._constants import CONFIG_LABEL, KEY_LABEL, persistence_key
from pyathrok.config import PersistConfig, StoreConfig
from pyathrok.exceptions import AthrokConfigError, AthrokError, AthrokStorageError
from pyathrok.models import PersistedRecord, RegistryConfigRecord
from pyathrok.state.container import Container, create_state, create_store
from pyathrok.state.merge import MergeStrategy, deep_merge, shallow_merge
from pyathrok.storage.backends import (
    AsyncMemoryStorage,
    AsyncStorage,
    BackendKind,
    JsonFileStorage,
    MemoryStorage,
    SyncStorage,
    UninitializedStorage,
)
from pyathrok.storage.handler import NOT_FOUND, NotFoundType, StorageHandler, UninitializedStorageHandler
from pyathrok.storage.manager import StorageManager
from pyathrok.storage.scheduling import AsyncioScheduler, DefaultScheduler, Scheduler, ThreadingScheduler

__all__ = [
    "__version__",
    "CONFIG_LABEL",
    "KEY_LABEL",
    "NOT_FOUND",
    "AsyncMemoryStorage",
    "AsyncStorage",
    "AsyncioScheduler",
    "AthrokConfigError",
    "AthrokError",
    "AthrokStorageError",
    "BackendKind",
    "Container",
    "DefaultScheduler",
    "JsonFileStorage",
    "MemoryStorage",
    "MergeStrategy",
    "NotFoundType",
    "PersistConfig",
    "PersistedRecord",
    "RegistryConfigRecord",
    "Scheduler",
    "StorageHandler",
    "StorageManager",
    "StoreConfig",
    "SyncStorage",
    "ThreadingScheduler",
    "UninitializedStorage",
    "UninitializedStorageHandler",
    "create_state",
    "create_store",
    "deep_merge",
    "persistence_key",
    "shallow_merge",
]
