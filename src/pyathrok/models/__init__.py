"""Wire models for persisted data."""

from pyathrok.models.records import (
    PersistedRecord,
    RegistryConfigRecord,
    decode_record,
    decode_registry_config,
)

__all__ = [
    "PersistedRecord",
    "RegistryConfigRecord",
    "decode_record",
    "decode_registry_config",
]
