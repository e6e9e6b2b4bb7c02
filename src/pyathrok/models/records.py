"""Serialized records stored in the key/value backend.

Two shapes are ever written:

* ``{"value": <T>, "version": <number>}`` under each persistence key
  (``version`` is omitted when the store is unversioned);
* ``{"keys": [...]}`` under the fixed registry-config key.

Decoding is lenient: anything that does not parse into the expected shape
is reported as ``None`` and treated by callers as "no data".
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

_logger = logging.getLogger(__name__)


class PersistedRecord(BaseModel):
    """A persisted value together with its optional version tag."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    value: Any
    version: int | float | None = None

    def to_json(self) -> str:
        if self.version is None:
            return self.model_dump_json(exclude={"version"})
        return self.model_dump_json()


class RegistryConfigRecord(BaseModel):
    """The set of keys the registry restores on startup."""

    model_config = ConfigDict(extra="ignore")

    keys: list[str] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json()


def decode_record(raw: str | None) -> PersistedRecord | None:
    """Parse a raw backend value into a :class:`PersistedRecord`."""
    if not raw:
        return None
    try:
        return PersistedRecord.model_validate_json(raw)
    except ValidationError:
        _logger.debug("Ignoring malformed persisted record", exc_info=True)
        return None


def decode_registry_config(raw: str | None) -> RegistryConfigRecord:
    """Parse the registry config record; missing or malformed data is empty."""
    if not raw:
        return RegistryConfigRecord()
    try:
        return RegistryConfigRecord.model_validate_json(raw)
    except ValidationError:
        _logger.debug("Ignoring malformed registry config", exc_info=True)
        return RegistryConfigRecord()
