"""Persistence and store configuration for pyathrok."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from pyathrok._constants import DEFAULT_DEBOUNCE_TIME
from pyathrok.exceptions import AthrokConfigError
from pyathrok.state.merge import shallow_merge


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _identity(value: Any) -> Any:
    return value


def _env_number(value: str) -> int | float:
    try:
        return int(value)
    except ValueError:
        return float(value)


@dataclasses.dataclass(frozen=True)
class PersistConfig:
    """Per-store persistence settings.

    Parameters
    ----------
    enable : bool
        Whether the store is persisted at all.  A disabled config behaves
        exactly like having no persistence configured.
    version : int, float or None
        Version tag written alongside every record.  A stored record whose
        version differs is discarded unless *migrate* is given.
    debounce_time : float
        Seconds to wait after the last ``set`` before writing.  Bursts of
        writes inside this window collapse into a single backend write.
        Defaults to 0.1 seconds.
    migrate : callable or None
        Maps a stale-version stored value to a value compatible with the
        current version.
    partial : callable
        Narrows a value to the subset actually persisted.  Defaults to the
        identity function.
    merge : callable
        Combines ``(initial_value, stored_value)`` for record-style
        containers.  Defaults to :func:`~pyathrok.state.merge.shallow_merge`.
    """

    enable: bool = True
    version: int | float | None = None
    debounce_time: float = DEFAULT_DEBOUNCE_TIME
    migrate: Callable[[Any], Any] | None = None
    partial: Callable[[Any], Any] = _identity
    merge: Callable[[Any, Any], Any] = shallow_merge

    def __post_init__(self) -> None:
        if self.debounce_time < 0:
            raise AthrokConfigError(f"debounce_time must be >= 0, got {self.debounce_time}")

    @classmethod
    def from_env(cls, **overrides: Any) -> PersistConfig:
        """Create a persistence config from environment variables.

        Reads ``ATHROK_PERSIST_ENABLED``, ``ATHROK_PERSIST_VERSION`` and
        ``ATHROK_DEBOUNCE_TIME`` (seconds).  Explicit keyword arguments
        override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        if "enable" not in overrides:
            config_kwargs["enable"] = _env_bool(env.get("ATHROK_PERSIST_ENABLED"), True)

        version_env = env.get("ATHROK_PERSIST_VERSION")
        if version_env is not None and "version" not in overrides:
            try:
                config_kwargs["version"] = _env_number(version_env)
            except ValueError as exc:
                raise AthrokConfigError(f"ATHROK_PERSIST_VERSION must be a number, got {version_env!r}") from exc

        debounce_env = env.get("ATHROK_DEBOUNCE_TIME")
        if debounce_env is not None and "debounce_time" not in overrides:
            try:
                config_kwargs["debounce_time"] = float(debounce_env)
            except ValueError as exc:
                raise AthrokConfigError(f"ATHROK_DEBOUNCE_TIME must be a number, got {debounce_env!r}") from exc

        config_kwargs.update(overrides)
        return cls(**config_kwargs)


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Container configuration.

    Parameters
    ----------
    name : str or None
        Store name.  Required when *persist* is enabled, since the
        persistence key is derived from it.
    persist : PersistConfig or None
        Persistence settings, or ``None`` for an in-memory only container.
    """

    name: str | None = None
    persist: PersistConfig | None = None

    def __post_init__(self) -> None:
        if self.persist is not None and self.persist.enable and not self.name:
            raise AthrokConfigError("a store name is required when persistence is enabled")

    @property
    def persist_enabled(self) -> bool:
        return self.persist is not None and self.persist.enable
