from __future__ import annotations

import pytest

from pyathrok.config import PersistConfig, StoreConfig
from pyathrok.exceptions import AthrokConfigError
from pyathrok.state.merge import shallow_merge


def test_persist_config_defaults() -> None:
    config = PersistConfig()

    assert config.enable is True
    assert config.version is None
    assert config.debounce_time == 0.1
    assert config.migrate is None
    assert config.partial("x") == "x"
    assert config.merge is shallow_merge


def test_negative_debounce_time_is_rejected() -> None:
    with pytest.raises(AthrokConfigError):
        PersistConfig(debounce_time=-1)


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATHROK_PERSIST_ENABLED", "off")
    monkeypatch.setenv("ATHROK_PERSIST_VERSION", "3")
    monkeypatch.setenv("ATHROK_DEBOUNCE_TIME", "0.25")

    config = PersistConfig.from_env()

    assert config.enable is False
    assert config.version == 3
    assert config.debounce_time == 0.25


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATHROK_PERSIST_VERSION", "3")
    monkeypatch.delenv("ATHROK_PERSIST_ENABLED", raising=False)
    monkeypatch.delenv("ATHROK_DEBOUNCE_TIME", raising=False)

    config = PersistConfig.from_env(version=5)

    assert config.enable is True
    assert config.version == 5
    assert config.debounce_time == 0.1


def test_from_env_rejects_invalid_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATHROK_DEBOUNCE_TIME", "soon")

    with pytest.raises(AthrokConfigError):
        PersistConfig.from_env()


def test_store_config_requires_name_for_persistence() -> None:
    with pytest.raises(AthrokConfigError):
        StoreConfig(persist=PersistConfig())

    assert StoreConfig(persist=PersistConfig(enable=False)).persist_enabled is False
    assert StoreConfig(name="x", persist=PersistConfig()).persist_enabled is True


def test_from_env_accepts_fractional_version(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATHROK_PERSIST_VERSION", "1.5")
    monkeypatch.delenv("ATHROK_DEBOUNCE_TIME", raising=False)

    assert PersistConfig.from_env().version == 1.5


def test_from_env_rejects_invalid_version(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATHROK_PERSIST_VERSION", "latest")
    monkeypatch.delenv("ATHROK_DEBOUNCE_TIME", raising=False)

    with pytest.raises(AthrokConfigError, match="ATHROK_PERSIST_VERSION"):
        PersistConfig.from_env()
