from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest

from pyathrok.storage.backends import AsyncMemoryStorage, MemoryStorage
from pyathrok.storage.manager import StorageManager


@dataclass
class FakeTimer:
    when: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Scheduler driven by a virtual clock advanced explicitly by tests."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self._timers = [t for t in self._timers if not t.cancelled]
        self.now = target


class RecordingStorage(MemoryStorage):
    """Sync memory storage that records every call (and the scheduler time of writes)."""

    def __init__(self, initial: dict[str, str] | None = None, clock: FakeScheduler | None = None) -> None:
        super().__init__(initial)
        self.calls: list[tuple[Any, ...]] = []
        self._clock = clock

    def get_item(self, name: str) -> str | None:
        self.calls.append(("get_item", name))
        return super().get_item(name)

    def set_item(self, name: str, value: str) -> None:
        now = self._clock.now if self._clock is not None else None
        self.calls.append(("set_item", name, value, now))
        super().set_item(name, value)

    def remove_item(self, name: str) -> None:
        self.calls.append(("remove_item", name))
        super().remove_item(name)

    def writes(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == "set_item" and c[1] == name]


class RecordingAsyncStorage(AsyncMemoryStorage):
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        super().__init__(initial)
        self.calls: list[tuple[Any, ...]] = []

    async def get_item(self, name: str) -> str | None:
        self.calls.append(("get_item", name))
        return await super().get_item(name)

    async def set_item(self, name: str, value: str) -> None:
        self.calls.append(("set_item", name, value))
        await super().set_item(name, value)

    async def remove_item(self, name: str) -> None:
        self.calls.append(("remove_item", name))
        await super().remove_item(name)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def manager(scheduler: FakeScheduler) -> StorageManager:
    return StorageManager(scheduler=scheduler)


@pytest.fixture
def storage(scheduler: FakeScheduler) -> RecordingStorage:
    return RecordingStorage(clock=scheduler)
