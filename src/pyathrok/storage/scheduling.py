"""Delayed-callback scheduling for debounced writes.

A storage handler owns at most one scheduled write at a time.  Schedulers
hand back a cancellable handle so the handler can replace the pending
write when a newer value arrives.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from typing import Protocol


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class AsyncioScheduler:
    """Schedule callbacks on an asyncio event loop.

    Uses the loop given at construction, or the running loop at the time
    :meth:`call_later` is invoked.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class ThreadingScheduler:
    """Schedule callbacks on daemon timer threads.

    For programs without an event loop.  Callbacks run off the calling
    thread; writes to an asynchronous backend are handed to the manager's
    event loop.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class DefaultScheduler:
    """Schedule on the running event loop, or on a timer thread without one.

    The choice is made per call, so the same manager works from
    coroutines and from plain synchronous code.
    """

    def __init__(self) -> None:
        self._threads = ThreadingScheduler()

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self._threads.call_later(delay, callback)
        return loop.call_later(delay, callback)
