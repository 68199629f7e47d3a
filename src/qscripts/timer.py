"""Reschedulable timers on the asyncio event loop.

A timer callback returns the delay in milliseconds before it wants to run
again; a negative value stops it. Callbacks run one at a time on the loop
thread, so a tick never overlaps another tick.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from qscripts.logging import TRACE, get_logger

log = get_logger("timer")

TimerCallback = Callable[[], int]


@dataclass(eq=False)
class TimerHandle:
    """A registered timer."""

    timer_id: int
    callback: TimerCallback
    interval_ms: int
    active: bool = True
    _scheduled: asyncio.TimerHandle | None = field(default=None, repr=False)


class TimerService(Protocol):
    """Host timer primitive used to drive the monitor."""

    def register(self, interval_ms: int, callback: TimerCallback) -> TimerHandle: ...

    def unregister(self, handle: TimerHandle) -> None: ...


class AsyncioTimer:
    """TimerService scheduling callbacks with ``loop.call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._ids = itertools.count(1)
        self._handles: dict[int, TimerHandle] = {}

    @property
    def active_count(self) -> int:
        return len(self._handles)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def register(self, interval_ms: int, callback: TimerCallback) -> TimerHandle:
        handle = TimerHandle(timer_id=next(self._ids), callback=callback, interval_ms=interval_ms)
        self._handles[handle.timer_id] = handle
        self._schedule(handle, interval_ms)
        log.debug("Timer %d registered (interval: %dms)", handle.timer_id, interval_ms)
        return handle

    def unregister(self, handle: TimerHandle) -> None:
        handle.active = False
        if handle._scheduled is not None:
            handle._scheduled.cancel()
            handle._scheduled = None
        if self._handles.pop(handle.timer_id, None) is not None:
            log.debug("Timer %d unregistered", handle.timer_id)

    def _schedule(self, handle: TimerHandle, delay_ms: int) -> None:
        handle._scheduled = self._get_loop().call_later(
            max(delay_ms, 0) / 1000.0, self._fire, handle
        )

    def _fire(self, handle: TimerHandle) -> None:
        handle._scheduled = None
        if not handle.active:
            return
        try:
            next_ms = handle.callback()
        except Exception:
            log.exception("Error in timer %d callback", handle.timer_id)
            next_ms = handle.interval_ms

        if not handle.active:
            return
        if next_ms < 0:
            log.log(TRACE, "Timer %d stopped by its callback", handle.timer_id)
            self.unregister(handle)
            return
        handle.interval_ms = next_ms
        self._schedule(handle, next_ms)
