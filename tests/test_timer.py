"""Tests for AsyncioTimer."""

from __future__ import annotations

import asyncio

from qscripts.timer import AsyncioTimer


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll until ``predicate()`` holds or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        assert loop.time() < deadline, "condition not reached in time"
        await asyncio.sleep(0.005)


class TestAsyncioTimer:
    async def test_fires_repeatedly(self) -> None:
        timer = AsyncioTimer()
        calls: list[int] = []

        def callback() -> int:
            calls.append(1)
            return 1

        handle = timer.register(1, callback)
        await wait_for(lambda: len(calls) >= 3)
        timer.unregister(handle)

        assert timer.active_count == 0

    async def test_negative_interval_stops(self) -> None:
        timer = AsyncioTimer()
        calls: list[int] = []

        def callback() -> int:
            calls.append(1)
            return -1

        handle = timer.register(1, callback)
        await wait_for(lambda: not handle.active)
        await asyncio.sleep(0.02)

        assert calls == [1]
        assert timer.active_count == 0

    async def test_callback_picks_next_interval(self) -> None:
        timer = AsyncioTimer()
        intervals = iter([1, 50, -1])

        handle = timer.register(1, lambda: next(intervals))
        await wait_for(lambda: handle.interval_ms == 50)
        timer.unregister(handle)

    async def test_unregister_before_firing(self) -> None:
        timer = AsyncioTimer()
        calls: list[int] = []

        handle = timer.register(10, lambda: calls.append(1) or 10)
        timer.unregister(handle)
        await asyncio.sleep(0.05)

        assert calls == []
        assert not handle.active

    async def test_exception_keeps_timer_alive(self) -> None:
        timer = AsyncioTimer()
        calls: list[int] = []

        def callback() -> int:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return 1

        handle = timer.register(1, callback)
        await wait_for(lambda: len(calls) >= 2)
        timer.unregister(handle)

    async def test_unregister_from_callback(self) -> None:
        timer = AsyncioTimer()
        calls: list[int] = []
        holder = {}

        def callback() -> int:
            calls.append(1)
            timer.unregister(holder["handle"])
            return 1

        holder["handle"] = timer.register(1, callback)
        await wait_for(lambda: calls)
        await asyncio.sleep(0.02)

        assert calls == [1]
        assert timer.active_count == 0

    async def test_unique_ids(self) -> None:
        timer = AsyncioTimer()
        first = timer.register(100, lambda: 100)
        second = timer.register(100, lambda: 100)

        assert first.timer_id != second.timer_id
        assert timer.active_count == 2

        timer.unregister(first)
        timer.unregister(second)
