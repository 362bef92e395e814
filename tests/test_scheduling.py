"""Tests for proximity_trigger.scheduling."""

import asyncio

from proximity_trigger.scheduling import AsyncioScheduler, ManualScheduler


# ---------------------------------------------------------------------------
# ManualScheduler
# ---------------------------------------------------------------------------

class TestManualScheduler:
    def test_never_runs_early(self) -> None:
        scheduler = ManualScheduler()
        ran: list[str] = []
        scheduler.after(100, lambda: ran.append("a"))
        scheduler.advance(99)
        assert ran == []
        scheduler.advance(1)
        assert ran == ["a"]

    def test_runs_in_due_order(self) -> None:
        scheduler = ManualScheduler()
        ran: list[str] = []
        scheduler.after(300, lambda: ran.append("late"))
        scheduler.after(100, lambda: ran.append("early"))
        scheduler.after(100, lambda: ran.append("early-2"))
        assert scheduler.advance(1000) == 3
        assert ran == ["early", "early-2", "late"]
        assert scheduler.now_ms == 1000

    def test_failing_callback_does_not_stop_others(self) -> None:
        scheduler = ManualScheduler()
        ran: list[str] = []

        def boom() -> None:
            raise RuntimeError("boom")

        scheduler.after(10, boom)
        scheduler.after(10, lambda: ran.append("ok"))
        scheduler.advance(10)
        assert ran == ["ok"]
        assert scheduler.pending == 0

    def test_callback_scheduling_more_work(self) -> None:
        scheduler = ManualScheduler()
        ran: list[int] = []
        scheduler.after(10, lambda: scheduler.after(10, lambda: ran.append(scheduler.now_ms)))
        scheduler.advance(15)
        assert ran == []
        scheduler.advance(5)
        assert ran == [20]


# ---------------------------------------------------------------------------
# AsyncioScheduler
# ---------------------------------------------------------------------------

class TestAsyncioScheduler:
    async def test_fires_after_delay(self) -> None:
        loop = asyncio.get_running_loop()
        fired = asyncio.Event()
        started = loop.time()
        AsyncioScheduler().after(20, fired.set)
        assert not fired.is_set()
        await asyncio.wait_for(fired.wait(), timeout=2)
        assert loop.time() - started >= 0.015

    async def test_explicit_loop(self) -> None:
        loop = asyncio.get_running_loop()
        fired = asyncio.Event()
        AsyncioScheduler(loop).after(0, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=2)
