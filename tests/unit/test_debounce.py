"""Tests for the trailing-edge debouncer."""

import asyncio

import pytest

from dash_sync.debounce import Debouncer


class Recorder:
    """Async action recording every value it receives."""

    def __init__(self, delay: float = 0.0, fail: bool = False) -> None:
        self.values: list[int] = []
        self.delay = delay
        self.fail = fail
        self.active = 0
        self.max_active = 0

    async def __call__(self, value: int) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if self.fail:
                raise RuntimeError(f"failed {value}")
            self.values.append(value)
        finally:
            self.active -= 1


class TestDebouncer:
    """Tests for Debouncer."""

    async def test_burst_collapses_to_last_value(self) -> None:
        action = Recorder()
        debouncer = Debouncer(0.02, action)

        for i in range(5):
            debouncer.schedule(i)
        assert debouncer.pending
        await asyncio.sleep(0.1)

        assert action.values == [4]
        assert debouncer.runs == 1
        assert not debouncer.pending

    async def test_each_schedule_restarts_timer(self) -> None:
        action = Recorder()
        debouncer = Debouncer(0.1, action)

        debouncer.schedule(1)
        await asyncio.sleep(0.06)
        debouncer.schedule(2)
        await asyncio.sleep(0.06)
        assert action.values == []

        await asyncio.sleep(0.15)
        assert action.values == [2]

    async def test_flush_runs_immediately(self) -> None:
        action = Recorder()
        debouncer = Debouncer(10, action)

        debouncer.schedule(1)
        debouncer.schedule(2)
        await debouncer.flush()

        assert action.values == [2]
        assert not debouncer.pending

    async def test_flush_without_pending_is_noop(self) -> None:
        action = Recorder()
        debouncer = Debouncer(0.01, action)
        await debouncer.flush()
        assert action.values == []

    async def test_runs_never_overlap(self) -> None:
        """A value scheduled during an in-flight run is processed after it."""
        action = Recorder(delay=0.05)
        debouncer = Debouncer(0.0, action)

        debouncer.schedule(1)
        await asyncio.sleep(0.01)
        assert debouncer.running
        debouncer.schedule(2)
        debouncer.schedule(3)
        await debouncer.flush()

        assert action.values == [1, 3]
        assert action.max_active == 1

    async def test_cancel_drops_pending(self) -> None:
        action = Recorder()
        debouncer = Debouncer(0.01, action)

        debouncer.schedule(1)
        debouncer.cancel()
        await asyncio.sleep(0.05)

        assert action.values == []
        assert not debouncer.pending

    async def test_timer_failure_is_reported(self) -> None:
        errors: list[Exception] = []
        debouncer = Debouncer(0.0, Recorder(fail=True), on_error=errors.append)

        debouncer.schedule(1)
        await asyncio.sleep(0.05)

        assert len(errors) == 1
        assert isinstance(debouncer.last_error, RuntimeError)

    async def test_flush_reraises_failure(self) -> None:
        debouncer = Debouncer(10, Recorder(fail=True))
        debouncer.schedule(1)
        with pytest.raises(RuntimeError, match="failed 1"):
            await debouncer.flush()

    async def test_none_is_a_valid_value(self) -> None:
        seen: list[object] = []

        async def action(value: object) -> None:
            seen.append(value)

        debouncer = Debouncer(10, action)
        debouncer.schedule(None)
        assert debouncer.pending
        await debouncer.flush()
        assert seen == [None]

    def test_rejects_negative_delay(self) -> None:
        with pytest.raises(ValueError):
            Debouncer(-1, Recorder())
