"""Tests for RequestThrottle."""

import asyncio

import pytest

from chaindocs_core.ledger import RequestThrottle
from chaindocs_core.testing import FakeClock, RecordingSleep


def _max_in_window(times: list[float], window: float) -> int:
    return max((sum(1 for t in times if start <= t < start + window) for start in times), default=0)


class TestRequestThrottle:
    def test_invalid_arguments(self):
        with pytest.raises(ValueError, match="max_requests"):
            RequestThrottle(0, 1.0)
        with pytest.raises(ValueError, match="window"):
            RequestThrottle(8, 0)

    @pytest.mark.asyncio
    async def test_burst_within_limit_does_not_wait(self):
        clock = FakeClock()
        sleep = RecordingSleep(clock)
        throttle = RequestThrottle(8, 1.0, clock=clock, sleep=sleep)

        for _ in range(8):
            await throttle.acquire()

        assert sleep.delays == []
        assert throttle.recent_requests == 8

    @pytest.mark.asyncio
    async def test_ninth_request_waits_for_oldest_to_leave_window(self):
        clock = FakeClock()
        sleep = RecordingSleep(clock)
        throttle = RequestThrottle(8, 1.0, clock=clock, sleep=sleep)

        for _ in range(8):
            await throttle.acquire()
        await throttle.acquire()

        assert sleep.delays == [pytest.approx(1.01)]
        assert clock() == pytest.approx(1.01)

    @pytest.mark.asyncio
    async def test_window_slides(self):
        clock = FakeClock()
        sleep = RecordingSleep(clock)
        throttle = RequestThrottle(2, 1.0, clock=clock, sleep=sleep)

        await throttle.acquire()
        clock.advance(0.6)
        await throttle.acquire()
        clock.advance(0.5)
        await throttle.acquire()

        assert sleep.delays == []
        assert throttle.recent_requests == 2

    @pytest.mark.asyncio
    async def test_recent_requests_does_not_evict(self):
        clock = FakeClock()
        throttle = RequestThrottle(2, 1.0, clock=clock, sleep=RecordingSleep(clock))

        await throttle.acquire()
        clock.advance(0.5)
        await throttle.acquire()
        clock.advance(0.7)

        assert throttle.recent_requests == 1
        assert len(throttle._timestamps) == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_never_exceed_bound(self):
        clock = FakeClock()
        sleep = RecordingSleep(clock)
        throttle = RequestThrottle(8, 1.0, clock=clock, sleep=sleep)
        started: list[float] = []

        async def request() -> None:
            started.append(clock())

        await asyncio.gather(*(throttle.run(request) for _ in range(40)))

        assert len(started) == 40
        assert _max_in_window(started, 1.0) <= 8

    @pytest.mark.asyncio
    async def test_run_returns_result_and_propagates_errors(self):
        throttle = RequestThrottle(8, 1.0)

        async def ok() -> str:
            return "ok"

        async def boom() -> str:
            raise RuntimeError("boom")

        assert await throttle.run(ok) == "ok"
        with pytest.raises(RuntimeError, match="boom"):
            await throttle.run(boom)
