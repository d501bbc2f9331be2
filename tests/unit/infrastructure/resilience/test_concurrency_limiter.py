import asyncio

import pytest

from ledgerscan.infrastructure.resilience.concurrency_limiter import ConcurrencyLimiter


class Probe:
    """Counts concurrently running tasks and records the peak."""

    def __init__(self):
        self.running = 0
        self.peak = 0
        self.started = []

    async def task(self, index: int, fail: bool = False) -> int:
        self.started.append(index)
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            await asyncio.sleep(0.01)
            if fail:
                raise ConnectionError(f"task {index} failed")
            return index
        finally:
            self.running -= 1


@pytest.mark.asyncio
async def test_never_exceeds_limit_and_completes_all():
    """M tasks with limit L < M never run more than L at once, and all finish."""
    limiter = ConcurrencyLimiter(max_concurrent=3)
    probe = Probe()

    tasks = [limiter.submit(probe.task, i) for i in range(20)]
    results = await asyncio.gather(*tasks)

    assert results == list(range(20))
    assert probe.peak == 3
    assert limiter.stats.peak_in_flight == 3
    assert limiter.stats.submitted == 20
    assert limiter.stats.completed == 20
    assert limiter.stats.in_flight == 0


@pytest.mark.asyncio
async def test_admission_is_fifo():
    limiter = ConcurrencyLimiter(max_concurrent=1)
    probe = Probe()

    await asyncio.gather(*[limiter.submit(probe.task, i) for i in range(6)])

    assert probe.started == list(range(6))


@pytest.mark.asyncio
async def test_slot_released_on_failure():
    limiter = ConcurrencyLimiter(max_concurrent=1)
    probe = Probe()

    failing = limiter.submit(probe.task, 0, True)
    following = limiter.submit(probe.task, 1)

    with pytest.raises(ConnectionError):
        await failing
    assert await following == 1
    assert limiter.stats.in_flight == 0
    assert limiter.stats.completed == 2


@pytest.mark.asyncio
async def test_run_awaits_directly():
    limiter = ConcurrencyLimiter(max_concurrent=2)
    probe = Probe()

    assert await limiter.run(probe.task, 5) == 5
    assert limiter.stats.completed == 1


def test_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        ConcurrencyLimiter(max_concurrent=0)
