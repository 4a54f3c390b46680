import pytest

from llm.rate_limiter import ProviderRateLimiter


class FakeTime:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def clock(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.mark.asyncio
async def test_allows_up_to_limit_without_waiting():
    t = FakeTime()
    limiter = ProviderRateLimiter(max_per_minute=3, clock=t.clock, sleep=t.sleep)
    for _ in range(3):
        await limiter.acquire()
    assert limiter.count == 3
    assert t.sleeps == []


@pytest.mark.asyncio
async def test_waits_for_window_reset():
    t = FakeTime()
    limiter = ProviderRateLimiter(max_per_minute=2, clock=t.clock, sleep=t.sleep)
    await limiter.acquire()
    t.now = 20.0
    await limiter.acquire()
    await limiter.acquire()
    assert t.sleeps == [40.0]
    assert limiter.count == 1


@pytest.mark.asyncio
async def test_window_resets_after_a_minute():
    t = FakeTime()
    limiter = ProviderRateLimiter(max_per_minute=1, clock=t.clock, sleep=t.sleep)
    await limiter.acquire()
    t.now = 61.0
    await limiter.acquire()
    assert t.sleeps == []
