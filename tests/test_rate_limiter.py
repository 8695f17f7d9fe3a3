"""Tests for the asynchronous token-bucket rate limiter."""

import asyncio

import pytest

from cdx_enrich._clearlydefined import TokenBucketRateLimiter, get_default_rate_limiter

from .fakes import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


def make_limiter(clock, capacity=3, period=1.0):
    return TokenBucketRateLimiter(capacity=capacity, period=period, clock=clock, sleep=clock.sleep)


class TestTokenBucketRateLimiter:
    def test_defaults(self):
        limiter = TokenBucketRateLimiter()
        assert limiter.capacity == 33
        assert limiter.period == 1.0
        assert limiter.available_tokens == 33

    def test_acquire_within_capacity_does_not_wait(self, clock):
        limiter = make_limiter(clock)

        async def run():
            for _ in range(3):
                await limiter.acquire()

        asyncio.run(run())
        assert clock.sleeps == []
        assert limiter.available_tokens == 0

    def test_acquire_beyond_capacity_waits_one_period(self, clock):
        limiter = make_limiter(clock)

        async def run():
            for _ in range(4):
                await limiter.acquire()

        asyncio.run(run())
        assert clock.sleeps == [1.0]
        assert clock.now == 101.0

    def test_many_acquisitions_spread_over_periods(self, clock):
        limiter = make_limiter(clock, capacity=33)

        async def run():
            for _ in range(100):
                await limiter.acquire()

        asyncio.run(run())
        # 100 tokens at 33 per period need three replenishments
        assert clock.now - 100.0 == pytest.approx(3.0)

    def test_partial_period_wait(self, clock):
        limiter = make_limiter(clock, capacity=1)

        async def run():
            await limiter.acquire()
            clock.now += 0.25
            await limiter.acquire()

        asyncio.run(run())
        assert clock.sleeps == [pytest.approx(0.75)]

    def test_tokens_never_exceed_capacity(self, clock):
        limiter = make_limiter(clock)
        clock.now += 10
        assert limiter.available_tokens == 3

    def test_waiters_served_in_arrival_order(self, clock):
        limiter = make_limiter(clock, capacity=1)
        served = []

        async def worker(index):
            await limiter.acquire()
            served.append(index)

        async def run():
            await asyncio.gather(*(worker(i) for i in range(5)))

        asyncio.run(run())
        assert served == [0, 1, 2, 3, 4]
        assert len(clock.sleeps) == 4

    @pytest.mark.parametrize("tokens", [0, 4])
    def test_invalid_token_count(self, clock, tokens):
        limiter = make_limiter(clock)
        with pytest.raises(ValueError):
            asyncio.run(limiter.acquire(tokens))

    def test_invalid_construction(self):
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(capacity=0)
        with pytest.raises(ValueError):
            TokenBucketRateLimiter(period=0)

    def test_default_limiter_is_shared(self):
        assert get_default_rate_limiter() is get_default_rate_limiter()


class TestLimiterAcrossEventLoops:
    """The limiter is process-wide while every ``asyncio.run`` starts a new loop."""

    def test_contended_limiter_in_successive_loops(self):
        limiter = TokenBucketRateLimiter(capacity=1, period=0.01)

        async def contend():
            served = []

            async def worker(index):
                await limiter.acquire()
                served.append(index)

            await asyncio.gather(*(worker(i) for i in range(3)))
            return served

        assert asyncio.run(contend()) == [0, 1, 2]
        assert asyncio.run(contend()) == [0, 1, 2]
