"""Unit tests for the outbound eBay rate limiter."""
import asyncio

import pytest

from app.services.ebay.rate_limiter import EbayRateLimiter


class TestEbayRateLimiter:
    @pytest.mark.asyncio
    async def test_daily_limit(self) -> None:
        limiter = EbayRateLimiter(max_per_second=10, max_per_day=2)

        assert await limiter.acquire() is True
        assert await limiter.acquire() is True
        assert await limiter.acquire() is False
        assert limiter.daily_remaining == 0

    @pytest.mark.asyncio
    async def test_fresh_limiter_has_full_allowance(self) -> None:
        limiter = EbayRateLimiter(max_per_second=5, max_per_day=100)

        assert limiter.daily_remaining == 100
        assert await limiter.acquire() is True
        assert limiter.daily_remaining == 99

    @pytest.mark.asyncio
    async def test_per_second_cap_blocks_extra_call(self) -> None:
        limiter = EbayRateLimiter(max_per_second=2, max_per_day=100)
        await limiter.acquire()
        await limiter.acquire()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(limiter.acquire(), timeout=0.2)
