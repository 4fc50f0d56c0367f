"""Outbound call limiter for eBay APIs."""

import asyncio
from datetime import datetime, timezone
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class EbayRateLimiter:
    """Rate limiter for eBay API requests.

    Enforces:
    - a per-second cap (semaphore slots released after one second)
    - a daily cap (counter reset at UTC midnight)
    """

    def __init__(self, max_per_second: int = 10, max_per_day: int = 5_000) -> None:
        self.max_per_second = max_per_second
        self.max_per_day = max_per_day
        self._semaphore = asyncio.Semaphore(max_per_second)
        self._daily_count = 0
        self._daily_reset: Optional[datetime] = None
        self._lock = asyncio.Lock()
        self._pending_releases: set[asyncio.Task] = set()

    def _check_daily_reset(self) -> None:
        now = datetime.now(timezone.utc)
        if self._daily_reset is None or now.date() > self._daily_reset.date():
            self._daily_count = 0
            self._daily_reset = now

    async def acquire(self) -> bool:
        """Acquire a call slot.

        Returns:
            True if slot acquired, False if daily limit exceeded.
        """
        async with self._lock:
            self._check_daily_reset()

            if self._daily_count >= self.max_per_day:
                logger.warning("eBay daily call limit reached")
                return False

            self._daily_count += 1

        await self._semaphore.acquire()

        task = asyncio.create_task(self._release_after_delay())
        self._pending_releases.add(task)
        task.add_done_callback(self._pending_releases.discard)

        return True

    async def _release_after_delay(self) -> None:
        await asyncio.sleep(1.0)
        self._semaphore.release()

    @property
    def daily_remaining(self) -> int:
        """Get remaining daily API calls."""
        self._check_daily_reset()
        return max(0, self.max_per_day - self._daily_count)
