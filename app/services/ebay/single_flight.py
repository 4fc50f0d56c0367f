"""Coalesce concurrent calls that share a key into one execution."""

import asyncio
from typing import Any, Awaitable, Callable, Generic, Hashable, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Run at most one call per key at a time.

    Callers arriving while a call for the same key is in flight await
    that call and receive its result or its exception.
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Future] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    async def do(
        self,
        key: Hashable,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
    ) -> T:
        existing = self._inflight.get(key)
        if existing is not None:
            logger.debug(f"Joining in-flight call for {key!r}")
            # shield: one caller giving up must not cancel the shared call
            return await asyncio.shield(existing)

        task = asyncio.ensure_future(fn(*args))
        self._inflight[key] = task
        task.add_done_callback(lambda _: self._inflight.pop(key, None))
        return await asyncio.shield(task)
