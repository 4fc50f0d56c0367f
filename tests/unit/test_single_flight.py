"""Unit tests for call coalescing."""
import asyncio

import pytest

from app.services.ebay.single_flight import SingleFlight


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_execution(self) -> None:
        flight: SingleFlight[int] = SingleFlight()
        calls = 0

        async def work() -> int:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return 42

        results = await asyncio.gather(*(flight.do("k", work) for _ in range(4)))

        assert results == [42, 42, 42, 42]
        assert calls == 1
        assert flight.in_flight("k") is False

    @pytest.mark.asyncio
    async def test_exception_reaches_every_caller(self) -> None:
        flight: SingleFlight[int] = SingleFlight()

        async def fail() -> int:
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        results = await asyncio.gather(
            flight.do("k", fail), flight.do("k", fail), return_exceptions=True
        )

        assert all(isinstance(r, RuntimeError) for r in results)

    @pytest.mark.asyncio
    async def test_keys_are_independent(self) -> None:
        flight: SingleFlight[str] = SingleFlight()

        async def echo(value: str) -> str:
            await asyncio.sleep(0.01)
            return value

        results = await asyncio.gather(flight.do("a", echo, "a"), flight.do("b", echo, "b"))

        assert results == ["a", "b"]

    @pytest.mark.asyncio
    async def test_later_call_runs_again(self) -> None:
        flight: SingleFlight[int] = SingleFlight()
        calls = 0

        async def work() -> int:
            nonlocal calls
            calls += 1
            return calls

        assert await flight.do("k", work) == 1
        await asyncio.sleep(0)
        assert await flight.do("k", work) == 2

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_shared_call(self) -> None:
        flight: SingleFlight[int] = SingleFlight()
        release = asyncio.Event()

        async def work() -> int:
            await release.wait()
            return 7

        first = asyncio.create_task(flight.do("k", work))
        second = asyncio.create_task(flight.do("k", work))
        await asyncio.sleep(0.01)
        first.cancel()
        release.set()

        assert await second == 7
