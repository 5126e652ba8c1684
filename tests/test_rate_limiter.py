"""Tests for the rate limiter."""

import asyncio
import time

import pytest

from corpus_refresh.core import RateLimiter, pause


@pytest.mark.asyncio
async def test_one_call_at_a_time() -> None:
    limiter = RateLimiter(delay_ms=0)
    active = 0
    max_active = 0

    async def call() -> None:
        nonlocal active, max_active
        async with limiter.slot():
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(call() for _ in range(5)))

    assert max_active == 1


@pytest.mark.asyncio
async def test_delay_applied_after_each_call() -> None:
    limiter = RateLimiter(delay_ms=50)
    exits: list[float] = []
    enters: list[float] = []

    async def call() -> None:
        async with limiter.slot():
            enters.append(time.monotonic())
            exits.append(time.monotonic())

    await asyncio.gather(call(), call())

    assert enters[1] - exits[0] >= 0.045


@pytest.mark.asyncio
async def test_delay_applied_even_when_call_fails() -> None:
    limiter = RateLimiter(delay_ms=50)

    started = time.monotonic()
    with pytest.raises(RuntimeError):
        async with limiter.slot():
            raise RuntimeError("fetch blew up")

    assert time.monotonic() - started >= 0.045
    assert not limiter.busy


@pytest.mark.asyncio
async def test_shutdown_interrupts_pacing_delay() -> None:
    shutdown = asyncio.Event()
    limiter = RateLimiter(delay_ms=10_000, shutdown=shutdown)

    async def call() -> None:
        async with limiter.slot():
            pass

    task = asyncio.create_task(call())
    await asyncio.sleep(0.05)
    shutdown.set()

    await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_pause_reports_shutdown() -> None:
    shutdown = asyncio.Event()

    assert await pause(0.01, shutdown) is False

    asyncio.get_running_loop().call_later(0.02, shutdown.set)
    assert await pause(5.0, shutdown) is True
    assert await pause(5.0, shutdown) is True


def test_negative_delay_rejected() -> None:
    with pytest.raises(ValueError):
        RateLimiter(delay_ms=-1)
