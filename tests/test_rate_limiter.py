import pytest

from utils import rate_limiter


class StopWaiting(Exception):
    pass


@pytest.mark.asyncio
async def test_calls_within_limit_do_not_wait(monkeypatch):
    async def fail_sleep(delay):
        raise AssertionError("should not wait")

    monkeypatch.setattr(rate_limiter.asyncio, "sleep", fail_sleep)
    for _ in range(4):
        await rate_limiter.acquire(4.5)


@pytest.mark.asyncio
async def test_call_over_limit_waits_for_the_window(monkeypatch):
    delays = []

    async def record_sleep(delay):
        delays.append(delay)
        raise StopWaiting()

    monkeypatch.setattr(rate_limiter.asyncio, "sleep", record_sleep)
    await rate_limiter.acquire(0.25)
    with pytest.raises(StopWaiting):
        await rate_limiter.acquire(0.25)
    assert 0 < delays[0] <= 4


def test_limiter_is_shared_per_rate():
    assert rate_limiter._get_limiter(3.5) is rate_limiter._get_limiter(3.5)


def test_rate_must_be_positive():
    with pytest.raises(ValueError):
        rate_limiter._get_limiter(0)
