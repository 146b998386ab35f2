"""
Process-wide request rate limiting for provider calls.

Every caller that passes the same requests-per-second value shares one
counter, so concurrent jobs in a worker cannot exceed the limit together.
"""

import asyncio
from typing import Callable

from ratelimit import RateLimitException, limits

_limiters: dict[float, Callable[[], None]] = {}


def _get_limiter(rps: float) -> Callable[[], None]:
    limiter = _limiters.get(rps)
    if limiter is None:
        if rps <= 0:
            raise ValueError("rps must be positive")
        calls = max(1, int(rps))

        @limits(calls=calls, period=calls / rps, raise_on_limit=True)
        def limiter():
            return None

        _limiters[rps] = limiter
    return limiter


async def acquire(rps: float):
    """Wait until one more request fits in the ``rps`` limit."""
    limiter = _get_limiter(rps)
    while True:
        try:
            limiter()
            return
        except RateLimitException as exc:
            await asyncio.sleep(max(exc.period_remaining, 0.01))
