"""
Readiness Polling
=================

Templates signal that their first frame is stable by flipping a global flag.
The host cannot be called back from page script, so it polls.
"""

import asyncio
from typing import Awaitable, Callable


class ReadinessTimeout(Exception):
    """The predicate did not become true within the bound."""

    def __init__(self, timeout: float):
        super().__init__(f"Condition not met within {timeout:g}s")
        self.timeout = timeout


async def poll_until(
    predicate: Callable[[], Awaitable[bool]], timeout: float, interval: float = 0.05
) -> None:
    """
    Await ``predicate()`` until it returns ``True``.

    Each evaluation is itself bounded by the time left, so a predicate that
    hangs cannot outlive the deadline. Errors raised by the predicate
    propagate unchanged.

    Raises:
        ReadinessTimeout: If ``timeout`` seconds pass without a true result
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    while True:
        remaining = max(deadline - loop.time(), 0)
        try:
            ready = await asyncio.wait_for(predicate(), timeout=remaining)
        except asyncio.TimeoutError:
            raise ReadinessTimeout(timeout) from None
        if ready is True:
            return
        remaining = deadline - loop.time()
        if remaining <= 0:
            raise ReadinessTimeout(timeout)
        await asyncio.sleep(min(interval, remaining))
