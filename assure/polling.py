"""
polling.py - Bounded polling, the primitive every wait is built on

The page never tells us it is ready, so every wait is:
  check -> sleep(interval) -> check ... until true or out of time.

A check that raises counts as "not yet". Its exception only surfaces after the
deadline, as the __cause__ of the WaitTimeout. A lost connection is the one
exception that ends the wait at once, since nothing can become true after it.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Callable

from .errors import TransportClosed, WaitTimeout


async def poll_until(predicate: Callable[[], Any], interval: float, timeout: float, description="condition"):
    """
    Evaluate `predicate` now and then every `interval` seconds until it is truthy.

    `predicate` may be a plain function or a coroutine function.

    Returns:
        The first truthy value the predicate produced.

    Raises:
        WaitTimeout: the deadline passed first. Elapsed time on failure is at
        most timeout + one interval (plus the duration of the last check).
        TransportClosed: the browser connection dropped.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    last_error = None

    while True:
        try:
            value = predicate()
            if inspect.isawaitable(value):
                value = await value
            if value:
                return value
            last_error = None
        except TransportClosed:
            raise
        except Exception as e:
            last_error = e

        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        await asyncio.sleep(min(interval, remaining))

    raise WaitTimeout(description, timeout) from last_error


@dataclass
class WaitCondition:
    """One wait: a check, its cadence and its budget. Built per call, then dropped."""
    check: Callable[[], Any]
    interval: float
    timeout: float
    description: str = "condition"

    async def wait(self):
        return await poll_until(self.check, self.interval, self.timeout, self.description)
