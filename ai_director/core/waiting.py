#!/usr/bin/env python3
"""
Waiting
Bounded polling for conditions that depend on an external build step.
One schedule, exposed as a blocking and an awaitable helper.
"""

import asyncio
import logging
import time
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)


def _poll_schedule(
    max_wait: float,
    poll_interval: float,
    clock: Callable[[], float]
) -> Iterator[float]:
    """
    Yield how long to sleep before each re-check.
    Stops once max_wait has elapsed since the first check.
    """
    if poll_interval <= 0:
        raise ValueError("poll_interval must be positive")
    deadline = clock() + max(0.0, max_wait)
    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            return
        yield min(poll_interval, remaining)


def wait_with_timeout(
    predicate: Callable[[], bool],
    max_wait: float = 20.0,
    poll_interval: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic
) -> bool:
    """
    Block until predicate() is true or max_wait elapses.

    Returns:
        True if the predicate held, False on timeout
    """
    if predicate():
        return True
    for delay in _poll_schedule(max_wait, poll_interval, clock):
        sleep(delay)
        if predicate():
            return True
    logger.warning(f"[WAIT] Timed out after {max_wait}s")
    return False


async def await_with_timeout(
    predicate: Callable[[], bool],
    max_wait: float = 20.0,
    poll_interval: float = 0.5,
    clock: Optional[Callable[[], float]] = None
) -> bool:
    """Awaitable form of wait_with_timeout; yields to the event loop between checks"""
    clock = clock or time.monotonic
    if predicate():
        return True
    for delay in _poll_schedule(max_wait, poll_interval, clock):
        await asyncio.sleep(delay)
        if predicate():
            return True
    logger.warning(f"[WAIT] Timed out after {max_wait}s")
    return False
