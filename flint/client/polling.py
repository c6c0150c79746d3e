"""
Bounded status polling.

The first request goes out immediately, then one request per interval
until the status is terminal or `max_attempts` requests have been made.
There is no sleep after the final attempt. Cancelling the task that runs
the poll stops it at the next await, so no further request is issued.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger("flint.client.polling")

T = TypeVar("T")


@dataclass
class PollOutcome(Generic[T]):
    """Last observed result, how many requests were made, and whether the budget ran out."""

    result: Optional[T]
    attempts: int
    exhausted: bool


async def poll(
    fetch: Callable[[], Awaitable[T]],
    is_terminal: Callable[[T], bool],
    *,
    interval: float,
    max_attempts: int,
    on_result: Optional[Callable[[T], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PollOutcome[T]:
    """
    Call `fetch` until `is_terminal` accepts its result.

    Errors raised by `fetch` propagate and end the poll.

    Args:
        fetch: One status lookup.
        is_terminal: True for a final status (success or failure).
        interval: Seconds between requests.
        max_attempts: Total request budget, at least 1.
        on_result: Called with every observed result, terminal or not.
        sleep: Injected for tests.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    result: Optional[T] = None
    for attempt in range(1, max_attempts + 1):
        result = await fetch()
        if on_result is not None:
            on_result(result)
        if is_terminal(result):
            return PollOutcome(result, attempt, exhausted=False)
        if attempt < max_attempts:
            await sleep(interval)

    logger.info("Polling gave up after %d attempts", max_attempts)
    return PollOutcome(result, max_attempts, exhausted=True)


class Poller(Generic[T]):
    """
    A poll running in its own task, so that closing a dialog can stop it.

    Usage:
        poller = Poller(fetch, is_terminal, interval=2.5, max_attempts=30).start()
        outcome = await poller
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        is_terminal: Callable[[T], bool],
        *,
        interval: float,
        max_attempts: int,
        on_result: Optional[Callable[[T], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._kwargs = dict(
            interval=interval, max_attempts=max_attempts, on_result=on_result, sleep=sleep,
        )
        self._fetch = fetch
        self._is_terminal = is_terminal
        self._task: Optional[asyncio.Task] = None

    def start(self) -> "Poller[T]":
        if self._task is None:
            self._task = asyncio.ensure_future(poll(self._fetch, self._is_terminal, **self._kwargs))
        return self

    def cancel(self) -> bool:
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task is not None and self._task.cancelled()

    def __await__(self):
        if self._task is None:
            self.start()
        return self._task.__await__()
