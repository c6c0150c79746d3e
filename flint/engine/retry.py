"""
Provider error taxonomy and exponential backoff for read-only provider calls.

Transient failures (429 rate limits, 5xx) on capability checks, card
metadata, quotes, and status lookups are retried with exponential backoff.
Mutations (creating a payment, placing an order) are never passed through
with_retry: a retried submission could move money twice.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger("flint.retry")

MAX_RETRIES = 3
BASE_DELAY = 0.5
MAX_DELAY = 8.0


class ProviderError(Exception):
    """Base exception for banking and brokerage provider errors."""

    def __init__(self, message: str, status_code: int = 500, retriable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retriable = retriable


class RateLimitError(ProviderError):
    """429 Too Many Requests from the provider."""

    def __init__(self, message: str = "Rate limited", retry_after: Optional[float] = None):
        super().__init__(message, status_code=429, retriable=True)
        self.retry_after = retry_after


class PermanentError(ProviderError):
    """Non-retriable error (e.g. unsupported account, bad request)."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message, status_code=status_code, retriable=False)


class MfaRequiredError(ProviderError):
    """
    The provider wants the user to re-authenticate before the action can
    proceed. The connect token is what a Teller Connect session is opened
    with.
    """

    def __init__(self, connect_token: str, message: str = "Additional authentication required"):
        super().__init__(message, status_code=409, retriable=False)
        self.connect_token = connect_token


async def with_retry(
    func: Callable[..., Any],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any,
) -> Any:
    """
    Execute an async function with exponential backoff on retriable errors.

    Args:
        func: Async callable to execute.
        max_retries: Maximum number of retry attempts.

    Returns:
        The result of the function call.

    Raises:
        ProviderError: On permanent failure or exhausted retries.
    """
    delay = BASE_DELAY
    last_error = None

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except ProviderError as e:
            last_error = e
            if not e.retriable:
                raise

            if attempt < max_retries:
                sleep_for = min(delay, MAX_DELAY)
                if isinstance(e, RateLimitError) and e.retry_after:
                    sleep_for = min(e.retry_after, MAX_DELAY)

                logger.warning(
                    "Retriable error on attempt %d/%d: %s, sleeping %.1fs",
                    attempt + 1,
                    max_retries + 1,
                    e,
                    sleep_for,
                )
                await asyncio.sleep(sleep_for)
                delay = min(delay * 2, MAX_DELAY)
            else:
                logger.error("Exhausted %d retries for provider call: %s", max_retries, e)
                raise

    raise last_error or ProviderError("Unknown error after retries")
