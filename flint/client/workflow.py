"""
State shared by the payment and trade dialogs.

A dialog moves through ViewState:

    idle -> preparing -> idle           (prepare / preview)
    idle -> creating -> processing      (submit)
    processing -> completed | failed    (status polling)
    creating -> failed                  (submit error)
    creating -> idle                    (bank wants MFA)
    failed -> idle                      (retry)

Only one submission can be in flight per dialog. Closing the dialog
cancels any running poll; nothing is issued after that.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from flint.client.cache import CacheInvalidation
from flint.client.http import FlintApiClient
from flint.client.polling import PollOutcome, Poller
from flint.models.enums import ViewState

logger = logging.getLogger("flint.client.workflow")

T = TypeVar("T")

MFA_MESSAGE = "Additional authentication required. Please complete MFA with your bank."


class DialogWorkflow:
    kind = "dialog"

    def __init__(
        self,
        api: FlintApiClient,
        *,
        on_state_change: Optional[Callable[[ViewState], None]] = None,
        on_invalidate: Optional[Callable[[CacheInvalidation], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.state = ViewState.IDLE
        self.history: list[ViewState] = [ViewState.IDLE]
        self.poll_states: list[ViewState] = []
        self.message: Optional[str] = None
        self.mfa_connect_token: Optional[str] = None
        self.closed = False
        self._busy = False
        self._poller: Optional[Poller] = None
        self._sleep = sleep
        self._on_state_change = on_state_change
        self._on_invalidate = on_invalidate
        self._on_close = on_close

    @property
    def busy(self) -> bool:
        """True while a submission is in flight; the submit control is disabled."""
        return self._busy or self.state in (ViewState.PREPARING, ViewState.CREATING, ViewState.PROCESSING)

    def _transition(self, state: ViewState, message: Optional[str] = None) -> None:
        if state != self.state:
            logger.debug("%s: %s -> %s", self.kind, self.state.value, state.value)
            self.state = state
            self.history.append(state)
            if self._on_state_change is not None:
                self._on_state_change(state)
        if message is not None:
            self.message = message

    def _invalidate(self, tags: Iterable[str], reason: str) -> None:
        event = CacheInvalidation(frozenset(tags), reason)
        if self._on_invalidate is not None:
            self._on_invalidate(event)

    async def _poll(
        self,
        fetch: Callable[[], Awaitable[T]],
        is_terminal: Callable[[T], bool],
        interval: float,
        max_attempts: int,
        on_result: Callable[[T], None],
    ) -> Optional[PollOutcome[T]]:
        """Run a poll the dialog can cancel. Returns None when the dialog was closed."""
        self._poller = Poller(
            fetch,
            is_terminal,
            interval=interval,
            max_attempts=max_attempts,
            on_result=on_result,
            sleep=self._sleep,
        ).start()
        try:
            return await self._poller
        except asyncio.CancelledError:
            if self.closed and self._poller.cancelled:
                return None
            raise
        finally:
            self._poller = None

    def close(self) -> None:
        """Close the dialog. Stops polling; the submission itself is not undone."""
        if self.closed:
            return
        self.closed = True
        if self._poller is not None and self._poller.cancel():
            logger.info("%s closed while polling; polling stopped", self.kind)
        if self._on_close is not None:
            self._on_close()

    def retry(self) -> bool:
        """Failed dialogs go back to idle so the user can submit again."""
        if self.state != ViewState.FAILED or self.closed:
            return False
        self.message = None
        self._transition(ViewState.IDLE)
        return True
