"""
Trade dialog: preview, then place, then follow the order.

The first submit with a ticket previews the order and returns to idle so
the user can review the estimate. Submitting again with the preview
cached places it by trade id and polls the order until it is filled or
rejected. Previews expire; an expired one is dropped and the user has to
preview again.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional

from flint.client.cache import TRADE_INVALIDATES
from flint.client.errors import AmountValidationError, ApiError, FlintClientError, MfaRequired
from flint.client.validation import TradeTicket, validate_trade
from flint.client.workflow import MFA_MESSAGE, DialogWorkflow
from flint.config import settings
from flint.models.enums import ORDER_FAILURE_STATUSES, ORDER_SUCCESS_STATUSES, ViewState
from flint.schemas.trades import OrderStatusResponse, PlacedOrder, TradeCapabilityResponse, TradePreviewResponse

logger = logging.getLogger("flint.client.trades")

EXPIRED_MESSAGE = "This preview has expired. Please preview the order again."
SUCCESS_MESSAGE = "Your order has been filled."
FAILURE_MESSAGE = "Your order could not be completed."
TIMEOUT_MESSAGE = "The order is still open at the brokerage. Check your orders later for the final status."


def _status_state(status: str) -> ViewState:
    if status in ORDER_SUCCESS_STATUSES:
        return ViewState.COMPLETED
    if status in ORDER_FAILURE_STATUSES:
        return ViewState.FAILED
    return ViewState.PROCESSING


def _utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class TradeWorkflow(DialogWorkflow):
    kind = "trade"

    def __init__(
        self,
        api,
        account_id: str,
        *,
        available_balance: Optional[Decimal] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        **kwargs,
    ):
        super().__init__(api, **kwargs)
        self.account_id = account_id
        self.available_balance = available_balance
        self.capability: Optional[TradeCapabilityResponse] = None
        self.preview: Optional[TradePreviewResponse] = None
        self.order: Optional[PlacedOrder] = None
        self.order_status: Optional[OrderStatusResponse] = None
        self.poll_interval = poll_interval if poll_interval is not None else settings.order_poll_interval
        self.max_attempts = max_attempts if max_attempts is not None else settings.order_poll_max_attempts
        self._clock = clock

    @property
    def can_submit(self) -> bool:
        return (
            not self.closed
            and not self.busy
            and self.state == ViewState.IDLE
            and self.capability is not None
            and self.capability.can_trade
        )

    @property
    def preview_expired(self) -> bool:
        return self.preview is not None and _utc(self.preview.expires_at) <= self._clock()

    async def check_capability(self) -> TradeCapabilityResponse:
        try:
            self.capability = await self.api.trade_capability(self.account_id)
        except FlintClientError as e:
            logger.warning("Trade capability check for %s failed: %s", self.account_id, e)
            self.capability = TradeCapabilityResponse(
                can_trade=False, reason="Unable to verify trading support. Please try again."
            )
        return self.capability

    def clear_preview(self) -> None:
        self.preview = None

    async def request_preview(self, ticket: TradeTicket, last_price: Optional[Decimal] = None) -> Optional[TradePreviewResponse]:
        """Validate the ticket locally, then ask the backend to price it."""
        if self.closed or self.busy or self.state != ViewState.IDLE:
            return None
        if self.capability is None or not self.capability.can_trade:
            self.message = (self.capability and self.capability.reason) or "Trading is not available for this account."
            return None
        try:
            request = validate_trade(ticket, self.capability.supports_fractional, self.available_balance, last_price)
        except AmountValidationError as e:
            self.message = str(e)
            return None

        self._busy = True
        self.message = None
        self.mfa_connect_token = None
        self.preview = None
        self._transition(ViewState.PREPARING)
        try:
            preview = await self.api.preview_trade(request)
        except FlintClientError as e:
            logger.warning("Previewing %s %s failed: %s", request.action.value, request.symbol, e)
            self._transition(ViewState.FAILED, str(e))
            return None
        finally:
            self._busy = False

        self.preview = preview
        self._transition(ViewState.IDLE, " ".join(preview.warnings) or None)
        return preview

    async def submit(self, ticket: Optional[TradeTicket] = None, last_price: Optional[Decimal] = None) -> ViewState:
        """
        Preview when nothing is cached, otherwise place the cached preview.

        Returns the view state the dialog ends in.
        """
        if self.closed or self.busy or self.state != ViewState.IDLE:
            return self.state

        if self.preview is None:
            if ticket is None:
                self.message = "Preview the order before placing it."
                return self.state
            await self.request_preview(ticket, last_price)
            return self.state

        if self.preview_expired:
            self.clear_preview()
            self.message = EXPIRED_MESSAGE
            return self.state
        if not self.preview.can_proceed:
            self.message = " ".join(self.preview.warnings) or "This order cannot be placed."
            return self.state

        self._busy = True
        self.message = None
        self.mfa_connect_token = None
        try:
            return await self._place_and_poll(self.preview)
        finally:
            self._busy = False

    async def _place_and_poll(self, preview: TradePreviewResponse) -> ViewState:
        self._transition(ViewState.CREATING)
        try:
            order = await self.api.place_trade(self.account_id, preview.trade_id)
        except MfaRequired as e:
            self.mfa_connect_token = e.connect_token
            self._transition(ViewState.IDLE, MFA_MESSAGE)
            return self.state
        except ApiError as e:
            if e.status_code == 410:
                self.clear_preview()
                self._transition(ViewState.FAILED, EXPIRED_MESSAGE)
            else:
                self._transition(ViewState.FAILED, str(e))
            return self.state
        except FlintClientError as e:
            self._transition(ViewState.FAILED, str(e))
            return self.state

        self.order = order
        self.clear_preview()
        logger.info("Order %s placed for trade %s; polling status", order.order_id, preview.trade_id)
        self._transition(ViewState.PROCESSING)

        def observe(response: OrderStatusResponse) -> None:
            self.order_status = response
            self.poll_states.append(_status_state(response.status))

        try:
            outcome = await self._poll(
                lambda: self.api.order_status(order.order_id),
                lambda response: _status_state(response.status) != ViewState.PROCESSING,
                self.poll_interval,
                self.max_attempts,
                observe,
            )
        except FlintClientError as e:
            logger.warning("Polling order %s failed: %s", order.order_id, e)
            self._transition(ViewState.FAILED, FAILURE_MESSAGE)
            return self.state

        if outcome is None:
            return self.state

        if outcome.exhausted:
            self._transition(ViewState.FAILED, TIMEOUT_MESSAGE)
        elif _status_state(outcome.result.status) == ViewState.COMPLETED:
            self._transition(ViewState.COMPLETED, SUCCESS_MESSAGE)
            self._invalidate(TRADE_INVALIDATES, f"order {order.order_id} {outcome.result.status}")
            self.close()
        else:
            self._transition(ViewState.FAILED, f"{FAILURE_MESSAGE} Status: {outcome.result.status}.")
        return self.state

    def retry(self) -> bool:
        if not super().retry():
            return False
        self.order = None
        self.order_status = None
        self.poll_states = []
        return True
