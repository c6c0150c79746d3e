"""Tests for the preview-then-place trade dialog workflow."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from flint.client.cache import TRADE_INVALIDATES
from flint.client.errors import ApiError, MfaRequired
from flint.client.trade_workflow import EXPIRED_MESSAGE, TradeWorkflow
from flint.client.validation import TradeTicket
from flint.client.workflow import MFA_MESSAGE
from flint.models.enums import OrderType, TradeAction, ViewState
from flint.schemas.trades import (
    OrderStatusResponse,
    PlacedOrder,
    TradeCapabilityResponse,
    TradePreviewResponse,
)

NOW = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)


class ScriptedBroker:
    def __init__(self, statuses=("submitted", "filled"), fractional=True, can_proceed=True):
        self.calls: list[tuple] = []
        self.statuses = list(statuses)
        self.fractional = fractional
        self.can_proceed = can_proceed
        self.place_error = None

    async def trade_capability(self, account_id):
        self.calls.append(("capability", account_id))
        return TradeCapabilityResponse(can_trade=True, supports_fractional=self.fractional)

    async def preview_trade(self, request):
        self.calls.append(("preview", request))
        return TradePreviewResponse(
            trade_id="trd_1",
            account_id=request.account_id,
            symbol=request.symbol,
            action=request.action,
            order_type=request.order_type,
            quantity=request.quantity or Decimal("0.526759"),
            estimated_price=Decimal("189.84"),
            estimated_fees=Decimal("0.00"),
            estimated_total=Decimal("100.00"),
            expires_at=NOW + timedelta(minutes=2),
            warnings=[] if self.can_proceed else ["Insufficient buying power"],
            can_proceed=self.can_proceed,
        )

    async def place_trade(self, account_id, trade_id):
        self.calls.append(("place", account_id, trade_id))
        if self.place_error:
            raise self.place_error
        return PlacedOrder(order_id="ord_1", trade_id=trade_id, status="submitted", submitted_at=NOW)

    async def order_status(self, order_id):
        self.calls.append(("status", order_id))
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        filled = Decimal("1") if status == "filled" else Decimal("0")
        return OrderStatusResponse(order_id=order_id, status=status, filled_quantity=filled)

    def names(self):
        return [call[0] for call in self.calls]


async def no_sleep(seconds):
    return None


class Clock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


def _ticket(**kwargs):
    kwargs.setdefault("quantity", "1")
    return TradeTicket(account_id="brk_rh", symbol="AAPL", action=TradeAction.BUY, **kwargs)


def _workflow(api, clock=None, **kwargs):
    return TradeWorkflow(api, "brk_rh", poll_interval=3, max_attempts=20, sleep=no_sleep,
                         clock=clock or Clock(), **kwargs)


@pytest.mark.asyncio
async def test_preview_then_place_until_filled():
    api = ScriptedBroker()
    events = []
    workflow = _workflow(api, on_invalidate=events.append)
    await workflow.check_capability()

    assert await workflow.submit(_ticket()) == ViewState.IDLE
    assert workflow.preview.trade_id == "trd_1"
    assert "place" not in api.names()

    assert await workflow.submit() == ViewState.COMPLETED
    assert ("place", "brk_rh", "trd_1") in api.calls
    assert workflow.poll_states == [ViewState.PROCESSING, ViewState.COMPLETED]
    assert workflow.closed
    assert events[0].tags == TRADE_INVALIDATES


@pytest.mark.asyncio
async def test_dollar_order_requires_fractional_support():
    api = ScriptedBroker(fractional=False)
    workflow = _workflow(api)
    await workflow.check_capability()

    await workflow.request_preview(_ticket(quantity=None, dollar_amount="100"))

    assert "preview" not in api.names()
    assert "Dollar amount orders" in workflow.message


@pytest.mark.asyncio
async def test_submit_without_preview_or_ticket():
    api = ScriptedBroker()
    workflow = _workflow(api)
    await workflow.check_capability()

    await workflow.submit()

    assert workflow.message == "Preview the order before placing it."
    assert api.names() == ["capability"]


@pytest.mark.asyncio
async def test_expired_preview_is_dropped_locally():
    api = ScriptedBroker()
    clock = Clock()
    workflow = _workflow(api, clock=clock)
    await workflow.check_capability()
    await workflow.request_preview(_ticket())

    clock.now = NOW + timedelta(minutes=5)
    await workflow.submit()

    assert workflow.preview is None
    assert workflow.message == EXPIRED_MESSAGE
    assert "place" not in api.names()


@pytest.mark.asyncio
async def test_backend_expiry_fails_and_clears_preview():
    api = ScriptedBroker()
    api.place_error = ApiError("Trade preview expired. Please preview the order again.", 410)
    workflow = _workflow(api)
    await workflow.check_capability()
    await workflow.request_preview(_ticket())

    assert await workflow.submit() == ViewState.FAILED
    assert workflow.preview is None
    assert workflow.retry()
    assert workflow.state == ViewState.IDLE


@pytest.mark.asyncio
async def test_preview_that_cannot_proceed_blocks_place():
    api = ScriptedBroker(can_proceed=False)
    workflow = _workflow(api)
    await workflow.check_capability()
    await workflow.request_preview(_ticket())

    await workflow.submit()

    assert "place" not in api.names()
    assert "Insufficient buying power" in workflow.message


@pytest.mark.asyncio
async def test_rejected_order_fails():
    api = ScriptedBroker(statuses=("submitted", "rejected"))
    workflow = _workflow(api)
    await workflow.check_capability()
    await workflow.request_preview(_ticket(order_type=OrderType.LIMIT, limit_price="150"))

    assert await workflow.submit() == ViewState.FAILED
    assert "rejected" in workflow.message
    assert not workflow.closed


@pytest.mark.asyncio
async def test_mfa_on_place_returns_to_idle_then_clears():
    api = ScriptedBroker()
    api.place_error = MfaRequired("ct_777")
    workflow = _workflow(api)
    await workflow.check_capability()
    await workflow.request_preview(_ticket())

    assert await workflow.submit() == ViewState.IDLE
    assert workflow.mfa_connect_token == "ct_777"
    assert workflow.message == MFA_MESSAGE
    assert workflow.preview is not None
    assert "status" not in api.names()

    api.place_error = None
    assert await workflow.submit() == ViewState.COMPLETED
    assert workflow.mfa_connect_token is None
