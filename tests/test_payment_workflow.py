"""Tests for the payment dialog workflow against a scripted API."""

import asyncio
from decimal import Decimal

import pytest

from flint.client.cache import PAYMENT_INVALIDATES
from flint.client.errors import ApiError, MfaRequired, TransportError
from flint.client.payment_workflow import FAILURE_MESSAGE, SUCCESS_MESSAGE, PaymentWorkflow
from flint.client.workflow import MFA_MESSAGE
from flint.models.enums import ViewState
from flint.schemas.payments import CapabilityResponse, PaymentCreated, PaymentStatusResponse, PreparationSnapshot


class ScriptedApi:
    """Stands in for FlintApiClient; records every call."""

    def __init__(self, statuses=("processing", "processing", "completed"), can_pay=True):
        self.calls: list[tuple] = []
        self.statuses = list(statuses)
        self.can_pay = can_pay
        self.preparation = PreparationSnapshot(minimum_due=Decimal("25.00"), statement_balance=Decimal("150.00"))
        self.create_error = None
        self.prepare_error = None
        self.capability_error = None

    async def payment_capability(self, from_id, to_id):
        self.calls.append(("capability", from_id, to_id))
        if self.capability_error:
            raise self.capability_error
        return CapabilityResponse(can_pay=self.can_pay, reason=None if self.can_pay else "Not supported")

    async def prepare_payment(self, from_id, to_id):
        self.calls.append(("prepare", from_id, to_id))
        if self.prepare_error:
            raise self.prepare_error
        return self.preparation

    async def create_payment(self, from_id, to_id, amount, memo=""):
        self.calls.append(("create", from_id, to_id, amount))
        if self.create_error:
            raise self.create_error
        return PaymentCreated(payment_id="p1", status="pending")

    async def payment_status(self, payment_id):
        self.calls.append(("status", payment_id))
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return PaymentStatusResponse(payment_id=payment_id, status=status)

    def names(self):
        return [call[0] for call in self.calls]


async def no_sleep(seconds):
    return None


def _workflow(api, **kwargs):
    kwargs.setdefault("sleep", no_sleep)
    return PaymentWorkflow(api, "cc_1", poll_interval=2.5, max_attempts=30, **kwargs)


@pytest.mark.asyncio
async def test_minimum_payment_completes_and_closes():
    api = ScriptedApi()
    events, closed = [], []
    workflow = _workflow(api, on_invalidate=events.append, on_close=lambda: closed.append(True))
    await workflow.select_funding_account("chk_1")
    assert workflow.can_submit

    state = await workflow.submit("minimum")

    assert state == ViewState.COMPLETED
    assert ("create", "chk_1", "cc_1", Decimal("25.00")) in api.calls
    assert workflow.poll_states == [ViewState.PROCESSING, ViewState.PROCESSING, ViewState.COMPLETED]
    assert workflow.history == [
        ViewState.IDLE, ViewState.PREPARING, ViewState.IDLE,
        ViewState.CREATING, ViewState.PROCESSING, ViewState.COMPLETED,
    ]
    assert workflow.message == SUCCESS_MESSAGE
    assert workflow.closed and closed == [True]
    assert len(events) == 1 and events[0].tags == PAYMENT_INVALIDATES
    assert api.names().count("status") == 3


@pytest.mark.asyncio
async def test_custom_over_statement_is_blocked_before_create():
    api = ScriptedApi()
    workflow = _workflow(api)
    await workflow.select_funding_account("chk_1")

    state = await workflow.submit("custom", "500")

    assert state == ViewState.IDLE
    assert workflow.message == "Payment amount cannot exceed statement balance of $150.00"
    assert "create" not in api.names()


@pytest.mark.asyncio
async def test_invalid_custom_amount_makes_no_request():
    api = ScriptedApi()
    workflow = _workflow(api)
    await workflow.select_funding_account("chk_1")
    api.calls.clear()

    await workflow.submit("custom", "abc")

    assert api.calls == []
    assert workflow.state == ViewState.IDLE
    assert workflow.message


@pytest.mark.asyncio
async def test_capability_failure_blocks_submit():
    api = ScriptedApi()
    api.capability_error = TransportError("offline")
    workflow = _workflow(api)

    capability = await workflow.select_funding_account("chk_1")

    assert capability.can_pay is False
    assert not workflow.can_submit
    await workflow.submit("minimum")
    assert "create" not in api.names()


@pytest.mark.asyncio
async def test_no_funding_account():
    api = ScriptedApi()
    workflow = _workflow(api)
    assert await workflow.check_capability() is None
    await workflow.submit("minimum")
    assert api.calls == []
    assert workflow.message == "Please select a funding account."


@pytest.mark.asyncio
async def test_mfa_returns_to_idle_with_token():
    api = ScriptedApi()
    api.create_error = MfaRequired("ct_123")
    workflow = _workflow(api)
    await workflow.select_funding_account("chk_1")

    state = await workflow.submit("minimum")

    assert state == ViewState.IDLE
    assert workflow.mfa_connect_token == "ct_123"
    assert workflow.message == MFA_MESSAGE
    assert "status" not in api.names()
    assert not workflow.closed


@pytest.mark.asyncio
async def test_create_error_fails_and_retry_resets():
    api = ScriptedApi()
    api.create_error = ApiError("The provider is temporarily unavailable. Please try again.", 502)
    workflow = _workflow(api)
    await workflow.select_funding_account("chk_1")

    assert await workflow.submit("statement") == ViewState.FAILED
    assert not workflow.can_submit

    assert workflow.retry()
    assert workflow.state == ViewState.IDLE
    assert workflow.message is None

    api.create_error = None
    assert await workflow.submit("statement") == ViewState.COMPLETED
    assert ("create", "chk_1", "cc_1", Decimal("150.00")) in api.calls
    # preparation stayed cached across the retry
    assert api.names().count("prepare") == 1


@pytest.mark.asyncio
async def test_prepare_failure_is_failed():
    api = ScriptedApi()
    api.prepare_error = ApiError("Card account not found. Please reconnect your card.", 404)
    workflow = _workflow(api)
    await workflow.select_funding_account("chk_1")

    assert await workflow.submit("minimum") == ViewState.FAILED
    assert "create" not in api.names()


@pytest.mark.asyncio
async def test_terminal_failure_status():
    api = ScriptedApi(statuses=("processing", "failed"))
    workflow = _workflow(api)
    await workflow.select_funding_account("chk_1")

    assert await workflow.submit("minimum") == ViewState.FAILED
    assert workflow.message == FAILURE_MESSAGE
    assert not workflow.closed


@pytest.mark.asyncio
async def test_poll_budget_exhaustion_is_failure():
    api = ScriptedApi(statuses=("processing",))
    workflow = PaymentWorkflow(api, "cc_1", poll_interval=0, max_attempts=4, sleep=no_sleep)
    await workflow.select_funding_account("chk_1")

    assert await workflow.submit("minimum") == ViewState.FAILED
    assert api.names().count("status") == 4


@pytest.mark.asyncio
async def test_transport_error_while_polling():
    api = ScriptedApi()
    workflow = _workflow(api)
    await workflow.select_funding_account("chk_1")

    async def broken(payment_id):
        raise TransportError("connection reset")

    api.payment_status = broken
    assert await workflow.submit("minimum") == ViewState.FAILED


@pytest.mark.asyncio
async def test_close_while_polling_stops_requests():
    api = ScriptedApi(statuses=("processing",))
    workflow = PaymentWorkflow(api, "cc_1", poll_interval=60, max_attempts=30)
    await workflow.select_funding_account("chk_1")

    task = asyncio.create_task(workflow.submit("minimum"))
    while "status" not in api.names():
        await asyncio.sleep(0)

    workflow.close()
    state = await task

    assert state == ViewState.PROCESSING
    assert api.names().count("status") == 1
    assert workflow.closed


@pytest.mark.asyncio
async def test_double_submit_is_ignored():
    api = ScriptedApi(statuses=("processing",))
    workflow = PaymentWorkflow(api, "cc_1", poll_interval=60, max_attempts=30)
    await workflow.select_funding_account("chk_1")

    task = asyncio.create_task(workflow.submit("minimum"))
    while "status" not in api.names():
        await asyncio.sleep(0)

    assert not workflow.can_submit
    assert await workflow.submit("minimum") == ViewState.PROCESSING
    assert api.names().count("create") == 1

    workflow.close()
    await task


@pytest.mark.asyncio
async def test_changing_funding_account_drops_preparation():
    api = ScriptedApi()
    workflow = _workflow(api)
    await workflow.select_funding_account("chk_1")
    await workflow.prepare()
    assert workflow.preparation is not None

    await workflow.select_funding_account("sav_1")

    assert workflow.preparation is None
    assert api.calls[-1] == ("capability", "sav_1", "cc_1")
