"""End-to-end tests: the client and workflows against the in-process API."""

from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select

from flint.client.cache import PAYMENT_INVALIDATES, QueryCache
from flint.client.errors import AmountValidationError, ApiError, MfaRequired, TransportError
from flint.client.http import FlintApiClient
from flint.client.payment_workflow import PaymentWorkflow
from flint.client.trade_workflow import TradeWorkflow
from flint.client.validation import TradeTicket
from flint.models.enums import TradeAction, ViewState
from flint.models.records import PaymentRecord


@pytest_asyncio.fixture
async def client(api_app):
    async with FlintApiClient(base_url="http://testserver", transport=httpx.ASGITransport(app=api_app)) as api:
        yield api


@pytest.mark.asyncio
async def test_list_accounts(client):
    accounts = await client.list_accounts()
    by_id = {a.id: a for a in accounts}
    assert by_id["chk_1"].balance == Decimal("5000.00")


@pytest.mark.asyncio
async def test_csrf_token_is_fetched_once(client):
    first = await client.csrf_token()
    await client.prepare_payment("chk_1", "cc_1")
    assert await client.csrf_token() == first


@pytest.mark.asyncio
async def test_stale_csrf_token_is_refreshed_once(client):
    await client.csrf_token()
    client._csrf_token = "stale"

    snapshot = await client.prepare_payment("chk_1", "cc_1")

    assert snapshot.statement_balance == Decimal("150.00")
    assert await client.csrf_token() != "stale"


@pytest.mark.asyncio
async def test_mfa_is_distinguished(client):
    with pytest.raises(MfaRequired) as exc:
        await client.create_payment("chk_mfa", "cc_1", Decimal("25.00"))
    assert exc.value.connect_token.startswith("ct_")


@pytest.mark.asyncio
async def test_error_message_passthrough(client):
    with pytest.raises(ApiError) as exc:
        await client.prepare_payment("chk_1", "cc_missing")
    assert exc.value.status_code == 404
    assert "Card account not found" in str(exc.value)


@pytest.mark.asyncio
async def test_transport_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with FlintApiClient(base_url="http://testserver", transport=httpx.MockTransport(handler)) as api:
        with pytest.raises(TransportError):
            await api.payment_status("pay_1")


@pytest.mark.asyncio
async def test_payment_workflow_end_to_end(client):
    cache = QueryCache()
    cache.set("accounts", ["stale"], tags={"accounts"})
    workflow = PaymentWorkflow(client, "cc_1", poll_interval=0, max_attempts=30, on_invalidate=cache.apply)

    capability = await workflow.select_funding_account("chk_1")
    assert capability.can_pay

    state = await workflow.submit("minimum")

    assert state == ViewState.COMPLETED
    assert workflow.poll_states == [ViewState.PROCESSING, ViewState.PROCESSING, ViewState.COMPLETED]
    assert workflow.closed
    assert "accounts" not in cache
    assert workflow.preparation.minimum_due == Decimal("35.00")


@pytest.mark.asyncio
async def test_payment_workflow_unsupported_institution(client):
    workflow = PaymentWorkflow(client, "cc_1", poll_interval=0)
    capability = await workflow.select_funding_account("chk_cu")
    assert not capability.can_pay
    assert not workflow.can_submit


@pytest.mark.asyncio
async def test_payment_workflow_mfa(client):
    workflow = PaymentWorkflow(client, "cc_1", poll_interval=0)
    await workflow.select_funding_account("chk_mfa")

    assert await workflow.submit("minimum") == ViewState.IDLE
    assert workflow.mfa_connect_token.startswith("ct_")


@pytest.mark.asyncio
async def test_trade_workflow_end_to_end(client):
    events = []
    workflow = TradeWorkflow(client, "brk_rh", available_balance=Decimal("1000.00"), poll_interval=0,
                             on_invalidate=events.append)
    capability = await workflow.check_capability()
    assert capability.supports_fractional

    ticket = TradeTicket(account_id="brk_rh", symbol="AAPL", action=TradeAction.BUY, dollar_amount="100")
    assert await workflow.submit(ticket) == ViewState.IDLE
    assert workflow.preview.quantity == Decimal("0.526759")

    assert await workflow.submit() == ViewState.COMPLETED
    assert workflow.order_status.status == "filled"
    assert events and "positions" in events[0].tags
    assert not (events[0].tags & (PAYMENT_INVALIDATES - {"accounts", "dashboard"}))


@pytest.mark.asyncio
async def test_long_memo_is_rejected_before_create(client, seeded_session):
    workflow = PaymentWorkflow(client, "cc_1", poll_interval=0)
    await workflow.select_funding_account("chk_1")

    state = await workflow.submit("minimum", memo="x" * 201)

    assert state == ViewState.IDLE
    assert "Memo" in workflow.message
    assert workflow.can_submit
    payments = (await seeded_session.execute(select(PaymentRecord))).scalars().all()
    assert payments == []


@pytest.mark.asyncio
async def test_oversized_custom_amount_on_paid_off_card(client, seeded_session):
    workflow = PaymentWorkflow(client, "cc_paid", poll_interval=0)
    await workflow.select_funding_account("chk_1")

    state = await workflow.submit("custom", "99999999999")

    assert state == ViewState.IDLE
    assert "cannot exceed" in workflow.message
    assert workflow.can_submit
    payments = (await seeded_session.execute(select(PaymentRecord))).scalars().all()
    assert payments == []


@pytest.mark.asyncio
async def test_client_rejects_unsendable_amount(client):
    with pytest.raises(AmountValidationError):
        await client.create_payment("chk_1", "cc_1", Decimal("100000000000.00"))
