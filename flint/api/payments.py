"""
Bank-to-card payment endpoints (Teller).

GET  /teller/payments/capability — Can this funding account pay this card?
POST /teller/payments/prepare    — Card metadata: minimum due, statement balance, due date.
POST /teller/payments/create     — Submit the payment (409 when the bank wants MFA).
GET  /teller/payments/{id}       — Current provider status of a payment.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from flint.api.csrf import require_csrf
from flint.api.deps import get_banking_provider
from flint.database import get_session
from flint.engine import payments as payment_service
from flint.providers.base import BankingProvider
from flint.schemas.common import cents_to_decimal, decimal_to_cents
from flint.schemas.payments import (
    CapabilityResponse,
    CreatePaymentRequest,
    MfaChallenge,
    PaymentCreated,
    PaymentStatusResponse,
    PreparationSnapshot,
    PrepareRequest,
)

router = APIRouter(prefix="/teller/payments", tags=["payments"])


@router.get("/capability", response_model=CapabilityResponse)
async def get_capability(
    from_account_id: str = Query(..., alias="fromAccountId", min_length=1),
    to_account_id: str = Query(..., alias="toAccountId", min_length=1),
    session: AsyncSession = Depends(get_session),
    provider: BankingProvider = Depends(get_banking_provider),
):
    """Advisory only: create re-checks the same rules."""
    result = await payment_service.check_capability(session, provider, from_account_id, to_account_id)
    return CapabilityResponse(can_pay=result.allowed, reason=result.reason)


@router.post("/prepare", response_model=PreparationSnapshot, dependencies=[Depends(require_csrf)])
async def prepare_payment(
    body: PrepareRequest,
    session: AsyncSession = Depends(get_session),
    provider: BankingProvider = Depends(get_banking_provider),
):
    details = await payment_service.prepare_payment(session, provider, body.from_account_id, body.to_account_id)
    return PreparationSnapshot(
        minimum_due=cents_to_decimal(details.minimum_due_cents),
        statement_balance=cents_to_decimal(details.statement_balance_cents),
        due_date=details.due_date,
    )


@router.post(
    "/create",
    response_model=PaymentCreated,
    status_code=201,
    dependencies=[Depends(require_csrf)],
    responses={409: {"model": MfaChallenge, "description": "Bank requires multi-factor authentication"}},
)
async def create_payment(
    body: CreatePaymentRequest,
    session: AsyncSession = Depends(get_session),
    provider: BankingProvider = Depends(get_banking_provider),
):
    record = await payment_service.create_payment(
        session,
        provider,
        body.from_account_id,
        body.to_account_id,
        decimal_to_cents(body.amount),
        body.memo,
    )
    return PaymentCreated(payment_id=record.id, status=record.status)


@router.get("/{payment_id}", response_model=PaymentStatusResponse)
async def get_payment_status(
    payment_id: str,
    session: AsyncSession = Depends(get_session),
    provider: BankingProvider = Depends(get_banking_provider),
):
    record = await payment_service.refresh_payment_status(session, provider, payment_id)
    return PaymentStatusResponse(payment_id=record.id, status=record.status)
