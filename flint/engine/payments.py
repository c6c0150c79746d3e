"""
Bank-to-card payment service.

Backs the capability -> prepare -> create -> status endpoints. Each step
re-validates the account pair locally before talking to the banking
provider, because the client's capability answer is only advisory.

Status is owned by the provider: refresh_payment_status copies whatever
the provider reports onto the PaymentRecord and stops asking once a
terminal status has been recorded.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from flint.audit.logger import append_note, log_event
from flint.engine.capability import CapabilityResult, check_payment_capability
from flint.engine.retry import MfaRequiredError, PermanentError, ProviderError, with_retry
from flint.models.enums import PAYMENT_FAILURE_STATUSES, PAYMENT_SUCCESS_STATUSES, PaymentStatus
from flint.models.records import LinkedAccount, PaymentRecord
from flint.providers.base import BankingProvider, CardDetails, PaymentRequest

logger = logging.getLogger("flint.payments")

UNVERIFIED_REASON = "Unable to verify payment support right now. Please try again."


async def _load_pair(
    session: AsyncSession, from_account_id: str, to_account_id: str
) -> tuple[LinkedAccount | None, LinkedAccount | None]:
    source = await session.get(LinkedAccount, from_account_id)
    destination = await session.get(LinkedAccount, to_account_id)
    return source, destination


async def _require_allowed(
    session: AsyncSession, from_account_id: str, to_account_id: str
) -> tuple[LinkedAccount, LinkedAccount]:
    source, destination = await _load_pair(session, from_account_id, to_account_id)
    result = check_payment_capability(source, destination)
    if not result.allowed:
        status = 404 if source is None or destination is None else 400
        raise PermanentError(result.reason or "Payment not supported", status_code=status)
    return source, destination


async def check_capability(
    session: AsyncSession,
    provider: BankingProvider,
    from_account_id: str,
    to_account_id: str,
) -> CapabilityResult:
    """
    Decide whether a payment from one account to another is possible.

    Local rules run first; the provider is only asked when they pass. A
    provider failure yields "not capable" rather than an error so the
    client blocks submission.
    """
    source, destination = await _load_pair(session, from_account_id, to_account_id)
    result = check_payment_capability(source, destination)
    if not result.allowed:
        logger.info("Payment %s -> %s denied locally: %s", from_account_id, to_account_id, result.reason)
        return result

    try:
        answer = await with_retry(provider.get_capability, source, destination)
    except ProviderError as e:
        logger.warning("Capability check failed for %s -> %s: %s", from_account_id, to_account_id, e)
        return CapabilityResult(False, UNVERIFIED_REASON)

    return CapabilityResult(answer.supported, answer.reason)


async def prepare_payment(
    session: AsyncSession,
    provider: BankingProvider,
    from_account_id: str,
    to_account_id: str,
) -> CardDetails:
    """Fetch the card's statement balance, minimum due, and due date."""
    _, card = await _require_allowed(session, from_account_id, to_account_id)
    details = await with_retry(provider.get_card_details, card)
    logger.info(
        "Prepared payment to %s: statement=%d minimum=%d due=%s",
        card.id,
        details.statement_balance_cents,
        details.minimum_due_cents,
        details.due_date,
    )
    return details


async def create_payment(
    session: AsyncSession,
    provider: BankingProvider,
    from_account_id: str,
    to_account_id: str,
    amount_cents: int,
    memo: str = "",
) -> PaymentRecord:
    """
    Submit a payment to the provider and persist it.

    Not retried: the provider call moves money.

    Raises:
        MfaRequiredError: The bank requires re-authentication first.
        PermanentError: Accounts not found, pair unsupported, or rejected.
        ProviderError: Transient provider failure.
    """
    if amount_cents <= 0:
        raise PermanentError(f"Invalid amount: {amount_cents / 100:.2f}", status_code=400)

    source, destination = await _require_allowed(session, from_account_id, to_account_id)

    request = PaymentRequest(
        source=source,
        destination=destination,
        amount_cents=amount_cents,
        memo=memo or f"Credit card payment to {destination.name}",
    )

    try:
        response = await provider.create_payment(request)
    except MfaRequiredError:
        await log_event(session, "payment_mfa_required", ref_type="payment", details={
            "from_account_id": from_account_id,
            "to_account_id": to_account_id,
            "amount_cents": amount_cents,
        })
        await session.commit()
        raise
    except ProviderError as e:
        await log_event(session, "payment_create_failed", ref_type="payment", details={
            "from_account_id": from_account_id,
            "to_account_id": to_account_id,
            "amount_cents": amount_cents,
            "error": str(e),
            "status_code": e.status_code,
        })
        await session.commit()
        raise

    record = PaymentRecord(
        from_account_id=source.id,
        to_account_id=destination.id,
        amount_cents=amount_cents,
        memo=request.memo,
        status=response.status,
        provider=response.provider,
        provider_payment_id=response.provider_payment_id,
    )
    record.notes = append_note(None, f"Payment created: {response.provider_payment_id}")
    session.add(record)
    await session.flush()

    await log_event(session, "payment_created", ref_type="payment", ref_id=record.id, details={
        "provider_payment_id": response.provider_payment_id,
        "provider": response.provider,
        "amount_cents": amount_cents,
        "status": response.status,
    })
    await session.commit()

    logger.info("Payment %s created (%s, %d cents)", record.id, response.provider_payment_id, amount_cents)
    return record


def is_terminal(status: str) -> bool:
    return status in PAYMENT_SUCCESS_STATUSES or status in PAYMENT_FAILURE_STATUSES


async def refresh_payment_status(
    session: AsyncSession,
    provider: BankingProvider,
    payment_id: str,
) -> PaymentRecord:
    """Ask the provider for the payment's current status and record changes."""
    record = await session.get(PaymentRecord, payment_id)
    if record is None:
        raise PermanentError(f"Payment not found: {payment_id}", status_code=404)

    if is_terminal(record.status):
        return record

    source = await session.get(LinkedAccount, record.from_account_id)
    status = await with_retry(provider.get_payment_status, source, record.provider_payment_id)

    if status != record.status:
        previous = record.status
        record.status = status
        record.notes = append_note(record.notes, f"Status {previous} -> {status}")
        await log_event(session, "payment_status_changed", ref_type="payment", ref_id=record.id, details={
            "from": previous,
            "to": status,
        })
        await session.commit()

        if status == PaymentStatus.FAILED.value:
            logger.warning("Payment %s failed at provider", record.id)

    return record
