"""
Teller banking adapter.

Talks to the Teller REST API with HTTP Basic auth (the enrollment access
token as username, empty password) and, in production, the application's
mTLS client certificate.

Teller does not expose a card's minimum payment, so get_card_details uses
the ledger balance as the statement balance and falls back to the account
record (or $25.00, capped at the statement balance) for the minimum due.
"""

import logging
import math
import ssl
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import httpx

from flint.config import settings
from flint.engine.retry import MfaRequiredError, PermanentError, ProviderError, RateLimitError
from flint.models.records import LinkedAccount
from flint.providers.base import (
    BankingProvider,
    CapabilityAnswer,
    CardDetails,
    PaymentRequest,
    PaymentResponse,
)

logger = logging.getLogger("flint.providers.teller")

UNSUPPORTED_REASON = "Your issuer doesn't support in-app payments via Zelle. Use the bank or card app to pay."
DEFAULT_MINIMUM_DUE_CENTS = 2500


def _to_cents(value: Any) -> int:
    return int(round(float(value or 0) * 100))


def _retry_after_seconds(value: Optional[str]) -> Optional[float]:
    """Retry-After is either delay-seconds or an HTTP-date; anything else is ignored."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(seconds, 0.0) if math.isfinite(seconds) else None
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


class TellerBankingProvider(BankingProvider):
    def __init__(
        self,
        base_url: Optional[str] = None,
        cert: Optional[tuple[str, str]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if cert is None and settings.teller_cert_path and settings.teller_key_path:
            cert = (settings.teller_cert_path, settings.teller_key_path)
        kwargs: dict[str, Any] = {
            "base_url": base_url or settings.teller_api_url,
            "timeout": timeout if timeout is not None else settings.request_timeout,
            "headers": {"Accept": "application/json"},
        }
        if transport is not None:
            kwargs["transport"] = transport
        elif cert is not None:
            context = ssl.create_default_context()
            context.load_cert_chain(*cert)
            kwargs["verify"] = context
        self._client = httpx.AsyncClient(**kwargs)

    @property
    def name(self) -> str:
        return "teller"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, account: LinkedAccount, **kwargs: Any) -> Any:
        auth = httpx.BasicAuth(account.access_token or "", "")
        try:
            response = await self._client.request(method, path, auth=auth, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderError(f"Teller request timed out: {e}", status_code=504) from e
        except httpx.TransportError as e:
            raise ProviderError(f"Teller unreachable: {e}", status_code=503) from e

        if response.is_success:
            return response.json()
        raise self._error_for(response)

    @staticmethod
    def _error_for(response: httpx.Response) -> ProviderError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        error = body.get("error") if isinstance(body, dict) else None
        message = (error or {}).get("message") if isinstance(error, dict) else None
        message = message or response.text or response.reason_phrase
        status = response.status_code

        if status == 409 and isinstance(body, dict) and body.get("connect_token"):
            return MfaRequiredError(connect_token=body["connect_token"])
        if status == 429:
            return RateLimitError(message, retry_after=_retry_after_seconds(response.headers.get("retry-after")))
        if status >= 500:
            return ProviderError(f"Teller error {status}: {message}", status_code=status)
        return PermanentError(f"Teller rejected request: {message}", status_code=status)

    async def get_capability(self, source: LinkedAccount, destination: LinkedAccount) -> CapabilityAnswer:
        capabilities = await self._request("GET", f"/accounts/{source.id}/capabilities", source)
        if not (capabilities.get("payments") or capabilities.get("zelle")):
            return CapabilityAnswer(supported=False, reason=UNSUPPORTED_REASON)
        return CapabilityAnswer(supported=True)

    async def get_card_details(self, card: LinkedAccount) -> CardDetails:
        balances = await self._request("GET", f"/accounts/{card.id}/balances", card)
        statement = abs(_to_cents(balances.get("ledger")))
        minimum = card.minimum_due_cents
        if minimum is None:
            minimum = min(DEFAULT_MINIMUM_DUE_CENTS, statement)
        return CardDetails(statement_balance_cents=statement, minimum_due_cents=minimum, due_date=card.due_date)

    async def create_payment(self, request: PaymentRequest) -> PaymentResponse:
        # Teller takes form-encoded payment requests.
        payment = await self._request(
            "POST",
            f"/accounts/{request.source.id}/payments",
            request.source,
            data={
                "amount": f"{request.amount_cents / 100:.2f}",
                "currency": request.currency,
                "description": request.memo,
                "method": "zelle",
            },
        )
        logger.info("Teller payment %s created for account %s", payment.get("id"), request.source.id)
        return PaymentResponse(
            provider_payment_id=payment["id"],
            status=payment.get("status", "pending"),
            provider=self.name,
        )

    async def get_payment_status(self, source: LinkedAccount, provider_payment_id: str) -> str:
        payment = await self._request("GET", f"/accounts/{source.id}/payments/{provider_payment_id}", source)
        return payment.get("status", "pending")
