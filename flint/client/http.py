"""
Async HTTP client for the Flint API.

Handles the plumbing the workflows should not care about: the CSRF token
(fetched once, sent on every POST, refetched once on a 403), translating
error responses into ApiError / MfaRequired, and wrapping httpx transport
failures in TransportError.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError

from flint.client.errors import AmountValidationError, ApiError, MfaRequired, TransportError
from flint.config import settings
from flint.schemas.accounts import AccountSummary
from flint.schemas.payments import (
    CapabilityResponse,
    CreatePaymentRequest,
    PaymentCreated,
    PaymentStatusResponse,
    PreparationSnapshot,
    PrepareRequest,
)
from flint.schemas.trades import (
    OrderStatusResponse,
    PlacedOrder,
    PlaceTradeRequest,
    TradeCapabilityResponse,
    TradePreviewRequest,
    TradePreviewResponse,
)

logger = logging.getLogger("flint.client.http")

CSRF_HEADER = "x-csrf-token"


def _error_message(body: Any, status_code: int) -> str:
    if isinstance(body, dict):
        message = body.get("message") or body.get("detail")
        if isinstance(message, list):
            # FastAPI validation errors
            return "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in message)
        if message:
            return str(message)
    return f"Request failed with status {status_code}"


def _build(model: type[BaseModel], **fields: Any) -> Any:
    """Build a request body; bad input surfaces as AmountValidationError, not pydantic's error."""
    try:
        return model(**fields)
    except ValidationError as e:
        errors = e.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        raise AmountValidationError(message) from e


class FlintApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.request_timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._csrf_token: Optional[str] = None
        self._csrf_lock = asyncio.Lock()

    async def __aenter__(self) -> "FlintApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- plumbing -------------------------------------------------------

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {path} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {path} failed: {e}") from e

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success:
            return body

        if response.status_code == 409 and isinstance(body, dict) and body.get("step") == "mfa":
            raise MfaRequired(body.get("connectToken"), body.get("message") or "Additional authentication required")

        message = _error_message(body, response.status_code)
        logger.info("%s %s -> %d: %s", response.request.method, response.request.url.path, response.status_code, message)
        raise ApiError(message, response.status_code, body)

    async def csrf_token(self) -> str:
        async with self._csrf_lock:
            if self._csrf_token is None:
                body = self._decode(await self._send("GET", "/api/csrf-token"))
                self._csrf_token = body["csrfToken"]
            return self._csrf_token

    def invalidate_csrf_token(self) -> None:
        self._csrf_token = None

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        return self._decode(await self._send("GET", path, params=params))

    async def _post(self, path: str, payload: dict) -> Any:
        token = await self.csrf_token()
        response = await self._send("POST", path, json=payload, headers={CSRF_HEADER: token})
        if response.status_code == 403:
            logger.info("CSRF token rejected on %s; refreshing and retrying once", path)
            self.invalidate_csrf_token()
            token = await self.csrf_token()
            response = await self._send("POST", path, json=payload, headers={CSRF_HEADER: token})
        return self._decode(response)

    # --- accounts -------------------------------------------------------

    async def list_accounts(self) -> list[AccountSummary]:
        body = await self._get("/api/accounts")
        return [AccountSummary.model_validate(item) for item in body]

    # --- payments -------------------------------------------------------

    async def payment_capability(self, from_account_id: str, to_account_id: str) -> CapabilityResponse:
        body = await self._get(
            "/api/teller/payments/capability",
            params={"fromAccountId": from_account_id, "toAccountId": to_account_id},
        )
        return CapabilityResponse.model_validate(body)

    async def prepare_payment(self, from_account_id: str, to_account_id: str) -> PreparationSnapshot:
        request = _build(PrepareRequest, from_account_id=from_account_id, to_account_id=to_account_id)
        body = await self._post("/api/teller/payments/prepare", request.model_dump(by_alias=True))
        return PreparationSnapshot.model_validate(body)

    async def create_payment(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: Decimal,
        memo: str = "",
    ) -> PaymentCreated:
        request = _build(
            CreatePaymentRequest,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=amount,
            memo=memo,
        )
        body = await self._post("/api/teller/payments/create", request.model_dump(mode="json", by_alias=True))
        return PaymentCreated.model_validate(body)

    async def payment_status(self, payment_id: str) -> PaymentStatusResponse:
        body = await self._get(f"/api/teller/payments/{payment_id}")
        return PaymentStatusResponse.model_validate(body)

    # --- trading --------------------------------------------------------

    async def trade_capability(self, account_id: str) -> TradeCapabilityResponse:
        body = await self._get("/api/trade/capability", params={"accountId": account_id})
        return TradeCapabilityResponse.model_validate(body)

    async def preview_trade(self, request: TradePreviewRequest) -> TradePreviewResponse:
        payload = request.model_dump(mode="json", by_alias=True, exclude_none=True)
        body = await self._post("/api/trade/preview", payload)
        return TradePreviewResponse.model_validate(body)

    async def place_trade(self, account_id: str, trade_id: str) -> PlacedOrder:
        request = _build(PlaceTradeRequest, account_id=account_id, trade_id=trade_id)
        body = await self._post("/api/trade/place", request.model_dump(by_alias=True))
        return PlacedOrder.model_validate(body)

    async def order_status(self, order_id: str) -> OrderStatusResponse:
        body = await self._get(f"/api/trade/orders/{order_id}")
        return OrderStatusResponse.model_validate(body)
