"""
Mock banking and brokerage providers.

Simulates the Teller and SnapTrade behaviour the workflow depends on:
  - Configurable latency and transient failure rate (429s and 503s)
  - MFA challenges for configured funding accounts
  - Asynchronous settlement: a payment or order reports a non-terminal
    status for `settle_after` status lookups before reaching its final state
  - Payments larger than the funding balance settle as "failed"

Used for local runs and tests; TellerBankingProvider is the real adapter.
"""

import asyncio
import random
import uuid
from typing import Optional

from flint.config import settings
from flint.engine.retry import MfaRequiredError, PermanentError, ProviderError, RateLimitError
from flint.models.enums import OrderStatus, PaymentStatus, TradeAction
from flint.models.records import LinkedAccount
from flint.providers.base import (
    BankingProvider,
    BrokerageProvider,
    CapabilityAnswer,
    CardDetails,
    OrderRequest,
    OrderResponse,
    PaymentRequest,
    PaymentResponse,
    Quote,
)

DEFAULT_MINIMUM_DUE_CENTS = 2500

MOCK_PRICES = {
    "AAPL": 189.84,
    "MSFT": 415.26,
    "GOOGL": 171.93,
    "AMZN": 183.63,
    "TSLA": 248.50,
    "NVDA": 121.40,
    "SPY": 548.12,
    "VTI": 268.77,
    "BTC": 64250.00,
    "ETH": 3120.55,
}


class _Simulation:
    """Latency and failure injection shared by both mock providers."""

    def __init__(self, failure_rate: Optional[float], latency_ms: Optional[int]):
        self._failure_rate = failure_rate if failure_rate is not None else settings.mock_failure_rate
        self._latency_ms = latency_ms if latency_ms is not None else settings.mock_latency_ms

    async def roundtrip(self) -> None:
        if self._latency_ms > 0:
            jitter = random.uniform(0.5, 1.5)
            await asyncio.sleep(self._latency_ms * jitter / 1000)

        roll = random.random()
        if roll < self._failure_rate * 0.5:
            raise RateLimitError(message="Mock rate limit, too many requests", retry_after=0.5)
        if roll < self._failure_rate:
            raise ProviderError(
                message="Mock transient error, service temporarily unavailable",
                status_code=503,
                retriable=True,
            )


class MockBankingProvider(BankingProvider):
    """Teller stand-in for bank-to-card payments."""

    def __init__(
        self,
        failure_rate: Optional[float] = None,
        latency_ms: Optional[int] = None,
        settle_after: Optional[int] = None,
        mfa_accounts: Optional[set[str]] = None,
    ):
        self._sim = _Simulation(failure_rate, latency_ms)
        self._settle_after = settle_after if settle_after is not None else settings.mock_settle_after
        self._mfa_accounts = set(mfa_accounts if mfa_accounts is not None else settings.mock_mfa_accounts)
        # provider_payment_id -> [status lookups so far, final status]
        self._payments: dict[str, list] = {}

    @property
    def name(self) -> str:
        return "mock_banking"

    async def get_capability(self, source: LinkedAccount, destination: LinkedAccount) -> CapabilityAnswer:
        await self._sim.roundtrip()
        if destination.provider != "teller":
            return CapabilityAnswer(
                supported=False,
                reason="This card is not connected through your bank, so it can't be paid from Flint.",
            )
        return CapabilityAnswer(supported=True)

    async def get_card_details(self, card: LinkedAccount) -> CardDetails:
        await self._sim.roundtrip()
        statement = card.statement_balance_cents
        if statement is None:
            statement = abs(card.balance_cents or 0)
        minimum = card.minimum_due_cents
        if minimum is None:
            minimum = min(DEFAULT_MINIMUM_DUE_CENTS, statement)
        return CardDetails(
            statement_balance_cents=statement,
            minimum_due_cents=minimum,
            due_date=card.due_date,
        )

    async def create_payment(self, request: PaymentRequest) -> PaymentResponse:
        if request.source.id in self._mfa_accounts:
            raise MfaRequiredError(connect_token=f"ct_{uuid.uuid4().hex[:24]}")

        await self._sim.roundtrip()

        payment_id = f"tlr_pay_{uuid.uuid4().hex[:16]}"
        available = request.source.balance_cents or 0
        final = PaymentStatus.COMPLETED.value
        if request.amount_cents > available:
            final = PaymentStatus.FAILED.value
        self._payments[payment_id] = [0, final]

        return PaymentResponse(
            provider_payment_id=payment_id,
            status=PaymentStatus.PENDING.value,
            provider=self.name,
            message=f"Payment created (USD {request.amount_cents / 100:.2f})",
        )

    async def get_payment_status(self, source: LinkedAccount, provider_payment_id: str) -> str:
        await self._sim.roundtrip()
        state = self._payments.get(provider_payment_id)
        if state is None:
            raise PermanentError(f"Unknown payment: {provider_payment_id}", status_code=404)
        state[0] += 1
        if state[0] > self._settle_after:
            return state[1]
        return PaymentStatus.PROCESSING.value


class MockBrokerageProvider(BrokerageProvider):
    """SnapTrade stand-in for equity and crypto orders."""

    def __init__(
        self,
        failure_rate: Optional[float] = None,
        latency_ms: Optional[int] = None,
        settle_after: Optional[int] = None,
        prices: Optional[dict[str, float]] = None,
    ):
        self._sim = _Simulation(failure_rate, latency_ms)
        self._settle_after = settle_after if settle_after is not None else settings.mock_settle_after
        self._prices = dict(prices if prices is not None else MOCK_PRICES)
        # provider_order_id -> [status lookups so far, OrderRequest, fill price]
        self._orders: dict[str, list] = {}

    @property
    def name(self) -> str:
        return "mock_brokerage"

    async def get_quote(self, account: LinkedAccount, symbol: str) -> Quote:
        await self._sim.roundtrip()
        price = self._prices.get(symbol.upper())
        if price is None:
            raise PermanentError(f"Symbol {symbol.upper()} not found or not tradable", status_code=404)
        return Quote(symbol=symbol.upper(), price=price)

    async def place_order(self, request: OrderRequest) -> OrderResponse:
        await self._sim.roundtrip()
        order_id = f"snap_ord_{uuid.uuid4().hex[:16]}"
        self._orders[order_id] = [0, request]
        return OrderResponse(
            provider_order_id=order_id,
            status=OrderStatus.SUBMITTED.value,
            provider=self.name,
        )

    async def get_order_status(self, account: LinkedAccount, provider_order_id: str) -> OrderResponse:
        await self._sim.roundtrip()
        state = self._orders.get(provider_order_id)
        if state is None:
            raise PermanentError(f"Unknown order: {provider_order_id}", status_code=404)
        state[0] += 1
        request: OrderRequest = state[1]

        if state[0] <= self._settle_after or not self._limit_reached(request):
            return OrderResponse(provider_order_id=provider_order_id, status=OrderStatus.SUBMITTED.value,
                                 provider=self.name)
        return OrderResponse(
            provider_order_id=provider_order_id,
            status=OrderStatus.FILLED.value,
            filled_quantity=request.quantity,
            provider=self.name,
        )

    def _limit_reached(self, request: OrderRequest) -> bool:
        if request.limit_price is None:
            return True
        price = self._prices.get(request.symbol.upper(), 0.0)
        if request.action == TradeAction.BUY.value:
            return price <= request.limit_price
        return price >= request.limit_price
