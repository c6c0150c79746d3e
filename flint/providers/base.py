"""
Abstract banking and brokerage provider interfaces.

Flint does not move money or route orders itself. Banking calls go to
Teller, brokerage calls go to SnapTrade; these interfaces are the seam
between the services in flint.engine and whichever adapter is configured.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from flint.models.records import LinkedAccount


@dataclass
class CapabilityAnswer:
    """Whether the provider will move money between two accounts."""

    supported: bool
    reason: Optional[str] = None


@dataclass
class CardDetails:
    """Card metadata used to compute a default payment amount."""

    statement_balance_cents: int
    minimum_due_cents: int
    due_date: Optional[str]  # YYYY-MM-DD


@dataclass
class PaymentRequest:
    """Request to pay a card from a funding account."""

    source: LinkedAccount
    destination: LinkedAccount
    amount_cents: int
    memo: str = ""
    currency: str = "USD"


@dataclass
class PaymentResponse:
    """Response from creating a payment."""

    provider_payment_id: str
    status: str  # "pending", "processing", "completed", ...
    provider: str
    message: str = ""


@dataclass
class Quote:
    symbol: str
    price: float
    fees: float = 0.0


@dataclass
class OrderRequest:
    """An order ready to hand to the brokerage."""

    account: LinkedAccount
    trade_id: str
    symbol: str
    action: str  # "BUY" or "SELL"
    order_type: str  # "Market" or "Limit"
    quantity: float
    time_in_force: str = "Day"
    limit_price: Optional[float] = None


@dataclass
class OrderResponse:
    provider_order_id: str
    status: str
    filled_quantity: float = 0.0
    provider: str = ""
    warnings: list[str] = field(default_factory=list)


class BankingProvider(ABC):
    """Abstract base class for banking (payment) providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'mock_banking', 'teller')."""
        ...

    @abstractmethod
    async def get_capability(self, source: LinkedAccount, destination: LinkedAccount) -> CapabilityAnswer:
        """Ask whether a payment from source to destination is possible."""
        ...

    @abstractmethod
    async def get_card_details(self, card: LinkedAccount) -> CardDetails:
        """Fetch statement balance, minimum due and due date for a card."""
        ...

    @abstractmethod
    async def create_payment(self, request: PaymentRequest) -> PaymentResponse:
        """
        Submit a payment.

        Raises:
            MfaRequiredError: The bank wants the user to re-authenticate.
            ProviderError: On transient failure.
            PermanentError: On non-retriable failure.
        """
        ...

    @abstractmethod
    async def get_payment_status(self, source: LinkedAccount, provider_payment_id: str) -> str:
        """Current provider status label for a payment."""
        ...


class BrokerageProvider(ABC):
    """Abstract base class for brokerage (trading) providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def get_quote(self, account: LinkedAccount, symbol: str) -> Quote:
        """
        Price a symbol for an account.

        Raises:
            PermanentError: status 404 when the symbol is not tradable.
        """
        ...

    @abstractmethod
    async def place_order(self, request: OrderRequest) -> OrderResponse:
        ...

    @abstractmethod
    async def get_order_status(self, account: LinkedAccount, provider_order_id: str) -> OrderResponse:
        ...
