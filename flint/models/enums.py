"""Enumerations for the Flint domain model."""

from enum import Enum


class AccountType(str, Enum):
    """Kinds of linked accounts."""

    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT_CARD = "credit_card"
    BROKERAGE = "brokerage"


FUNDING_ACCOUNT_TYPES = {AccountType.CHECKING.value, AccountType.SAVINGS.value}


class PaymentStatus(str, Enum):
    """Provider-owned lifecycle of a payment. Flint only reads it."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


PAYMENT_SUCCESS_STATUSES = {PaymentStatus.COMPLETED.value, PaymentStatus.SUCCESS.value}
PAYMENT_FAILURE_STATUSES = {PaymentStatus.FAILED.value, PaymentStatus.CANCELLED.value}


class OrderStatus(str, Enum):
    """Brokerage order states, mapped from SnapTrade's labels."""

    SUBMITTED = "submitted"
    PARTIAL_FILLED = "partial_filled"
    FILLED = "filled"
    REPLACED = "replaced"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    FAILED = "failed"


ORDER_SUCCESS_STATUSES = {OrderStatus.FILLED.value}
ORDER_FAILURE_STATUSES = {
    OrderStatus.REJECTED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.FAILED.value,
}


class TradeAction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    MARKET = "Market"
    LIMIT = "Limit"


class TimeInForce(str, Enum):
    DAY = "Day"
    GTC = "GTC"


class ViewState(str, Enum):
    """Client-local state of a single payment or trade dialog."""

    IDLE = "idle"
    PREPARING = "preparing"
    CREATING = "creating"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentAmountChoice(str, Enum):
    """Which amount the user picked in the payment dialog."""

    MINIMUM = "minimum"
    STATEMENT = "statement"
    CUSTOM = "custom"
