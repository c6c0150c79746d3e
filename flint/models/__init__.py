from flint.models.enums import (
    AccountType,
    OrderStatus,
    OrderType,
    PaymentAmountChoice,
    PaymentStatus,
    TimeInForce,
    TradeAction,
    ViewState,
)
from flint.models.records import AuditLog, Base, LinkedAccount, PaymentRecord, TradeOrder, TradePreview

__all__ = [
    "Base",
    "LinkedAccount",
    "PaymentRecord",
    "TradePreview",
    "TradeOrder",
    "AuditLog",
    "AccountType",
    "OrderStatus",
    "OrderType",
    "PaymentAmountChoice",
    "PaymentStatus",
    "TimeInForce",
    "TradeAction",
    "ViewState",
]
