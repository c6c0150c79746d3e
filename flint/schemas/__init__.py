from flint.schemas.accounts import AccountSummary
from flint.schemas.payments import (
    CapabilityResponse,
    CreatePaymentRequest,
    MfaChallenge,
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

__all__ = [
    "AccountSummary",
    "CapabilityResponse",
    "CreatePaymentRequest",
    "MfaChallenge",
    "PaymentCreated",
    "PaymentStatusResponse",
    "PreparationSnapshot",
    "PrepareRequest",
    "OrderStatusResponse",
    "PlacedOrder",
    "PlaceTradeRequest",
    "TradeCapabilityResponse",
    "TradePreviewRequest",
    "TradePreviewResponse",
]
