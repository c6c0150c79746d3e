"""Request/response contracts for the preview-then-place trade endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, model_validator

from flint.models.enums import OrderType, TimeInForce, TradeAction
from flint.schemas.common import CamelModel


class TradeCapabilityResponse(CamelModel):
    can_trade: bool
    supports_fractional: bool = False
    reason: Optional[str] = None


class TradePreviewRequest(CamelModel):
    """
    Either `quantity` (shares) or `dollar_amount` must be given, not both.
    Dollar-amount orders are converted to fractional shares at the quoted
    price.
    """

    account_id: str = Field(min_length=1)
    symbol: str = Field(min_length=1, max_length=20)
    action: TradeAction
    order_type: OrderType = OrderType.MARKET
    quantity: Optional[Decimal] = Field(default=None, gt=0)
    dollar_amount: Optional[Decimal] = Field(default=None, gt=0)
    limit_price: Optional[Decimal] = Field(default=None, gt=0)
    time_in_force: TimeInForce = TimeInForce.DAY

    @model_validator(mode="after")
    def _check_sizing(self):
        if (self.quantity is None) == (self.dollar_amount is None):
            raise ValueError("Provide exactly one of quantity or dollarAmount")
        if self.order_type == OrderType.LIMIT and self.limit_price is None:
            raise ValueError("limitPrice is required for limit orders")
        return self


class TradePreviewResponse(CamelModel):
    trade_id: str
    account_id: str
    symbol: str
    action: TradeAction
    order_type: OrderType
    quantity: Decimal
    estimated_price: Decimal
    estimated_fees: Decimal
    estimated_total: Decimal
    expires_at: datetime
    warnings: list[str] = []
    can_proceed: bool


class PlaceTradeRequest(CamelModel):
    account_id: str = Field(min_length=1)
    trade_id: str = Field(min_length=1)


class PlacedOrder(CamelModel):
    order_id: str
    trade_id: str
    status: str
    submitted_at: datetime


class OrderStatusResponse(CamelModel):
    order_id: str
    status: str
    filled_quantity: Decimal = Decimal("0")
