"""
Trade endpoints (SnapTrade).

GET  /trade/capability        — Can this account trade, and fractionally?
POST /trade/preview           — Price an order; returns a short-lived tradeId.
POST /trade/place             — Place the order for a tradeId.
GET  /trade/orders/{order_id} — Current brokerage status of an order.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from flint.api.csrf import require_csrf
from flint.api.deps import get_brokerage_provider
from flint.database import get_session
from flint.engine import trading as trading_service
from flint.models.enums import OrderType, TradeAction
from flint.models.records import TradeOrder, TradePreview
from flint.providers.base import BrokerageProvider
from flint.schemas.common import to_decimal, to_quantity
from flint.schemas.trades import (
    OrderStatusResponse,
    PlacedOrder,
    PlaceTradeRequest,
    TradeCapabilityResponse,
    TradePreviewRequest,
    TradePreviewResponse,
)

router = APIRouter(prefix="/trade", tags=["trading"])


def _preview_to_response(preview: TradePreview) -> TradePreviewResponse:
    return TradePreviewResponse(
        trade_id=preview.id,
        account_id=preview.account_id,
        symbol=preview.symbol,
        action=TradeAction(preview.action),
        order_type=OrderType(preview.order_type),
        quantity=to_quantity(preview.quantity),
        estimated_price=to_decimal(preview.estimated_price),
        estimated_fees=to_decimal(preview.estimated_fees),
        estimated_total=to_decimal(preview.estimated_total),
        expires_at=trading_service.as_utc(preview.expires_at),
        warnings=trading_service.preview_warnings(preview),
        can_proceed=bool(preview.can_proceed),
    )


def _order_to_status(order: TradeOrder) -> OrderStatusResponse:
    return OrderStatusResponse(
        order_id=order.id,
        status=order.status,
        filled_quantity=to_quantity(order.filled_quantity or 0.0),
    )


@router.get("/capability", response_model=TradeCapabilityResponse)
async def get_capability(
    account_id: str = Query(..., alias="accountId", min_length=1),
    session: AsyncSession = Depends(get_session),
):
    result, fractional = await trading_service.check_capability(session, account_id)
    return TradeCapabilityResponse(can_trade=result.allowed, supports_fractional=fractional, reason=result.reason)


@router.post("/preview", response_model=TradePreviewResponse, dependencies=[Depends(require_csrf)])
async def preview_trade(
    body: TradePreviewRequest,
    session: AsyncSession = Depends(get_session),
    provider: BrokerageProvider = Depends(get_brokerage_provider),
):
    preview = await trading_service.preview_trade(session, provider, body)
    return _preview_to_response(preview)


@router.post("/place", response_model=PlacedOrder, status_code=201, dependencies=[Depends(require_csrf)])
async def place_trade(
    body: PlaceTradeRequest,
    session: AsyncSession = Depends(get_session),
    provider: BrokerageProvider = Depends(get_brokerage_provider),
):
    order = await trading_service.place_trade(session, provider, body.account_id, body.trade_id)
    return PlacedOrder(
        order_id=order.id,
        trade_id=order.trade_id,
        status=order.status,
        submitted_at=trading_service.as_utc(order.created_at),
    )


@router.get("/orders/{order_id}", response_model=OrderStatusResponse)
async def get_order_status(
    order_id: str,
    session: AsyncSession = Depends(get_session),
    provider: BrokerageProvider = Depends(get_brokerage_provider),
):
    order = await trading_service.refresh_order_status(session, provider, order_id)
    return _order_to_status(order)
