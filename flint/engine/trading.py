"""
Preview-then-place trading service.

SnapTrade's order flow is two-step: an impact/preview call prices the
order and returns a short-lived trade id, and placement references that id.
This module keeps the preview on our side so that placement can check it:

  1. Preview: capability, quote, sizing (shares or dollars), buying power
  2. Place: preview must exist, belong to the account, be unexpired and
     placeable; placing an already placed preview returns the same order
  3. Status: copy the brokerage's order status onto the TradeOrder
"""

import json
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flint.audit.logger import append_note, log_event
from flint.config import settings
from flint.engine.capability import CapabilityResult, check_trading_capability, supports_fractional_shares
from flint.engine.retry import PermanentError, ProviderError, with_retry
from flint.models.enums import (
    ORDER_FAILURE_STATUSES,
    ORDER_SUCCESS_STATUSES,
    OrderType,
    TradeAction,
)
from flint.models.records import LinkedAccount, TradeOrder, TradePreview
from flint.providers.base import BrokerageProvider, OrderRequest
from flint.schemas.trades import TradePreviewRequest

logger = logging.getLogger("flint.trading")

SHARE_PRECISION = 1_000_000  # 6 decimal places for fractional shares


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def shares_for_dollars(dollar_amount: float, price: float) -> float:
    """Convert a dollar amount to shares, floored to 6 decimal places."""
    if price <= 0:
        return 0.0
    return math.floor(dollar_amount / price * SHARE_PRECISION) / SHARE_PRECISION


async def check_capability(session: AsyncSession, account_id: str) -> tuple[CapabilityResult, bool]:
    """Return the trading capability and whether fractional orders are accepted."""
    account = await session.get(LinkedAccount, account_id)
    result = check_trading_capability(account)
    fractional = bool(account is not None and result.allowed and supports_fractional_shares(account))
    return result, fractional


async def _require_tradable(session: AsyncSession, account_id: str) -> LinkedAccount:
    account = await session.get(LinkedAccount, account_id)
    result = check_trading_capability(account)
    if not result.allowed:
        raise PermanentError(result.reason or "Trading not supported", status_code=404 if account is None else 400)
    return account


async def preview_trade(
    session: AsyncSession,
    provider: BrokerageProvider,
    request: TradePreviewRequest,
    now: Optional[datetime] = None,
) -> TradePreview:
    """
    Price an order and store the preview.

    Raises:
        PermanentError: Account not tradable (400/404), unknown symbol (404),
            or sizing the brokerage can't accept (400).
    """
    now = now or datetime.now(timezone.utc)
    account = await _require_tradable(session, request.account_id)
    symbol = request.symbol.strip().upper()

    quote = await with_retry(provider.get_quote, account, symbol)
    fractional = supports_fractional_shares(account)

    if request.dollar_amount is not None:
        if not fractional:
            raise PermanentError(
                "Dollar amount orders are not supported by this brokerage. Please use share quantities instead.",
                status_code=400,
            )
        quantity = shares_for_dollars(float(request.dollar_amount), quote.price)
        if quantity <= 0:
            raise PermanentError("Dollar amount is too small to buy any shares.", status_code=400)
    else:
        quantity = float(request.quantity)
        if not fractional and not quantity.is_integer():
            raise PermanentError(
                "This brokerage does not support fractional shares. Please enter a whole number of shares.",
                status_code=400,
            )

    is_limit = request.order_type == OrderType.LIMIT
    price = float(request.limit_price) if is_limit else quote.price
    cost = quantity * price
    if request.action == TradeAction.BUY:
        total = cost + quote.fees
    else:
        total = cost - quote.fees

    warnings: list[str] = []
    can_proceed = True
    cash = (account.balance_cents or 0) / 100
    if request.action == TradeAction.BUY and total > cash:
        warnings.append(f"Insufficient buying power: order needs ${total:,.2f}, available ${cash:,.2f}.")
        can_proceed = False
    if is_limit and request.action == TradeAction.BUY and price < quote.price:
        warnings.append("Limit price is below the current market price; the order may not fill.")
    if is_limit and request.action == TradeAction.SELL and price > quote.price:
        warnings.append("Limit price is above the current market price; the order may not fill.")

    preview = TradePreview(
        account_id=account.id,
        symbol=symbol,
        action=request.action.value,
        order_type=request.order_type.value,
        time_in_force=request.time_in_force.value,
        quantity=quantity,
        limit_price=price if is_limit else None,
        estimated_price=price,
        estimated_fees=quote.fees,
        estimated_total=round(total, 2),
        can_proceed=1 if can_proceed else 0,
        warnings=json.dumps(warnings) if warnings else None,
        expires_at=now + timedelta(seconds=settings.trade_preview_ttl_seconds),
    )
    session.add(preview)
    await session.flush()

    await log_event(session, "trade_previewed", ref_type="trade", ref_id=preview.id, details={
        "account_id": account.id,
        "symbol": symbol,
        "action": preview.action,
        "quantity": quantity,
        "estimated_total": preview.estimated_total,
        "can_proceed": can_proceed,
    })
    await session.commit()
    return preview


def preview_warnings(preview: TradePreview) -> list[str]:
    if not preview.warnings:
        return []
    try:
        return json.loads(preview.warnings)
    except (json.JSONDecodeError, TypeError):
        return [preview.warnings]


async def _order_for_trade(session: AsyncSession, trade_id: str) -> Optional[TradeOrder]:
    result = await session.execute(select(TradeOrder).where(TradeOrder.trade_id == trade_id))
    return result.scalars().first()


async def _existing_order(session: AsyncSession, trade_id: str) -> TradeOrder:
    existing = await _order_for_trade(session, trade_id)
    if existing is None:
        raise PermanentError("This trade is already being placed. Check your orders shortly.", status_code=409)
    logger.info("Trade %s already placed as order %s", trade_id, existing.id)
    return existing


async def _claim_preview(session: AsyncSession, trade_id: str) -> bool:
    """Mark the preview consumed unless another request got there first."""
    result = await session.execute(
        update(TradePreview)
        .where(TradePreview.id == trade_id, TradePreview.consumed == 0)
        .values(consumed=1)
    )
    await session.commit()
    return result.rowcount == 1


async def _release_preview(session: AsyncSession, trade_id: str) -> None:
    await session.execute(update(TradePreview).where(TradePreview.id == trade_id).values(consumed=0))


async def place_trade(
    session: AsyncSession,
    provider: BrokerageProvider,
    account_id: str,
    trade_id: str,
    now: Optional[datetime] = None,
) -> TradeOrder:
    """
    Place the order a preview describes.

    Not retried: the brokerage call submits the order. The preview is
    claimed before the brokerage is called, so concurrent requests for the
    same trade id submit at most one order.

    Raises:
        PermanentError: Unknown preview (404), expired preview (410), a
            preview that may not proceed (400), or one whose placement is
            still in flight (409).
        ProviderError: Brokerage failure.
    """
    now = now or datetime.now(timezone.utc)
    preview = await session.get(TradePreview, trade_id)
    if preview is None or preview.account_id != account_id:
        raise PermanentError(f"Trade preview not found: {trade_id}", status_code=404)

    if preview.consumed:
        return await _existing_order(session, trade_id)

    if as_utc(preview.expires_at) <= now:
        await log_event(session, "trade_preview_expired", ref_type="trade", ref_id=trade_id)
        await session.commit()
        raise PermanentError("Trade preview expired. Please preview the order again.", status_code=410)

    if not preview.can_proceed:
        reasons = " ".join(preview_warnings(preview)) or "This order cannot be placed."
        raise PermanentError(reasons, status_code=400)

    account = await _require_tradable(session, account_id)

    request = OrderRequest(
        account=account,
        trade_id=trade_id,
        symbol=preview.symbol,
        action=preview.action,
        order_type=preview.order_type,
        quantity=preview.quantity,
        time_in_force=preview.time_in_force,
        limit_price=preview.limit_price,
    )

    if not await _claim_preview(session, trade_id):
        return await _existing_order(session, trade_id)

    try:
        response = await provider.place_order(request)
    except ProviderError as e:
        await _release_preview(session, trade_id)
        await log_event(session, "order_place_failed", ref_type="trade", ref_id=trade_id, details={
            "error": str(e),
            "status_code": e.status_code,
        })
        await session.commit()
        raise

    order = TradeOrder(
        trade_id=trade_id,
        account_id=account_id,
        symbol=request.symbol,
        action=request.action,
        quantity=request.quantity,
        filled_quantity=response.filled_quantity,
        status=response.status,
        provider_order_id=response.provider_order_id,
    )
    order.notes = append_note(None, f"Order placed: {response.provider_order_id}")
    session.add(order)
    await session.flush()

    await log_event(session, "order_placed", ref_type="order", ref_id=order.id, details={
        "trade_id": trade_id,
        "provider_order_id": response.provider_order_id,
        "symbol": request.symbol,
        "action": request.action,
        "quantity": request.quantity,
        "status": response.status,
    })
    await session.commit()

    logger.info("Order %s placed for %s %s %s", order.id, request.action, request.quantity, request.symbol)
    return order


def is_terminal(status: str) -> bool:
    return status in ORDER_SUCCESS_STATUSES or status in ORDER_FAILURE_STATUSES


async def refresh_order_status(
    session: AsyncSession,
    provider: BrokerageProvider,
    order_id: str,
) -> TradeOrder:
    order = await session.get(TradeOrder, order_id)
    if order is None:
        raise PermanentError(f"Order not found: {order_id}", status_code=404)

    if is_terminal(order.status):
        return order

    account = await session.get(LinkedAccount, order.account_id)
    response = await with_retry(provider.get_order_status, account, order.provider_order_id)

    if response.status != order.status or response.filled_quantity != order.filled_quantity:
        previous = order.status
        order.status = response.status
        order.filled_quantity = response.filled_quantity
        order.notes = append_note(order.notes, f"Status {previous} -> {response.status}")
        await log_event(session, "order_status_changed", ref_type="order", ref_id=order.id, details={
            "from": previous,
            "to": response.status,
            "filled_quantity": response.filled_quantity,
        })
        await session.commit()

    return order
