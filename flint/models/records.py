"""SQLAlchemy models for Flint."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


class LinkedAccount(Base):
    """
    An account connected through Teller (banking) or SnapTrade (brokerage).

    Money is stored in cents. Card metadata (statement balance, minimum due,
    due date) is only meaningful for credit_card accounts and is what the
    mock banking provider reports from the prepare step.
    """

    __tablename__ = "linked_accounts"

    id = Column(String(64), primary_key=True)  # provider account id
    name = Column(String(200), nullable=False)
    provider = Column(String(20), nullable=False)  # "teller", "snaptrade"
    institution_name = Column(String(200), nullable=True)
    account_type = Column(String(20), nullable=False)
    balance_cents = Column(Integer, default=0)

    statement_balance_cents = Column(Integer, nullable=True)
    minimum_due_cents = Column(Integer, nullable=True)
    due_date = Column(String(10), nullable=True)  # YYYY-MM-DD

    payments_supported = Column(Integer, default=0)
    supports_fractional = Column(Integer, nullable=True)  # None: derive from brokerage name
    access_token = Column(String(200), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)


class PaymentRecord(Base):
    """
    A bank-to-card payment submitted through the banking provider.

    The status column mirrors whatever the provider last reported; Flint
    never moves it on its own.
    """

    __tablename__ = "payments"

    id = Column(String(40), primary_key=True, default=lambda: _new_id("pay"))
    from_account_id = Column(String(64), ForeignKey("linked_accounts.id"), nullable=False, index=True)
    to_account_id = Column(String(64), ForeignKey("linked_accounts.id"), nullable=False, index=True)
    amount_cents = Column(Integer, nullable=False)
    memo = Column(String(200), nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    provider = Column(String(30), nullable=True)
    provider_payment_id = Column(String(100), nullable=True, unique=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class TradePreview(Base):
    """
    A priced order preview. Its id is the tradeId the client sends back to
    place the order, and it stops being placeable at expires_at.
    """

    __tablename__ = "trade_previews"

    id = Column(String(40), primary_key=True, default=lambda: _new_id("trd"))
    account_id = Column(String(64), ForeignKey("linked_accounts.id"), nullable=False, index=True)
    symbol = Column(String(20), nullable=False)
    action = Column(String(4), nullable=False)
    order_type = Column(String(10), nullable=False)
    time_in_force = Column(String(5), nullable=False, default="Day")
    quantity = Column(Float, nullable=False)
    limit_price = Column(Float, nullable=True)
    estimated_price = Column(Float, nullable=False)
    estimated_fees = Column(Float, nullable=False, default=0.0)
    estimated_total = Column(Float, nullable=False)
    can_proceed = Column(Integer, nullable=False, default=1)
    warnings = Column(Text, nullable=True)  # JSON list
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class TradeOrder(Base):
    """An order placed from a preview. One order per preview."""

    __tablename__ = "trade_orders"

    id = Column(String(40), primary_key=True, default=lambda: _new_id("ord"))
    trade_id = Column(String(40), ForeignKey("trade_previews.id"), nullable=False, unique=True)
    account_id = Column(String(64), ForeignKey("linked_accounts.id"), nullable=False, index=True)
    symbol = Column(String(20), nullable=False)
    action = Column(String(4), nullable=False)
    quantity = Column(Float, nullable=False)
    filled_quantity = Column(Float, nullable=False, default=0.0)
    status = Column(String(20), nullable=False, default="submitted")
    provider_order_id = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class AuditLog(Base):
    """
    Immutable audit trail entry.

    Every submission, provider failure and status change observed for a
    payment, preview or order gets an entry. Append-only.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ref_type = Column(String(20), nullable=False)  # "payment", "trade", "order"
    ref_id = Column(String(40), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)
