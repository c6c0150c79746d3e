"""
Capability rules for payments and trading.

Before the provider is asked anything, we verify locally:
  1. Both accounts exist and are linked
  2. The source is a checking or savings account
  3. The destination is a credit card
  4. The source institution supports payments at all

Each check returns a structured result with a user-facing reason, which the
API passes straight through as `{canPay, reason}`.

Trading capability is decided from the brokerage name: SnapTrade only
supports order placement for a known set of brokerages, and only some of
those accept fractional or dollar-amount orders.
"""

import re
from dataclasses import dataclass
from typing import Optional

from flint.models.enums import FUNDING_ACCOUNT_TYPES, AccountType
from flint.models.records import LinkedAccount


TRADING_ENABLED_BROKERAGES = {
    "ALPACA",
    "COINBASE",
    "ETRADE",
    "ROBINHOOD",
    "SCHWAB",
    "TRADESTATION",
    "TRADIER",
    "WEBULL",
    "INTERACTIVE BROKERS",
    "TD AMERITRADE",
    "TASTYTRADE",
}

READ_ONLY_BROKERAGES = {
    "CHASE",
    "FIDELITY",
    "VANGUARD",
    "EMPOWER",
    "BETTERMENT",
    "WEALTHFRONT",
    "MERRILL EDGE",
    "WELLS FARGO",
}

FRACTIONAL_BROKERAGES = {
    "ROBINHOOD",
    "CHARLES SCHWAB",
    "FIDELITY",
    "INTERACTIVE BROKERS",
    "ALPACA",
    "TD AMERITRADE",
    "WEBULL",
    "SOFI",
    "M1 FINANCE",
    "COINBASE",
}

SANDBOX_UNSUPPORTED_REASON = (
    "This institution does not support Teller payments. "
    "Please pay through your card issuer's website."
)


@dataclass
class CapabilityResult:
    """Result of a capability check."""

    allowed: bool
    reason: Optional[str] = None


def normalize_brokerage_name(name: Optional[str]) -> str:
    """
    Upper-case and strip '*', '-', '_' and whitespace so that
    "E*TRADE", "eTrade" and "E-Trade" compare equal.
    """
    if not name:
        return ""
    return re.sub(r"[*\-_\s]", "", name.upper()).strip()


def _matches(name: str, candidates: set[str]) -> bool:
    normalized = normalize_brokerage_name(name)
    if not normalized:
        return False
    for candidate in candidates:
        other = normalize_brokerage_name(candidate)
        if normalized == other or other in normalized or normalized in other:
            return True
    return False


def is_trading_supported(brokerage_name: Optional[str]) -> bool:
    """Unknown brokerages are treated as read-only."""
    if not brokerage_name:
        return False
    return _matches(brokerage_name, TRADING_ENABLED_BROKERAGES)


def supports_fractional_shares(account: LinkedAccount) -> bool:
    if account.supports_fractional is not None:
        return bool(account.supports_fractional)
    return _matches(account.institution_name or "", FRACTIONAL_BROKERAGES)


def check_payment_capability(
    source: Optional[LinkedAccount],
    destination: Optional[LinkedAccount],
) -> CapabilityResult:
    """
    Local part of the payment capability check.

    Args:
        source: The funding (bank) account, or None if it isn't linked.
        destination: The card being paid, or None if it isn't linked.

    Returns:
        CapabilityResult; when allowed, the provider still has the final say.
    """
    if source is None:
        return CapabilityResult(False, "Funding account not found. Please reconnect your bank.")

    if destination is None:
        return CapabilityResult(False, "Card account not found. Please reconnect your card.")

    if source.account_type not in FUNDING_ACCOUNT_TYPES:
        return CapabilityResult(False, "Payments must be funded from a checking or savings account.")

    if destination.account_type != AccountType.CREDIT_CARD.value:
        return CapabilityResult(False, "Only credit card accounts can receive payments.")

    if source.id == destination.id:
        return CapabilityResult(False, "Funding account and card must be different accounts.")

    if not source.payments_supported:
        return CapabilityResult(False, SANDBOX_UNSUPPORTED_REASON)

    return CapabilityResult(True)


def check_trading_capability(account: Optional[LinkedAccount]) -> CapabilityResult:
    if account is None:
        return CapabilityResult(False, "Brokerage account not found.")

    if account.account_type != AccountType.BROKERAGE.value:
        return CapabilityResult(False, "Trading is only available for brokerage accounts.")

    if not is_trading_supported(account.institution_name):
        name = account.institution_name or "This brokerage"
        if _matches(name, READ_ONLY_BROKERAGES):
            return CapabilityResult(False, f"{name} is connected read-only; trading is not supported.")
        return CapabilityResult(False, f"Trading through {name} is not supported yet.")

    return CapabilityResult(True)
