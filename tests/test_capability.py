"""Tests for local payment and trading capability rules."""

from flint.engine.capability import (
    SANDBOX_UNSUPPORTED_REASON,
    check_payment_capability,
    check_trading_capability,
    is_trading_supported,
    normalize_brokerage_name,
    supports_fractional_shares,
)
from flint.models.records import LinkedAccount


def _account(id="acc", account_type="checking", institution="Chase", payments_supported=1, **kwargs):
    return LinkedAccount(
        id=id,
        name=id,
        provider=kwargs.pop("provider", "teller"),
        institution_name=institution,
        account_type=account_type,
        payments_supported=payments_supported,
        **kwargs,
    )


class TestPaymentCapability:
    def test_checking_to_card(self):
        result = check_payment_capability(_account("chk"), _account("cc", "credit_card"))
        assert result.allowed is True
        assert result.reason is None

    def test_savings_can_fund(self):
        result = check_payment_capability(_account("sav", "savings"), _account("cc", "credit_card"))
        assert result.allowed is True

    def test_missing_source(self):
        result = check_payment_capability(None, _account("cc", "credit_card"))
        assert not result.allowed
        assert "Funding account not found" in result.reason

    def test_missing_destination(self):
        result = check_payment_capability(_account("chk"), None)
        assert not result.allowed
        assert "Card account not found" in result.reason

    def test_card_cannot_fund(self):
        result = check_payment_capability(_account("cc2", "credit_card"), _account("cc", "credit_card"))
        assert not result.allowed
        assert "checking or savings" in result.reason

    def test_destination_must_be_card(self):
        result = check_payment_capability(_account("chk"), _account("sav", "savings"))
        assert not result.allowed
        assert "credit card" in result.reason

    def test_institution_without_payments(self):
        result = check_payment_capability(_account("chk", payments_supported=0), _account("cc", "credit_card"))
        assert not result.allowed
        assert result.reason == SANDBOX_UNSUPPORTED_REASON


class TestBrokerageNames:
    def test_normalize(self):
        assert normalize_brokerage_name("E*TRADE") == "ETRADE"
        assert normalize_brokerage_name("e-trade") == "ETRADE"
        assert normalize_brokerage_name("Interactive Brokers") == "INTERACTIVEBROKERS"
        assert normalize_brokerage_name(None) == ""

    def test_trading_enabled(self):
        assert is_trading_supported("Robinhood")
        assert is_trading_supported("Charles Schwab")
        assert is_trading_supported("E*Trade")

    def test_read_only_and_unknown(self):
        assert not is_trading_supported("Vanguard")
        assert not is_trading_supported("Some Regional Bank")
        assert not is_trading_supported(None)

    def test_fractional_from_name(self):
        assert supports_fractional_shares(_account("b", "brokerage", "Robinhood"))
        assert not supports_fractional_shares(_account("b", "brokerage", "Tradier"))

    def test_fractional_override(self):
        account = _account("b", "brokerage", "Tradier", supports_fractional=1)
        assert supports_fractional_shares(account)


class TestTradingCapability:
    def test_supported_brokerage(self):
        assert check_trading_capability(_account("b", "brokerage", "Robinhood")).allowed

    def test_read_only_brokerage(self):
        result = check_trading_capability(_account("b", "brokerage", "Vanguard"))
        assert not result.allowed
        assert "read-only" in result.reason

    def test_unknown_brokerage(self):
        result = check_trading_capability(_account("b", "brokerage", "Acme Securities"))
        assert not result.allowed
        assert "not supported yet" in result.reason

    def test_not_a_brokerage(self):
        result = check_trading_capability(_account("chk"))
        assert not result.allowed

    def test_missing_account(self):
        assert not check_trading_capability(None).allowed
