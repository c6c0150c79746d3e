"""Provider dependencies. Tests swap these out with app.dependency_overrides."""

from functools import lru_cache

from flint.config import settings
from flint.providers.base import BankingProvider, BrokerageProvider
from flint.providers.mock_provider import MockBankingProvider, MockBrokerageProvider


@lru_cache
def get_banking_provider() -> BankingProvider:
    if settings.banking_provider == "teller":
        from flint.providers.teller import TellerBankingProvider

        return TellerBankingProvider()
    return MockBankingProvider()


@lru_cache
def get_brokerage_provider() -> BrokerageProvider:
    return MockBrokerageProvider()
