"""Shared test fixtures."""

import pytest
import pytest_asyncio
import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from flint.api.deps import get_banking_provider, get_brokerage_provider
from flint.database import get_session
from flint.main import app
from flint.models.records import Base, LinkedAccount
from flint.providers.mock_provider import MockBankingProvider, MockBrokerageProvider


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database for each test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_session(db_session: AsyncSession):
    """Database session pre-loaded with sample accounts."""
    accounts = [
        LinkedAccount(id="chk_1", name="Everyday Checking", provider="teller", institution_name="Chase",
                      account_type="checking", balance_cents=500_000, payments_supported=1),
        LinkedAccount(id="chk_low", name="Low Balance Checking", provider="teller", institution_name="Chase",
                      account_type="checking", balance_cents=1_000, payments_supported=1),
        LinkedAccount(id="chk_cu", name="Credit Union Checking", provider="teller", institution_name="Navy Federal",
                      account_type="checking", balance_cents=200_000, payments_supported=0),
        LinkedAccount(id="chk_mfa", name="MFA Checking", provider="teller", institution_name="Chase",
                      account_type="checking", balance_cents=500_000, payments_supported=1),
        LinkedAccount(id="cc_1", name="Sapphire", provider="teller", institution_name="Chase",
                      account_type="credit_card", balance_cents=-160_000, statement_balance_cents=15_000,
                      minimum_due_cents=3_500, due_date="2026-11-12"),
        LinkedAccount(id="cc_nomin", name="Venture", provider="teller", institution_name="Capital One",
                      account_type="credit_card", balance_cents=-10_000, statement_balance_cents=10_000),
        LinkedAccount(id="cc_paid", name="Quicksilver", provider="teller", institution_name="Capital One",
                      account_type="credit_card", balance_cents=0, statement_balance_cents=0, minimum_due_cents=0),
        LinkedAccount(id="cc_snap", name="Brokerage Card", provider="snaptrade", institution_name="Fidelity",
                      account_type="credit_card", balance_cents=-5_000, statement_balance_cents=5_000),
        LinkedAccount(id="brk_rh", name="Robinhood Individual", provider="snaptrade", institution_name="Robinhood",
                      account_type="brokerage", balance_cents=100_000),
        LinkedAccount(id="brk_tradier", name="Tradier Cash", provider="snaptrade", institution_name="Tradier",
                      account_type="brokerage", balance_cents=100_000),
        LinkedAccount(id="brk_vg", name="Vanguard IRA", provider="snaptrade", institution_name="Vanguard",
                      account_type="brokerage", balance_cents=1_000_000),
    ]
    for account in accounts:
        db_session.add(account)
    await db_session.commit()

    yield db_session


@pytest.fixture
def banking_provider():
    return MockBankingProvider(failure_rate=0.0, latency_ms=0, settle_after=2, mfa_accounts={"chk_mfa"})


@pytest.fixture
def brokerage_provider():
    return MockBrokerageProvider(failure_rate=0.0, latency_ms=0, settle_after=1)


@pytest_asyncio.fixture
async def api_app(seeded_session, session_factory, banking_provider, brokerage_provider):
    """The FastAPI app wired to the seeded in-memory database and mock providers."""

    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_banking_provider] = lambda: banking_provider
    app.dependency_overrides[get_brokerage_provider] = lambda: brokerage_provider
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def http_client(api_app):
    """Raw httpx client talking to the app in-process (lifespan not run)."""
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def csrf(http_client) -> dict[str, str]:
    """Headers carrying a valid CSRF token; the cookie lands in the client jar."""
    response = await http_client.get("/api/csrf-token")
    return {"x-csrf-token": response.json()["csrfToken"]}
