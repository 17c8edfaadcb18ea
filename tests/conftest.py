"""Pytest fixtures for testing."""

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from expense_ledger.core.events import ChangeFeed
from expense_ledger.db.base import Base
from expense_ledger.db.session import get_db
from expense_ledger.main import app
from expense_ledger.models.account import Account
from expense_ledger.models.category import Category
from expense_ledger.schemas.account import AccountCreate, CategoryCreate
from expense_ledger.services.currency_service import CurrencyService
from expense_ledger.services.debt_service import DebtService
from expense_ledger.services.ledger_service import LedgerService
from expense_ledger.services.rate_providers import FrankfurterRateProvider, RateProviderGateway
from expense_ledger.services.rate_store import RateStore
from expense_ledger.services.valuation import ValuationEngine

# Test database URL (SQLite in-memory for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Day the fixture rates are published for
RATE_DAY = date(2024, 3, 1)

# What the mocked Frankfurter API publishes, keyed by ISO date
PUBLISHED_RATES = {
    RATE_DAY.isoformat(): {"USD": 1.10, "GBP": 0.85, "JPY": 163.2},
}


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_db(test_engine) -> AsyncGenerator[AsyncSession]:
    """Create a test database session with the default currencies registered."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        await CurrencyService(session).seed_defaults()
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def feed() -> ChangeFeed:
    """A change feed private to one test."""
    return ChangeFeed()


@pytest.fixture(scope="function")
def rate_store(test_db: AsyncSession) -> RateStore:
    """Rate store pivoting on EUR."""
    return RateStore(test_db, pivot_currency="EUR")


@pytest.fixture(scope="function")
def valuation(rate_store: RateStore, feed: ChangeFeed) -> ValuationEngine:
    return ValuationEngine(rate_store, feed)


@pytest.fixture(scope="function")
def debt_service(
    test_db: AsyncSession, valuation: ValuationEngine, feed: ChangeFeed
) -> DebtService:
    return DebtService(test_db, valuation, feed)


@pytest.fixture(scope="function")
def ledger(
    test_db: AsyncSession,
    feed: ChangeFeed,
    valuation: ValuationEngine,
    debt_service: DebtService,
) -> LedgerService:
    """Ledger valuing records in EUR and reconciling debts after commits."""
    return LedgerService(
        test_db,
        feed,
        valuation=valuation,
        default_currency="EUR",
        debt_reconciler=debt_service.reconcile_status,
        allow_cross_currency_transfers=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_accounts(ledger: LedgerService) -> dict[str, Account]:
    """Create Wallet and Bank in USD and Savings in EUR."""
    accounts = [
        AccountCreate(name="Wallet", currency_code="USD", balance=Decimal("500.00")),
        AccountCreate(name="Bank", currency_code="USD", balance=Decimal("1000.00")),
        AccountCreate(name="Savings", currency_code="EUR", balance=Decimal("200.00")),
    ]
    created = [await ledger.create_account(account) for account in accounts]
    return {account.name: account for account in created}


@pytest_asyncio.fixture(scope="function")
async def test_categories(ledger: LedgerService) -> dict[str, Category]:
    """Create Food, Salary and Loans categories."""
    created = [
        await ledger.create_category(CategoryCreate(name=name))
        for name in ("Food", "Salary", "Loans")
    ]
    return {category.name: category for category in created}


@pytest_asyncio.fixture(scope="function")
async def test_rates(rate_store: RateStore) -> dict[str, Decimal]:
    """Store EUR legs for USD and GBP on RATE_DAY."""
    rates = {"USD": Decimal("1.10"), "GBP": Decimal("0.85")}
    await rate_store.set_rates(RATE_DAY, rates)
    return rates


@pytest.fixture(scope="function")
def rate_requests() -> list[httpx.Request]:
    """Requests received by the mocked rate provider."""
    return []


@pytest_asyncio.fixture(scope="function")
async def gateway(rate_requests: list[httpx.Request]) -> AsyncGenerator[RateProviderGateway]:
    """Gateway over a Frankfurter provider backed by PUBLISHED_RATES.

    Unknown days answer 404, like the real API does for dates before 1999.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        rate_requests.append(request)
        day = request.url.path.rsplit("/", 1)[-1]
        rates = PUBLISHED_RATES.get(day)
        if rates is None:
            return httpx.Response(404, json={"message": "not found"})
        symbols = request.url.params.get("symbols")
        if symbols:
            rates = {code: rate for code, rate in rates.items() if code in symbols.split(",")}
        return httpx.Response(
            200, json={"amount": 1.0, "base": "EUR", "date": day, "rates": rates}
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        yield RateProviderGateway([FrankfurterRateProvider(client=http_client)])
