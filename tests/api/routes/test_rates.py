"""Tests for exchange rate API endpoints."""

from collections.abc import Iterator
from decimal import Decimal

import httpx
import pytest
from httpx import AsyncClient

from expense_ledger.core.deps import get_rate_gateway
from expense_ledger.main import app
from expense_ledger.models.account import Account
from expense_ledger.models.category import Category
from expense_ledger.services.rate_providers import RateProviderGateway


@pytest.fixture(autouse=True)
def mocked_gateway(gateway: RateProviderGateway) -> Iterator[RateProviderGateway]:
    """Route provider fetches to the mocked Frankfurter API."""
    app.dependency_overrides[get_rate_gateway] = lambda: gateway
    yield gateway
    app.dependency_overrides.pop(get_rate_gateway, None)


@pytest.mark.integration
async def test_manual_rate_and_quote(client: AsyncClient) -> None:
    """Test a manual pivot leg and the derived inverse quote."""
    response = await client.post(
        "/api/v1/rates/manual",
        json={"currency_code": "usd", "rate": "1.10", "date": "2024-03-01"},
    )
    assert response.status_code == 201
    assert response.json()["quote_currency_code"] == "USD"
    assert response.json()["pivot_currency_code"] == "EUR"

    # A rate stored for one day answers for later days
    response = await client.get("/api/v1/rates/quote?base=usd&quote=EUR&on=2024-03-06")
    assert response.status_code == 200

    data = response.json()
    assert Decimal(data["rate"]) == Decimal("0.9090909091")
    assert data["display"] == "1 USD = 0.9091 EUR"


@pytest.mark.integration
async def test_quote_without_rate(client: AsyncClient) -> None:
    """Test that an unknown pair is reported as unavailable."""
    response = await client.get("/api/v1/rates/quote?base=CHF&quote=EUR&on=2024-03-01")

    assert response.status_code == 422
    assert response.json()["error_code"] == "CONVERSION_UNAVAILABLE"


@pytest.mark.integration
async def test_manual_rate_must_be_positive(client: AsyncClient) -> None:
    """Test schema validation of manual rates."""
    response = await client.post(
        "/api/v1/rates/manual", json={"currency_code": "USD", "rate": "0"}
    )

    assert response.status_code == 422


@pytest.mark.integration
async def test_rate_override(client: AsyncClient) -> None:
    """Test a GBP rate entered against USD."""
    await client.post(
        "/api/v1/rates/manual",
        json={"currency_code": "USD", "rate": "1.10", "date": "2024-03-01"},
    )

    response = await client.post(
        "/api/v1/rates/override",
        json={
            "currency_code": "GBP",
            "rate_to_default": "1.25",
            "default_currency_code": "USD",
            "date": "2024-03-01",
        },
    )
    assert response.status_code == 201
    assert Decimal(response.json()["rate"]) == Decimal("0.88")

    response = await client.get("/api/v1/rates/quote?base=GBP&quote=USD&on=2024-03-01")
    assert Decimal(response.json()["rate"]) == Decimal("1.25")


@pytest.mark.integration
async def test_sync_rates(client: AsyncClient, rate_requests: list[httpx.Request]) -> None:
    """Test syncing a day from the provider and listing the stored legs."""
    response = await client.post(
        "/api/v1/rates/sync", json={"date": "2024-03-01", "currencies": ["USD", "GBP"]}
    )
    assert response.status_code == 200
    assert response.json() == {"date": "2024-03-01", "stored_count": 2}
    assert len(rate_requests) == 1

    response = await client.get("/api/v1/rates/?currency=gbp")
    data = response.json()
    assert len(data) == 1
    assert Decimal(data[0]["rate"]) == Decimal("0.85")


@pytest.mark.integration
async def test_sync_rates_provider_failure(client: AsyncClient) -> None:
    """Test that a day no provider serves is a 503."""
    response = await client.post(
        "/api/v1/rates/sync", json={"date": "1990-01-01", "currencies": ["USD"]}
    )

    assert response.status_code == 503
    assert response.json()["error_code"] == "EXTERNAL_API_ERROR"


@pytest.mark.integration
async def test_backfill_snapshots(
    client: AsyncClient,
    test_accounts: dict[str, Account],
    test_categories: dict[str, Category],
) -> None:
    """Test that an unvalued transaction is valued once rates are fetched."""
    created = (
        await client.post(
            "/api/v1/transactions/",
            json={
                "account_name": "Wallet",
                "category_name": "Food",
                "amount": "11.00",
                "type": "Expense",
                "date": "2024-03-01",
            },
        )
    ).json()
    assert created["amount_in_original_default"] is None

    response = await client.post("/api/v1/rates/backfill?default_currency=eur")
    assert response.status_code == 200
    assert response.json() == {"default_currency_code": "EUR", "missing_count": 0}

    response = await client.get(f"/api/v1/transactions/{created['id']}")
    assert Decimal(response.json()["amount_in_original_default"]) == Decimal("10.00")
