"""Tests for currency registry endpoints."""

import pytest
from httpx import AsyncClient

from expense_ledger.models.account import Account


@pytest.mark.integration
async def test_list_currencies(client: AsyncClient) -> None:
    """Test that the default currencies are registered and ordered by code."""
    response = await client.get("/api/v1/currencies/")
    assert response.status_code == 200

    codes = [currency["code"] for currency in response.json()]
    assert codes == sorted(codes)
    assert {"EUR", "USD", "GBP", "JPY"} <= set(codes)


@pytest.mark.integration
async def test_get_currency_any_case(client: AsyncClient) -> None:
    response = await client.get("/api/v1/currencies/eur")

    assert response.status_code == 200
    assert response.json() == {"code": "EUR", "name": "Euro", "symbol": "€"}


@pytest.mark.integration
async def test_get_currency_not_found(client: AsyncClient) -> None:
    response = await client.get("/api/v1/currencies/SEK")

    assert response.status_code == 404


@pytest.mark.integration
async def test_register_currency_then_open_account(client: AsyncClient) -> None:
    """Test that an account can be opened once its currency is registered."""
    account = {"name": "Krona", "currency_code": "SEK"}
    response = await client.post("/api/v1/accounts/", json=account)
    assert response.status_code == 404
    assert response.json()["field"] == "currency"

    response = await client.post(
        "/api/v1/currencies/", json={"code": "sek", "name": "Swedish Krona", "symbol": "kr"}
    )
    assert response.status_code == 201
    assert response.json()["code"] == "SEK"

    response = await client.post("/api/v1/accounts/", json=account)
    assert response.status_code == 201


@pytest.mark.integration
async def test_register_duplicate_currency(client: AsyncClient) -> None:
    response = await client.post("/api/v1/currencies/", json={"code": "USD", "name": "Dollar"})

    assert response.status_code == 409
    assert response.json()["error_code"] == "DUPLICATE_NAME"


@pytest.mark.integration
async def test_update_currency(client: AsyncClient) -> None:
    """Test renaming a currency while its code stays fixed."""
    response = await client.put("/api/v1/currencies/CHF", json={"name": "Swiss franc"})

    assert response.status_code == 200
    assert response.json() == {"code": "CHF", "name": "Swiss franc", "symbol": "CHF"}


@pytest.mark.integration
async def test_delete_currency_in_use(
    client: AsyncClient, test_accounts: dict[str, Account]
) -> None:
    """Test that a currency accounts are held in cannot be removed."""
    response = await client.delete("/api/v1/currencies/USD")

    assert response.status_code == 409
    assert response.json()["error_code"] == "HAS_DEPENDENTS"
    assert response.json()["accounts"] == 2

    response = await client.delete("/api/v1/currencies/JPY")
    assert response.status_code == 204
    assert (await client.get("/api/v1/currencies/JPY")).status_code == 404
