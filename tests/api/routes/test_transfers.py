"""Tests for transfer API endpoints."""

from decimal import Decimal

import pytest
from httpx import AsyncClient

from expense_ledger.models.account import Account


def _transfer(**overrides) -> dict:
    payload = {
        "source_account_name": "Wallet",
        "destination_account_name": "Bank",
        "amount": "100",
        "date": "2024-03-01",
    }
    payload.update(overrides)
    return payload


async def _balances(client: AsyncClient) -> dict[str, Decimal]:
    response = await client.get("/api/v1/accounts/")
    return {account["name"]: Decimal(account["balance"]) for account in response.json()}


@pytest.mark.integration
async def test_create_transfer(client: AsyncClient, test_accounts: dict[str, Account]) -> None:
    """Test that a transfer moves money between the two accounts."""
    response = await client.post("/api/v1/transfers/", json=_transfer())
    assert response.status_code == 201

    data = response.json()
    assert data["source_account_name"] == "Wallet"
    assert data["destination_account_name"] == "Bank"
    assert Decimal(data["amount"]) == Decimal("100.00")
    assert data["currency_code"] == "USD"

    balances = await _balances(client)
    assert balances["Wallet"] == Decimal("400.00")
    assert balances["Bank"] == Decimal("1100.00")


@pytest.mark.integration
async def test_create_transfer_same_account(
    client: AsyncClient, test_accounts: dict[str, Account]
) -> None:
    """Test that a transfer to the same account is refused."""
    response = await client.post(
        "/api/v1/transfers/", json=_transfer(destination_account_name="wallet")
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "SAME_ACCOUNT_TRANSFER"


@pytest.mark.integration
async def test_create_transfer_unknown_source(
    client: AsyncClient, test_accounts: dict[str, Account]
) -> None:
    """Test that an unknown source account is named."""
    response = await client.post("/api/v1/transfers/", json=_transfer(source_account_name="Cash"))

    assert response.status_code == 404
    assert response.json()["field"] == "source_account"


@pytest.mark.integration
async def test_create_transfer_between_currencies(
    client: AsyncClient, test_accounts: dict[str, Account]
) -> None:
    """Test that accounts in different currencies cannot be linked."""
    response = await client.post(
        "/api/v1/transfers/",
        json=_transfer(destination_account_name="Savings", destination_amount="90"),
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "CURRENCY_MISMATCH"
    assert (await _balances(client))["Savings"] == Decimal("200.00")


@pytest.mark.integration
async def test_update_and_delete_transfer(
    client: AsyncClient, test_accounts: dict[str, Account]
) -> None:
    """Test that edits and deletion keep balances consistent."""
    created = (await client.post("/api/v1/transfers/", json=_transfer())).json()

    response = await client.put(f"/api/v1/transfers/{created['id']}", json={"amount": "40"})
    assert response.status_code == 200
    balances = await _balances(client)
    assert balances["Wallet"] == Decimal("460.00")
    assert balances["Bank"] == Decimal("1040.00")

    response = await client.delete(f"/api/v1/transfers/{created['id']}")
    assert response.status_code == 204
    balances = await _balances(client)
    assert balances["Wallet"] == Decimal("500.00")
    assert balances["Bank"] == Decimal("1000.00")
    assert (await client.get("/api/v1/transfers/")).json() == []


@pytest.mark.integration
async def test_transfers_total(
    client: AsyncClient, test_accounts: dict[str, Account], test_rates: dict[str, Decimal]
) -> None:
    """Test the total of transfers in the default currency."""
    await client.post("/api/v1/transfers/", json=_transfer(amount="110"))

    response = await client.get("/api/v1/transfers/totals")
    assert response.status_code == 200

    data = response.json()
    assert data["currency_code"] == "EUR"
    assert Decimal(data["total"]) == Decimal("100.00")
    assert data["count"] == 1


@pytest.mark.integration
async def test_list_transfers_with_filters(
    client: AsyncClient, test_accounts: dict[str, Account]
) -> None:
    """Test the query parameters of the transfer list and total."""
    await client.post("/api/v1/transfers/", json=_transfer(comment="Rent"))
    await client.post(
        "/api/v1/transfers/",
        json=_transfer(
            source_account_name="Bank", destination_account_name="Wallet", date="2024-03-04"
        ),
    )

    response = await client.get("/api/v1/transfers/", params={"source": "bank"})
    assert response.status_code == 200
    assert [t["source_account_name"] for t in response.json()] == ["Bank"]

    response = await client.get("/api/v1/transfers/", params={"destination": "BANK", "q": "rent"})
    assert [t["comment"] for t in response.json()] == ["Rent"]

    response = await client.get(
        "/api/v1/transfers/totals", params={"currency": "USD", "end_date": "2024-03-01"}
    )
    assert response.status_code == 200
    assert Decimal(response.json()["total"]) == Decimal("100.00")
    assert response.json()["count"] == 1
