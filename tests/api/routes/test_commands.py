"""Tests for text command API endpoints."""

from decimal import Decimal

import pytest
from httpx import AsyncClient

from expense_ledger.models.account import Account
from expense_ledger.models.category import Category


@pytest.mark.integration
async def test_command_commits_transfer(
    client: AsyncClient, test_accounts: dict[str, Account]
) -> None:
    """Test a spoken transfer written to the ledger."""
    response = await client.post(
        "/api/v1/commands/", json={"text": "transfer from Wallet to Bank 100"}
    )
    assert response.status_code == 200

    data = response.json()
    assert data["kind"] == "committed"
    assert data["transfer"]["source_account_name"] == "Wallet"
    assert Decimal(data["transfer"]["amount"]) == Decimal("100.00")
    assert data["message"].startswith("Transfer from Wallet to Bank for 100.00 USD on ")


@pytest.mark.integration
async def test_command_commits_expense(
    client: AsyncClient,
    test_accounts: dict[str, Account],
    test_categories: dict[str, Category],
) -> None:
    """Test that lower-case names are resolved to the stored ones."""
    response = await client.post(
        "/api/v1/commands/", json={"text": "expense from wallet 50 category food"}
    )

    data = response.json()
    assert data["kind"] == "committed"
    assert data["transaction"]["account_name"] == "Wallet"
    assert data["transaction"]["category_name"] == "Food"
    assert data["transaction"]["type"] == "Expense"


@pytest.mark.integration
async def test_command_without_accounts(client: AsyncClient) -> None:
    """Test the immediate disambiguation request on an empty ledger."""
    response = await client.post(
        "/api/v1/commands/", json={"text": "transfer from Wallet to Bank 100"}
    )

    data = response.json()
    assert data["kind"] == "disambiguation"
    assert data["unresolved_fields"] == ["source_account", "destination_account"]
    assert data["message"].startswith("No accounts found.")


@pytest.mark.integration
async def test_command_rejected(client: AsyncClient, test_accounts: dict[str, Account]) -> None:
    """Test the targeted rejection reason."""
    response = await client.post(
        "/api/v1/commands/", json={"text": "transfer from wallet to wallet 5"}
    )

    data = response.json()
    assert data["kind"] == "rejected"
    assert data["reason"] == "same_account_transfer"


@pytest.mark.integration
async def test_command_unrecognized(client: AsyncClient) -> None:
    """Test guidance for text that matches no format."""
    response = await client.post("/api/v1/commands/", json={"text": "hello there"})

    data = response.json()
    assert data["kind"] == "unrecognized"
    assert "Couldn't recognize input: 'hello there'" in data["message"]


@pytest.mark.integration
async def test_parse_only(client: AsyncClient) -> None:
    """Test parsing without writing and the error for unknown text."""
    response = await client.post(
        "/api/v1/commands/parse",
        json={"text": "income to bank 1.234,56 category salary March 3rd"},
    )
    assert response.status_code == 200

    data = response.json()
    assert data["kind"] == "transaction"
    assert data["type"] == "Income"
    assert data["account_name"] == "Bank"
    assert Decimal(data["amount"]) == Decimal("1234.56")
    assert data["date"].endswith("-03-03")

    response = await client.post("/api/v1/commands/parse", json={"text": "hello"})
    assert response.status_code == 400
    assert response.json()["error_code"] == "RECOGNITION_FAILED"


@pytest.mark.integration
async def test_command_text_required(client: AsyncClient) -> None:
    """Test that empty text fails validation."""
    response = await client.post("/api/v1/commands/", json={"text": ""})

    assert response.status_code == 422
