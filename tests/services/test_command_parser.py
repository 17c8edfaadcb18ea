"""Tests for the text command parser."""

from datetime import date
from decimal import Decimal

import pytest

from expense_ledger.models.transaction import TransactionType
from expense_ledger.schemas.command import ParsedTransaction, ParsedTransfer
from expense_ledger.services.command_parser import (
    parse_command,
    parse_money_amount,
    parse_trailing_date,
    parse_transaction,
    parse_transfer,
)

TODAY = date(2024, 3, 10)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("50", Decimal("50.00")),
        ("12.5", Decimal("12.50")),
        ("1,234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("1234,56", Decimal("1234.56")),
        ("1,234", Decimal("1234.00")),
        ("99.999,5", Decimal("99999.50")),
    ],
)
def test_parse_money_amount(text: str, expected: Decimal) -> None:
    """Test both decimal conventions."""
    assert parse_money_amount(text) == expected


@pytest.mark.unit
@pytest.mark.parametrize("text", ["", "   ", "fifty", "12a"])
def test_parse_money_amount_rejects_non_numbers(text: str) -> None:
    """Test that text which is not a number gives None."""
    assert parse_money_amount(text) is None


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("food March 3", date(2024, 3, 3)),
        ("food march 3rd", date(2024, 3, 3)),
        ("food 1st of March", date(2024, 3, 1)),
        ("food 21 February", date(2024, 2, 21)),
        ("food March third", date(2024, 3, 3)),
        ("food March twenty-first", date(2024, 3, 21)),
        ("food march twenty first", date(2024, 3, 21)),
    ],
)
def test_parse_trailing_date(text: str, expected: date) -> None:
    """Test the supported spoken date forms."""
    rest, parsed = parse_trailing_date(text, TODAY)

    assert rest == "food"
    assert parsed == expected


@pytest.mark.unit
def test_parse_trailing_date_keeps_invalid_dates() -> None:
    """Test that an impossible date stays part of the text."""
    assert parse_trailing_date("food February 30th", TODAY) == ("food February 30th", None)


@pytest.mark.unit
def test_parse_trailing_date_without_date() -> None:
    """Test text with no date phrase."""
    assert parse_trailing_date("  food  ", TODAY) == ("food", None)
    assert parse_trailing_date("", TODAY) == ("", None)


@pytest.mark.unit
def test_parse_transfer() -> None:
    """Test the transfer grammar with names capitalized."""
    command = parse_transfer("transfer from wallet to bank 100", TODAY)

    assert command == ParsedTransfer(
        source_account_name="Wallet",
        destination_account_name="Bank",
        amount=Decimal("100.00"),
        date=TODAY,
    )


@pytest.mark.unit
def test_parse_transfer_day_is_not_the_amount() -> None:
    """Test that a trailing date is removed before the amount is read."""
    command = parse_transfer("Transfer from savings to credit card 1.500,25 March 3rd", TODAY)

    assert command is not None
    assert command.destination_account_name == "Credit card"
    assert command.amount == Decimal("1500.25")
    assert command.date == date(2024, 3, 3)


@pytest.mark.unit
@pytest.mark.parametrize(
    "text",
    [
        "transfer from wallet bank 100",
        "transfer from wallet to bank",
        "transfer from  to bank 100",
        "move from wallet to bank 100",
    ],
)
def test_parse_transfer_incomplete(text: str) -> None:
    """Test that incomplete transfer commands give None."""
    assert parse_transfer(text, TODAY) is None


@pytest.mark.unit
def test_parse_expense() -> None:
    """Test the expense grammar."""
    command = parse_transaction("expense from my wallet 50 category food and drinks", TODAY)

    assert command == ParsedTransaction(
        type=TransactionType.EXPENSE,
        account_name="My wallet",
        category_name="Food and drinks",
        amount=Decimal("50.00"),
        date=TODAY,
    )


@pytest.mark.unit
def test_parse_income_with_date() -> None:
    """Test the income grammar with a trailing date."""
    command = parse_transaction("Income to bank 2500 category Salary 1st of March", TODAY)

    assert command is not None
    assert command.type is TransactionType.INCOME
    assert command.account_name == "Bank"
    assert command.category_name == "Salary"
    assert command.amount == Decimal("2500.00")
    assert command.date == date(2024, 3, 1)


@pytest.mark.unit
@pytest.mark.parametrize(
    "text",
    [
        "expense from wallet category food",
        "expense from wallet 50",
        "expense from 50 category food",
        "income to wallet 50 category",
        "spent 50 on food",
    ],
)
def test_parse_transaction_incomplete(text: str) -> None:
    """Test that incomplete transaction commands give None."""
    assert parse_transaction(text, TODAY) is None


@pytest.mark.unit
def test_parse_command_tries_transfer_first() -> None:
    """Test dispatch across the grammars."""
    transfer = parse_command("transfer from wallet to bank 10", TODAY)
    expense = parse_command("expense from wallet 10 category food", TODAY)

    assert isinstance(transfer, ParsedTransfer)
    assert isinstance(expense, ParsedTransaction)
    assert parse_command("what is my balance", TODAY) is None
