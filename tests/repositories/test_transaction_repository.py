"""Tests for TransactionRepository and TransferRepository."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from expense_ledger.models.transaction import Transaction, TransactionType
from expense_ledger.models.transfer import Transfer
from expense_ledger.models.keyword import Keyword
from expense_ledger.repositories import KeywordRepository, TransactionRepository, TransferRepository


def _transaction(**overrides) -> dict:
    values = {
        "account_name": "Wallet",
        "category_name": "Food",
        "amount": Decimal("10.00"),
        "currency_code": "USD",
        "type": TransactionType.EXPENSE,
        "date": date(2024, 3, 1),
    }
    values.update(overrides)
    return values


@pytest.fixture
async def transactions(test_db: AsyncSession) -> list[Transaction]:
    """Create an expense, an income linked to debt 7 and an unlinked income."""
    repo = TransactionRepository(Transaction, test_db)
    created = [
        await repo.create(obj_in=_transaction()),
        await repo.create(
            obj_in=_transaction(
                type=TransactionType.INCOME,
                category_name="Loans",
                date=date(2024, 3, 3),
                related_debt_id=7,
            )
        ),
        await repo.create(
            obj_in=_transaction(
                type=TransactionType.INCOME,
                account_name="Bank",
                category_name="Salary",
                date=date(2024, 3, 2),
            )
        ),
    ]
    await test_db.commit()
    return created


@pytest.mark.unit
async def test_list_filtered_by_type_newest_first(
    test_db: AsyncSession, transactions: list[Transaction]
) -> None:
    """Test type filtering and date ordering."""
    repo = TransactionRepository(Transaction, test_db)

    everything = await repo.list_filtered()
    incomes = await repo.list_filtered(type=TransactionType.INCOME)

    assert [t.date for t in everything] == [date(2024, 3, 3), date(2024, 3, 2), date(2024, 3, 1)]
    assert {t.category_name for t in incomes} == {"Loans", "Salary"}


@pytest.mark.unit
async def test_list_filtered_dates_are_inclusive(
    test_db: AsyncSession, transactions: list[Transaction]
) -> None:
    """Test that both ends of the date range are included."""
    repo = TransactionRepository(Transaction, test_db)

    found = await repo.list_filtered(start=date(2024, 3, 2), end=date(2024, 3, 3))
    only_first = await repo.list_filtered(end=date(2024, 3, 1))

    assert [t.date for t in found] == [date(2024, 3, 3), date(2024, 3, 2)]
    assert [t.id for t in only_first] == [transactions[0].id]


@pytest.mark.unit
async def test_list_filtered_names_ignore_case(
    test_db: AsyncSession, transactions: list[Transaction]
) -> None:
    """Test account and category filters combined with AND."""
    repo = TransactionRepository(Transaction, test_db)

    wallet = await repo.list_filtered(account_name="WALLET")
    wallet_loans = await repo.list_filtered(account_name="wallet", category_name=" loans ")

    assert {t.id for t in wallet} == {transactions[0].id, transactions[1].id}
    assert [t.id for t in wallet_loans] == [transactions[1].id]


@pytest.mark.unit
async def test_list_filtered_text_matches_comment_or_keyword(
    test_db: AsyncSession, transactions: list[Transaction]
) -> None:
    """Test that text search covers comments and keyword names."""
    repo = TransactionRepository(Transaction, test_db)
    keyword = await KeywordRepository(Keyword, test_db).create(obj_in={"name": "Groceries"})
    await repo.update(db_obj=transactions[0], obj_in={"keywords": [keyword]})
    await repo.update(db_obj=transactions[2], obj_in={"comment": "March salary, 100% paid"})
    await test_db.commit()

    by_keyword = await repo.list_filtered(text="grocer")
    by_comment = await repo.list_filtered(text="SALARY")
    literal_percent = await repo.list_filtered(text="100%")
    tagged = await repo.list_for_keyword(keyword.id)

    assert [t.id for t in by_keyword] == [transactions[0].id]
    assert [t.id for t in by_comment] == [transactions[2].id]
    assert [t.id for t in literal_percent] == [transactions[2].id]
    assert [t.id for t in tagged] == [transactions[0].id]


@pytest.mark.unit
async def test_counts_ignore_case(test_db: AsyncSession, transactions: list[Transaction]) -> None:
    """Test reference counts used to block deletes."""
    repo = TransactionRepository(Transaction, test_db)

    assert await repo.count_for_account("wallet") == 2
    assert await repo.count_for_category("FOOD") == 1
    assert await repo.count_for_category("Travel") == 0


@pytest.mark.unit
async def test_rename_account_rewrites_references(
    test_db: AsyncSession, transactions: list[Transaction]
) -> None:
    """Test the bulk rename used by the account rename cascade."""
    repo = TransactionRepository(Transaction, test_db)

    updated = await repo.rename_account("Wallet", "Cash")
    await test_db.commit()

    assert updated == 2
    assert await repo.count_for_account("Wallet") == 0
    assert await repo.count_for_account("Cash") == 2


@pytest.mark.unit
async def test_debt_links(test_db: AsyncSession, transactions: list[Transaction]) -> None:
    """Test listing, unlinking and unlinked listing of debt payments."""
    repo = TransactionRepository(Transaction, test_db)

    payments = await repo.list_for_debt(7)
    assert [t.id for t in payments] == [transactions[1].id]

    unlinked_incomes = await repo.list_unlinked(type=TransactionType.INCOME)
    assert [t.id for t in unlinked_incomes] == [transactions[2].id]

    assert await repo.unlink_debt(7) == 1
    await test_db.commit()
    assert await repo.list_for_debt(7) == []


@pytest.mark.unit
async def test_list_without_snapshot(
    test_db: AsyncSession, transactions: list[Transaction]
) -> None:
    """Test that only unvalued records are listed for backfill."""
    repo = TransactionRepository(Transaction, test_db)
    await repo.update(
        db_obj=transactions[0],
        obj_in={
            "original_default_currency_code": "EUR",
            "exchange_rate_to_original_default": Decimal("0.9090909091"),
            "amount_in_original_default": Decimal("9.09"),
        },
    )
    await test_db.commit()

    missing = await repo.list_without_snapshot()

    assert transactions[0].id not in {t.id for t in missing}
    assert len(missing) == 2


@pytest.mark.unit
async def test_transfer_rename_touches_both_sides(test_db: AsyncSession) -> None:
    """Test that a transfer rename rewrites source and destination names."""
    repo = TransferRepository(Transfer, test_db)
    await repo.create(
        obj_in={
            "source_account_name": "Wallet",
            "destination_account_name": "Bank",
            "amount": Decimal("5.00"),
            "currency_code": "USD",
            "date": date(2024, 3, 1),
        }
    )
    await repo.create(
        obj_in={
            "source_account_name": "Bank",
            "destination_account_name": "Wallet",
            "amount": Decimal("2.00"),
            "currency_code": "USD",
            "date": date(2024, 3, 2),
        }
    )
    await test_db.commit()

    assert await repo.count_for_account("wallet") == 2
    await repo.rename_account("Wallet", "Cash")
    await test_db.commit()

    transfers = await repo.list_filtered()
    assert [(t.source_account_name, t.destination_account_name) for t in transfers] == [
        ("Bank", "Cash"),
        ("Cash", "Bank"),
    ]


@pytest.mark.unit
async def test_transfer_list_filtered(test_db: AsyncSession) -> None:
    """Test transfer filters on dates, either side's account and the comment."""
    repo = TransferRepository(Transfer, test_db)
    first = await repo.create(
        obj_in={
            "source_account_name": "Wallet",
            "destination_account_name": "Bank",
            "amount": Decimal("5.00"),
            "currency_code": "USD",
            "date": date(2024, 3, 1),
            "comment": "Rent share",
        }
    )
    second = await repo.create(
        obj_in={
            "source_account_name": "Bank",
            "destination_account_name": "Savings",
            "amount": Decimal("2.00"),
            "currency_code": "USD",
            "date": date(2024, 3, 5),
        }
    )
    await test_db.commit()

    assert [t.id for t in await repo.list_filtered(source_account_name="bank")] == [second.id]
    assert [t.id for t in await repo.list_filtered(destination_account_name="BANK")] == [
        first.id
    ]
    assert [t.id for t in await repo.list_filtered(start=date(2024, 3, 5))] == [second.id]
    assert [t.id for t in await repo.list_filtered(text="rent")] == [first.id]
    assert await repo.list_filtered(end=date(2024, 2, 29)) == []
