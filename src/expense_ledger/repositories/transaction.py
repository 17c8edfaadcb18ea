"""Transaction repository for transaction-specific database operations."""

from datetime import date

from sqlalchemy import func, or_, select, update

from expense_ledger.models.keyword import Keyword
from expense_ledger.models.transaction import Transaction, TransactionType
from expense_ledger.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model.

    Provides filtered listings, reference counts used to refuse deleting
    accounts and categories that are still in use, and the bulk name
    rewrites used by rename cascades.

    Example:
        >>> repo = TransactionRepository(Transaction, db)
        >>> expenses = await repo.list_filtered(type=TransactionType.EXPENSE)
    """

    async def list_filtered(
        self,
        *,
        type: TransactionType | None = None,
        start: date | None = None,
        end: date | None = None,
        account_name: str | None = None,
        category_name: str | None = None,
        text: str | None = None,
    ) -> list[Transaction]:
        """Get transactions matching every given filter, newest first.

        Args:
            type: Only transactions of this type
            start: Earliest date, inclusive
            end: Latest date, inclusive
            account_name: Account, ignoring case
            category_name: Category, ignoring case
            text: Substring of the comment or of any keyword name, ignoring case

        Returns:
            Transactions ordered by date then id, descending
        """
        query = select(Transaction)
        if type is not None:
            query = query.where(Transaction.type == type)
        if start is not None:
            query = query.where(Transaction.date >= start)
        if end is not None:
            query = query.where(Transaction.date <= end)
        if account_name is not None:
            query = query.where(
                func.lower(Transaction.account_name) == account_name.strip().lower()
            )
        if category_name is not None:
            query = query.where(
                func.lower(Transaction.category_name) == category_name.strip().lower()
            )
        if text is not None:
            needle = text.lower()
            query = query.where(
                or_(
                    func.lower(Transaction.comment).contains(needle, autoescape=True),
                    Transaction.keywords.any(
                        func.lower(Keyword.name).contains(needle, autoescape=True)
                    ),
                )
            )
        query = query.order_by(Transaction.date.desc(), Transaction.id.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_for_keyword(self, keyword_id: int) -> list[Transaction]:
        """Get transactions tagged with a keyword."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.keywords.any(Keyword.id == keyword_id))
            .order_by(Transaction.id)
        )
        return list(result.scalars().all())

    async def list_for_debt(
        self,
        debt_id: int,
        *,
        type: TransactionType | None = TransactionType.INCOME,
    ) -> list[Transaction]:
        """Get transactions linked to a debt, oldest first.

        Args:
            debt_id: Debt the transactions point to
            type: Restrict to one type; repayments are incomes (default)

        Returns:
            Linked transactions ordered by date
        """
        query = select(Transaction).where(Transaction.related_debt_id == debt_id)
        if type is not None:
            query = query.where(Transaction.type == type)
        result = await self.db.execute(query.order_by(Transaction.date, Transaction.id))
        return list(result.scalars().all())

    async def list_without_snapshot(self) -> list[Transaction]:
        """Get transactions recorded before valuation snapshots existed."""
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.original_default_currency_code.is_(None))
            .order_by(Transaction.date, Transaction.id)
        )
        return list(result.scalars().all())

    async def count_for_account(self, account_name: str) -> int:
        """Count transactions booked against an account (case-insensitive)."""
        result = await self.db.execute(
            select(func.count())
            .select_from(Transaction)
            .where(func.lower(Transaction.account_name) == account_name.lower())
        )
        return result.scalar_one()

    async def count_for_category(self, category_name: str) -> int:
        """Count transactions in a category (case-insensitive)."""
        result = await self.db.execute(
            select(func.count())
            .select_from(Transaction)
            .where(func.lower(Transaction.category_name) == category_name.lower())
        )
        return result.scalar_one()

    async def rename_account(self, old_name: str, new_name: str) -> int:
        """Point every transaction of ``old_name`` at ``new_name``.

        Returns:
            Number of rows updated (not yet committed)
        """
        result = await self.db.execute(
            update(Transaction)
            .where(func.lower(Transaction.account_name) == old_name.lower())
            .values(account_name=new_name)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def rename_category(self, old_name: str, new_name: str) -> int:
        """Point every transaction in ``old_name`` at ``new_name``.

        Returns:
            Number of rows updated (not yet committed)
        """
        result = await self.db.execute(
            update(Transaction)
            .where(func.lower(Transaction.category_name) == old_name.lower())
            .values(category_name=new_name)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def unlink_debt(self, debt_id: int) -> int:
        """Clear ``related_debt_id`` on every transaction pointing at a debt."""
        result = await self.db.execute(
            update(Transaction)
            .where(Transaction.related_debt_id == debt_id)
            .values(related_debt_id=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def list_unlinked(self, *, type: TransactionType | None = None) -> list[Transaction]:
        """Get transactions not yet linked to any debt, newest first.

        Args:
            type: Restrict to one type (default: all)
        """
        query = select(Transaction).where(Transaction.related_debt_id.is_(None))
        if type is not None:
            query = query.where(Transaction.type == type)
        query = query.order_by(Transaction.date.desc(), Transaction.id.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())
