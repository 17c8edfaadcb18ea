"""Transfer repository."""

from datetime import date

from sqlalchemy import func, or_, select, update

from expense_ledger.models.transfer import Transfer
from expense_ledger.repositories.base import BaseRepository


class TransferRepository(BaseRepository[Transfer]):
    """Repository for Transfer model.

    A transfer references two accounts, so reference counts and rename
    cascades look at both the source and the destination column.
    """

    async def list_filtered(
        self,
        *,
        start: date | None = None,
        end: date | None = None,
        source_account_name: str | None = None,
        destination_account_name: str | None = None,
        text: str | None = None,
    ) -> list[Transfer]:
        """Get transfers matching every given filter, newest first.

        Account names match ignoring case; ``text`` is a case-insensitive
        substring of the comment. Dates are inclusive.
        """
        query = select(Transfer)
        if start is not None:
            query = query.where(Transfer.date >= start)
        if end is not None:
            query = query.where(Transfer.date <= end)
        if source_account_name is not None:
            query = query.where(
                func.lower(Transfer.source_account_name) == source_account_name.strip().lower()
            )
        if destination_account_name is not None:
            query = query.where(
                func.lower(Transfer.destination_account_name)
                == destination_account_name.strip().lower()
            )
        if text is not None:
            query = query.where(
                func.lower(Transfer.comment).contains(text.lower(), autoescape=True)
            )
        query = query.order_by(Transfer.date.desc(), Transfer.id.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_without_snapshot(self) -> list[Transfer]:
        result = await self.db.execute(
            select(Transfer)
            .where(Transfer.original_default_currency_code.is_(None))
            .order_by(Transfer.date, Transfer.id)
        )
        return list(result.scalars().all())

    async def count_for_account(self, account_name: str) -> int:
        """Count transfers with the account on either side (case-insensitive)."""
        lowered = account_name.lower()
        result = await self.db.execute(
            select(func.count())
            .select_from(Transfer)
            .where(
                or_(
                    func.lower(Transfer.source_account_name) == lowered,
                    func.lower(Transfer.destination_account_name) == lowered,
                )
            )
        )
        return result.scalar_one()

    async def rename_account(self, old_name: str, new_name: str) -> int:
        """Rewrite both account columns from ``old_name`` to ``new_name``.

        Returns:
            Total number of column rewrites (not yet committed)
        """
        lowered = old_name.lower()
        source = await self.db.execute(
            update(Transfer)
            .where(func.lower(Transfer.source_account_name) == lowered)
            .values(source_account_name=new_name)
            .execution_options(synchronize_session="fetch")
        )
        destination = await self.db.execute(
            update(Transfer)
            .where(func.lower(Transfer.destination_account_name) == lowered)
            .values(destination_account_name=new_name)
            .execution_options(synchronize_session="fetch")
        )
        return source.rowcount + destination.rowcount
