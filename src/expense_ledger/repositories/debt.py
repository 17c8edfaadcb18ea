"""Debt repository."""

from sqlalchemy import select

from expense_ledger.models.debt import Debt, DebtStatus
from expense_ledger.repositories.base import BaseRepository


class DebtRepository(BaseRepository[Debt]):
    """Repository for Debt model."""

    async def get_by_parent(self, parent_transaction_id: int) -> Debt | None:
        """Get the debt created for an Expense transaction, if any."""
        result = await self.db.execute(
            select(Debt).where(Debt.parent_transaction_id == parent_transaction_id)
        )
        return result.scalar_one_or_none()

    async def list_by_status(self, *, status: DebtStatus | None = None) -> list[Debt]:
        query = select(Debt)
        if status is not None:
            query = query.where(Debt.status == status)
        result = await self.db.execute(query.order_by(Debt.id))
        return list(result.scalars().all())
