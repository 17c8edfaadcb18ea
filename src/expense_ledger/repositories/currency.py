"""Currency repository."""

from sqlalchemy import select

from expense_ledger.models.currency import Currency
from expense_ledger.repositories.base import BaseRepository


class CurrencyRepository(BaseRepository[Currency]):
    """Repository for the currency registry, keyed by ISO code."""

    async def list_all(self) -> list[Currency]:
        """Get every registered currency ordered by code."""
        result = await self.db.execute(select(Currency).order_by(Currency.code))
        return list(result.scalars().all())

    async def existing_codes(self) -> set[str]:
        result = await self.db.execute(select(Currency.code))
        return set(result.scalars().all())
