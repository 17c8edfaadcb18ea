"""Keyword repository."""

from collections.abc import Iterable

from sqlalchemy import func, select

from expense_ledger.models.keyword import Keyword
from expense_ledger.repositories.base import BaseRepository


class KeywordRepository(BaseRepository[Keyword]):
    """Repository for Keyword model with case-insensitive name lookups."""

    async def get_by_name(self, name: str) -> Keyword | None:
        result = await self.db.execute(
            select(Keyword).where(func.lower(Keyword.name) == name.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Keyword]:
        result = await self.db.execute(select(Keyword).order_by(Keyword.name))
        return list(result.scalars().all())

    async def get_many(self, ids: Iterable[int]) -> list[Keyword]:
        """Get the keywords with the given ids, ordered by name.

        Unknown ids are left out; callers compare lengths to detect them.
        """
        wanted = set(ids)
        if not wanted:
            return []
        result = await self.db.execute(
            select(Keyword).where(Keyword.id.in_(wanted)).order_by(Keyword.name)
        )
        return list(result.scalars().all())
