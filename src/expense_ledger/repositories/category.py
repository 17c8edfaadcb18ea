"""Category repository."""

from sqlalchemy import func, select

from expense_ledger.models.category import Category
from expense_ledger.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    """Repository for Category model with case-insensitive name lookups."""

    async def get_by_name(self, name: str) -> Category | None:
        result = await self.db.execute(
            select(Category).where(func.lower(Category.name) == name.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Category]:
        result = await self.db.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())
