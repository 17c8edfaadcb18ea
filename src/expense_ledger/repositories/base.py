"""Base repository with common CRUD operations.

Provides generic database operations inherited by the model-specific
repositories. Uses SQLAlchemy 2.0's async API.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_ledger.db.base import Base

# Generic type for SQLAlchemy models
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations.

    Repositories never commit. The ledger and rate services group repository
    calls into one unit of work with ``transactional`` and commit it
    themselves.

    Type Parameters:
        ModelType: The SQLAlchemy model class

    Example:
        >>> class CategoryRepository(BaseRepository[Category]):
        ...     pass
        >>>
        >>> repo = CategoryRepository(Category, db)
        >>> category = await repo.get(category_id)
    """

    def __init__(self, model: type[ModelType], db: AsyncSession):
        """Initialize repository.

        Args:
            model: The SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def get(self, id: Any) -> ModelType | None:
        """Get a single record by primary key.

        Args:
            id: Primary key value

        Returns:
            Model instance if found, None otherwise
        """
        return await self.db.get(self.model, id)

    async def count(self) -> int:
        """Count all records of the model."""
        result = await self.db.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()

    async def create(self, *, obj_in: BaseModel | dict[str, Any]) -> ModelType:
        """Add a new record to the session and flush it.

        Args:
            obj_in: Pydantic model or dictionary of field names and values

        Returns:
            Created model instance (not yet committed)

        Example:
            >>> category = await repo.create(obj_in={"name": "Food"})
            >>> await db.commit()
        """
        if isinstance(obj_in, BaseModel):
            create_data = obj_in.model_dump(exclude_unset=True)
        else:
            create_data = obj_in

        db_obj = self.model(**create_data)
        self.db.add(db_obj)
        await self.db.flush()
        await self.db.refresh(db_obj)
        return db_obj

    async def update(
        self,
        *,
        db_obj: ModelType,
        obj_in: BaseModel | dict[str, Any],
    ) -> ModelType:
        """Apply field changes to an existing record and flush them.

        Args:
            db_obj: Existing model instance to update
            obj_in: Pydantic model or dictionary of fields to update (can be partial)

        Returns:
            Updated model instance (not yet committed)
        """
        if isinstance(obj_in, BaseModel):
            update_data = obj_in.model_dump(exclude_unset=True)
        else:
            update_data = obj_in

        for field, value in update_data.items():
            setattr(db_obj, field, value)

        await self.db.flush()
        await self.db.refresh(db_obj)
        return db_obj

    async def remove(self, db_obj: ModelType) -> ModelType:
        """Delete a loaded record and flush.

        Returns:
            The deleted instance (not yet committed)
        """
        await self.db.delete(db_obj)
        await self.db.flush()
        return db_obj
