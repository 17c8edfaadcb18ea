"""Category model for classifying transactions."""

from sqlalchemy import Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from expense_ledger.db.base import Base, TimestampMixin


class Category(Base, TimestampMixin):
    """Expense or income category, unique regardless of case."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))


Index("uq_categories_name_lower", func.lower(Category.name), unique=True)
