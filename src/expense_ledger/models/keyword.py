"""Keyword model and its link table to transactions."""

from sqlalchemy import Column, ForeignKey, Index, String, Table, func
from sqlalchemy.orm import Mapped, mapped_column

from expense_ledger.db.base import Base, TimestampMixin

# Many-to-many link; rows go away with either side
transaction_keywords = Table(
    "transaction_keywords",
    Base.metadata,
    Column(
        "transaction_id",
        ForeignKey("transactions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "keyword_id",
        ForeignKey("keywords.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class Keyword(Base, TimestampMixin):
    """Free-form tag attached to transactions, unique regardless of case."""

    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))


Index("uq_keywords_name_lower", func.lower(Keyword.name), unique=True)
