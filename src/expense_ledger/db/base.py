"""Database base class and shared column mixins."""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""

    pass


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps.

    Columns are timezone-aware so stored values compare cleanly with
    ``datetime.now(UTC)``.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


class ValuationSnapshotMixin:
    """Valuation captured when a money movement was recorded.

    Holds the default currency in force at the time, the rate from the
    record's currency to it, and the converted amount. All three are set
    together or left empty.
    """

    original_default_currency_code: Mapped[str | None] = mapped_column(String(3), nullable=True)
    exchange_rate_to_original_default: Mapped[Decimal | None] = mapped_column(
        Numeric(20, 10), nullable=True
    )
    amount_in_original_default: Mapped[Decimal | None] = mapped_column(
        Numeric(14, 2), nullable=True
    )

    @property
    def has_snapshot(self) -> bool:
        return (
            self.original_default_currency_code is not None
            and self.exchange_rate_to_original_default is not None
            and self.amount_in_original_default is not None
        )


__all__ = ["Base", "TimestampMixin", "ValuationSnapshotMixin"]
