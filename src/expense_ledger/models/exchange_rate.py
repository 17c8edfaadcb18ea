"""Exchange rate model storing pivot-relative daily rates."""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from expense_ledger.db.base import Base, TimestampMixin


class ExchangeRate(Base, TimestampMixin):
    """Rate from the pivot currency to a quote currency on one day.

    Only pivot legs are stored (1 pivot = ``rate`` quote). Any other pair is
    derived from two legs by the rate store.

    Attributes:
        id: Unique identifier
        pivot_currency_code: The pivot currency (EUR by default)
        quote_currency_code: Currency the pivot is quoted in
        date: Day the rate applies to
        rate: Positive rate with ten decimal places
    """

    __tablename__ = "exchange_rates"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    pivot_currency_code: Mapped[str] = mapped_column(String(3))
    quote_currency_code: Mapped[str] = mapped_column(String(3))
    date: Mapped[date] = mapped_column(Date)
    rate: Mapped[Decimal] = mapped_column(Numeric(20, 10))

    __table_args__ = (
        UniqueConstraint("quote_currency_code", "date", name="uq_exchange_rates_quote_date"),
        CheckConstraint("rate > 0", name="ck_exchange_rates_rate_positive"),
        Index("ix_exchange_rates_quote_date", "quote_currency_code", "date"),
    )
