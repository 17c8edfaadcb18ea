"""Transfer model for moving money between two accounts."""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from expense_ledger.db.base import Base, TimestampMixin, ValuationSnapshotMixin


class Transfer(Base, TimestampMixin, ValuationSnapshotMixin):
    """A movement of money from a source account to a destination account.

    ``destination_amount`` and ``destination_currency_code`` are only set for
    cross-currency transfers; otherwise the destination is credited with
    ``amount``.
    """

    __tablename__ = "transfers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    source_account_name: Mapped[str] = mapped_column(String(255), index=True)
    destination_account_name: Mapped[str] = mapped_column(String(255), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    currency_code: Mapped[str] = mapped_column(String(3))
    date: Mapped[date] = mapped_column(Date, index=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    destination_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    destination_currency_code: Mapped[str | None] = mapped_column(String(3), nullable=True)

    __table_args__ = (CheckConstraint("amount >= 0", name="ck_transfers_amount_non_negative"),)

    @property
    def credited_amount(self) -> Decimal:
        """Amount added to the destination account."""
        return self.destination_amount if self.destination_amount is not None else self.amount
