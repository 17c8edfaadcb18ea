"""Debt model linking a lent-out expense to its repayments."""

import enum

from sqlalchemy import Enum, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from expense_ledger.db.base import Base, TimestampMixin


class DebtStatus(str, enum.Enum):
    """Repayment state of a debt."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class Debt(Base, TimestampMixin):
    """Money owed back for an Expense transaction.

    Income transactions whose ``related_debt_id`` points here count as
    repayments. The status is reconciled by the debt service after every
    ledger commit that touches a linked transaction.

    Attributes:
        id: Unique identifier
        parent_transaction_id: The Expense that created the debt
        status: OPEN until repayments reach the parent amount
        notes: Free-form note
    """

    __tablename__ = "debts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    parent_transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"), unique=True, index=True
    )
    status: Mapped[DebtStatus] = mapped_column(Enum(DebtStatus), default=DebtStatus.OPEN)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
