"""Transaction model for single-account expenses and incomes."""

import enum
from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_ledger.db.base import Base, TimestampMixin, ValuationSnapshotMixin
from expense_ledger.models.keyword import Keyword, transaction_keywords


class TransactionType(str, enum.Enum):
    """Direction of a transaction."""

    EXPENSE = "Expense"
    INCOME = "Income"

    @property
    def sign(self) -> int:
        """Sign applied to the account balance."""
        return -1 if self is TransactionType.EXPENSE else 1


class Transaction(Base, TimestampMixin, ValuationSnapshotMixin):
    """An expense or income booked against one account and one category.

    Account and category are referenced by their stored name; renaming either
    rewrites these columns in the same database transaction.

    Attributes:
        id: Unique identifier
        account_name: Name of the account the amount is booked against
        amount: Non-negative amount in ``currency_code``
        currency_code: Currency of the amount (the account currency)
        category_name: Name of the category
        type: Expense or Income
        date: Calendar date of the transaction
        comment: Free-form note
        related_debt_id: Debt this income repays, if any
        keywords: Tags, loaded together with the transaction
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    account_name: Mapped[str] = mapped_column(String(255), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    currency_code: Mapped[str] = mapped_column(String(3))
    category_name: Mapped[str] = mapped_column(String(255), index=True)
    type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))
    date: Mapped[date] = mapped_column(Date, index=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    related_debt_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    keywords: Mapped[list[Keyword]] = relationship(
        secondary=transaction_keywords, lazy="selectin", order_by=Keyword.name
    )

    __table_args__ = (CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),)

    @property
    def signed_amount(self) -> Decimal:
        """Balance effect on the account."""
        return self.amount * self.type.sign
