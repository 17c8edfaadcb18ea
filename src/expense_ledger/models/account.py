"""Account model for money-holding accounts."""

from decimal import Decimal

from sqlalchemy import Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from expense_ledger.db.base import Base, TimestampMixin


class Account(Base, TimestampMixin):
    """A named account holding a balance in a single currency.

    The balance is only ever changed by the ledger service as a side effect
    of recording, editing or deleting transactions and transfers.

    Attributes:
        id: Unique identifier
        name: Display name, unique regardless of case
        currency_code: ISO 4217 code of the account currency
        balance: Current balance, two decimal places
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    currency_code: Mapped[str] = mapped_column(String(3))
    balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0.00"))

    def __repr__(self) -> str:
        return f"<Account {self.name} {self.balance} {self.currency_code}>"


Index("uq_accounts_name_lower", func.lower(Account.name), unique=True)
