"""Currency model for the registry of currencies accounts may hold."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from expense_ledger.db.base import Base, TimestampMixin


class Currency(Base, TimestampMixin):
    """A registered currency.

    Currencies are reference data keyed by their ISO 4217 code. Accounts can
    only be opened in a registered currency, and manually entered exchange
    rates must name one.

    Attributes:
        code: ISO 4217 currency code (e.g., "USD", "EUR") - primary key
        name: Full name of the currency (e.g., "US Dollar")
        symbol: Currency symbol (e.g., "$", "€"), optional
    """

    __tablename__ = "currencies"

    code: Mapped[str] = mapped_column(String(3), primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    symbol: Mapped[str | None] = mapped_column(String(10), nullable=True)

    def __repr__(self) -> str:
        return f"<Currency {self.code}>"
