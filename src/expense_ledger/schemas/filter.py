"""List filters for transactions and transfers.

Every field is optional and filters combine with AND. Dates are inclusive,
names match ignoring case and ``text`` is a case-insensitive substring.
"""

from datetime import date

from pydantic import BaseModel, field_validator

from expense_ledger.models.transaction import TransactionType


class _DateRangeFilter(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    text: str | None = None

    @field_validator("text")
    @classmethod
    def blank_text_is_no_filter(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


class TransactionFilters(_DateRangeFilter):
    """Filters for expense and income lists and their totals.

    ``text`` matches the comment or any keyword name.
    """

    type: TransactionType | None = None
    account_name: str | None = None
    category_name: str | None = None


class TransferFilters(_DateRangeFilter):
    """Filters for the transfer list and its total; ``text`` matches the comment."""

    source_account_name: str | None = None
    destination_account_name: str | None = None
