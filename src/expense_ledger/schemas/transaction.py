"""Transaction and transfer schemas."""

from datetime import date as date_type
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from expense_ledger.models.transaction import TransactionType
from expense_ledger.schemas.keyword import KeywordResponse


class TransactionCreate(BaseModel):
    """Schema for recording an expense or income.

    ``currency_code`` defaults to the account currency. Amounts are validated
    by the ledger service so that a negative amount is reported as an
    invalid-amount error rather than a schema error.
    """

    account_name: str = Field(..., min_length=1, max_length=255)
    category_name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal
    type: TransactionType
    currency_code: str | None = Field(None, min_length=3, max_length=3)
    date: date_type = Field(default_factory=date_type.today)
    comment: str | None = None
    related_debt_id: int | None = None
    keyword_ids: list[int] = Field(default_factory=list)


class TransactionUpdate(BaseModel):
    """Schema for editing a transaction; only provided fields change.

    ``keyword_ids`` replaces the whole keyword set; an empty list clears it.
    """

    account_name: str | None = Field(None, min_length=1, max_length=255)
    category_name: str | None = Field(None, min_length=1, max_length=255)
    amount: Decimal | None = None
    type: TransactionType | None = None
    currency_code: str | None = Field(None, min_length=3, max_length=3)
    date: date_type | None = None
    comment: str | None = None
    related_debt_id: int | None = None
    keyword_ids: list[int] | None = None


class ValuationSnapshotFields(BaseModel):
    """Valuation captured when the record was created."""

    original_default_currency_code: str | None = None
    exchange_rate_to_original_default: Decimal | None = None
    amount_in_original_default: Decimal | None = None


class TransactionResponse(ValuationSnapshotFields):
    """Schema for transaction response."""

    id: int
    account_name: str
    category_name: str
    amount: Decimal
    type: TransactionType
    currency_code: str
    date: date_type
    comment: str | None = None
    related_debt_id: int | None = None
    keywords: list[KeywordResponse] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class TransferCreate(BaseModel):
    """Schema for moving money between two accounts.

    ``destination_amount`` is only used for cross-currency transfers, where
    it is the amount credited in the destination account's currency.
    """

    source_account_name: str = Field(..., min_length=1, max_length=255)
    destination_account_name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal
    currency_code: str | None = Field(None, min_length=3, max_length=3)
    date: date_type = Field(default_factory=date_type.today)
    comment: str | None = None
    destination_amount: Decimal | None = None
    destination_currency_code: str | None = Field(None, min_length=3, max_length=3)


class TransferUpdate(BaseModel):
    """Schema for editing a transfer; only provided fields change."""

    source_account_name: str | None = Field(None, min_length=1, max_length=255)
    destination_account_name: str | None = Field(None, min_length=1, max_length=255)
    amount: Decimal | None = None
    currency_code: str | None = Field(None, min_length=3, max_length=3)
    date: date_type | None = None
    comment: str | None = None
    destination_amount: Decimal | None = None
    destination_currency_code: str | None = Field(None, min_length=3, max_length=3)


class TransferResponse(ValuationSnapshotFields):
    """Schema for transfer response."""

    id: int
    source_account_name: str
    destination_account_name: str
    amount: Decimal
    currency_code: str
    date: date_type
    comment: str | None = None
    destination_amount: Decimal | None = None
    destination_currency_code: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TotalResponse(BaseModel):
    """Sum of records converted into one currency."""

    currency_code: str
    total: Decimal
    count: int
