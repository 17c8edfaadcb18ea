"""Account and category schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class AccountBase(BaseModel):
    """Base account schema."""

    name: str = Field(..., min_length=1, max_length=255)
    currency_code: str = Field(..., min_length=3, max_length=3)

    @field_validator("currency_code")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        """Accept lower-case codes such as ``usd``."""
        return v.strip().upper()


class AccountCreate(AccountBase):
    """Schema for creating an account with an opening balance."""

    balance: Decimal = Decimal("0.00")


class AccountRename(BaseModel):
    """Schema for renaming an account or category."""

    name: str = Field(..., min_length=1, max_length=255)


class AccountResponse(AccountBase):
    """Schema for account response."""

    id: int
    balance: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BalancesTotalResponse(BaseModel):
    """Net worth of all accounts in one currency."""

    currency_code: str
    total: Decimal
    account_count: int


class CategoryCreate(BaseModel):
    """Schema for creating a category."""

    name: str = Field(..., min_length=1, max_length=255)


class CategoryResponse(BaseModel):
    """Schema for category response."""

    id: int
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}
