"""Exchange rate schemas for request/response validation."""

from datetime import date as date_type
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ExchangeRateResponse(BaseModel):
    """A stored pivot leg."""

    id: int
    pivot_currency_code: str
    quote_currency_code: str
    date: date_type
    rate: Decimal
    updated_at: datetime

    model_config = {"from_attributes": True}


class RateQuoteResponse(BaseModel):
    """A derived rate between any two currencies."""

    base_currency_code: str
    quote_currency_code: str
    date: date_type
    rate: Decimal
    display: str


class ManualPivotRate(BaseModel):
    """User-entered pivot leg: 1 pivot = ``rate`` ``currency_code``."""

    currency_code: str = Field(..., min_length=3, max_length=3)
    rate: Decimal = Field(..., gt=0)
    date: date_type | None = None


class ManualRateOverride(BaseModel):
    """User-entered rate from a currency to the default currency."""

    currency_code: str = Field(..., min_length=3, max_length=3)
    rate_to_default: Decimal = Field(..., gt=0)
    default_currency_code: str | None = Field(None, min_length=3, max_length=3)
    date: date_type | None = None


class SyncRatesRequest(BaseModel):
    """Fetch one day of rates from the providers."""

    date: date_type = Field(default_factory=date_type.today)
    currencies: list[str] | None = None


class SyncRatesResponse(BaseModel):
    """Result of a provider sync."""

    date: date_type
    stored_count: int


class BackfillResponse(BaseModel):
    """Result of a snapshot backfill."""

    default_currency_code: str
    missing_count: int
