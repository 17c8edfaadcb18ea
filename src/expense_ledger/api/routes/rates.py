"""Exchange rate endpoints."""

from datetime import date

from fastapi import APIRouter, Query, status

from expense_ledger.core.config import settings
from expense_ledger.core.deps import RateServiceDep
from expense_ledger.core.exceptions import ConversionUnavailableError
from expense_ledger.core.money import normalize_currency
from expense_ledger.models.exchange_rate import ExchangeRate
from expense_ledger.schemas.exchange_rate import (
    BackfillResponse,
    ExchangeRateResponse,
    ManualPivotRate,
    ManualRateOverride,
    RateQuoteResponse,
    SyncRatesRequest,
    SyncRatesResponse,
)

router = APIRouter()


@router.get("/", response_model=list[ExchangeRateResponse])
async def get_rates(
    rates: RateServiceDep,
    currency: str | None = Query(None, description="Quote currency"),
    start: date | None = Query(None, description="First date (inclusive)"),
    end: date | None = Query(None, description="Last date (inclusive)"),
) -> list[ExchangeRate]:
    """Stored pivot rates, newest first."""
    return await rates.store.list_rates(currency, start, end)


@router.get("/quote", response_model=RateQuoteResponse)
async def get_rate_quote(
    rates: RateServiceDep,
    base: str = Query(..., description="Currency converted from"),
    quote: str | None = Query(None, description="Currency converted to (default: configured)"),
    on: date = Query(default_factory=date.today, description="Valuation date"),
) -> RateQuoteResponse:
    """
    Rate between any two currencies as of a date.

    Uses the latest stored rates on or before ``on``.

    Raises:
        ConversionUnavailableError: If either currency has no rate yet
    """
    base = normalize_currency(base)
    quote = normalize_currency(quote or settings.DEFAULT_CURRENCY)
    rate = await rates.valuation.rate(base, quote, on)
    display = await rates.valuation.latest_rate_display(base, quote, on)
    if rate is None or display is None:
        raise ConversionUnavailableError(f"No exchange rate from {base} to {quote} on {on}")
    return RateQuoteResponse(
        base_currency_code=base,
        quote_currency_code=quote,
        date=on,
        rate=rate,
        display=display,
    )


@router.post(
    "/manual",
    response_model=ExchangeRateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def set_manual_rate(entry: ManualPivotRate, rates: RateServiceDep) -> ExchangeRate:
    """Store ``1 EUR = rate currency`` without contacting a provider."""
    return await rates.set_manual_pivot(entry.currency_code, entry.rate, entry.date)


@router.post(
    "/override",
    response_model=ExchangeRateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def set_rate_override(entry: ManualRateOverride, rates: RateServiceDep) -> ExchangeRate:
    """Store a rate from a currency to the default currency."""
    return await rates.set_manual_rate_override(
        entry.currency_code,
        entry.rate_to_default,
        entry.default_currency_code,
        entry.date,
    )


@router.post("/sync", response_model=SyncRatesResponse)
async def sync_rates(request: SyncRatesRequest, rates: RateServiceDep) -> SyncRatesResponse:
    """
    Fetch a day of rates from the configured providers.

    Raises:
        ExternalAPIError: If every provider failed
    """
    stored = await rates.sync_rates(request.date, request.currencies)
    return SyncRatesResponse(date=request.date, stored_count=stored)


@router.post("/backfill", response_model=BackfillResponse)
async def backfill_snapshots(
    rates: RateServiceDep,
    default_currency: str | None = Query(None, description="Currency to value records in"),
) -> BackfillResponse:
    """Attach valuation snapshots to records saved before rates were known."""
    currency = normalize_currency(default_currency or settings.DEFAULT_CURRENCY)
    missing = await rates.backfill_snapshots(currency)
    return BackfillResponse(default_currency_code=currency, missing_count=missing)
