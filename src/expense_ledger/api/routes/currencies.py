"""Currency registry endpoints."""

from fastapi import APIRouter, status

from expense_ledger.core.deps import Currencies
from expense_ledger.models.currency import Currency
from expense_ledger.schemas.currency import CurrencyCreate, CurrencyResponse, CurrencyUpdate

router = APIRouter()


@router.get("/", response_model=list[CurrencyResponse])
async def list_currencies(currencies: Currencies) -> list[Currency]:
    """List registered currencies ordered by code.

    Example:
        GET /api/v1/currencies
    """
    return await currencies.list_currencies()


@router.get("/{code}", response_model=CurrencyResponse)
async def get_currency(code: str, currencies: Currencies) -> Currency:
    """Get one currency by its ISO 4217 code, in any case."""
    return await currencies.require_currency(code)


@router.post("/", response_model=CurrencyResponse, status_code=status.HTTP_201_CREATED)
async def create_currency(currency_data: CurrencyCreate, currencies: Currencies) -> Currency:
    """Register a currency.

    Example:
        POST /api/v1/currencies
        {"code": "SEK", "name": "Swedish Krona", "symbol": "kr"}
    """
    return await currencies.create_currency(currency_data)


@router.put("/{code}", response_model=CurrencyResponse)
async def update_currency(
    code: str,
    currency_data: CurrencyUpdate,
    currencies: Currencies,
) -> Currency:
    return await currencies.update_currency(code, currency_data)


@router.delete("/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_currency(code: str, currencies: Currencies) -> None:
    """Remove a currency; refused with 409 while accounts are held in it."""
    await currencies.delete_currency(code)
