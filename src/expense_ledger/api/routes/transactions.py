"""Transaction endpoints."""

from fastapi import APIRouter, Query, status

from expense_ledger.core.config import settings
from expense_ledger.core.deps import Ledger, TransactionFilterParams, Valuation
from expense_ledger.core.exceptions import ConversionUnavailableError
from expense_ledger.core.money import normalize_currency
from expense_ledger.models.transaction import Transaction
from expense_ledger.schemas.transaction import (
    TotalResponse,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
)

router = APIRouter()


@router.get("/", response_model=list[TransactionResponse])
async def get_transactions(
    ledger: Ledger,
    filters: TransactionFilterParams,
) -> list[Transaction]:
    """Get transactions matching every given filter, newest first.

    Example:
        GET /api/v1/transactions/?type=Expense&start_date=2024-03-01&q=coffee
    """
    return await ledger.list_transactions(filters=filters)


@router.get("/totals", response_model=TotalResponse)
async def get_transactions_total(
    ledger: Ledger,
    valuation: Valuation,
    filters: TransactionFilterParams,
    currency: str | None = Query(None, description="Target currency (default: configured)"),
) -> TotalResponse:
    """
    Sum of the filtered transactions in one currency.

    The total is never partial: if any transaction cannot be converted the
    request fails instead of returning an understated number.

    Raises:
        ConversionUnavailableError: If a transaction has no usable rate
    """
    target = normalize_currency(currency or settings.DEFAULT_CURRENCY)
    transactions = await ledger.list_transactions(filters=filters)
    total = await valuation.calculate_total(transactions, target)
    if total is None:
        raise ConversionUnavailableError(
            f"Cannot total transactions in {target}: exchange rates are missing"
        )
    return TotalResponse(currency_code=target, total=total, count=len(transactions))


@router.post("/", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(transaction: TransactionCreate, ledger: Ledger) -> Transaction:
    """
    Record an expense or income.

    Raises:
        ReferenceNotFoundError: Unknown account, category or debt (``field`` says which)
        InvalidAmountError: Negative amount
        CurrencyMismatchError: Currency differs from the account's
    """
    return await ledger.add_transaction(transaction)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(transaction_id: int, ledger: Ledger) -> Transaction:
    return await ledger.require_transaction(transaction_id)


@router.put("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: int,
    transaction_update: TransactionUpdate,
    ledger: Ledger,
) -> Transaction:
    """Edit a transaction; balances follow the change."""
    return await ledger.update_transaction(transaction_id, transaction_update)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(transaction_id: int, ledger: Ledger) -> None:
    """Delete a transaction and reverse its balance effect."""
    await ledger.delete_transaction(transaction_id)
