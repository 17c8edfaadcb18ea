"""Account endpoints."""

from datetime import date

from fastapi import APIRouter, Query, status

from expense_ledger.core.config import settings
from expense_ledger.core.deps import Ledger, Valuation
from expense_ledger.core.exceptions import ConversionUnavailableError
from expense_ledger.core.money import normalize_currency
from expense_ledger.models.account import Account
from expense_ledger.schemas.account import (
    AccountCreate,
    AccountRename,
    AccountResponse,
    BalancesTotalResponse,
)

router = APIRouter()


@router.get("/", response_model=list[AccountResponse])
async def get_accounts(ledger: Ledger) -> list[Account]:
    """Get all accounts ordered by name."""
    return await ledger.current_accounts()


@router.post("/", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(account: AccountCreate, ledger: Ledger) -> Account:
    """
    Create a new account.

    Args:
        account: Account data (validated Pydantic model)
        ledger: Ledger service

    Returns:
        The created account

    Raises:
        DuplicateNameError: If an account with the same name exists (any casing)
    """
    return await ledger.create_account(account)


@router.get("/total", response_model=BalancesTotalResponse)
async def get_balances_total(
    ledger: Ledger,
    valuation: Valuation,
    currency: str | None = Query(None, description="Target currency (default: configured)"),
    on: date | None = Query(None, description="Valuation date (default: today)"),
) -> BalancesTotalResponse:
    """
    Net worth of all accounts in one currency.

    Raises:
        ConversionUnavailableError: If any account currency has no rate
    """
    target = normalize_currency(currency or settings.DEFAULT_CURRENCY)
    accounts = await ledger.current_accounts()
    total = await valuation.calculate_balances_total(accounts, target, on)
    if total is None:
        raise ConversionUnavailableError(
            f"Cannot value all accounts in {target}: exchange rates are missing"
        )
    return BalancesTotalResponse(currency_code=target, total=total, account_count=len(accounts))


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(account_id: int, ledger: Ledger) -> Account:
    """Get a specific account."""
    return await ledger.require_account(account_id)


@router.patch("/{account_id}", response_model=AccountResponse)
async def rename_account(account_id: int, rename: AccountRename, ledger: Ledger) -> Account:
    """
    Rename an account.

    Transactions and transfers that reference the account are rewritten in
    the same database transaction.
    """
    return await ledger.rename_account(account_id, rename.name)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(account_id: int, ledger: Ledger) -> None:
    """
    Delete an account.

    Raises:
        HasDependentsError: If transactions or transfers still reference it
    """
    await ledger.delete_account(account_id)
