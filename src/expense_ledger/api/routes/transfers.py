"""Transfer endpoints."""

from fastapi import APIRouter, Query, status

from expense_ledger.core.config import settings
from expense_ledger.core.deps import Ledger, TransferFilterParams, Valuation
from expense_ledger.core.exceptions import ConversionUnavailableError
from expense_ledger.core.money import normalize_currency
from expense_ledger.models.transfer import Transfer
from expense_ledger.schemas.transaction import (
    TotalResponse,
    TransferCreate,
    TransferResponse,
    TransferUpdate,
)

router = APIRouter()


@router.get("/", response_model=list[TransferResponse])
async def get_transfers(ledger: Ledger, filters: TransferFilterParams) -> list[Transfer]:
    """Get transfers matching every given filter, newest first."""
    return await ledger.list_transfers(filters)


@router.get("/totals", response_model=TotalResponse)
async def get_transfers_total(
    ledger: Ledger,
    valuation: Valuation,
    filters: TransferFilterParams,
    currency: str | None = Query(None, description="Target currency (default: configured)"),
) -> TotalResponse:
    """
    Sum of the filtered transferred amounts in one currency.

    Raises:
        ConversionUnavailableError: If a transfer has no usable rate
    """
    target = normalize_currency(currency or settings.DEFAULT_CURRENCY)
    transfers = await ledger.list_transfers(filters)
    total = await valuation.calculate_total(transfers, target)
    if total is None:
        raise ConversionUnavailableError(
            f"Cannot total transfers in {target}: exchange rates are missing"
        )
    return TotalResponse(currency_code=target, total=total, count=len(transfers))


@router.post("/", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
async def create_transfer(transfer: TransferCreate, ledger: Ledger) -> Transfer:
    """
    Move money between two accounts.

    Raises:
        SameAccountTransferError: Source and destination are the same account
        ReferenceNotFoundError: Unknown source or destination account
        CurrencyMismatchError: Accounts hold different currencies
    """
    return await ledger.add_transfer(transfer)


@router.get("/{transfer_id}", response_model=TransferResponse)
async def get_transfer(transfer_id: int, ledger: Ledger) -> Transfer:
    return await ledger.require_transfer(transfer_id)


@router.put("/{transfer_id}", response_model=TransferResponse)
async def update_transfer(
    transfer_id: int,
    transfer_update: TransferUpdate,
    ledger: Ledger,
) -> Transfer:
    return await ledger.update_transfer(transfer_id, transfer_update)


@router.delete("/{transfer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transfer(transfer_id: int, ledger: Ledger) -> None:
    """Delete a transfer and reverse both balance effects."""
    await ledger.delete_transfer(transfer_id)
