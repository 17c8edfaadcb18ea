"""Debt endpoints."""

from fastapi import APIRouter, Query, status

from expense_ledger.core.deps import DebtServiceDep
from expense_ledger.core.exceptions import NotFoundError
from expense_ledger.models.debt import Debt, DebtStatus
from expense_ledger.models.transaction import Transaction, TransactionType
from expense_ledger.schemas.debt import DebtCreate, DebtDetailResponse, DebtResponse
from expense_ledger.schemas.transaction import TransactionResponse

router = APIRouter()


@router.get("/", response_model=list[DebtResponse])
async def get_debts(
    debts: DebtServiceDep,
    debt_status: DebtStatus | None = Query(
        None, alias="status", description="Only OPEN or CLOSED debts"
    ),
) -> list[Debt]:
    return await debts.list_debts(debt_status)


@router.post("/", response_model=DebtResponse, status_code=status.HTTP_201_CREATED)
async def create_debt(debt: DebtCreate, debts: DebtServiceDep) -> Debt:
    """
    Open a debt on an Expense transaction.

    Raises:
        ReferenceNotFoundError: If the parent transaction does not exist
        ValidationError: If the parent is not an Expense
        ConflictError: If the parent already has a debt
    """
    return await debts.create_debt(debt.parent_transaction_id, debt.notes)


@router.get("/potential-payments", response_model=list[TransactionResponse])
async def get_potential_payments(
    debts: DebtServiceDep,
    type: TransactionType = Query(TransactionType.INCOME, description="Transaction type"),
) -> list[Transaction]:
    """Transactions that could be linked to a debt as payments."""
    return await debts.potential_debt_payments(type)


@router.get("/{debt_id}", response_model=DebtDetailResponse)
async def get_debt(debt_id: int, debts: DebtServiceDep) -> DebtDetailResponse:
    """
    Get a debt with its repayment progress.

    The paid amount is expressed in the parent transaction's currency.
    Payments that could not be converted are listed in ``skipped_payment_ids``.
    """
    debt = await debts.require_debt(debt_id)
    parent = await debts.transactions.get(debt.parent_transaction_id)
    if parent is None:
        raise NotFoundError(f"Parent transaction of debt {debt_id} not found")

    paid = await debts.calculate_paid_amount(debt.id, parent.currency_code)
    return DebtDetailResponse(
        id=debt.id,
        parent_transaction_id=debt.parent_transaction_id,
        status=debt.status,
        notes=debt.notes,
        created_at=debt.created_at,
        currency_code=parent.currency_code,
        parent_amount=parent.amount,
        paid_amount=paid.total,
        skipped_payment_ids=list(paid.skipped_payment_ids),
    )


@router.get("/{debt_id}/payments", response_model=list[TransactionResponse])
async def get_debt_payments(debt_id: int, debts: DebtServiceDep) -> list[Transaction]:
    await debts.require_debt(debt_id)
    return await debts.payments_for_debt(debt_id)


@router.post("/{debt_id}/reconcile", response_model=DebtResponse)
async def reconcile_debt(debt_id: int, debts: DebtServiceDep) -> Debt:
    """Recompute the debt's status from its payments."""
    await debts.require_debt(debt_id)
    await debts.reconcile_status(debt_id)
    return await debts.require_debt(debt_id)


@router.delete("/{debt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_debt(debt_id: int, debts: DebtServiceDep) -> None:
    """Delete a debt; its payments are kept and unlinked."""
    await debts.delete_debt(debt_id)
