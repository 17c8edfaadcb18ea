"""Debt schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from expense_ledger.models.debt import DebtStatus


class DebtCreate(BaseModel):
    """Schema for opening a debt on an Expense transaction."""

    parent_transaction_id: int
    notes: str | None = None


class DebtResponse(BaseModel):
    """Schema for debt response."""

    id: int
    parent_transaction_id: int
    status: DebtStatus
    notes: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DebtDetailResponse(DebtResponse):
    """Debt with its repayment progress in the parent transaction's currency."""

    currency_code: str
    parent_amount: Decimal
    paid_amount: Decimal
    skipped_payment_ids: list[int] = []
