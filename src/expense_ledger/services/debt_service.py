"""Debt service: repayments and OPEN/CLOSED reconciliation.

A debt is opened on an Expense (money lent out). Income transactions linked
to it through ``related_debt_id`` are repayments. The debt is CLOSED once
the repayments, converted into the parent expense's currency at each
payment's own date, reach the parent amount, and reopens when they no
longer do.
"""

import logging
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from expense_ledger.core.constants import MoneyConstants
from expense_ledger.core.events import DEBTS, TRANSACTIONS, ChangeFeed
from expense_ledger.core.exceptions import (
    ConflictError,
    NotFoundError,
    ReferenceNotFoundError,
    ValidationError,
)
from expense_ledger.core.money import normalize_currency, to_money
from expense_ledger.db.session import transactional
from expense_ledger.models.debt import Debt, DebtStatus
from expense_ledger.models.transaction import Transaction, TransactionType
from expense_ledger.repositories import DebtRepository, TransactionRepository
from expense_ledger.services.valuation import ValuationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaidAmount:
    """Repaid total of a debt.

    Attributes:
        total: Sum of the convertible payments, rounded to cents
        skipped_payment_ids: Payments left out because no rate was known
    """

    total: Decimal
    skipped_payment_ids: tuple[int, ...] = ()


class DebtService:
    """Create debts and keep their status in line with the payments.

    Args:
        db: Database session
        valuation: Engine used to convert payments into the debt currency
        feed: Change feed notified when debts change
    """

    def __init__(
        self,
        db: AsyncSession,
        valuation: ValuationEngine,
        feed: ChangeFeed | None = None,
    ):
        self.db = db
        self.valuation = valuation
        self.feed = feed
        self.debts = DebtRepository(Debt, db)
        self.transactions = TransactionRepository(Transaction, db)

    def _publish(self, *topics: str) -> None:
        if self.feed is not None:
            self.feed.publish_many(topics)

    async def get_debt(self, debt_id: int) -> Debt | None:
        return await self.debts.get(debt_id)

    async def require_debt(self, debt_id: int) -> Debt:
        debt = await self.debts.get(debt_id)
        if debt is None:
            raise NotFoundError(f"Debt {debt_id} not found")
        return debt

    async def get_debt_for_transaction(self, transaction_id: int) -> Debt | None:
        """Debt opened on an Expense transaction, if any."""
        return await self.debts.get_by_parent(transaction_id)

    async def list_debts(self, status: DebtStatus | None = None) -> list[Debt]:
        return await self.debts.list_by_status(status=status)

    async def create_debt(self, parent_transaction_id: int, notes: str | None = None) -> Debt:
        """Open a debt on an Expense transaction.

        Raises:
            ReferenceNotFoundError: If the parent transaction does not exist
            ValidationError: If the parent is not an Expense
            ConflictError: If the parent already has a debt
        """
        parent = await self.transactions.get(parent_transaction_id)
        if parent is None:
            raise ReferenceNotFoundError(
                f"Transaction {parent_transaction_id} not found", field="parent_transaction"
            )
        if parent.type is not TransactionType.EXPENSE:
            raise ValidationError("A debt can only be opened on an Expense transaction")
        if await self.debts.get_by_parent(parent.id) is not None:
            raise ConflictError(f"Transaction {parent.id} already has a debt")

        async with transactional(self.db):
            debt = await self.debts.create(
                obj_in={
                    "parent_transaction_id": parent.id,
                    "status": DebtStatus.OPEN,
                    "notes": notes,
                }
            )

        logger.info(f"Opened debt {debt.id} on transaction {parent.id}")
        self._publish(DEBTS)
        # A zero-amount parent is settled from the start
        await self.reconcile_status(debt.id)
        return debt

    async def delete_debt(self, debt_id: int) -> None:
        """Delete a debt; its payments stay in the ledger, unlinked."""
        debt = await self.require_debt(debt_id)
        async with transactional(self.db):
            unlinked = await self.transactions.unlink_debt(debt.id)
            await self.debts.remove(debt)

        logger.info(f"Deleted debt {debt_id} ({unlinked} payments unlinked)")
        self._publish(DEBTS, TRANSACTIONS)

    async def payments_for_debt(self, debt_id: int) -> list[Transaction]:
        """Income transactions linked to a debt, oldest first."""
        return await self.transactions.list_for_debt(debt_id)

    async def potential_debt_payments(
        self,
        type: TransactionType = TransactionType.INCOME,
    ) -> list[Transaction]:
        """Transactions of ``type`` not yet linked to any debt."""
        return await self.transactions.list_unlinked(type=type)

    async def converted_payment_amounts(
        self,
        payments: Iterable[Transaction],
        target: str,
    ) -> dict[int, Decimal | None]:
        """Each payment in ``target`` at its own date, None where no rate is known."""
        target = normalize_currency(target)
        converted: dict[int, Decimal | None] = {}
        for payment in payments:
            rate = await self.valuation.rate(payment.currency_code, target, payment.date)
            converted[payment.id] = to_money(payment.amount * rate) if rate is not None else None
        return converted

    async def calculate_paid_amount(self, debt_id: int, debt_currency: str) -> PaidAmount:
        """Sum the repayments of a debt in ``debt_currency``.

        Each payment is converted at the rate on or before its own date. A
        payment that cannot be converted is left out of the total and
        reported in ``skipped_payment_ids``.
        """
        payments = await self.payments_for_debt(debt_id)
        converted = await self.converted_payment_amounts(payments, debt_currency)

        total = MoneyConstants.ZERO
        skipped: list[int] = []
        for payment_id, amount in converted.items():
            if amount is None:
                skipped.append(payment_id)
                continue
            total += amount

        if skipped:
            logger.warning(
                f"Debt {debt_id}: skipped payments {skipped} with no rate to {debt_currency}"
            )
        return PaidAmount(total=to_money(total), skipped_payment_ids=tuple(skipped))

    async def reconcile_status(self, debt_id: int) -> bool:
        """Recompute a debt's status from its payments.

        The debt is CLOSED when the paid amount covers the parent amount and
        OPEN otherwise. The status is only written when it changes.

        Returns:
            True if the status changed; False when it did not or the debt no
            longer exists
        """
        debt = await self.debts.get(debt_id)
        if debt is None:
            logger.debug(f"Debt {debt_id} no longer exists, nothing to reconcile")
            return False
        parent = await self.transactions.get(debt.parent_transaction_id)
        if parent is None:
            logger.warning(f"Debt {debt_id} has no parent transaction")
            return False

        paid = await self.calculate_paid_amount(debt.id, parent.currency_code)
        status = DebtStatus.CLOSED if paid.total >= parent.amount else DebtStatus.OPEN
        if status == debt.status:
            return False

        async with transactional(self.db):
            debt.status = status
            await self.db.flush()

        logger.info(
            f"Debt {debt.id} is now {status.value} "
            f"(paid {paid.total} of {parent.amount} {parent.currency_code})"
        )
        self._publish(DEBTS)
        return True

    async def watch_status(self, debt_id: int) -> AsyncIterator[DebtStatus | None]:
        """Yield the debt's status now and after every debt change."""
        if self.feed is None:
            raise RuntimeError("watch_status requires a change feed")

        async def load() -> DebtStatus | None:
            debt = await self.debts.get(debt_id)
            return debt.status if debt is not None else None

        async for status in self.feed.watch([DEBTS], load):
            yield status
