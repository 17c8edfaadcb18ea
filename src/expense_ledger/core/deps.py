"""Dependencies for FastAPI routes.

Services are built per request on the request's database session. The
change feed and the rate gateway are process-wide: every request publishes
to the same feed, and the gateway's day cache and per-day locks are shared.
"""

from datetime import date
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from expense_ledger.core.events import ChangeFeed
from expense_ledger.db.session import get_db
from expense_ledger.models.transaction import TransactionType
from expense_ledger.schemas.filter import TransactionFilters, TransferFilters
from expense_ledger.services.command_interpreter import CommandInterpreter
from expense_ledger.services.currency_service import CurrencyService
from expense_ledger.services.debt_service import DebtService
from expense_ledger.services.ledger_service import LedgerService
from expense_ledger.services.rate_providers import RateProviderGateway, build_gateway
from expense_ledger.services.rate_service import RateService
from expense_ledger.services.valuation import ValuationEngine

_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Process-wide change feed."""
    return _feed


@lru_cache
def get_rate_gateway() -> RateProviderGateway:
    """Gateway over the configured providers, built on first use."""
    return build_gateway()


DbSession = Annotated[AsyncSession, Depends(get_db)]
Feed = Annotated[ChangeFeed, Depends(get_change_feed)]
Gateway = Annotated[RateProviderGateway, Depends(get_rate_gateway)]


def get_currency_service(db: DbSession, feed: Feed) -> CurrencyService:
    return CurrencyService(db, feed)


Currencies = Annotated[CurrencyService, Depends(get_currency_service)]


def get_rate_service(db: DbSession, gateway: Gateway, feed: Feed) -> RateService:
    return RateService(db, gateway, feed)


RateServiceDep = Annotated[RateService, Depends(get_rate_service)]


def get_valuation(rates: RateServiceDep) -> ValuationEngine:
    return rates.valuation


Valuation = Annotated[ValuationEngine, Depends(get_valuation)]


def get_debt_service(db: DbSession, valuation: Valuation, feed: Feed) -> DebtService:
    return DebtService(db, valuation, feed)


DebtServiceDep = Annotated[DebtService, Depends(get_debt_service)]


def get_ledger_service(
    db: DbSession,
    valuation: Valuation,
    debts: DebtServiceDep,
    feed: Feed,
) -> LedgerService:
    """Ledger wired to snapshot new records and reconcile debts after commits."""
    return LedgerService(
        db,
        feed,
        valuation=valuation,
        debt_reconciler=debts.reconcile_status,
    )


Ledger = Annotated[LedgerService, Depends(get_ledger_service)]


def get_command_interpreter(ledger: Ledger) -> CommandInterpreter:
    return CommandInterpreter(ledger)


Interpreter = Annotated[CommandInterpreter, Depends(get_command_interpreter)]


def get_transaction_filters(
    type: TransactionType | None = Query(None, description="Only Expense or Income"),
    start_date: date | None = Query(None, description="Earliest date, inclusive"),
    end_date: date | None = Query(None, description="Latest date, inclusive"),
    account: str | None = Query(None, description="Account name, any case"),
    category: str | None = Query(None, description="Category name, any case"),
    q: str | None = Query(None, description="Text in the comment or a keyword"),
) -> TransactionFilters:
    return TransactionFilters(
        type=type,
        start_date=start_date,
        end_date=end_date,
        account_name=account,
        category_name=category,
        text=q,
    )


TransactionFilterParams = Annotated[TransactionFilters, Depends(get_transaction_filters)]


def get_transfer_filters(
    start_date: date | None = Query(None, description="Earliest date, inclusive"),
    end_date: date | None = Query(None, description="Latest date, inclusive"),
    source: str | None = Query(None, description="Source account name, any case"),
    destination: str | None = Query(None, description="Destination account name, any case"),
    q: str | None = Query(None, description="Text in the comment"),
) -> TransferFilters:
    return TransferFilters(
        start_date=start_date,
        end_date=end_date,
        source_account_name=source,
        destination_account_name=destination,
        text=q,
    )


TransferFilterParams = Annotated[TransferFilters, Depends(get_transfer_filters)]
