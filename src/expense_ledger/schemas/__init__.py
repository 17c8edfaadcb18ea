"""Pydantic schemas for request/response validation."""

from expense_ledger.schemas.account import (
    AccountCreate,
    AccountRename,
    AccountResponse,
    BalancesTotalResponse,
    CategoryCreate,
    CategoryResponse,
)
from expense_ledger.schemas.command import (
    CommandOutcome,
    CommandRequest,
    Committed,
    DisambiguationRequested,
    ParsedCommand,
    ParsedTransaction,
    ParsedTransfer,
    Rejected,
    Unrecognized,
)
from expense_ledger.schemas.currency import CurrencyCreate, CurrencyResponse, CurrencyUpdate
from expense_ledger.schemas.debt import DebtCreate, DebtDetailResponse, DebtResponse
from expense_ledger.schemas.exchange_rate import (
    BackfillResponse,
    ExchangeRateResponse,
    ManualPivotRate,
    ManualRateOverride,
    RateQuoteResponse,
    SyncRatesRequest,
    SyncRatesResponse,
)
from expense_ledger.schemas.filter import TransactionFilters, TransferFilters
from expense_ledger.schemas.keyword import KeywordCreate, KeywordResponse
from expense_ledger.schemas.transaction import (
    TotalResponse,
    TransactionCreate,
    TransactionResponse,
    TransactionUpdate,
    TransferCreate,
    TransferResponse,
    TransferUpdate,
)

__all__ = [
    # Account
    "AccountCreate",
    "AccountRename",
    "AccountResponse",
    "BalancesTotalResponse",
    "CategoryCreate",
    "CategoryResponse",
    # Currency
    "CurrencyCreate",
    "CurrencyUpdate",
    "CurrencyResponse",
    # Keyword
    "KeywordCreate",
    "KeywordResponse",
    # Transaction
    "TransactionCreate",
    "TransactionUpdate",
    "TransactionResponse",
    "TransferCreate",
    "TransferUpdate",
    "TransferResponse",
    "TotalResponse",
    "TransactionFilters",
    "TransferFilters",
    # Debt
    "DebtCreate",
    "DebtResponse",
    "DebtDetailResponse",
    # Exchange rate
    "ExchangeRateResponse",
    "RateQuoteResponse",
    "ManualPivotRate",
    "ManualRateOverride",
    "SyncRatesRequest",
    "SyncRatesResponse",
    "BackfillResponse",
    # Command
    "CommandRequest",
    "ParsedCommand",
    "ParsedTransaction",
    "ParsedTransfer",
    "CommandOutcome",
    "Committed",
    "DisambiguationRequested",
    "Unrecognized",
    "Rejected",
]
