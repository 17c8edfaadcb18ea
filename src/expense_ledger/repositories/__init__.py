"""Repository layer for database operations.

This package centralizes all database access, keeping queries out of the
services that implement ledger rules.

Repositories:
    - BaseRepository: Generic CRUD operations for any model
    - AccountRepository: Case-insensitive account lookups and balance changes
    - CategoryRepository: Case-insensitive category lookups
    - KeywordRepository: Case-insensitive keyword lookups
    - CurrencyRepository: The registry of currencies accounts may hold
    - TransactionRepository: Listings, reference counts and rename cascades
    - TransferRepository: Listings, reference counts and rename cascades
    - DebtRepository: Debt lookups by parent transaction and status
    - ExchangeRateRepository: Pivot-leg upserts and on-or-before lookups

Usage:
    >>> from expense_ledger.repositories import AccountRepository
    >>> from expense_ledger.models.account import Account
    >>>
    >>> account_repo = AccountRepository(Account, db)
    >>> account = await account_repo.get_by_name("wallet")
"""

from expense_ledger.repositories.account import AccountRepository
from expense_ledger.repositories.base import BaseRepository
from expense_ledger.repositories.category import CategoryRepository
from expense_ledger.repositories.currency import CurrencyRepository
from expense_ledger.repositories.debt import DebtRepository
from expense_ledger.repositories.exchange_rate import ExchangeRateRepository
from expense_ledger.repositories.keyword import KeywordRepository
from expense_ledger.repositories.transaction import TransactionRepository
from expense_ledger.repositories.transfer import TransferRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
    "CategoryRepository",
    "KeywordRepository",
    "CurrencyRepository",
    "TransactionRepository",
    "TransferRepository",
    "DebtRepository",
    "ExchangeRateRepository",
]
