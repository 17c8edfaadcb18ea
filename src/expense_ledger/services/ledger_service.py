"""Ledger service: accounts, categories, transactions and transfers.

Every mutation runs as one unit of work: references and amounts are
validated first, account balances are adjusted next and the record itself is
written last. Deletion reverses in the opposite order. Nothing is committed
when a step fails, so a balance never disagrees with the records behind it.

After a commit the service publishes the affected change-feed topics and
asks the debt reconciler to re-evaluate every debt whose payments changed.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from expense_ledger.core.config import settings
from expense_ledger.core.events import (
    ACCOUNTS,
    CATEGORIES,
    DEBTS,
    KEYWORDS,
    TRANSACTIONS,
    TRANSFERS,
    ChangeFeed,
)
from expense_ledger.core.exceptions import (
    CurrencyMismatchError,
    DuplicateNameError,
    HasDependentsError,
    InvalidAmountError,
    NotFoundError,
    ReferenceNotFoundError,
    SameAccountTransferError,
    ValidationError,
)
from expense_ledger.core.money import as_decimal, normalize_currency, to_money
from expense_ledger.db.session import transactional
from expense_ledger.models.account import Account
from expense_ledger.models.category import Category
from expense_ledger.models.debt import Debt
from expense_ledger.models.keyword import Keyword
from expense_ledger.models.transaction import Transaction, TransactionType
from expense_ledger.models.transfer import Transfer
from expense_ledger.repositories import (
    AccountRepository,
    CategoryRepository,
    DebtRepository,
    KeywordRepository,
    TransactionRepository,
    TransferRepository,
)
from expense_ledger.schemas.account import AccountCreate, CategoryCreate
from expense_ledger.schemas.filter import TransactionFilters, TransferFilters
from expense_ledger.schemas.keyword import KeywordCreate
from expense_ledger.schemas.transaction import (
    TransactionCreate,
    TransactionUpdate,
    TransferCreate,
    TransferUpdate,
)
from expense_ledger.services.currency_service import CurrencyService
from expense_ledger.services.valuation import ValuationEngine

logger = logging.getLogger(__name__)

DebtReconciler = Callable[[int], Awaitable[bool]]

_SNAPSHOT_FIELDS = (
    "original_default_currency_code",
    "exchange_rate_to_original_default",
    "amount_in_original_default",
)


class LedgerService:
    """Atomic ledger mutations and point-in-time reads.

    Args:
        db: Database session
        feed: Change feed notified after every commit
        valuation: Engine used to take valuation snapshots of new records;
            without it records are stored unvalued and can be backfilled
        default_currency: Currency snapshots are taken in (default: settings)
        debt_reconciler: Coroutine called with a debt id after a commit that
            touched that debt's payments
        allow_cross_currency_transfers: Accept transfers between accounts of
            different currencies when a destination amount is given
            (default: settings)

    Example:
        >>> ledger = LedgerService(db, feed)
        >>> await ledger.add_transaction(
        ...     TransactionCreate(account_name="wallet", category_name="food",
        ...                       amount=Decimal("12.50"), type=TransactionType.EXPENSE)
        ... )
    """

    def __init__(
        self,
        db: AsyncSession,
        feed: ChangeFeed | None = None,
        *,
        valuation: ValuationEngine | None = None,
        default_currency: str | None = None,
        debt_reconciler: DebtReconciler | None = None,
        allow_cross_currency_transfers: bool | None = None,
    ):
        self.db = db
        self.feed = feed
        self.valuation = valuation
        self.default_currency = normalize_currency(default_currency or settings.DEFAULT_CURRENCY)
        self.debt_reconciler = debt_reconciler
        if allow_cross_currency_transfers is None:
            allow_cross_currency_transfers = settings.ALLOW_CROSS_CURRENCY_TRANSFERS
        self.allow_cross_currency_transfers = allow_cross_currency_transfers

        self.accounts = AccountRepository(Account, db)
        self.categories = CategoryRepository(Category, db)
        self.transactions = TransactionRepository(Transaction, db)
        self.transfers = TransferRepository(Transfer, db)
        self.debts = DebtRepository(Debt, db)
        self.keywords = KeywordRepository(Keyword, db)
        self.currency_registry = CurrencyService(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _publish(self, *topics: str, **payload: Any) -> None:
        if self.feed is not None:
            self.feed.publish_many(topics, **payload)

    async def _reconcile_debts(self, debt_ids: Iterable[int | None]) -> None:
        if self.debt_reconciler is None:
            return
        for debt_id in dict.fromkeys(d for d in debt_ids if d is not None):
            await self.debt_reconciler(debt_id)

    @staticmethod
    def _clean_name(name: str, kind: str) -> str:
        cleaned = name.strip()
        if not cleaned:
            raise ValidationError(f"{kind} name cannot be blank")
        return cleaned

    @staticmethod
    def _validated_amount(value: Decimal | int | float | str) -> Decimal:
        amount = as_decimal(value)
        if amount < 0:
            raise InvalidAmountError(f"Amount must not be negative, got {amount}")
        return to_money(amount)

    @staticmethod
    def _currency_for(account: Account, currency_code: str | None) -> str:
        if currency_code is None:
            return account.currency_code
        currency = normalize_currency(currency_code)
        if currency != account.currency_code:
            raise CurrencyMismatchError(
                f"Currency {currency} does not match account '{account.name}' "
                f"({account.currency_code})"
            )
        return currency

    async def _require_account(self, name: str, field: str) -> Account:
        account = await self.accounts.get_by_name(name)
        if account is None:
            raise ReferenceNotFoundError(f"Account '{name.strip()}' not found", field=field)
        return account

    async def _require_category(self, name: str) -> Category:
        category = await self.categories.get_by_name(name)
        if category is None:
            raise ReferenceNotFoundError(f"Category '{name.strip()}' not found", field="category")
        return category

    async def _require_debt_reference(self, debt_id: int) -> Debt:
        debt = await self.debts.get(debt_id)
        if debt is None:
            raise ReferenceNotFoundError(f"Debt {debt_id} not found", field="related_debt")
        return debt

    async def _resolve_keywords(self, keyword_ids: Iterable[int]) -> list[Keyword]:
        wanted = set(keyword_ids)
        keywords = await self.keywords.get_many(wanted)
        if len(keywords) != len(wanted):
            missing = sorted(wanted - {keyword.id for keyword in keywords})
            raise ReferenceNotFoundError(
                f"Keywords not found: {', '.join(map(str, missing))}", field="keywords"
            )
        return keywords

    async def _snapshot_fields(self, amount: Decimal, currency: str, on: date) -> dict[str, Any]:
        """Snapshot columns for a record; all None when no rate is known yet."""
        if self.valuation is None:
            return {}
        snapshot = await self.valuation.take_snapshot(amount, currency, on, self.default_currency)
        if snapshot is None:
            logger.debug(f"No {currency}/{self.default_currency} rate on {on}, record unvalued")
            return dict.fromkeys(_SNAPSHOT_FIELDS)
        return {
            "original_default_currency_code": snapshot.currency_code,
            "exchange_rate_to_original_default": snapshot.rate,
            "amount_in_original_default": snapshot.amount,
        }

    @staticmethod
    def _check_date_range(start: date | None, end: date | None) -> None:
        if start is not None and end is not None and start > end:
            raise ValidationError(f"Start date {start} is after end date {end}")

    async def _apply_deltas(self, deltas: Iterable[tuple[Account, Decimal]]) -> None:
        """Apply balance changes, merging several deltas for the same account."""
        merged: dict[int, tuple[Account, Decimal]] = {}
        for account, delta in deltas:
            _, current = merged.get(account.id, (account, Decimal("0")))
            merged[account.id] = (account, current + delta)
        for account, delta in merged.values():
            if delta:
                await self.accounts.adjust_balance(account, delta)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def current_accounts(self) -> list[Account]:
        """Every account, read once."""
        return await self.accounts.list_all()

    async def get_account(self, account_id: int) -> Account | None:
        return await self.accounts.get(account_id)

    async def require_account(self, account_id: int) -> Account:
        account = await self.accounts.get(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    async def get_account_by_name(self, name: str) -> Account | None:
        """Case-insensitive lookup returning the stored casing."""
        return await self.accounts.get_by_name(name)

    async def create_account(self, data: AccountCreate) -> Account:
        """Create an account with an opening balance.

        Raises:
            ValidationError: If the name is blank
            DuplicateNameError: If the name is taken, ignoring case
            ReferenceNotFoundError: If the currency is not registered
        """
        name = self._clean_name(data.name, "Account")
        if await self.accounts.get_by_name(name) is not None:
            raise DuplicateNameError(f"Account '{name}' already exists")
        currency = await self.currency_registry.require_registered(data.currency_code)

        try:
            async with transactional(self.db):
                account = await self.accounts.create(
                    obj_in={
                        "name": name,
                        "currency_code": currency,
                        "balance": to_money(as_decimal(data.balance)),
                    }
                )
        except IntegrityError as e:
            raise DuplicateNameError(f"Account '{name}' already exists") from e

        logger.info(f"Created account '{account.name}' ({account.currency_code})")
        self._publish(ACCOUNTS)
        return account

    async def rename_account(self, account_id: int, new_name: str) -> Account:
        """Rename an account and every transaction and transfer referencing it.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: If the new name is blank
            DuplicateNameError: If another account already uses the name
        """
        account = await self.require_account(account_id)
        new_name = self._clean_name(new_name, "Account")
        other = await self.accounts.get_by_name(new_name)
        if other is not None and other.id != account.id:
            raise DuplicateNameError(f"Account '{other.name}' already exists")

        old_name = account.name
        if old_name == new_name:
            return account

        try:
            async with transactional(self.db):
                account.name = new_name
                await self.db.flush()
                tx_count = await self.transactions.rename_account(old_name, new_name)
                tr_count = await self.transfers.rename_account(old_name, new_name)
        except IntegrityError as e:
            raise DuplicateNameError(f"Account '{new_name}' already exists") from e

        logger.info(
            f"Renamed account '{old_name}' to '{new_name}' "
            f"({tx_count} transactions, {tr_count} transfer references)"
        )
        self._publish(ACCOUNTS, TRANSACTIONS, TRANSFERS)
        return account

    async def delete_account(self, account_id: int) -> None:
        """Delete an account that nothing references.

        Raises:
            NotFoundError: If the account does not exist
            HasDependentsError: If transactions or transfers still use it
        """
        account = await self.require_account(account_id)
        tx_count = await self.transactions.count_for_account(account.name)
        tr_count = await self.transfers.count_for_account(account.name)
        if tx_count or tr_count:
            raise HasDependentsError(
                f"Account '{account.name}' is used by {tx_count} transactions "
                f"and {tr_count} transfers",
                context={"transactions": tx_count, "transfers": tr_count},
            )

        async with transactional(self.db):
            await self.accounts.remove(account)

        logger.info(f"Deleted account '{account.name}'")
        self._publish(ACCOUNTS)

    async def watch_accounts(self) -> AsyncIterator[list[Account]]:
        """Yield the account list now and after every account change."""
        if self.feed is None:
            raise RuntimeError("watch_accounts requires a change feed")
        async for accounts in self.feed.watch([ACCOUNTS], self.current_accounts):
            yield accounts

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def current_categories(self) -> list[Category]:
        """Every category, read once."""
        return await self.categories.list_all()

    async def require_category(self, category_id: int) -> Category:
        category = await self.categories.get(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    async def get_category_by_name(self, name: str) -> Category | None:
        return await self.categories.get_by_name(name)

    async def create_category(self, data: CategoryCreate) -> Category:
        name = self._clean_name(data.name, "Category")
        if await self.categories.get_by_name(name) is not None:
            raise DuplicateNameError(f"Category '{name}' already exists")

        try:
            async with transactional(self.db):
                category = await self.categories.create(obj_in={"name": name})
        except IntegrityError as e:
            raise DuplicateNameError(f"Category '{name}' already exists") from e

        logger.info(f"Created category '{category.name}'")
        self._publish(CATEGORIES)
        return category

    async def rename_category(self, category_id: int, new_name: str) -> Category:
        """Rename a category and every transaction filed under it."""
        category = await self.require_category(category_id)
        new_name = self._clean_name(new_name, "Category")
        other = await self.categories.get_by_name(new_name)
        if other is not None and other.id != category.id:
            raise DuplicateNameError(f"Category '{other.name}' already exists")

        old_name = category.name
        if old_name == new_name:
            return category

        try:
            async with transactional(self.db):
                category.name = new_name
                await self.db.flush()
                count = await self.transactions.rename_category(old_name, new_name)
        except IntegrityError as e:
            raise DuplicateNameError(f"Category '{new_name}' already exists") from e

        logger.info(f"Renamed category '{old_name}' to '{new_name}' ({count} transactions)")
        self._publish(CATEGORIES, TRANSACTIONS)
        return category

    async def delete_category(self, category_id: int) -> None:
        """Delete a category no transaction is filed under.

        Raises:
            HasDependentsError: If transactions still use it
        """
        category = await self.require_category(category_id)
        count = await self.transactions.count_for_category(category.name)
        if count:
            raise HasDependentsError(
                f"Category '{category.name}' is used by {count} transactions",
                context={"transactions": count},
            )

        async with transactional(self.db):
            await self.categories.remove(category)

        logger.info(f"Deleted category '{category.name}'")
        self._publish(CATEGORIES)

    # ------------------------------------------------------------------
    # Keywords
    # ------------------------------------------------------------------

    async def current_keywords(self) -> list[Keyword]:
        return await self.keywords.list_all()

    async def require_keyword(self, keyword_id: int) -> Keyword:
        keyword = await self.keywords.get(keyword_id)
        if keyword is None:
            raise NotFoundError(f"Keyword {keyword_id} not found")
        return keyword

    async def create_keyword(self, data: KeywordCreate) -> Keyword:
        """Create a keyword; names are unique ignoring case."""
        name = self._clean_name(data.name, "Keyword")
        if await self.keywords.get_by_name(name) is not None:
            raise DuplicateNameError(f"Keyword '{name}' already exists")

        try:
            async with transactional(self.db):
                keyword = await self.keywords.create(obj_in={"name": name})
        except IntegrityError as e:
            raise DuplicateNameError(f"Keyword '{name}' already exists") from e

        logger.info(f"Created keyword '{keyword.name}'")
        self._publish(KEYWORDS)
        return keyword

    async def rename_keyword(self, keyword_id: int, new_name: str) -> Keyword:
        keyword = await self.require_keyword(keyword_id)
        new_name = self._clean_name(new_name, "Keyword")
        other = await self.keywords.get_by_name(new_name)
        if other is not None and other.id != keyword.id:
            raise DuplicateNameError(f"Keyword '{other.name}' already exists")
        if keyword.name == new_name:
            return keyword

        try:
            async with transactional(self.db):
                keyword = await self.keywords.update(db_obj=keyword, obj_in={"name": new_name})
        except IntegrityError as e:
            raise DuplicateNameError(f"Keyword '{new_name}' already exists") from e

        logger.info(f"Renamed keyword {keyword.id} to '{new_name}'")
        self._publish(KEYWORDS, TRANSACTIONS)
        return keyword

    async def delete_keyword(self, keyword_id: int) -> None:
        """Delete a keyword and untag every transaction carrying it."""
        keyword = await self.require_keyword(keyword_id)
        tagged = await self.transactions.list_for_keyword(keyword.id)

        async with transactional(self.db):
            for transaction in tagged:
                transaction.keywords = [k for k in transaction.keywords if k.id != keyword.id]
            await self.db.flush()
            await self.keywords.remove(keyword)

        logger.info(f"Deleted keyword '{keyword.name}' from {len(tagged)} transactions")
        if tagged:
            self._publish(KEYWORDS, TRANSACTIONS)
        else:
            self._publish(KEYWORDS)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def list_transactions(
        self,
        type: TransactionType | None = None,
        *,
        filters: TransactionFilters | None = None,
    ) -> list[Transaction]:
        """Transactions matching ``filters``, newest first.

        ``type`` narrows the filters' own type when given.

        Raises:
            ValidationError: If the start date is after the end date
        """
        filters = filters or TransactionFilters()
        if type is not None:
            filters = filters.model_copy(update={"type": type})
        self._check_date_range(filters.start_date, filters.end_date)
        return await self.transactions.list_filtered(
            type=filters.type,
            start=filters.start_date,
            end=filters.end_date,
            account_name=filters.account_name,
            category_name=filters.category_name,
            text=filters.text,
        )

    async def get_transaction(self, transaction_id: int) -> Transaction | None:
        return await self.transactions.get(transaction_id)

    async def require_transaction(self, transaction_id: int) -> Transaction:
        transaction = await self.transactions.get(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    async def add_transaction(self, data: TransactionCreate) -> Transaction:
        """Record an expense or income and apply it to the account balance.

        Args:
            data: Transaction input; names are matched ignoring case and
                stored with the account's and category's own casing

        Returns:
            The committed transaction

        Raises:
            ReferenceNotFoundError: If the account, category or related debt
                does not exist (``field`` names which)
            InvalidAmountError: If the amount is negative
            CurrencyMismatchError: If the currency differs from the account's
        """
        account = await self._require_account(data.account_name, "account")
        category = await self._require_category(data.category_name)
        amount = self._validated_amount(data.amount)
        currency = self._currency_for(account, data.currency_code)
        if data.related_debt_id is not None:
            await self._require_debt_reference(data.related_debt_id)
        keywords = await self._resolve_keywords(data.keyword_ids)

        values: dict[str, Any] = {
            "account_name": account.name,
            "category_name": category.name,
            "amount": amount,
            "currency_code": currency,
            "type": data.type,
            "date": data.date,
            "comment": data.comment,
            "related_debt_id": data.related_debt_id,
            "keywords": keywords,
        }
        values.update(await self._snapshot_fields(amount, currency, data.date))

        async with transactional(self.db):
            await self._apply_deltas([(account, amount * data.type.sign)])
            transaction = await self.transactions.create(obj_in=values)

        logger.info(
            f"Added {transaction.type.value} {transaction.id}: {amount} {currency} "
            f"on '{account.name}'"
        )
        self._publish(TRANSACTIONS, ACCOUNTS)
        await self._reconcile_debts([transaction.related_debt_id])
        return transaction

    async def update_transaction(
        self,
        transaction_id: int,
        data: TransactionUpdate,
    ) -> Transaction:
        """Edit a transaction, moving its balance effect if needed.

        The old effect is reverted and the new one applied in the same unit
        of work; when both touch one account only the net change is applied.
        Without a new currency code the stored one must still match the
        account the transaction ends up on.

        Raises:
            ValidationError: If a transaction carrying a debt stops being an expense
            CurrencyMismatchError: If the currency differs from the new account's
            ReferenceNotFoundError: If a referenced record does not exist
        """
        transaction = await self.require_transaction(transaction_id)
        changes = data.model_dump(exclude_unset=True)
        own_debt = await self.debts.get_by_parent(transaction.id)
        type = changes.get("type") or transaction.type
        if own_debt is not None and type is not TransactionType.EXPENSE:
            raise ValidationError(
                f"Transaction {transaction.id} carries debt {own_debt.id} and must stay an expense"
            )

        old_account = await self._require_account(transaction.account_name, "account")
        new_account = await self._require_account(
            changes.get("account_name") or transaction.account_name, "account"
        )
        category = await self._require_category(
            changes.get("category_name") or transaction.category_name
        )
        amount = (
            self._validated_amount(changes["amount"])
            if changes.get("amount") is not None
            else transaction.amount
        )
        currency = self._currency_for(
            new_account, changes.get("currency_code") or transaction.currency_code
        )
        new_debt_id = changes.get("related_debt_id", transaction.related_debt_id)
        if new_debt_id is not None and new_debt_id != transaction.related_debt_id:
            await self._require_debt_reference(new_debt_id)
        on = changes.get("date") or transaction.date

        values: dict[str, Any] = {
            "account_name": new_account.name,
            "category_name": category.name,
            "amount": amount,
            "currency_code": currency,
            "type": type,
            "date": on,
            "related_debt_id": new_debt_id,
        }
        if "comment" in changes:
            values["comment"] = changes["comment"]
        if changes.get("keyword_ids") is not None:
            values["keywords"] = await self._resolve_keywords(changes["keyword_ids"])
        if (amount, currency, on) != (
            transaction.amount,
            transaction.currency_code,
            transaction.date,
        ):
            values.update(await self._snapshot_fields(amount, currency, on))

        old_debt_id = transaction.related_debt_id

        async with transactional(self.db):
            await self._apply_deltas(
                [
                    (old_account, -transaction.signed_amount),
                    (new_account, amount * type.sign),
                ]
            )
            transaction = await self.transactions.update(db_obj=transaction, obj_in=values)

        logger.info(f"Updated transaction {transaction.id}")
        self._publish(TRANSACTIONS, ACCOUNTS)
        await self._reconcile_debts(
            [old_debt_id, transaction.related_debt_id, own_debt.id if own_debt else None]
        )
        return transaction

    async def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction and reverse its balance effect.

        A debt opened on the transaction is deleted with it, and that debt's
        payments are unlinked.
        """
        transaction = await self.require_transaction(transaction_id)
        account = await self._require_account(transaction.account_name, "account")
        own_debt = await self.debts.get_by_parent(transaction.id)
        debt_id = transaction.related_debt_id
        reversal = -transaction.signed_amount

        async with transactional(self.db):
            if own_debt is not None:
                await self.transactions.unlink_debt(own_debt.id)
                await self.debts.remove(own_debt)
            await self.transactions.remove(transaction)
            await self._apply_deltas([(account, reversal)])

        logger.info(f"Deleted transaction {transaction_id}")
        if own_debt is not None:
            self._publish(TRANSACTIONS, ACCOUNTS, DEBTS)
        else:
            self._publish(TRANSACTIONS, ACCOUNTS)
        await self._reconcile_debts([debt_id])

    async def watch_transactions(
        self,
        type: TransactionType | None = None,
    ) -> AsyncIterator[list[Transaction]]:
        """Yield the transaction list now and after every transaction change."""
        if self.feed is None:
            raise RuntimeError("watch_transactions requires a change feed")

        async def load() -> list[Transaction]:
            return await self.list_transactions(type)

        async for transactions in self.feed.watch([TRANSACTIONS], load):
            yield transactions

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    async def list_transfers(self, filters: TransferFilters | None = None) -> list[Transfer]:
        filters = filters or TransferFilters()
        self._check_date_range(filters.start_date, filters.end_date)
        return await self.transfers.list_filtered(
            start=filters.start_date,
            end=filters.end_date,
            source_account_name=filters.source_account_name,
            destination_account_name=filters.destination_account_name,
            text=filters.text,
        )

    async def get_transfer(self, transfer_id: int) -> Transfer | None:
        return await self.transfers.get(transfer_id)

    async def require_transfer(self, transfer_id: int) -> Transfer:
        transfer = await self.transfers.get(transfer_id)
        if transfer is None:
            raise NotFoundError(f"Transfer {transfer_id} not found")
        return transfer

    async def _transfer_accounts(
        self,
        source_name: str,
        destination_name: str,
    ) -> tuple[Account, Account]:
        if source_name.strip().lower() == destination_name.strip().lower():
            raise SameAccountTransferError(
                f"Cannot transfer from '{source_name.strip()}' to the same account"
            )
        source = await self._require_account(source_name, "source_account")
        destination = await self._require_account(destination_name, "destination_account")
        return source, destination

    def _destination_leg(
        self,
        source: Account,
        destination: Account,
        destination_amount: Decimal | None,
        destination_currency_code: str | None,
    ) -> tuple[Decimal | None, str | None]:
        """Destination amount and currency stored on a transfer.

        Same-currency transfers credit the destination with the transferred
        amount and store neither field.
        """
        if destination_currency_code is not None:
            requested = normalize_currency(destination_currency_code)
            if requested != destination.currency_code:
                raise CurrencyMismatchError(
                    f"Destination currency {requested} does not match account "
                    f"'{destination.name}' ({destination.currency_code})"
                )

        if source.currency_code == destination.currency_code:
            return None, None

        if not self.allow_cross_currency_transfers:
            raise CurrencyMismatchError(
                f"Cannot transfer between accounts with different currencies: "
                f"'{source.name}' ({source.currency_code}) and "
                f"'{destination.name}' ({destination.currency_code})"
            )
        if destination_amount is None:
            raise CurrencyMismatchError(
                f"A transfer into '{destination.name}' needs the amount credited "
                f"in {destination.currency_code}"
            )
        return self._validated_amount(destination_amount), destination.currency_code

    async def add_transfer(self, data: TransferCreate) -> Transfer:
        """Move money from one account to another.

        Raises:
            SameAccountTransferError: If source and destination are one account
            ReferenceNotFoundError: If either account does not exist
                (``field`` is ``source_account`` or ``destination_account``)
            InvalidAmountError: If the amount is negative
            CurrencyMismatchError: If the currency does not match the source
                account, or the accounts' currencies differ and cross-currency
                transfers are not enabled
        """
        source, destination = await self._transfer_accounts(
            data.source_account_name, data.destination_account_name
        )
        amount = self._validated_amount(data.amount)
        currency = self._currency_for(source, data.currency_code)
        destination_amount, destination_currency = self._destination_leg(
            source, destination, data.destination_amount, data.destination_currency_code
        )

        values: dict[str, Any] = {
            "source_account_name": source.name,
            "destination_account_name": destination.name,
            "amount": amount,
            "currency_code": currency,
            "date": data.date,
            "comment": data.comment,
            "destination_amount": destination_amount,
            "destination_currency_code": destination_currency,
        }
        values.update(await self._snapshot_fields(amount, currency, data.date))
        credited = destination_amount if destination_amount is not None else amount

        async with transactional(self.db):
            await self._apply_deltas([(source, -amount), (destination, credited)])
            transfer = await self.transfers.create(obj_in=values)

        logger.info(
            f"Added transfer {transfer.id}: {amount} {currency} "
            f"from '{source.name}' to '{destination.name}'"
        )
        self._publish(TRANSFERS, ACCOUNTS)
        return transfer

    async def update_transfer(self, transfer_id: int, data: TransferUpdate) -> Transfer:
        """Edit a transfer, reverting the old balance effects and applying the new ones.

        Stored currencies carry over when no new ones are sent, so they must
        still match the accounts the transfer ends up between.

        Raises:
            CurrencyMismatchError: If a carried or sent currency differs from
                its account's
        """
        transfer = await self.require_transfer(transfer_id)
        changes = data.model_dump(exclude_unset=True)

        old_source = await self._require_account(transfer.source_account_name, "source_account")
        old_destination = await self._require_account(
            transfer.destination_account_name, "destination_account"
        )
        source, destination = await self._transfer_accounts(
            changes.get("source_account_name") or transfer.source_account_name,
            changes.get("destination_account_name") or transfer.destination_account_name,
        )
        amount = (
            self._validated_amount(changes["amount"])
            if changes.get("amount") is not None
            else transfer.amount
        )
        currency = self._currency_for(
            source, changes.get("currency_code") or transfer.currency_code
        )
        # A kept destination amount is denominated in the stored destination currency
        carried_destination_currency = None
        if (
            "destination_amount" not in changes
            and source.currency_code != destination.currency_code
        ):
            carried_destination_currency = transfer.destination_currency_code
        destination_amount, destination_currency = self._destination_leg(
            source,
            destination,
            changes.get("destination_amount", transfer.destination_amount),
            changes.get("destination_currency_code") or carried_destination_currency,
        )
        on = changes.get("date") or transfer.date

        values: dict[str, Any] = {
            "source_account_name": source.name,
            "destination_account_name": destination.name,
            "amount": amount,
            "currency_code": currency,
            "date": on,
            "destination_amount": destination_amount,
            "destination_currency_code": destination_currency,
        }
        if "comment" in changes:
            values["comment"] = changes["comment"]
        if (amount, currency, on) != (transfer.amount, transfer.currency_code, transfer.date):
            values.update(await self._snapshot_fields(amount, currency, on))
        credited = destination_amount if destination_amount is not None else amount

        async with transactional(self.db):
            await self._apply_deltas(
                [
                    (old_source, transfer.amount),
                    (old_destination, -transfer.credited_amount),
                    (source, -amount),
                    (destination, credited),
                ]
            )
            transfer = await self.transfers.update(db_obj=transfer, obj_in=values)

        logger.info(f"Updated transfer {transfer.id}")
        self._publish(TRANSFERS, ACCOUNTS)
        return transfer

    async def delete_transfer(self, transfer_id: int) -> None:
        """Delete a transfer and reverse both balance effects."""
        transfer = await self.require_transfer(transfer_id)
        source = await self._require_account(transfer.source_account_name, "source_account")
        destination = await self._require_account(
            transfer.destination_account_name, "destination_account"
        )
        amount = transfer.amount
        credited = transfer.credited_amount

        async with transactional(self.db):
            await self.transfers.remove(transfer)
            await self._apply_deltas([(source, amount), (destination, -credited)])

        logger.info(f"Deleted transfer {transfer_id}")
        self._publish(TRANSFERS, ACCOUNTS)
