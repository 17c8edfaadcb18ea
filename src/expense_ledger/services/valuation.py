"""Valuation engine: currency conversion and fail-closed totals.

Converts ledger records into a target currency using the valuation
snapshot captured when each record was created, falling back to stored
rates. Totals are all-or-nothing: if a single record cannot be converted
the total is ``None``, never a partial sum.

Conversion rule for one record into ``target`` (first match wins):

1. The record is already in ``target``: its amount.
2. It has a snapshot taken in ``target``: the snapshot amount.
3. It has a snapshot in another currency: the snapshot amount rebased with
   the rate from that currency to ``target`` on the record date.
4. Otherwise: the amount converted directly from the record currency at the
   rate on the record date.

All rate lookups are on-or-before the record date.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol

from expense_ledger.core.constants import MoneyConstants, RateConstants
from expense_ledger.core.events import RATES, TRANSACTIONS, TRANSFERS, ChangeFeed
from expense_ledger.core.exceptions import ConversionUnavailableError
from expense_ledger.core.money import normalize_currency, to_money
from expense_ledger.models.account import Account
from expense_ledger.services.rate_store import RateStore

logger = logging.getLogger(__name__)


class Valuable(Protocol):
    """Anything with an amount, currency, date and optional snapshot.

    Transactions and transfers both satisfy it.
    """

    amount: Decimal
    currency_code: str
    date: date
    original_default_currency_code: str | None
    amount_in_original_default: Decimal | None


@dataclass(frozen=True)
class ValuationSnapshot:
    """Default-currency valuation taken when a record is created."""

    currency_code: str
    rate: Decimal
    amount: Decimal

    def apply_to(self, record: Valuable) -> None:
        record.original_default_currency_code = self.currency_code
        record.exchange_rate_to_original_default = self.rate  # type: ignore[attr-defined]
        record.amount_in_original_default = self.amount


class ValuationEngine:
    """Currency-correct conversions and totals over ledger records.

    Args:
        store: Rate store used for every rate lookup
        feed: Change feed; only needed for :meth:`watch_total`

    Example:
        >>> engine = ValuationEngine(RateStore(db))
        >>> total = await engine.calculate_total(transactions, "EUR")
        >>> if total is None:
        ...     print("Some exchange rates are missing")
    """

    def __init__(self, store: RateStore, feed: ChangeFeed | None = None):
        self.store = store
        self.feed = feed

    async def rate(self, base: str, quote: str, on: date) -> Decimal | None:
        """Rate from ``base`` to ``quote`` as of ``on``, or None if undefined."""
        return await self.store.get_rate_on_or_before(base, quote, on)

    async def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        on: date,
    ) -> Decimal:
        """Convert an amount, rounded to cents.

        Raises:
            ConversionUnavailableError: If no rate can be derived for ``on``
        """
        rate = await self.rate(from_currency, to_currency, on)
        if rate is None:
            raise ConversionUnavailableError(
                f"No exchange rate from {from_currency} to {to_currency} on or before {on}"
            )
        return to_money(amount * rate)

    async def amount_in(self, item: Valuable, target: str) -> Decimal | None:
        """Value of one record in ``target``, or None when a rate is missing."""
        target = normalize_currency(target)

        if item.currency_code == target:
            return item.amount

        snapshot_currency = item.original_default_currency_code
        snapshot_amount = item.amount_in_original_default
        if snapshot_amount is not None and snapshot_currency == target:
            return snapshot_amount

        if snapshot_amount is not None and snapshot_currency is not None:
            rebase = await self.rate(snapshot_currency, target, item.date)
            return snapshot_amount * rebase if rebase is not None else None

        rate = await self.rate(item.currency_code, target, item.date)
        return item.amount * rate if rate is not None else None

    async def has_all_rates_for_totals(self, items: Iterable[Valuable], target: str) -> bool:
        """Whether :meth:`calculate_total` would return a number for ``items``."""
        target = normalize_currency(target)
        for item in items:
            if item.currency_code == target:
                continue
            snapshot_currency = item.original_default_currency_code
            if item.amount_in_original_default is not None and snapshot_currency is not None:
                if snapshot_currency == target:
                    continue
                if not await self.store.has_rate(snapshot_currency, target, item.date):
                    return False
            elif not await self.store.has_rate(item.currency_code, target, item.date):
                return False
        return True

    async def calculate_total(self, items: Iterable[Valuable], target: str) -> Decimal | None:
        """Exact sum of ``items`` in ``target``.

        Items may mix transactions and transfers. An empty collection sums to
        zero.

        Returns:
            The unrounded decimal sum, or None if any item cannot be converted
        """
        total = MoneyConstants.ZERO
        for item in items:
            value = await self.amount_in(item, target)
            if value is None:
                logger.debug(
                    f"Total in {target} unavailable: "
                    f"no rate for {item.currency_code} on {item.date}"
                )
                return None
            total += value
        return total

    async def take_snapshot(
        self,
        amount: Decimal,
        currency: str,
        on: date,
        default_currency: str,
    ) -> ValuationSnapshot | None:
        """Valuation of a new record in the current default currency.

        Returns:
            The snapshot, or None when no rate is known yet (the record can
            be backfilled later)
        """
        default_currency = normalize_currency(default_currency)
        rate = await self.rate(currency, default_currency, on)
        if rate is None:
            return None
        return ValuationSnapshot(
            currency_code=default_currency,
            rate=rate,
            amount=to_money(amount * rate),
        )

    async def account_conversion_rate(
        self,
        currency: str,
        target: str,
        on: date | None = None,
    ) -> Decimal | None:
        """Rate for valuing an account balance in ``target`` today (or ``on``)."""
        return await self.rate(currency, target, on or date.today())

    async def calculate_balances_total(
        self,
        accounts: Sequence[Account],
        target: str,
        on: date | None = None,
    ) -> Decimal | None:
        """Net worth of ``accounts`` in ``target``, or None if any rate is missing."""
        total = MoneyConstants.ZERO
        for account in accounts:
            rate = await self.account_conversion_rate(account.currency_code, target, on)
            if rate is None:
                return None
            total += account.balance * rate
        return to_money(total)

    async def latest_rate_display(
        self,
        currency: str,
        default_currency: str,
        on: date | None = None,
    ) -> str | None:
        """Human-readable latest rate, e.g. ``"1 USD = 0.9091 EUR"``."""
        currency = normalize_currency(currency)
        default_currency = normalize_currency(default_currency)
        rate = await self.account_conversion_rate(currency, default_currency, on)
        if rate is None:
            return None
        shown = rate.quantize(RateConstants.DISPLAY_QUANTUM, rounding=RateConstants.ROUNDING)
        return f"1 {currency} = {shown} {default_currency}"

    async def watch_total(
        self,
        load_items: Callable[[], Awaitable[Iterable[Valuable]]],
        target: str,
    ) -> AsyncIterator[Decimal | None]:
        """Yield the total now and after every change to records or rates."""
        if self.feed is None:
            raise RuntimeError("watch_total requires a change feed")
        async for items in self.feed.watch([TRANSACTIONS, TRANSFERS, RATES], load_items):
            yield await self.calculate_total(items, target)
