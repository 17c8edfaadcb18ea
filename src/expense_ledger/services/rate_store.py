"""Pivot-relative exchange rate storage and lookup.

Only pivot legs are persisted: one row says how many units of a quote
currency one pivot unit (EUR by default) buys on a given day. Every other
pair is derived from two legs:

    rate(A, A) = 1
    rate(P, X) = stored leg for X
    rate(X, P) = 1 / rate(P, X)
    rate(A, B) = rate(P, B) / rate(P, A)

Lookups use the most recent leg dated on or before the requested day and
never look forward, so a historical valuation cannot use a rate that was
published later. Both legs of a cross rate are resolved against the same
requested date.
"""

import logging
from collections.abc import Mapping
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from expense_ledger.core.config import settings
from expense_ledger.core.exceptions import (
    ConversionUnavailableError,
    InvalidAmountError,
    ValidationError,
)
from expense_ledger.core.money import as_decimal, cross_rate, normalize_currency, to_rate
from expense_ledger.db.session import transactional
from expense_ledger.models.exchange_rate import ExchangeRate
from expense_ledger.repositories.exchange_rate import ExchangeRateRepository

logger = logging.getLogger(__name__)

ONE = Decimal("1")


class RateStore:
    """Read and write pivot legs, and derive any pair from them.

    Write methods commit their own unit of work.

    Example:
        >>> store = RateStore(db)
        >>> await store.set_rate("USD", date(2024, 3, 1), Decimal("1.0850"))
        >>> await store.get_rate_on_or_before("USD", "EUR", date(2024, 3, 4))
        Decimal('0.9216589862')
    """

    def __init__(self, db: AsyncSession, *, pivot_currency: str | None = None):
        self.db = db
        self.pivot = normalize_currency(pivot_currency or settings.PIVOT_CURRENCY)
        self.repo = ExchangeRateRepository(ExchangeRate, db)

    def _validated_leg(
        self,
        quote: str,
        pivot_to_quote: Decimal | int | float | str,
    ) -> tuple[str, Decimal]:
        quote = normalize_currency(quote)
        if quote == self.pivot:
            raise ValidationError(f"Cannot store a rate from the pivot {self.pivot} to itself")
        rate = as_decimal(pivot_to_quote)
        if rate <= 0:
            raise InvalidAmountError(f"Exchange rate must be positive, got {rate}")
        return quote, to_rate(rate)

    async def set_rate(
        self,
        quote: str,
        on: date,
        pivot_to_quote: Decimal | int | float | str,
    ) -> ExchangeRate:
        """Store (or replace) the pivot leg for ``quote`` on ``on``.

        Args:
            quote: Currency the pivot is quoted in
            on: Rate date
            pivot_to_quote: Units of ``quote`` per one pivot unit

        Returns:
            The stored row

        Raises:
            InvalidAmountError: If the rate is not positive
            ValidationError: If ``quote`` is the pivot currency
        """
        quote, rate = self._validated_leg(quote, pivot_to_quote)
        async with transactional(self.db):
            row = await self.repo.upsert(
                pivot_currency_code=self.pivot,
                quote_currency_code=quote,
                on=on,
                rate=rate,
            )
        logger.info(f"Stored rate 1 {self.pivot} = {rate} {quote} on {on}")
        return row

    async def set_rates(self, on: date, rates: Mapping[str, Decimal]) -> int:
        """Store several pivot legs for one day in a single unit of work.

        Entries for the pivot currency itself are ignored.

        Args:
            on: Rate date
            rates: Mapping of quote currency to pivot-to-quote rate

        Returns:
            Number of legs stored

        Raises:
            InvalidAmountError: If any rate is not positive (nothing is stored)
        """
        legs = [
            self._validated_leg(quote, rate)
            for quote, rate in rates.items()
            if normalize_currency(quote) != self.pivot
        ]
        async with transactional(self.db):
            for quote, rate in legs:
                await self.repo.upsert(
                    pivot_currency_code=self.pivot,
                    quote_currency_code=quote,
                    on=on,
                    rate=rate,
                )
        logger.info(f"Stored {len(legs)} {self.pivot} rates for {on}")
        return len(legs)

    async def set_pair_rate(
        self,
        base: str,
        quote: str,
        on: date,
        rate: Decimal | int | float | str,
    ) -> ExchangeRate:
        """Store a rate given for an arbitrary pair as a pivot leg.

        ``rate`` is units of ``quote`` per one ``base``. When neither side is
        the pivot, the missing leg is derived from the other side's leg as of
        ``on``; the quote leg is preferred when both are known.

        Raises:
            InvalidAmountError: If the rate is not positive
            ValidationError: If base and quote are the same currency
            ConversionUnavailableError: If neither currency has a known leg
        """
        base = normalize_currency(base)
        quote = normalize_currency(quote)
        value = as_decimal(rate)
        if value <= 0:
            raise InvalidAmountError(f"Exchange rate must be positive, got {value}")
        if base == quote:
            raise ValidationError(f"Cannot set a rate from {base} to itself")

        if base == self.pivot:
            return await self.set_rate(quote, on, value)
        if quote == self.pivot:
            return await self.set_rate(base, on, ONE / value)

        pivot_to_quote = await self.get_pivot_rate_on_or_before(quote, on)
        if pivot_to_quote is not None:
            return await self.set_rate(base, on, pivot_to_quote / value)

        pivot_to_base = await self.get_pivot_rate_on_or_before(base, on)
        if pivot_to_base is not None:
            return await self.set_rate(quote, on, pivot_to_base * value)

        raise ConversionUnavailableError(
            f"Cannot store {base}/{quote}: no {self.pivot} rate known for "
            f"either currency on or before {on}"
        )

    async def get_pivot_rate_on_or_before(self, currency: str, on: date) -> Decimal | None:
        """Most recent pivot leg for ``currency`` dated on or before ``on``.

        Returns:
            The leg, ``1`` for the pivot itself, or None when nothing is stored
        """
        currency = normalize_currency(currency)
        if currency == self.pivot:
            return ONE
        row = await self.repo.get_on_or_before(currency, on)
        return row.rate if row is not None else None

    async def get_rate_on_or_before(self, base: str, quote: str, on: date) -> Decimal | None:
        """Derived rate from ``base`` to ``quote`` as of ``on``.

        Returns:
            Units of ``quote`` per one ``base``, or None when either leg is
            missing on or before ``on``
        """
        base = normalize_currency(base)
        quote = normalize_currency(quote)
        if base == quote:
            return ONE

        pivot_to_base = await self.get_pivot_rate_on_or_before(base, on)
        if pivot_to_base is None:
            return None
        pivot_to_quote = await self.get_pivot_rate_on_or_before(quote, on)
        if pivot_to_quote is None:
            return None
        return cross_rate(pivot_to_base, pivot_to_quote)

    async def has_rate(self, base: str, quote: str, on: date, *, exact: bool = False) -> bool:
        """Whether a rate from ``base`` to ``quote`` can be derived.

        Args:
            base: Source currency
            quote: Target currency
            on: Valuation date
            exact: Require legs stored for exactly ``on`` instead of on or
                before it (used to decide whether to fetch that day)

        Returns:
            True if every needed leg is available
        """
        base = normalize_currency(base)
        quote = normalize_currency(quote)
        if base == quote:
            return True
        if not exact:
            return await self.get_rate_on_or_before(base, quote, on) is not None

        for currency in (base, quote):
            if currency == self.pivot:
                continue
            if await self.repo.get_exact(currency, on) is None:
                return False
        return True

    async def list_rates(
        self,
        quote: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[ExchangeRate]:
        """Stored legs filtered by currency and inclusive date range, newest first."""
        return await self.repo.list_range(
            quote_currency_code=normalize_currency(quote) if quote else None,
            start=start,
            end=end,
        )
