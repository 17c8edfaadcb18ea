"""Exchange rate repository for pivot-leg storage and lookups."""

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from expense_ledger.models.exchange_rate import ExchangeRate
from expense_ledger.repositories.base import BaseRepository


class ExchangeRateRepository(BaseRepository[ExchangeRate]):
    """Repository for ExchangeRate model.

    Rows are keyed by (quote currency, date); the pivot currency is implied by
    configuration and recorded on each row for reference.

    Example:
        >>> repo = ExchangeRateRepository(ExchangeRate, db)
        >>> leg = await repo.get_on_or_before("USD", date(2024, 3, 1))
    """

    async def get_exact(self, quote_currency_code: str, on: date) -> ExchangeRate | None:
        """Get the stored leg for a currency on exactly ``on``.

        Args:
            quote_currency_code: Upper-case ISO 4217 code
            on: Rate date

        Returns:
            The stored row if present, None otherwise
        """
        result = await self.db.execute(
            select(ExchangeRate).where(
                ExchangeRate.quote_currency_code == quote_currency_code,
                ExchangeRate.date == on,
            )
        )
        return result.scalar_one_or_none()

    async def get_on_or_before(self, quote_currency_code: str, on: date) -> ExchangeRate | None:
        """Get the most recent stored leg dated on or before ``on``.

        Never looks at later dates, so a historical valuation cannot pick up
        a rate that did not exist yet.

        Args:
            quote_currency_code: Upper-case ISO 4217 code
            on: Latest acceptable rate date

        Returns:
            The newest matching row, or None when no earlier rate exists
        """
        result = await self.db.execute(
            select(ExchangeRate)
            .where(
                ExchangeRate.quote_currency_code == quote_currency_code,
                ExchangeRate.date <= on,
            )
            .order_by(ExchangeRate.date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        *,
        pivot_currency_code: str,
        quote_currency_code: str,
        on: date,
        rate: Decimal,
    ) -> ExchangeRate:
        """Insert a leg or replace the rate of the existing one.

        Returns:
            The stored row (not yet committed)
        """
        existing = await self.get_exact(quote_currency_code, on)
        if existing is not None:
            existing.rate = rate
            existing.pivot_currency_code = pivot_currency_code
            await self.db.flush()
            return existing

        return await self.create(
            obj_in={
                "pivot_currency_code": pivot_currency_code,
                "quote_currency_code": quote_currency_code,
                "date": on,
                "rate": rate,
            }
        )

    async def list_range(
        self,
        *,
        quote_currency_code: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[ExchangeRate]:
        """Get stored legs filtered by currency and date range, newest first.

        Args:
            quote_currency_code: Only this currency (default: all)
            start: Earliest date, inclusive
            end: Latest date, inclusive

        Returns:
            Matching rows ordered by date descending, then currency
        """
        query = select(ExchangeRate)
        if quote_currency_code is not None:
            query = query.where(ExchangeRate.quote_currency_code == quote_currency_code)
        if start is not None:
            query = query.where(ExchangeRate.date >= start)
        if end is not None:
            query = query.where(ExchangeRate.date <= end)
        query = query.order_by(ExchangeRate.date.desc(), ExchangeRate.quote_currency_code)

        result = await self.db.execute(query)
        return list(result.scalars().all())
