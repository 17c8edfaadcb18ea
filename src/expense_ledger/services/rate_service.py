"""Rate service: fills the rate store from providers and manual input.

Sits between the network gateway and the rate store:
- ``sync_rates`` fetches one day of pivot rates and stores them, skipping
  currencies already stored for that day. Work for the same day is
  serialized so concurrent callers do not fetch twice.
- ``ensure_pivot`` guards a default-currency change: the new currency must
  have a pivot leg before totals can be expressed in it.
- Manual entry stores a user-supplied pivot leg or pair rate without any
  network call.
- ``backfill_snapshots`` gives records created without a valuation snapshot
  one, fetching the missing days in per-day batches first.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from expense_ledger.core.config import settings
from expense_ledger.core.events import RATES, TRANSACTIONS, TRANSFERS, ChangeFeed
from expense_ledger.core.exceptions import ExternalAPIError
from expense_ledger.core.money import normalize_currency
from expense_ledger.db.session import transactional
from expense_ledger.models.exchange_rate import ExchangeRate
from expense_ledger.models.transaction import Transaction
from expense_ledger.models.transfer import Transfer
from expense_ledger.repositories.transaction import TransactionRepository
from expense_ledger.repositories.transfer import TransferRepository
from expense_ledger.services.currency_service import CurrencyService
from expense_ledger.services.rate_providers import RateProviderGateway
from expense_ledger.services.rate_store import RateStore
from expense_ledger.services.valuation import ValuationEngine

logger = logging.getLogger(__name__)


class RateService:
    """Populate and maintain stored exchange rates.

    Args:
        db: Database session
        gateway: Network providers; when None only manual entry is possible
        feed: Change feed notified after rates or snapshots change
    """

    def __init__(
        self,
        db: AsyncSession,
        gateway: RateProviderGateway | None = None,
        feed: ChangeFeed | None = None,
    ):
        self.db = db
        self.gateway = gateway
        self.feed = feed
        self.store = RateStore(db)
        self.valuation = ValuationEngine(self.store, feed)
        self.currency_registry = CurrencyService(db)

    @property
    def pivot(self) -> str:
        return self.store.pivot

    def _publish(self, *topics: str, **payload: object) -> None:
        if self.feed is not None:
            self.feed.publish_many(topics, **payload)

    async def sync_rates(self, on: date, currencies: Iterable[str] | None = None) -> int:
        """Fetch and store the pivot rates for one day.

        Args:
            on: Rate date
            currencies: Only these currencies (default: every published one).
                Currencies already stored for exactly ``on`` are not fetched.

        Returns:
            Number of rates stored

        Raises:
            ExternalAPIError: If no provider is configured or all providers failed
        """
        if self.gateway is None:
            raise ExternalAPIError("No exchange rate provider is configured")

        wanted = None
        if currencies is not None:
            wanted = {normalize_currency(c) for c in currencies} - {self.pivot}
            if not wanted:
                return 0

        async with self.gateway.day_lock(on):
            if wanted is not None:
                missing = set()
                for currency in wanted:
                    if not await self.store.has_rate(self.pivot, currency, on, exact=True):
                        missing.add(currency)
                wanted = missing
                if not wanted:
                    logger.debug(f"Rates for {on} already stored")
                    return 0

            rates = await self.gateway.fetch_daily_rates(on, wanted)
            stored = await self.store.set_rates(on, rates)

        logger.info(f"Synced {stored} exchange rates for {on}")
        self._publish(RATES, date=on.isoformat())
        return stored

    async def ensure_pivot(self, currency: str, on: date | None = None) -> bool:
        """Make sure ``currency`` has a pivot leg on or before ``on`` (default today).

        Tries the providers when nothing is stored. Provider failures are
        reported as False rather than raised, so a caller can ask the user
        for a manual rate instead.

        Returns:
            True if a leg is available afterwards
        """
        currency = normalize_currency(currency)
        on = on or date.today()
        if currency == self.pivot:
            return True
        if await self.store.get_pivot_rate_on_or_before(currency, on) is not None:
            return True

        try:
            await self.sync_rates(on, [currency])
        except ExternalAPIError as e:
            logger.warning(
                f"Could not fetch a {self.pivot} rate for {currency} on {on}: {e.detail}"
            )
            return False
        return await self.store.get_pivot_rate_on_or_before(currency, on) is not None

    async def set_manual_pivot(
        self,
        currency: str,
        rate: Decimal,
        on: date | None = None,
    ) -> ExchangeRate:
        """Store a user-supplied pivot leg (1 pivot = ``rate`` currency).

        Raises:
            ReferenceNotFoundError: If the currency is not registered
        """
        on = on or date.today()
        currency = await self.currency_registry.require_registered(currency)
        row = await self.store.set_rate(currency, on, rate)
        logger.info(
            f"Manual rate set: 1 {self.pivot} = {row.rate} {row.quote_currency_code} on {on}"
        )
        self._publish(RATES, date=on.isoformat())
        return row

    async def set_manual_rate_override(
        self,
        currency: str,
        rate_to_default: Decimal,
        default_currency: str | None = None,
        on: date | None = None,
    ) -> ExchangeRate:
        """Store a user-supplied rate from ``currency`` to the default currency.

        The rate is normalized to a pivot leg using the default currency's
        own leg when the default is not the pivot.

        Raises:
            ConversionUnavailableError: If neither currency has a pivot leg
            ReferenceNotFoundError: If either currency is not registered
        """
        on = on or date.today()
        currency = await self.currency_registry.require_registered(currency)
        default_currency = await self.currency_registry.require_registered(
            default_currency or settings.DEFAULT_CURRENCY, field="default_currency"
        )
        row = await self.store.set_pair_rate(currency, default_currency, on, rate_to_default)
        logger.info(
            f"Manual override: 1 {currency.upper()} = {rate_to_default} "
            f"{default_currency.upper()} on {on}"
        )
        self._publish(RATES, date=on.isoformat())
        return row

    async def backfill_snapshots(self, default_currency: str | None = None) -> int:
        """Attach valuation snapshots to records that were saved without one.

        Days needing rates are fetched first, one batch per day. Provider
        failures leave the affected records untouched.

        Args:
            default_currency: Currency to value records in (default: settings)

        Returns:
            Number of records still lacking a snapshot
        """
        default_currency = normalize_currency(default_currency or settings.DEFAULT_CURRENCY)
        transactions = await TransactionRepository(Transaction, self.db).list_without_snapshot()
        transfers = await TransferRepository(Transfer, self.db).list_without_snapshot()
        records: list[Transaction | Transfer] = [*transactions, *transfers]
        if not records:
            return 0

        needs_by_day: dict[date, set[str]] = defaultdict(set)
        for record in records:
            if record.currency_code != default_currency:
                needs_by_day[record.date].update({record.currency_code, default_currency})

        if self.gateway is not None:
            for day, currencies in sorted(needs_by_day.items()):
                try:
                    await self.sync_rates(day, currencies)
                except ExternalAPIError as e:
                    logger.warning(f"Backfill could not fetch rates for {day}: {e.detail}")

        missing = 0
        updated = 0
        async with transactional(self.db):
            for record in records:
                snapshot = await self.valuation.take_snapshot(
                    record.amount, record.currency_code, record.date, default_currency
                )
                if snapshot is None:
                    missing += 1
                    continue
                snapshot.apply_to(record)
                updated += 1

        logger.info(f"Backfilled {updated} valuation snapshots, {missing} still missing rates")
        if updated:
            self._publish(TRANSACTIONS, TRANSFERS)
        return missing
