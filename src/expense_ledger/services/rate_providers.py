"""Network exchange rate providers and the fallback gateway.

Every provider answers one question: what were the pivot (EUR) rates on a
given day? Providers are tried in configured order and the first one that
returns usable data wins.

Providers:
- Frankfurter (https://www.frankfurter.app): ECB reference rates,
  ``GET /{YYYY-MM-DD}?base=EUR&symbols=USD,GBP``, body
  ``{"date": "...", "rates": {"USD": 1.09}}``
- fawazahmed0 currency-api, served from the jsDelivr CDN or Cloudflare
  Pages: body ``{"date": "...", "eur": {"usd": 1.09}}`` with lower-case
  codes and many non-ISO entries (crypto, metals) that are filtered out

Failure handling:
- Any transport error, non-2xx status, malformed body or empty rate set
  raises ``RateProviderError``
- Statuses 403, 404, 422 and 429 mark the date as failed so a backfill does
  not hammer the provider again; only the most recent failed dates are kept
- The gateway raises ``ExternalAPIError`` only when every provider failed
"""

import asyncio
import logging
import weakref
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

import httpx

from expense_ledger.core.config import settings
from expense_ledger.core.constants import RateProviderConstants
from expense_ledger.core.exceptions import ExternalAPIError, RateProviderError
from expense_ledger.core.money import to_rate

logger = logging.getLogger(__name__)


class RateProvider(Protocol):
    """A source of pivot-relative daily rates."""

    name: str

    async def fetch_daily_rates(
        self,
        on: date,
        symbols: Iterable[str] | None = None,
    ) -> dict[str, Decimal]: ...


def _parse_rate(value: Any) -> Decimal | None:
    """Convert a JSON rate to a positive Decimal, or None if unusable."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        return None
    if not rate.is_finite() or rate <= 0:
        return None
    return to_rate(rate)


def _normalize_symbols(symbols: Iterable[str] | None, pivot: str) -> set[str] | None:
    if symbols is None:
        return None
    return {s.strip().upper() for s in symbols if s and s.strip().upper() != pivot}


def _remember(entries: OrderedDict, key: date, value: Any, limit: int) -> None:
    """Store ``key`` as the most recent entry, evicting the oldest beyond ``limit``."""
    entries[key] = value
    entries.move_to_end(key)
    while len(entries) > limit:
        entries.popitem(last=False)


class HttpRateProvider(ABC):
    """Shared HTTP plumbing for the JSON rate providers.

    Subclasses build the request URL and pick the rates out of the body.
    A caller-owned ``httpx.AsyncClient`` may be injected (tests use one with
    a ``MockTransport``); otherwise a short-lived client is opened per fetch.
    """

    name = "http"

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        pivot_currency: str | None = None,
        failed_dates_limit: int | None = None,
    ):
        self._client = client
        self.timeout = timeout if timeout is not None else settings.RATE_FETCH_TIMEOUT
        self.pivot = (pivot_currency or settings.PIVOT_CURRENCY).upper()
        self.failed_dates_limit = failed_dates_limit or settings.RATE_FAILED_DATES_LIMIT
        self._failed_dates: OrderedDict[date, None] = OrderedDict()

    @property
    def failed_dates(self) -> frozenset[date]:
        """Dates this provider has given up on, most recent ones only."""
        return frozenset(self._failed_dates)

    @abstractmethod
    def _build_request(self, on: date, symbols: set[str] | None) -> tuple[str, dict[str, str]]:
        """URL and query parameters for one day of rates."""

    @abstractmethod
    def _extract_rates(self, payload: dict[str, Any]) -> dict[str, Any]:
        """The code-to-rate mapping inside a decoded response body."""

    async def _get(self, url: str, params: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, params=params or None)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, params=params or None)

    async def fetch_daily_rates(
        self,
        on: date,
        symbols: Iterable[str] | None = None,
    ) -> dict[str, Decimal]:
        """Fetch pivot-to-currency rates published for ``on``.

        Args:
            on: Rate date
            symbols: Currencies to return (default: everything published)

        Returns:
            Mapping of upper-case currency code to positive rate

        Raises:
            RateProviderError: If the provider cannot deliver any usable rate
        """
        if on in self._failed_dates:
            raise RateProviderError(f"{self.name} previously refused rates for {on}")

        wanted = _normalize_symbols(symbols, self.pivot)
        if wanted is not None and not wanted:
            return {}

        url, params = self._build_request(on, wanted)
        try:
            response = await self._get(url, params)
        except httpx.HTTPError as e:
            raise RateProviderError(f"{self.name} request failed: {type(e).__name__}: {e}") from e

        if response.status_code in RateProviderConstants.PERMANENT_FAILURE_STATUSES:
            _remember(self._failed_dates, on, None, self.failed_dates_limit)
            logger.info(f"{self.name}: marking {on} as failed (HTTP {response.status_code})")
            raise RateProviderError(f"{self.name} returned HTTP {response.status_code} for {on}")
        if response.is_error:
            raise RateProviderError(f"{self.name} returned HTTP {response.status_code} for {on}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RateProviderError(f"{self.name} returned invalid JSON for {on}") from e
        if not isinstance(payload, dict):
            raise RateProviderError(f"{self.name} returned an unexpected body for {on}")

        rates: dict[str, Decimal] = {}
        for code, value in self._extract_rates(payload).items():
            code = str(code).upper()
            if len(code) != 3 or not code.isalpha() or code == self.pivot:
                continue
            if wanted is not None and code not in wanted:
                continue
            rate = _parse_rate(value)
            if rate is not None:
                rates[code] = rate

        if not rates:
            raise RateProviderError(f"{self.name} returned no usable rates for {on}")

        logger.debug(f"{self.name}: fetched {len(rates)} rates for {on}")
        return rates


class FrankfurterRateProvider(HttpRateProvider):
    """Rates from the Frankfurter API (European Central Bank reference rates)."""

    name = "frankfurter"

    def __init__(self, *, base_url: str | None = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.base_url = (base_url or settings.FRANKFURTER_BASE_URL).rstrip("/")

    def _build_request(self, on: date, symbols: set[str] | None) -> tuple[str, dict[str, str]]:
        params = {"base": self.pivot}
        if symbols:
            params["symbols"] = ",".join(sorted(symbols))
        return f"{self.base_url}/{on.isoformat()}", params

    def _extract_rates(self, payload: dict[str, Any]) -> dict[str, Any]:
        rates = payload.get("rates")
        if not isinstance(rates, dict):
            raise RateProviderError(f"{self.name} response missing rates")
        return rates


class FawazAhmedRateProvider(HttpRateProvider):
    """Rates from the fawazahmed0 currency-api.

    ``strategy`` selects the mirror: ``"cdn"`` (jsDelivr) or ``"pages"``
    (Cloudflare Pages). Both serve the same files.
    """

    URL_TEMPLATES = {
        "cdn": RateProviderConstants.FAWAZAHMED_CDN_URL,
        "pages": RateProviderConstants.FAWAZAHMED_PAGES_URL,
    }

    def __init__(self, *, strategy: str = "cdn", **kwargs: Any):
        if strategy not in self.URL_TEMPLATES:
            raise ValueError(f"Unknown currency-api strategy: {strategy}")
        super().__init__(**kwargs)
        self.strategy = strategy
        self.name = f"fawazahmed_{strategy}"

    def _build_request(self, on: date, symbols: set[str] | None) -> tuple[str, dict[str, str]]:
        url = self.URL_TEMPLATES[self.strategy].format(date=on.isoformat(), base=self.pivot.lower())
        return url, {}

    def _extract_rates(self, payload: dict[str, Any]) -> dict[str, Any]:
        rates = payload.get(self.pivot.lower())
        if not isinstance(rates, dict):
            raise RateProviderError(f"{self.name} response missing '{self.pivot.lower()}' rates")
        return rates


class RateProviderGateway:
    """Try providers in order and return the first successful day of rates.

    Full-day fetches (no ``symbols`` filter) are cached in memory per date,
    and later symbol-filtered requests for that day are answered from the
    cache when it covers them. Only the ``cache_days`` most recently used
    days are kept.

    Day locks are held weakly: a lock lives while some caller holds or waits
    on it and is dropped afterwards.

    Example:
        >>> gateway = RateProviderGateway([FrankfurterRateProvider(), FawazAhmedRateProvider()])
        >>> rates = await gateway.fetch_daily_rates(date(2024, 3, 1), {"USD"})
        >>> rates["USD"]
        Decimal('1.0830000000')
    """

    def __init__(
        self,
        providers: Sequence[RateProvider],
        *,
        pivot_currency: str | None = None,
        cache_days: int | None = None,
    ):
        if not providers:
            raise ValueError("At least one rate provider is required")
        self.providers = list(providers)
        self.pivot = (pivot_currency or settings.PIVOT_CURRENCY).upper()
        self.cache_days = cache_days or settings.RATE_CACHE_DAYS
        self._cache: OrderedDict[date, dict[str, Decimal]] = OrderedDict()
        self._day_locks: weakref.WeakValueDictionary[date, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def cached_days(self) -> list[date]:
        """Days currently cached, least recently used first."""
        return list(self._cache)

    @property
    def locked_days(self) -> list[date]:
        """Days with a live lock."""
        return list(self._day_locks.keys())

    def clear_cache(self) -> None:
        self._cache.clear()

    def day_lock(self, on: date) -> asyncio.Lock:
        """Lock serializing fetch-and-store work for one rate date.

        The caller must keep a reference for as long as it uses the lock,
        which ``async with gateway.day_lock(on):`` does.
        """
        lock = self._day_locks.get(on)
        if lock is None:
            lock = asyncio.Lock()
            self._day_locks[on] = lock
        return lock

    async def fetch_daily_rates(
        self,
        on: date,
        symbols: Iterable[str] | None = None,
    ) -> dict[str, Decimal]:
        """Fetch pivot rates for ``on`` from the first provider that succeeds.

        Raises:
            ExternalAPIError: If every provider failed
        """
        wanted = _normalize_symbols(symbols, self.pivot)
        if wanted is not None and not wanted:
            return {}

        cached = self._cache.get(on)
        if cached is not None and (wanted is None or wanted <= cached.keys()):
            self._cache.move_to_end(on)
            return dict(cached) if wanted is None else {c: cached[c] for c in wanted}

        failures: list[str] = []
        for provider in self.providers:
            try:
                rates = await provider.fetch_daily_rates(on, wanted)
            except RateProviderError as e:
                logger.warning(f"Rate provider {provider.name} failed for {on}: {e.detail}")
                failures.append(f"{provider.name}: {e.detail}")
                continue

            if failures:
                logger.info(f"Rates for {on} served by fallback provider {provider.name}")
            if wanted is None:
                _remember(self._cache, on, dict(rates), self.cache_days)
            return rates

        raise ExternalAPIError(
            f"No rate provider could supply rates for {on} ({'; '.join(failures)})"
        )


def build_gateway(
    provider_names: Sequence[str] | None = None,
    *,
    client: httpx.AsyncClient | None = None,
) -> RateProviderGateway:
    """Build the gateway from configured provider names.

    Args:
        provider_names: Ordered names from ``frankfurter``, ``fawazahmed_cdn``
            and ``fawazahmed_pages`` (default: ``settings.RATE_PROVIDERS``)
        client: Optional shared HTTP client passed to every provider

    Raises:
        ValueError: If a name is not a known provider
    """
    factories = {
        "frankfurter": lambda: FrankfurterRateProvider(client=client),
        "fawazahmed_cdn": lambda: FawazAhmedRateProvider(strategy="cdn", client=client),
        "fawazahmed_pages": lambda: FawazAhmedRateProvider(strategy="pages", client=client),
    }
    providers: list[RateProvider] = []
    for name in provider_names or settings.RATE_PROVIDERS:
        if name not in factories:
            raise ValueError(f"Unknown rate provider: {name}")
        providers.append(factories[name]())
    return RateProviderGateway(providers)
