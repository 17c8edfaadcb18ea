"""Tests for the network rate providers and the fallback gateway."""

import gc
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

import httpx
import pytest

from expense_ledger.core.exceptions import ExternalAPIError, RateProviderError
from expense_ledger.services.rate_providers import (
    FawazAhmedRateProvider,
    FrankfurterRateProvider,
    HttpRateProvider,
    RateProviderGateway,
    build_gateway,
)

DAY = date(2024, 3, 1)


class StubProvider:
    """Provider returning canned rates or failing, counting calls."""

    def __init__(self, name: str, rates: dict[str, Decimal] | None = None):
        self.name = name
        self.rates = rates
        self.calls = 0

    async def fetch_daily_rates(
        self, on: date, symbols: Iterable[str] | None = None
    ) -> dict[str, Decimal]:
        self.calls += 1
        if self.rates is None:
            raise RateProviderError(f"{self.name} is down")
        if symbols is None:
            return dict(self.rates)
        return {code: rate for code, rate in self.rates.items() if code in set(symbols)}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.unit
async def test_frankfurter_requests_pivot_and_symbols() -> None:
    """Test the Frankfurter request shape and response parsing."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"base": "EUR", "date": "2024-03-01", "rates": {"USD": 1.083, "GBP": 0.8551}}
        )

    async with _client(handler) as client:
        provider = FrankfurterRateProvider(client=client, base_url="https://rates.test/")
        rates = await provider.fetch_daily_rates(DAY, ["usd", "gbp", "eur"])

    assert rates == {"USD": Decimal("1.083"), "GBP": Decimal("0.8551")}
    request = seen[0]
    assert request.url.path == "/2024-03-01"
    assert request.url.params["base"] == "EUR"
    assert request.url.params["symbols"] == "GBP,USD"


@pytest.mark.unit
async def test_fawazahmed_filters_unusable_entries() -> None:
    """Test that non-ISO codes, the pivot and bad values are dropped."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert "2024-03-01" in str(request.url)
        assert request.url.path.endswith("/eur.json")
        return httpx.Response(
            200,
            json={
                "date": "2024-03-01",
                "eur": {"usd": 1.09, "gbp": "0.85", "eur": 1, "1inch": 3.2, "jpy": -5, "chf": None},
            },
        )

    async with _client(handler) as client:
        provider = FawazAhmedRateProvider(strategy="pages", client=client)
        rates = await provider.fetch_daily_rates(DAY)

    assert provider.name == "fawazahmed_pages"
    assert rates == {"USD": Decimal("1.09"), "GBP": Decimal("0.85")}


@pytest.mark.unit
def test_fawazahmed_rejects_unknown_strategy() -> None:
    """Test that only the known mirrors are accepted."""
    with pytest.raises(ValueError):
        FawazAhmedRateProvider(strategy="ftp")


@pytest.mark.unit
@pytest.mark.parametrize("status_code", [403, 404, 422, 429])
async def test_permanent_failures_mark_date(status_code: int) -> None:
    """Test that refusal statuses stop the provider from retrying that day."""
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(status_code)

    async with _client(handler) as client:
        provider = FrankfurterRateProvider(client=client)
        with pytest.raises(RateProviderError):
            await provider.fetch_daily_rates(DAY)
        with pytest.raises(RateProviderError):
            await provider.fetch_daily_rates(DAY)

    assert calls == 1
    assert provider.failed_dates == frozenset({DAY})


@pytest.mark.unit
async def test_transient_failures_are_retried() -> None:
    """Test that a server error does not mark the date as failed."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    async with _client(handler) as client:
        provider = FrankfurterRateProvider(client=client)
        with pytest.raises(RateProviderError):
            await provider.fetch_daily_rates(DAY)

    assert provider.failed_dates == frozenset()


@pytest.mark.unit
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>maintenance</html>"),
        httpx.Response(200, json=["not", "a", "dict"]),
        httpx.Response(200, json={"rates": {}}),
        httpx.Response(200, json={"date": "2024-03-01"}),
    ],
)
async def test_malformed_bodies_raise(response: httpx.Response) -> None:
    """Test that bodies without usable rates are provider errors."""
    async with _client(lambda request: response) as client:
        provider = FrankfurterRateProvider(client=client)
        with pytest.raises(RateProviderError):
            await provider.fetch_daily_rates(DAY)


@pytest.mark.unit
async def test_transport_errors_become_provider_errors() -> None:
    """Test that connection failures are reported as provider errors."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as client:
        provider = FrankfurterRateProvider(client=client)
        with pytest.raises(RateProviderError, match="ConnectError"):
            await provider.fetch_daily_rates(DAY)


@pytest.mark.unit
async def test_gateway_falls_back_to_next_provider(caplog) -> None:
    """Test that the first successful provider wins."""
    broken = StubProvider("primary")
    backup = StubProvider("backup", {"USD": Decimal("1.1")})
    gateway = RateProviderGateway([broken, backup])

    with caplog.at_level("WARNING"):
        rates = await gateway.fetch_daily_rates(DAY, ["USD"])

    assert rates == {"USD": Decimal("1.1")}
    assert broken.calls == 1
    assert "Rate provider primary failed" in caplog.text


@pytest.mark.unit
async def test_gateway_raises_when_all_providers_fail() -> None:
    """Test that total failure is an ExternalAPIError naming every provider."""
    gateway = RateProviderGateway([StubProvider("one"), StubProvider("two")])

    with pytest.raises(ExternalAPIError) as exc_info:
        await gateway.fetch_daily_rates(DAY)

    assert "one" in exc_info.value.detail
    assert "two" in exc_info.value.detail


@pytest.mark.unit
async def test_gateway_serves_filtered_requests_from_day_cache() -> None:
    """Test that a full-day fetch answers later symbol requests."""
    provider = StubProvider("only", {"USD": Decimal("1.1"), "GBP": Decimal("0.85")})
    gateway = RateProviderGateway([provider])

    await gateway.fetch_daily_rates(DAY)
    rates = await gateway.fetch_daily_rates(DAY, ["gbp"])

    assert rates == {"GBP": Decimal("0.85")}
    assert provider.calls == 1

    gateway.clear_cache()
    await gateway.fetch_daily_rates(DAY, ["GBP"])
    assert provider.calls == 2


@pytest.mark.unit
async def test_gateway_pivot_only_request_is_empty() -> None:
    """Test that asking only for the pivot needs no provider call."""
    provider = StubProvider("only", {"USD": Decimal("1.1")})
    gateway = RateProviderGateway([provider])

    assert await gateway.fetch_daily_rates(DAY, ["EUR"]) == {}
    assert provider.calls == 0


@pytest.mark.unit
def test_build_gateway_uses_configured_order() -> None:
    """Test provider construction by name."""
    gateway = build_gateway(["fawazahmed_cdn", "frankfurter"])

    assert [provider.name for provider in gateway.providers] == [
        "fawazahmed_cdn",
        "frankfurter",
    ]

    with pytest.raises(ValueError):
        build_gateway(["yahoo"])
    with pytest.raises(ValueError):
        RateProviderGateway([])


@pytest.mark.unit
def test_http_provider_hooks_are_abstract() -> None:
    """Test that the shared HTTP base cannot be used without its hooks."""
    with pytest.raises(TypeError):
        HttpRateProvider()  # type: ignore[abstract]


@pytest.mark.unit
async def test_failed_dates_keep_only_the_most_recent() -> None:
    """Test that refused dates are forgotten oldest first."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async with _client(handler) as client:
        provider = FrankfurterRateProvider(client=client, failed_dates_limit=3)
        for offset in range(5):
            with pytest.raises(RateProviderError):
                await provider.fetch_daily_rates(DAY + timedelta(days=offset))

    assert provider.failed_dates == frozenset(DAY + timedelta(days=n) for n in (2, 3, 4))


@pytest.mark.unit
async def test_gateway_day_cache_is_bounded() -> None:
    """Test that the least recently used day is evicted first."""
    provider = StubProvider("only", {"USD": Decimal("1.1")})
    gateway = RateProviderGateway([provider], cache_days=2)
    first, second, third = (DAY + timedelta(days=n) for n in range(3))

    await gateway.fetch_daily_rates(first)
    await gateway.fetch_daily_rates(second)
    await gateway.fetch_daily_rates(first)
    await gateway.fetch_daily_rates(third)

    assert gateway.cached_days == [first, third]
    assert provider.calls == 3


@pytest.mark.unit
async def test_gateway_day_locks_are_released() -> None:
    """Test that a day lock is shared while held and dropped once unused."""
    gateway = RateProviderGateway([StubProvider("only", {"USD": Decimal("1.1")})])

    for offset in range(30):
        day = DAY + timedelta(days=offset)
        async with gateway.day_lock(day):
            assert gateway.day_lock(day).locked()

    gc.collect()
    assert gateway.locked_days == []
