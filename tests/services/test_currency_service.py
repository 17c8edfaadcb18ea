"""Tests for CurrencyService: registry seeding, edits and guarded deletion."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from expense_ledger.core.constants import CurrencyConstants
from expense_ledger.core.events import CURRENCIES, ChangeFeed
from expense_ledger.core.exceptions import (
    DuplicateNameError,
    HasDependentsError,
    NotFoundError,
    ReferenceNotFoundError,
    ValidationError,
)
from expense_ledger.models.account import Account
from expense_ledger.schemas.currency import CurrencyCreate, CurrencyUpdate
from expense_ledger.services.currency_service import CurrencyService


@pytest.fixture
def currencies(test_db: AsyncSession, feed: ChangeFeed) -> CurrencyService:
    return CurrencyService(test_db, feed)


@pytest.mark.unit
async def test_seed_defaults_is_idempotent(currencies: CurrencyService, feed: ChangeFeed) -> None:
    """Test that seeding a registry that already has the defaults adds nothing."""
    subscription = feed.subscribe(CURRENCIES)

    assert await currencies.seed_defaults() == 0

    codes = [currency.code for currency in await currencies.list_currencies()]
    assert codes == sorted(code for code, _, _ in CurrencyConstants.DEFAULTS)
    assert subscription.pending() == 0


@pytest.mark.unit
async def test_seed_defaults_restores_removed_currency(currencies: CurrencyService) -> None:
    await currencies.delete_currency("cny")

    assert await currencies.seed_defaults() == 1
    assert (await currencies.require_currency("CNY")).name == "Chinese Yuan"


@pytest.mark.unit
async def test_create_currency(currencies: CurrencyService, feed: ChangeFeed) -> None:
    """Test registering a currency and refusing a second registration."""
    subscription = feed.subscribe(CURRENCIES)

    currency = await currencies.create_currency(
        CurrencyCreate(code="sek", name=" Swedish Krona ", symbol="kr")
    )

    assert currency.code == "SEK"
    assert currency.name == "Swedish Krona"
    assert subscription.pending() == 1
    with pytest.raises(DuplicateNameError):
        await currencies.create_currency(CurrencyCreate(code="SEK", name="Krona"))


@pytest.mark.unit
async def test_update_currency_keeps_unsent_fields(currencies: CurrencyService) -> None:
    updated = await currencies.update_currency("gbp", CurrencyUpdate(symbol="GBP"))

    assert updated.symbol == "GBP"
    assert updated.name == "British Pound"


@pytest.mark.unit
async def test_require_registered(currencies: CurrencyService) -> None:
    """Test normalization, unknown codes and malformed codes."""
    assert await currencies.require_registered(" usd ") == "USD"

    with pytest.raises(ReferenceNotFoundError) as exc_info:
        await currencies.require_registered("SEK", field="destination_currency")
    assert exc_info.value.field == "destination_currency"

    with pytest.raises(ValidationError):
        await currencies.require_registered("US")


@pytest.mark.unit
async def test_delete_currency_in_use(
    currencies: CurrencyService, test_accounts: dict[str, Account]
) -> None:
    """Test that a currency held by accounts stays registered."""
    with pytest.raises(HasDependentsError) as exc_info:
        await currencies.delete_currency("EUR")

    assert exc_info.value.context == {"accounts": 1}
    assert await currencies.get_currency("EUR") is not None


@pytest.mark.unit
async def test_delete_missing_currency(currencies: CurrencyService) -> None:
    with pytest.raises(NotFoundError):
        await currencies.delete_currency("SEK")
