"""Currency registry service.

The registry lists the currencies accounts may be opened in and manual
exchange rates may name. Provider syncs are not limited by it: they store
every published pivot leg.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from expense_ledger.core.constants import CurrencyConstants
from expense_ledger.core.events import CURRENCIES, ChangeFeed
from expense_ledger.core.exceptions import (
    DuplicateNameError,
    HasDependentsError,
    NotFoundError,
    ReferenceNotFoundError,
)
from expense_ledger.core.money import normalize_currency
from expense_ledger.db.session import transactional
from expense_ledger.models.account import Account
from expense_ledger.models.currency import Currency
from expense_ledger.repositories.account import AccountRepository
from expense_ledger.repositories.currency import CurrencyRepository
from expense_ledger.schemas.currency import CurrencyCreate, CurrencyUpdate

logger = logging.getLogger(__name__)


class CurrencyService:
    """Manage registered currencies.

    Args:
        db: Database session
        feed: Change feed notified after the registry changes
    """

    def __init__(self, db: AsyncSession, feed: ChangeFeed | None = None):
        self.db = db
        self.feed = feed
        self.currencies = CurrencyRepository(Currency, db)
        self.accounts = AccountRepository(Account, db)

    def _publish(self) -> None:
        if self.feed is not None:
            self.feed.publish(CURRENCIES)

    async def list_currencies(self) -> list[Currency]:
        return await self.currencies.list_all()

    async def get_currency(self, code: str) -> Currency | None:
        return await self.currencies.get(normalize_currency(code))

    async def require_currency(self, code: str) -> Currency:
        currency = await self.get_currency(code)
        if currency is None:
            raise NotFoundError(f"Currency {code.strip().upper()} not found")
        return currency

    async def require_registered(self, code: str, field: str = "currency") -> str:
        """Normalize ``code`` and check it is registered.

        Returns:
            The upper-case code

        Raises:
            ValidationError: If the code is not three letters
            ReferenceNotFoundError: If the currency is not registered
        """
        normalized = normalize_currency(code)
        if await self.currencies.get(normalized) is None:
            raise ReferenceNotFoundError(f"Currency {normalized} is not registered", field=field)
        return normalized

    async def create_currency(self, data: CurrencyCreate) -> Currency:
        """Register a currency.

        Raises:
            DuplicateNameError: If the code is already registered
        """
        code = normalize_currency(data.code)
        if await self.currencies.get(code) is not None:
            raise DuplicateNameError(f"Currency {code} already exists")

        async with transactional(self.db):
            currency = await self.currencies.create(
                obj_in={"code": code, "name": data.name.strip(), "symbol": data.symbol}
            )

        logger.info(f"Registered currency {code}")
        self._publish()
        return currency

    async def update_currency(self, code: str, data: CurrencyUpdate) -> Currency:
        """Change a currency's name or symbol."""
        currency = await self.require_currency(code)
        async with transactional(self.db):
            currency = await self.currencies.update(
                db_obj=currency, obj_in=data.model_dump(exclude_unset=True)
            )

        logger.info(f"Updated currency {currency.code}")
        self._publish()
        return currency

    async def delete_currency(self, code: str) -> None:
        """Remove a currency no account is held in.

        Raises:
            NotFoundError: If the currency is not registered
            HasDependentsError: If accounts still use it
        """
        currency = await self.require_currency(code)
        count = await self.accounts.count_for_currency(currency.code)
        if count:
            raise HasDependentsError(
                f"Currency {currency.code} is used by {count} accounts",
                context={"accounts": count},
            )

        async with transactional(self.db):
            await self.currencies.remove(currency)

        logger.info(f"Removed currency {currency.code}")
        self._publish()

    async def seed_defaults(self) -> int:
        """Register the default currencies that are missing.

        Returns:
            Number of currencies added
        """
        existing = await self.currencies.existing_codes()
        missing = [row for row in CurrencyConstants.DEFAULTS if row[0] not in existing]
        if not missing:
            return 0

        async with transactional(self.db):
            for code, name, symbol in missing:
                await self.currencies.create(obj_in={"code": code, "name": name, "symbol": symbol})

        logger.info(f"Registered {len(missing)} default currencies")
        self._publish()
        return len(missing)
