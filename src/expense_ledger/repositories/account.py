"""Account repository for account-specific database operations."""

from decimal import Decimal

from sqlalchemy import func, select

from expense_ledger.core.money import to_money
from expense_ledger.models.account import Account
from expense_ledger.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Repository for Account model with name-based lookups.

    Account names are unique regardless of case, so every lookup by name
    compares lower-cased values.

    Example:
        >>> repo = AccountRepository(Account, db)
        >>> account = await repo.get_by_name("wallet")
    """

    async def get_by_name(self, name: str) -> Account | None:
        """Get an account by name, ignoring case.

        Args:
            name: Account name as typed or spoken by the user

        Returns:
            Account with its stored casing if found, None otherwise

        Example:
            >>> account = await repo.get_by_name("WALLET")
            >>> account.name
            'Wallet'
        """
        result = await self.db.execute(
            select(Account).where(func.lower(Account.name) == name.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Account]:
        """Get every account ordered by name."""
        result = await self.db.execute(select(Account).order_by(Account.name))
        return list(result.scalars().all())

    async def count_for_currency(self, currency_code: str) -> int:
        """Count accounts held in a currency."""
        result = await self.db.execute(
            select(func.count()).select_from(Account).where(Account.currency_code == currency_code)
        )
        return result.scalar_one()

    async def adjust_balance(self, account: Account, delta: Decimal) -> Account:
        """Add ``delta`` to the account balance (not yet committed).

        Args:
            account: Account loaded in the current session
            delta: Signed amount to add

        Returns:
            The account with its new balance
        """
        account.balance = to_money(account.balance + delta)
        await self.db.flush()
        return account
