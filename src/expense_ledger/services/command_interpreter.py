"""Turn text commands into ledger writes or a disambiguation request.

Each call reads the accounts (and categories) once, resolves the parsed
names against that snapshot ignoring case, and then either commits through
the ledger or reports what could not be matched. It never waits for data to
appear: with no accounts at all the answer is an immediate disambiguation
request.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import date

from expense_ledger.core.exceptions import (
    AppException,
    CurrencyMismatchError,
    InvalidAmountError,
    ReferenceNotFoundError,
    SameAccountTransferError,
)
from expense_ledger.models.account import Account
from expense_ledger.models.category import Category
from expense_ledger.schemas.command import (
    Committed,
    DisambiguationRequested,
    ParsedCommand,
    ParsedTransaction,
    ParsedTransfer,
    Rejected,
    RejectionReason,
    Unrecognized,
)
from expense_ledger.schemas.transaction import (
    TransactionCreate,
    TransactionResponse,
    TransferCreate,
    TransferResponse,
)
from expense_ledger.services.command_parser import parse_command
from expense_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

CommandResult = Committed | DisambiguationRequested | Unrecognized | Rejected

GUIDANCE = (
    "Couldn't recognize input: '{text}'. "
    "Please repeat in one of the formats (example values used):\n"
    "1. Expense from AccountName 50 Category Food (optional date if not today).\n"
    "2. Income to AccountName 50 Category Salary (optional date if not today).\n"
    "3. Transfer from SourceAccountName to DestinationAccountName 50 "
    "(optional date if not today).\n"
    "\n"
    "Optional date format can be:\n"
    "- January 1\n"
    "- January 1st\n"
    "- 1st of January."
)

NO_ACCOUNTS_FOR_TRANSFER = (
    "No accounts found. Please create at least one account before adding transfers."
)
NO_ACCOUNTS_FOR_TRANSACTION = (
    "No accounts found. Please create at least one account before adding transactions."
)


def _format_date(on: date) -> str:
    return on.strftime("%d.%m.%Y")


def _find(entries: Sequence[Account] | Sequence[Category], name: str):
    lowered = name.lower()
    return next((entry for entry in entries if entry.name.lower() == lowered), None)


def _rejection_reason(exc: AppException) -> RejectionReason:
    if isinstance(exc, SameAccountTransferError):
        return "same_account_transfer"
    if isinstance(exc, CurrencyMismatchError):
        return "currency_mismatch"
    if isinstance(exc, InvalidAmountError):
        return "invalid_amount"
    if isinstance(exc, ReferenceNotFoundError):
        return "reference_not_found"
    return "ledger_error"


class CommandInterpreter:
    """Interpret one text command per call.

    Args:
        ledger: Ledger used both as the lookup snapshot and to commit
        today: Clock for commands without a spoken date

    Example:
        >>> interpreter = CommandInterpreter(ledger)
        >>> outcome = await interpreter.interpret("expense from wallet 50 category food")
        >>> outcome.kind
        'committed'
    """

    def __init__(self, ledger: LedgerService, *, today: Callable[[], date] = date.today):
        self.ledger = ledger
        self.today = today

    async def interpret(self, text: str) -> CommandResult:
        """Parse ``text`` and commit it, or explain why it was not committed."""
        command = parse_command(text, self.today())
        if command is None:
            logger.info(f"Unrecognized command: {text!r}")
            return Unrecognized(text=text, message=GUIDANCE.format(text=text))

        if isinstance(command, ParsedTransfer):
            return await self._interpret_transfer(command)
        return await self._interpret_transaction(command)

    def _rejected(self, exc: AppException, command: ParsedCommand) -> Rejected:
        reason = _rejection_reason(exc)
        logger.info(f"Command rejected ({reason}): {exc.detail}")
        return Rejected(
            reason=reason,
            message=exc.detail,
            field=getattr(exc, "field", None),
            command=command,
        )

    async def _interpret_transfer(self, command: ParsedTransfer) -> CommandResult:
        accounts = await self.ledger.current_accounts()
        if not accounts:
            return DisambiguationRequested(
                message=NO_ACCOUNTS_FOR_TRANSFER,
                unresolved_fields=["source_account", "destination_account"],
                command=command,
            )

        source = _find(accounts, command.source_account_name)
        destination = _find(accounts, command.destination_account_name)
        resolved = command.model_copy(
            update={
                "source_account_name": source.name if source else command.source_account_name,
                "destination_account_name": (
                    destination.name if destination else command.destination_account_name
                ),
            }
        )

        unresolved = []
        if source is None:
            unresolved.append("source_account")
        if destination is None:
            unresolved.append("destination_account")
        if unresolved:
            missing = [
                f"account '{name}'"
                for name, found in (
                    (command.source_account_name, source),
                    (command.destination_account_name, destination),
                )
                if found is None
            ]
            return DisambiguationRequested(
                message=f"Could not find {' or '.join(missing)}. Please pick an existing account.",
                unresolved_fields=unresolved,
                command=resolved,
            )

        try:
            transfer = await self.ledger.add_transfer(
                TransferCreate(
                    source_account_name=resolved.source_account_name,
                    destination_account_name=resolved.destination_account_name,
                    amount=resolved.amount,
                    date=resolved.date,
                )
            )
        except AppException as e:
            return self._rejected(e, resolved)

        return Committed(
            message=(
                f"Transfer from {transfer.source_account_name} to "
                f"{transfer.destination_account_name} for {transfer.amount} "
                f"{transfer.currency_code} on {_format_date(transfer.date)} successfully added."
            ),
            command=resolved,
            transfer=TransferResponse.model_validate(transfer),
        )

    async def _interpret_transaction(self, command: ParsedTransaction) -> CommandResult:
        accounts = await self.ledger.current_accounts()
        categories = await self.ledger.current_categories()
        account = _find(accounts, command.account_name)
        category = _find(categories, command.category_name)
        resolved = command.model_copy(
            update={
                "account_name": account.name if account else command.account_name,
                "category_name": category.name if category else command.category_name,
            }
        )

        unresolved = []
        if account is None:
            unresolved.append("account")
        if category is None:
            unresolved.append("category")
        if not accounts:
            return DisambiguationRequested(
                message=NO_ACCOUNTS_FOR_TRANSACTION,
                unresolved_fields=unresolved,
                command=resolved,
            )
        if unresolved:
            missing = []
            if account is None:
                missing.append(f"account '{command.account_name}'")
            if category is None:
                missing.append(f"category '{command.category_name}'")
            return DisambiguationRequested(
                message=f"Could not find {' or '.join(missing)}. Please pick an existing one.",
                unresolved_fields=unresolved,
                command=resolved,
            )

        try:
            transaction = await self.ledger.add_transaction(
                TransactionCreate(
                    account_name=resolved.account_name,
                    category_name=resolved.category_name,
                    amount=resolved.amount,
                    type=resolved.type,
                    date=resolved.date,
                )
            )
        except AppException as e:
            return self._rejected(e, resolved)

        return Committed(
            message=(
                f"{transaction.type.value} of {transaction.amount} {transaction.currency_code} "
                f"on {_format_date(transaction.date)} for account {transaction.account_name} "
                f"and category {transaction.category_name} successfully added."
            ),
            command=resolved,
            transaction=TransactionResponse.model_validate(transaction),
        )
