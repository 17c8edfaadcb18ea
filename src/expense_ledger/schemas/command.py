"""Text command schemas.

A command is parsed into a ``ParsedCommand`` and interpreted into exactly
one ``CommandOutcome``. Both unions are discriminated by ``kind`` so a client
can switch on a single field.
"""

from datetime import date as date_type
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from expense_ledger.models.transaction import TransactionType
from expense_ledger.schemas.transaction import TransactionResponse, TransferResponse


class CommandRequest(BaseModel):
    """Free-form text from a keyboard or a speech recognizer."""

    text: str = Field(..., min_length=1, max_length=1000)


class ParsedTransaction(BaseModel):
    """``expense from <account> <amount> category <category> [date]``."""

    kind: Literal["transaction"] = "transaction"
    type: TransactionType
    account_name: str
    category_name: str
    amount: Decimal
    date: date_type


class ParsedTransfer(BaseModel):
    """``transfer from <source> to <destination> <amount> [date]``."""

    kind: Literal["transfer"] = "transfer"
    source_account_name: str
    destination_account_name: str
    amount: Decimal
    date: date_type


ParsedCommand = Annotated[ParsedTransaction | ParsedTransfer, Field(discriminator="kind")]


class Committed(BaseModel):
    """The command was written to the ledger."""

    kind: Literal["committed"] = "committed"
    message: str
    command: ParsedCommand
    transaction: TransactionResponse | None = None
    transfer: TransferResponse | None = None


class DisambiguationRequested(BaseModel):
    """Some names did not match; the caller should let the user pick.

    ``command`` carries the stored casing for every name that did resolve
    and the recognized text for the rest.
    """

    kind: Literal["disambiguation"] = "disambiguation"
    message: str
    unresolved_fields: list[str] = []
    command: ParsedCommand


class Unrecognized(BaseModel):
    """The text matched no command grammar."""

    kind: Literal["unrecognized"] = "unrecognized"
    text: str
    message: str


RejectionReason = Literal[
    "same_account_transfer",
    "currency_mismatch",
    "invalid_amount",
    "reference_not_found",
    "ledger_error",
]


class Rejected(BaseModel):
    """The ledger refused the parsed command."""

    kind: Literal["rejected"] = "rejected"
    reason: RejectionReason
    message: str
    field: str | None = None
    command: ParsedCommand


CommandOutcome = Annotated[
    Committed | DisambiguationRequested | Unrecognized | Rejected,
    Field(discriminator="kind"),
]
