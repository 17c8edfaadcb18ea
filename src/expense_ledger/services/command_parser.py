"""Parse free-form text commands into structured ledger commands.

Supported grammars (keywords are case-insensitive)::

    expense from <account> <amount> category <category> [<date>]
    income to <account> <amount> category <category> [<date>]
    transfer from <source> to <destination> <amount> [<date>]

A trailing spoken date ("March 3", "March 3rd", "3rd of March", "3 March",
"March third") is removed before the amount is looked for, so the day is
never read as the amount. Amounts accept both decimal conventions:
"1,234.56", "1.234,56" and "1234,56" all read as 1234.56.

Parsing is pure: nothing here touches the database.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation

from expense_ledger.core.constants import SpokenDateConstants
from expense_ledger.core.money import to_money
from expense_ledger.models.transaction import TransactionType
from expense_ledger.schemas.command import ParsedCommand, ParsedTransaction, ParsedTransfer

AMOUNT_PATTERN = re.compile(r"\d[\d.,]*\d|\d")

_MONTH = "|".join(SpokenDateConstants.MONTHS)
# Longest first so "twenty first" wins over "first"
_ORDINAL = "|".join(
    word.replace(" ", r"[\s-]+")
    for word in sorted(SpokenDateConstants.ORDINAL_WORDS, key=len, reverse=True)
)
_DAY = rf"(?:(?P<day>\d{{1,2}})(?:st|nd|rd|th)?|(?P<word>{_ORDINAL}))"

DATE_PATTERNS = (
    re.compile(rf"(?:^|\s+)(?P<month>{_MONTH})\s+{_DAY}\s*$", re.IGNORECASE),
    re.compile(rf"(?:^|\s+){_DAY}\s+of\s+(?P<month>{_MONTH})\s*$", re.IGNORECASE),
    re.compile(rf"(?:^|\s+){_DAY}\s+(?P<month>{_MONTH})\s*$", re.IGNORECASE),
)


def _capitalize(name: str) -> str:
    name = name.strip()
    return name[:1].upper() + name[1:]


def _ordinal_day(word: str) -> int:
    key = re.sub(r"[\s-]+", " ", word.lower())
    return SpokenDateConstants.ORDINAL_WORDS[key]


def parse_trailing_date(text: str, today: date | None = None) -> tuple[str, date | None]:
    """Split a trailing spoken date off ``text``.

    The date is placed in ``today``'s year. Phrases that do not form a real
    calendar date ("February 30th") are left in the text.

    Args:
        text: Text that may end with a date phrase
        today: Reference date for the year (default: today)

    Returns:
        The text without the date, and the date or None

    Example:
        >>> parse_trailing_date("food 1st of March", date(2024, 6, 1))
        ('food', datetime.date(2024, 3, 1))
    """
    text = text.strip()
    if not text:
        return text, None
    year = (today or date.today()).year

    for pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if match is None:
            continue
        month = SpokenDateConstants.MONTHS[match.group("month").lower()]
        if match.group("day") is not None:
            day = int(match.group("day"))
        else:
            day = _ordinal_day(match.group("word"))
        try:
            parsed = date(year, month, day)
        except ValueError:
            continue
        return text[: match.start()].strip(), parsed

    return text, None


def _normalize_separators(text: str, separator: str) -> str:
    # One separator followed by at most two digits is a decimal point
    trailing = len(text) - text.rfind(separator) - 1
    if text.count(separator) == 1 and trailing <= 2:
        return text.replace(separator, ".")
    return text.replace(separator, "")


def parse_money_amount(text: str) -> Decimal | None:
    """Read a spoken or typed amount, rounded half up to cents.

    When both a comma and a dot appear, the rightmost one is the decimal
    point and the other is a thousands separator.

    Returns:
        The amount, or None if ``text`` is not a number

    Example:
        >>> parse_money_amount("1.234,56")
        Decimal('1234.56')
    """
    cleaned = text.strip()
    if not cleaned:
        return None

    last_dot = cleaned.rfind(".")
    last_comma = cleaned.rfind(",")
    if last_dot == -1 and last_comma == -1:
        normalized = cleaned
    elif last_comma == -1:
        normalized = _normalize_separators(cleaned, ".")
    elif last_dot == -1:
        normalized = _normalize_separators(cleaned, ",")
    elif last_dot > last_comma:
        normalized = cleaned.replace(",", "")
    else:
        normalized = cleaned.replace(".", "").replace(",", ".")

    try:
        return to_money(Decimal(normalized))
    except InvalidOperation:
        return None


def _split_amount(text: str) -> tuple[str, Decimal] | None:
    """Split ``<name> <amount>`` on the last number in ``text``."""
    matches = list(AMOUNT_PATTERN.finditer(text))
    if not matches:
        return None
    last = matches[-1]
    amount = parse_money_amount(last.group())
    if amount is None:
        return None
    return text[: last.start()].strip(), amount


def parse_transfer(text: str, today: date | None = None) -> ParsedTransfer | None:
    """Parse ``transfer from <source> to <destination> <amount> [<date>]``."""
    today = today or date.today()
    lowered = text.lower()
    keyword = "transfer from "
    start = lowered.find(keyword)
    if start == -1:
        return None
    to_index = lowered.find(" to ", start + len(keyword) - 1)
    if to_index == -1:
        return None

    source = text[start + len(keyword) : to_index].strip()
    rest, on = parse_trailing_date(text[to_index + len(" to ") :], today)
    split = _split_amount(rest)
    if split is None:
        return None
    destination, amount = split
    if not source or not destination:
        return None

    return ParsedTransfer(
        source_account_name=_capitalize(source),
        destination_account_name=_capitalize(destination),
        amount=amount,
        date=on or today,
    )


def parse_transaction(text: str, today: date | None = None) -> ParsedTransaction | None:
    """Parse ``expense from ...`` or ``income to ...`` commands."""
    today = today or date.today()
    lowered = text.lower()

    expense_index = lowered.find("expense from ")
    income_index = lowered.find("income to ")
    if expense_index != -1:
        type = TransactionType.EXPENSE
        body_start = expense_index + len("expense from ")
    elif income_index != -1:
        type = TransactionType.INCOME
        body_start = income_index + len("income to ")
    else:
        return None

    category_index = lowered.find(" category ", body_start - 1)
    if category_index == -1:
        return None

    split = _split_amount(text[body_start:category_index])
    if split is None:
        return None
    account, amount = split
    category, on = parse_trailing_date(text[category_index + len(" category ") :], today)
    if not account or not category:
        return None

    return ParsedTransaction(
        type=type,
        account_name=_capitalize(account),
        category_name=_capitalize(category),
        amount=amount,
        date=on or today,
    )


def parse_command(text: str, today: date | None = None) -> ParsedCommand | None:
    """Parse any supported command; transfers are tried first.

    Returns:
        The parsed command, or None if no grammar matches
    """
    return parse_transfer(text, today) or parse_transaction(text, today)
