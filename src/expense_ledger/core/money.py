"""Decimal helpers shared by the rate store, valuation and ledger services."""

from decimal import Decimal, InvalidOperation

from expense_ledger.core.constants import MoneyConstants, RateConstants
from expense_ledger.core.exceptions import InvalidAmountError, ValidationError


def to_money(value: Decimal) -> Decimal:
    """Quantize a value to two decimal places, rounding half up."""
    return value.quantize(MoneyConstants.QUANTUM, rounding=MoneyConstants.ROUNDING)


def to_rate(value: Decimal) -> Decimal:
    """Quantize an exchange rate to ten decimal places, rounding half up."""
    return value.quantize(RateConstants.QUANTUM, rounding=RateConstants.ROUNDING)


def as_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce user input to a Decimal.

    Floats go through ``str`` so 0.1 stays 0.1.

    Raises:
        InvalidAmountError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise InvalidAmountError(f"'{value}' is not a valid number") from exc
    if not result.is_finite():
        raise InvalidAmountError(f"'{value}' is not a valid number")
    return result


def cross_rate(pivot_to_base: Decimal, pivot_to_quote: Decimal) -> Decimal:
    """Rate from base to quote given both pivot legs.

    With 1 pivot = ``pivot_to_base`` base and 1 pivot = ``pivot_to_quote``
    quote, one unit of base is worth ``pivot_to_quote / pivot_to_base`` quote.

    Example:
        >>> cross_rate(Decimal("1.10"), Decimal("0.85"))  # USD -> GBP via EUR
        Decimal('0.7727272727')
    """
    return to_rate(pivot_to_quote / pivot_to_base)


def normalize_currency(code: str) -> str:
    """Upper-case and validate an ISO 4217 currency code.

    Raises:
        ValidationError: If the code is not three letters
    """
    normalized = (code or "").strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        raise ValidationError(f"'{code}' is not a 3-letter ISO 4217 currency code")
    return normalized
