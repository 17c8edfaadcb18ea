"""Application-wide constants.

Groups the fixed values used by the ledger: monetary and rate precision,
the default currency registry, provider status handling, and the
spoken-date vocabulary of the command parser.
"""

from decimal import ROUND_HALF_UP, Decimal


class MoneyConstants:
    """Scale and rounding for monetary amounts and balances."""

    QUANTUM = Decimal("0.01")  # Two decimal places
    ROUNDING = ROUND_HALF_UP
    ZERO = Decimal("0.00")


class RateConstants:
    """Scale and rounding for exchange rates."""

    SCALE = 10
    QUANTUM = Decimal("1E-10")
    ROUNDING = ROUND_HALF_UP
    DISPLAY_QUANTUM = Decimal("0.0001")  # "1 USD = 0.9091 EUR"


class CurrencyConstants:
    """Currencies registered on a fresh database: (code, name, symbol)."""

    DEFAULTS = (
        ("USD", "US Dollar", "$"),
        ("EUR", "Euro", "€"),
        ("GBP", "British Pound", "£"),
        ("CAD", "Canadian Dollar", "C$"),
        ("JPY", "Japanese Yen", "¥"),
        ("AUD", "Australian Dollar", "A$"),
        ("CHF", "Swiss Franc", "CHF"),
        ("CNY", "Chinese Yuan", "¥"),
    )


class RateProviderConstants:
    """Constants for the network rate providers."""

    # Statuses that mean the provider will never serve this date
    PERMANENT_FAILURE_STATUSES = frozenset({403, 404, 422, 429})

    FAWAZAHMED_CDN_URL = (
        "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@{date}/v1/currencies/{base}.json"
    )
    FAWAZAHMED_PAGES_URL = "https://{date}.currency-api.pages.dev/v1/currencies/{base}.json"


class SpokenDateConstants:
    """Vocabulary for trailing spoken dates ("March 3rd", "the first of May")."""

    MONTHS = {
        "january": 1,
        "february": 2,
        "march": 3,
        "april": 4,
        "may": 5,
        "june": 6,
        "july": 7,
        "august": 8,
        "september": 9,
        "october": 10,
        "november": 11,
        "december": 12,
    }

    ORDINAL_WORDS = {
        "first": 1,
        "second": 2,
        "third": 3,
        "fourth": 4,
        "fifth": 5,
        "sixth": 6,
        "seventh": 7,
        "eighth": 8,
        "ninth": 9,
        "tenth": 10,
        "eleventh": 11,
        "twelfth": 12,
        "thirteenth": 13,
        "fourteenth": 14,
        "fifteenth": 15,
        "sixteenth": 16,
        "seventeenth": 17,
        "eighteenth": 18,
        "nineteenth": 19,
        "twentieth": 20,
        "twenty first": 21,
        "twenty second": 22,
        "twenty third": 23,
        "twenty fourth": 24,
        "twenty fifth": 25,
        "twenty sixth": 26,
        "twenty seventh": 27,
        "twenty eighth": 28,
        "twenty ninth": 29,
        "thirtieth": 30,
        "thirty first": 31,
        # Cardinal words recognizers commonly emit for small days
        "one": 1,
        "two": 2,
        "three": 3,
        "four": 4,
        "five": 5,
        "six": 6,
        "seven": 7,
        "eight": 8,
        "nine": 9,
        "ten": 10,
    }
