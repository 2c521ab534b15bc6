"""
Amount normalization for scraped donation values.

Currency is resolved strictly from the subdomain the page was fetched from.
Symbols inside the captured text are stripped and ignored: "$" alone is
shared by USD, AUD, CAD and NZD, so the page text cannot settle it.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional

from ..constants import (
    CURRENCY_SYMBOL_MAP,
    DEFAULT_CURRENCY,
    DEFAULT_CURRENCY_SYMBOL,
    SUBDOMAIN_CURRENCY_MAP,
)

CURRENCY_MARKERS = re.compile(r"[$€£¥]|Kč|\b(?:USD|EUR|GBP|AUD|JPY|CAD|NZD|ZAR|CZK|DKK|SEK)\b", re.IGNORECASE)
NUMERIC_PORTION = re.compile(r"[\d,]+\.?\d*")


@dataclass(frozen=True)
class CurrencyTables:
    """
    Immutable subdomain→currency and currency→symbol lookups.

    Built once at start-up and handed to the resolver and normalizer, so
    tests can substitute their own tables.
    """

    subdomain_currency: Mapping[str, str]
    currency_symbols: Mapping[str, str]
    default_currency: str = DEFAULT_CURRENCY
    default_symbol: str = DEFAULT_CURRENCY_SYMBOL

    @classmethod
    def from_constants(cls) -> "CurrencyTables":
        return cls(
            subdomain_currency=MappingProxyType(dict(SUBDOMAIN_CURRENCY_MAP)),
            currency_symbols=MappingProxyType(dict(CURRENCY_SYMBOL_MAP)),
        )

    def currency_for(self, subdomain: Optional[str]) -> str:
        """Currency code for a subdomain, or the default for unmapped ones."""
        return self.subdomain_currency.get((subdomain or "").lower(), self.default_currency)

    def symbol_for(self, currency: Optional[str]) -> str:
        return self.currency_symbols.get((currency or "").upper(), self.default_symbol)


DEFAULT_TABLES = CurrencyTables.from_constants()


class NormalizedAmount(NamedTuple):
    value: str
    currency: str


def normalize(raw: str, subdomain: Optional[str], tables: CurrencyTables = DEFAULT_TABLES) -> NormalizedAmount:
    """
    Convert raw captured text into a numeric string tagged with a currency.

    Args:
        raw: Captured amount, possibly with symbols or codes ("$2,500", "GBP 1,000")
        subdomain: Edition the page was fetched from
        tables: Currency lookup tables

    Returns:
        NormalizedAmount with the digits/separators portion ("0" if none)
        and the subdomain's currency code
    """
    cleaned = CURRENCY_MARKERS.sub("", raw or "").strip()
    match = NUMERIC_PORTION.search(cleaned)
    value = match.group(0) if match else "0"
    return NormalizedAmount(value=value, currency=tables.currency_for(subdomain))


def format_amount(value: str, currency: str, tables: CurrencyTables = DEFAULT_TABLES) -> str:
    """Prefix a normalized value with its currency symbol ("$2,500")."""
    return f"{tables.symbol_for(currency)}{value}"


def _to_decimal(value: str) -> Decimal:
    try:
        return Decimal(str(value).replace(",", "").strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a numeric amount: {value!r}") from e


def percentage(raised: str, target: str) -> int:
    """
    Completion percentage of raised against target.

    Thousands separators are ignored and halves round up, so "333" of
    "1000" is 33 and "5" of "1000" is 1. A zero target gives 0.

    Raises:
        ValueError: If either value is not numeric
    """
    raised_value = _to_decimal(raised)
    target_value = _to_decimal(target)

    if target_value == 0:
        return 0

    ratio = raised_value / target_value * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
