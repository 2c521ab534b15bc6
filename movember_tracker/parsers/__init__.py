"""Parsers that turn captured page values into normalized amounts."""

from .amount_normalizer import (
    DEFAULT_TABLES,
    CurrencyTables,
    NormalizedAmount,
    format_amount,
    normalize,
    percentage,
)

__all__ = [
    "DEFAULT_TABLES",
    "CurrencyTables",
    "NormalizedAmount",
    "format_amount",
    "normalize",
    "percentage",
]
