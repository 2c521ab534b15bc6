"""
Base validation utilities shared across the acquisition pipeline.
"""

import re
from typing import Optional

# Separators and currency symbols ignored when checking captured amounts
_NUMBER_NOISE = re.compile(r"[,.\s$€£¥]")


def is_valid_number(value: Optional[str]) -> bool:
    """
    Check whether a captured string is a usable monetary amount.

    Rejects empty captures and strings made only of punctuation or currency
    symbols, which show up when a pattern with several capture groups
    matches through the wrong group.

    Args:
        value: Captured text (e.g. "1,234.56", "$500")

    Returns:
        True if the value has digits and nothing but digits once separators
        and currency symbols are removed
    """
    if not value or not isinstance(value, str):
        return False

    stripped = _NUMBER_NOISE.sub("", value)
    if not stripped or not stripped.isdigit():
        return False

    return any(ch.isdigit() for ch in value)


def normalize_identifier(v: Optional[str]) -> str:
    """
    Normalize a member or team identifier.

    Identifiers are opaque: the upstream site decides whether they exist.
    Only surrounding whitespace is removed.

    Args:
        v: Raw identifier

    Returns:
        Stripped identifier

    Raises:
        ValueError: If the identifier is empty
    """
    if v is None:
        raise ValueError("Identifier is required")

    identifier = str(v).strip()
    if not identifier:
        raise ValueError("Identifier is required")

    return identifier
