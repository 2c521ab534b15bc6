"""
Donation amount extraction cascade.

Locates the "raised" and "target" values in a donation page using ordered
strategies of decreasing reliability:
- Structured lookup: template class names, then amount-valued data attributes
- Embedded data: JSON-like keys in the page source and <script> payloads
- Generic keyword adjacency: currency-marked numbers next to "raised", "goal", ...
- Context scoring: every currency-marked number ranked by nearby keywords

Each strategy has the signature (html) -> ExtractionCandidate | None and the
cascade is a tuple of them, so any tier can be tested on its own.
"""

import re
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from ..constants import CONTEXT_WINDOW_CHARS
from ..validators.base_validator import is_valid_number
from .patterns import (
    CURRENCY_AMOUNT_PATTERN,
    DATA_ATTRIBUTE_AMOUNT,
    ELEMENT_TEXT_AMOUNT,
    EMBEDDED_RAISED_PATTERNS,
    EMBEDDED_TARGET_PATTERNS,
    GENERIC_RAISED_PATTERNS,
    GENERIC_TARGET_PATTERNS,
    POTENTIAL_AMOUNT_PATTERN,
    RAISED_CONTEXT_RULES,
    RAISED_DATA_ATTRIBUTES,
    RAISED_SELECTORS,
    RAISED_TRAILING_RULE,
    SCRIPT_RAISED_PATTERNS,
    SCRIPT_TARGET_PATTERNS,
    TARGET_CONTEXT_RULES,
    TARGET_DATA_ATTRIBUTES,
    TARGET_SELECTORS,
    TARGET_TRAILING_RULE,
)

RAISED = "raised"
TARGET = "target"


@dataclass(frozen=True)
class ExtractionCandidate:
    """A tentative amount and the strategy that produced it."""

    raw_value: str
    source_strategy: str
    context_score: int = 0


@dataclass(frozen=True)
class ExtractedAmounts:
    """Raw "raised" and "target" strings; empty when not found."""

    raised: str = ""
    target: str = ""
    raised_strategy: Optional[str] = None
    target_strategy: Optional[str] = None


Strategy = Callable[[str], Optional[ExtractionCandidate]]


_current = threading.local()


def _parse_document(html: str) -> BeautifulSoup:
    # extract_amounts parses once and shares the soup across both slots on this thread
    document = getattr(_current, "document", None)
    if document is not None and document[0] is html:
        return document[1]
    return BeautifulSoup(html, "html.parser")


def captured_amount(match: re.Match) -> Optional[str]:
    """
    Pick the amount out of a regex match.

    Uses the last capture group, falling back to the one before it when the
    last group captured separators only (e.g. "$10 of $," patterns).
    """
    groups = match.groups()
    if not groups:
        return None
    if is_valid_number(groups[-1]):
        return groups[-1]
    if len(groups) > 1 and is_valid_number(groups[-2]):
        return groups[-2]
    return None


def _first_pattern_match(text: str, patterns: Iterable[re.Pattern], strategy: str) -> Optional[ExtractionCandidate]:
    for pattern in patterns:
        for match in pattern.finditer(text):
            value = captured_amount(match)
            if value:
                return ExtractionCandidate(raw_value=value, source_strategy=strategy)
    return None


def _amount_from_text(text: str) -> Optional[str]:
    for match in ELEMENT_TEXT_AMOUNT.finditer(text or ""):
        if is_valid_number(match.group(1)):
            return match.group(1)
    return None


def _script_payloads(html: str) -> Iterator[str]:
    for script in _parse_document(html).find_all("script"):
        payload = script.string or script.get_text()
        if payload:
            yield payload


# ─── Tier 1: structured lookup ────────────────────────────────────────────────


def _structured_lookup(
    html: str, selectors: Sequence[str], data_attributes: Sequence[str], strategy: str
) -> Optional[ExtractionCandidate]:
    soup = _parse_document(html)
    for selector in selectors:
        for element in soup.select(selector):
            value = _amount_from_text(element.get_text(" ", strip=True))
            if value:
                return ExtractionCandidate(raw_value=value, source_strategy=strategy)

    for attr in data_attributes:
        for element in soup.find_all(attrs={attr: True}):
            match = DATA_ATTRIBUTE_AMOUNT.fullmatch(str(element.get(attr)))
            if match and is_valid_number(match.group(1)):
                return ExtractionCandidate(raw_value=match.group(1), source_strategy=strategy)
    return None


def structured_raised(html: str) -> Optional[ExtractionCandidate]:
    return _structured_lookup(html, RAISED_SELECTORS, RAISED_DATA_ATTRIBUTES, "structured")


def structured_target(html: str) -> Optional[ExtractionCandidate]:
    return _structured_lookup(html, TARGET_SELECTORS, TARGET_DATA_ATTRIBUTES, "structured")


# ─── Tier 2: embedded data ────────────────────────────────────────────────────


def _embedded_lookup(
    html: str, page_patterns: Sequence[re.Pattern], script_patterns: Sequence[re.Pattern]
) -> Optional[ExtractionCandidate]:
    candidate = _first_pattern_match(html, page_patterns, "embedded")
    if candidate:
        return candidate
    for payload in _script_payloads(html):
        candidate = _first_pattern_match(payload, script_patterns, "embedded")
        if candidate:
            return candidate
    return None


def embedded_raised(html: str) -> Optional[ExtractionCandidate]:
    return _embedded_lookup(html, EMBEDDED_RAISED_PATTERNS, SCRIPT_RAISED_PATTERNS)


def embedded_target(html: str) -> Optional[ExtractionCandidate]:
    return _embedded_lookup(html, EMBEDDED_TARGET_PATTERNS, SCRIPT_TARGET_PATTERNS)


# ─── Tier 3: generic keyword adjacency ────────────────────────────────────────


def generic_raised(html: str) -> Optional[ExtractionCandidate]:
    return _first_pattern_match(html, GENERIC_RAISED_PATTERNS, "generic")


def generic_target(html: str) -> Optional[ExtractionCandidate]:
    return _first_pattern_match(html, GENERIC_TARGET_PATTERNS, "generic")


# ─── Tier 4: context scoring ──────────────────────────────────────────────────

_SLOT_RULES = {
    RAISED: (RAISED_CONTEXT_RULES, RAISED_TRAILING_RULE),
    TARGET: (TARGET_CONTEXT_RULES, TARGET_TRAILING_RULE),
}


def rank_candidates(html: str, slot: str, window: int = CONTEXT_WINDOW_CHARS) -> List[ExtractionCandidate]:
    """
    Score every currency-marked number in the page for one slot.

    Each number's surrounding window (window characters either side) earns
    points per keyword rule it matches, plus a bonus when the keyword follows
    the number directly. Numbers scoring zero are dropped.

    Args:
        html: Page source
        slot: "raised" or "target"
        window: Characters inspected either side of the number

    Returns:
        Candidates ordered by score, highest first; ties keep page order
    """
    context_rules, (trailing_pattern, trailing_points) = _SLOT_RULES[slot]

    candidates = []
    for match in CURRENCY_AMOUNT_PATTERN.finditer(html):
        value = match.group(1)
        if not is_valid_number(value):
            continue

        context = html[max(0, match.start() - window) : match.end() + window]
        score = sum(points for pattern, points in context_rules if pattern.search(context))
        if trailing_pattern.match(html, match.end()):
            score += trailing_points

        if score > 0:
            candidates.append(ExtractionCandidate(raw_value=value, source_strategy="context", context_score=score))

    return sorted(candidates, key=lambda c: c.context_score, reverse=True)


def context_raised(html: str) -> Optional[ExtractionCandidate]:
    ranked = rank_candidates(html, RAISED)
    return ranked[0] if ranked else None


def context_target(html: str) -> Optional[ExtractionCandidate]:
    ranked = rank_candidates(html, TARGET)
    return ranked[0] if ranked else None


# ─── Cascade ──────────────────────────────────────────────────────────────────

RAISED_STRATEGIES: Tuple[Strategy, ...] = (structured_raised, embedded_raised, generic_raised, context_raised)
TARGET_STRATEGIES: Tuple[Strategy, ...] = (structured_target, embedded_target, generic_target, context_target)


def first_success(strategies: Iterable[Strategy], html: str) -> Optional[ExtractionCandidate]:
    """Run strategies in order and return the first valid candidate."""
    for strategy in strategies:
        candidate = strategy(html)
        if candidate and is_valid_number(candidate.raw_value):
            return candidate
    return None


def extract_amounts(
    html: str,
    raised_strategies: Sequence[Strategy] = RAISED_STRATEGIES,
    target_strategies: Sequence[Strategy] = TARGET_STRATEGIES,
) -> ExtractedAmounts:
    """
    Extract raw raised and target amounts from a donation page.

    Not finding a value is not an error: the field is left empty and the
    caller decides (a missing raised amount fails the scrape, a missing
    target only drops the percentage).

    Args:
        html: Page source
        raised_strategies: Cascade for the raised slot
        target_strategies: Cascade for the target slot

    Returns:
        ExtractedAmounts with the winning strategy names

    Raises:
        TypeError: If html is not a string
    """
    if not isinstance(html, str):
        raise TypeError(f"html must be a string, got {type(html).__name__}")

    _current.document = (html, BeautifulSoup(html, "html.parser"))
    try:
        raised = first_success(raised_strategies, html)
        target = first_success(target_strategies, html)
    finally:
        _current.document = None

    return ExtractedAmounts(
        raised=raised.raw_value if raised else "",
        target=target.raw_value if target else "",
        raised_strategy=raised.source_strategy if raised else None,
        target_strategy=target.source_strategy if target else None,
    )


def count_amount_markers(html: str) -> Tuple[int, int]:
    """
    Count currency-marked amounts and bare 3+ character number runs.

    Used in extraction failure messages to tell markup drift (amounts
    present but unmatched) from empty or script-rendered pages.
    """
    return len(CURRENCY_AMOUNT_PATTERN.findall(html)), len(POTENTIAL_AMOUNT_PATTERN.findall(html))
