"""
Extractors for donation page content.

This module provides:
- The raised/target extraction cascade
- Context-scored candidate ranking
- Regex and selector tables shared with subdomain detection
"""

from .amounts import (
    RAISED_STRATEGIES,
    TARGET_STRATEGIES,
    ExtractedAmounts,
    ExtractionCandidate,
    count_amount_markers,
    extract_amounts,
    first_success,
    rank_candidates,
)

__all__ = [
    "RAISED_STRATEGIES",
    "TARGET_STRATEGIES",
    "ExtractedAmounts",
    "ExtractionCandidate",
    "count_amount_markers",
    "extract_amounts",
    "first_success",
    "rank_candidates",
]
