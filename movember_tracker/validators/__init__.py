"""
Validators for the acquisition pipeline.

This module provides:
- Captured amount validation
- Identifier normalization
- Pydantic models for scraped results and cache records
"""

from .base_validator import is_valid_number, normalize_identifier
from .scraped_result import DataCacheEntry, ScrapedResult, SubdomainCacheEntry

__all__ = [
    "is_valid_number",
    "normalize_identifier",
    "DataCacheEntry",
    "ScrapedResult",
    "SubdomainCacheEntry",
]
