"""
Pydantic models for scraped donation results and their cache records.

The cache records are stored as JSON with camelCase keys
(`{"data": {...}, "cachedAt": 1700000000000, "ttl": 300000}`) so stored
values stay readable by other consumers of the same key-value store.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScrapedResult(BaseModel):
    """
    One successful acquisition of a member or team donation page.

    Currency always comes from the subdomain used for the fetch, never from
    symbols found in the page.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    amount: str = Field(..., min_length=1)  # Formatted, e.g. "$2,500"
    currency: str = Field(..., pattern=r"^[A-Z]{3}$")
    subdomain: str = Field(..., min_length=1)
    target: Optional[str] = None  # Formatted, e.g. "$10,000"
    percentage: Optional[int] = None
    timestamp: int  # Epoch milliseconds

    @field_validator("percentage")
    @classmethod
    def percentage_requires_target(cls, v: Optional[int], info) -> Optional[int]:
        if v is not None and not info.data.get("target"):
            raise ValueError("percentage is only set alongside a target")
        return v

    def to_output(self) -> Dict[str, Any]:
        """Output contract for presentation consumers (optional keys omitted)."""
        return self.model_dump(exclude_none=True)


class DataCacheEntry(BaseModel):
    """Cached ScrapedResult with its write time and TTL (both milliseconds)."""

    model_config = ConfigDict(populate_by_name=True)

    data: ScrapedResult
    cached_at: int = Field(..., alias="cachedAt")
    ttl: int = Field(..., ge=0)

    def is_expired(self, now_ms: int) -> bool:
        return now_ms - self.cached_at > self.ttl

    def age_seconds(self, now_ms: int) -> float:
        return max(0, now_ms - self.cached_at) / 1000


class SubdomainCacheEntry(BaseModel):
    """Cached subdomain resolution for one identifier."""

    model_config = ConfigDict(populate_by_name=True)

    subdomain: str = Field(..., min_length=1)
    cached_at: int = Field(..., alias="cachedAt")
    ttl: int = Field(..., ge=0)

    def is_expired(self, now_ms: int) -> bool:
        return now_ms - self.cached_at > self.ttl

    def age_seconds(self, now_ms: int) -> float:
        return max(0, now_ms - self.cached_at) / 1000
