"""
Base types for page collection.

The fetcher reports upstream failures as FetchResult values; the
orchestrator turns them into the exception taxonomy below:

- TransportError: network/proxy failure or non-2xx status, retried
- PageNotFoundError: 404, triggers subdomain re-resolution before retrying
- ExtractionError: page fetched but no raised amount found, retried
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class FetchResult:
    """Result from PageFetcher.fetch() - page body plus post-redirect URL."""

    success: bool
    raw_data: Optional[str]  # HTML body
    final_url: Optional[str]  # URL after redirects (from X-Final-URL when proxied)
    status_code: Optional[int] = None  # None when no HTTP response was received
    error: Optional[str] = None

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class AcquisitionError(Exception):
    """Terminal failure of one acquisition attempt, with triage context."""

    def __init__(
        self,
        message: str,
        identifier: Optional[str] = None,
        subdomain: Optional[str] = None,
        url: Optional[str] = None,
    ):
        super().__init__(message)
        self.identifier = identifier
        self.subdomain = subdomain
        self.url = url


class TransportError(AcquisitionError):
    """Network error, proxy error or non-2xx upstream status."""

    def __init__(self, message: str, status_code: Optional[int] = None, **context):
        super().__init__(message, **context)
        self.status_code = status_code


class PageNotFoundError(TransportError):
    """Upstream answered 404 for the donation page."""

    def __init__(self, message: str, **context):
        super().__init__(message, status_code=404, **context)


class ExtractionError(AcquisitionError):
    """No raised amount could be located in a fetched page."""

    def __init__(
        self,
        message: str,
        html_length: int = 0,
        dollar_amounts_found: int = 0,
        potential_amounts_found: int = 0,
        **context,
    ):
        super().__init__(message, **context)
        self.html_length = html_length
        self.dollar_amounts_found = dollar_amounts_found
        self.potential_amounts_found = potential_amounts_found


def is_not_found_error(error: Optional[BaseException]) -> bool:
    """True for 404 failures, including ones only described as such in text."""
    if error is None:
        return False
    return isinstance(error, PageNotFoundError) or "not found" in str(error).lower()
