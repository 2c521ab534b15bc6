"""
Page fetching for Movember donation pages.

Pages are fetched either through a same-origin forwarding proxy
(GET {proxy}/proxy?url=<target>, final URL in the X-Final-URL header) or
directly with redirects followed. Upstream failures come back as
FetchResult values with the HTTP status preserved; this module never
raises for a failed request.
"""

from typing import Optional
from urllib.parse import urlsplit

import requests

from ..constants import (
    DEFAULT_RATE_LIMIT_DELAY_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    MEMBER_URL_TEMPLATE,
    TEAM_URL_TEMPLATE,
    PageType,
)
from ..extractors.patterns import SUBDOMAIN_URL_PATTERN
from ..utils.error_tracking import ErrorCategory, ErrorSeverity, ErrorTracker
from ..utils.logger import TrackerLogger
from ..utils.rate_limiter import global_rate_limiter
from .base import FetchResult


def build_page_url(identifier: str, subdomain: str, page_type: PageType = PageType.MEMBER) -> str:
    """Donation page URL for an identifier on one country edition."""
    template = TEAM_URL_TEMPLATE if page_type == PageType.TEAM else MEMBER_URL_TEMPLATE
    return template.format(subdomain=subdomain, identifier=identifier)


def extract_subdomain_from_url(url: Optional[str]) -> Optional[str]:
    """Subdomain of a movember.com URL ("https://uk.movember.com/..." -> "uk")."""
    if not url:
        return None
    match = SUBDOMAIN_URL_PATTERN.search(url)
    return match.group(1).lower() if match else None


class PageFetcher:
    """
    Fetch donation pages through the forwarding proxy or directly.

    Requests to one host are spaced by the shared global rate limiter.
    """

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        logger: Optional[TrackerLogger] = None,
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY_SECONDS,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        error_tracker: Optional[ErrorTracker] = None,
    ):
        """
        Initialize page fetcher.

        Args:
            proxy_url: Proxy base URL; None fetches pages directly
            logger: Logger instance
            rate_limit_delay: Seconds to wait between requests to one host
            timeout: Request timeout in seconds
            session: Optional requests session (shared connection pool)
            error_tracker: Optional tracker for network failures
        """
        self.proxy_url = proxy_url.rstrip("/") if proxy_url else None
        self.logger = logger
        self.rate_limit_delay = rate_limit_delay
        self.timeout = timeout
        self.session = session or requests.Session()
        self.error_tracker = error_tracker

        # Browser-like headers; the upstream serves a reduced page to unknown agents
        self.headers = {
            "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }

    def _rate_limit(self, url: str):
        host = urlsplit(self.proxy_url or url).netloc or "default"
        global_rate_limiter.wait(host, self.rate_limit_delay)

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Short description of a failed response (proxy JSON message or body prefix)."""
        message = f"{response.status_code} {response.reason or ''}".strip()
        try:
            if "application/json" in response.headers.get("content-type", ""):
                payload = response.json()
                if isinstance(payload, dict) and payload.get("message"):
                    message = str(payload["message"])
            elif response.text:
                message = response.text[:200]
        except ValueError:
            pass  # Unparseable error body; keep the status line
        return message

    def fetch(self, url: str) -> FetchResult:
        """
        Fetch one page.

        Args:
            url: Upstream donation page URL

        Returns:
            FetchResult with the HTML and final URL on success, or the
            status code and error message on failure
        """
        self._rate_limit(url)

        if self.proxy_url:
            request_url, params = f"{self.proxy_url}/proxy", {"url": url}
        else:
            request_url, params = url, None

        if self.logger:
            self.logger.debug(f"Fetching {url}", via_proxy=bool(self.proxy_url))

        try:
            response = self.session.get(
                request_url,
                params=params,
                headers=self.headers,
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            if self.logger:
                self.logger.warning(f"Request failed for {url}: {e}")
            if self.error_tracker:
                self.error_tracker.track(e, ErrorCategory.NETWORK, ErrorSeverity.MEDIUM, url=url)
            return FetchResult(success=False, raw_data=None, final_url=None, error=str(e))

        if self.proxy_url:
            final_url = response.headers.get("X-Final-URL") or url
        else:
            final_url = response.url or url

        if not response.ok:
            status_code = response.status_code
            message = self._error_message(response)
            # Proxies that wrap upstream errors in a 5xx still name the original status
            if status_code != 404 and "status: 404" in message:
                status_code = 404

            error = f"HTTP error! status: {status_code} ({message})"
            if status_code == 404:
                if self.logger:
                    self.logger.debug(f"Page not found: {url}")
            else:
                if self.logger:
                    self.logger.warning(f"Fetch failed for {url}: {error}")
                if self.error_tracker:
                    self.error_tracker.track(
                        RuntimeError(error), ErrorCategory.NETWORK, ErrorSeverity.MEDIUM, url=url, status=status_code
                    )
            return FetchResult(success=False, raw_data=None, final_url=final_url, status_code=status_code, error=error)

        return FetchResult(success=True, raw_data=response.text, final_url=final_url, status_code=response.status_code)
