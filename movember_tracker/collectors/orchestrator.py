"""
Acquisition orchestrator: resolve, fetch, extract, normalize, cache.

Ties the pipeline together:
- scrape_once: one attempt, with a single subdomain re-resolution on 404
- scrape_with_retry: bounded attempts with a fixed backoff schedule
- get_data: cache front with stale-while-revalidate background refresh
"""

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence, Tuple

from ..constants import (
    DATA_CACHE_TTL_SECONDS,
    SCRAPE_MAX_ATTEMPTS,
    SCRAPE_RETRY_DELAYS_SECONDS,
    SUBDOMAIN_CACHE_TTL_SECONDS,
    PageType,
)
from ..extractors.amounts import ExtractedAmounts, count_amount_markers, extract_amounts
from ..extractors.patterns import CURRENCY_AMOUNT_PATTERN
from ..parsers.amount_normalizer import DEFAULT_TABLES, CurrencyTables, format_amount, normalize, percentage
from ..utils.donation_cache import CacheKind, DonationCache, FileStore, MemoryStore, epoch_ms
from ..utils.error_tracking import ErrorCategory, ErrorSeverity, ErrorTracker
from ..utils.formatting import format_duration
from ..utils.logger import TrackerLogger
from ..utils.worker_pool import WorkerPool
from ..validators.base_validator import is_valid_number, normalize_identifier
from ..validators.scraped_result import ScrapedResult
from .base import (
    AcquisitionError,
    ExtractionError,
    FetchResult,
    PageNotFoundError,
    TransportError,
    is_not_found_error,
)
from .network import PageFetcher, build_page_url, extract_subdomain_from_url
from .subdomain import SubdomainResolver, detect_subdomain_from_html


class CacheStatus(str, Enum):
    HIT = "HIT"
    MISS = "MISS"
    STALE = "STALE"
    LIVE = "LIVE"


@dataclass(frozen=True)
class DataResponse:
    result: ScrapedResult
    status: CacheStatus


class AcquisitionOrchestrator:
    """
    End-to-end donation data acquisition for members and teams.

    Retries and probes run sequentially inside one call; the only
    concurrency is the detached refresh started by a stale read.
    """

    def __init__(
        self,
        cache: DonationCache,
        resolver: SubdomainResolver,
        fetcher: PageFetcher,
        tables: CurrencyTables = DEFAULT_TABLES,
        refresher: Optional[WorkerPool] = None,
        logger: Optional[TrackerLogger] = None,
        error_tracker: Optional[ErrorTracker] = None,
        clock: Callable[[], int] = epoch_ms,
        sleep: Callable[[float], None] = time.sleep,
        max_attempts: int = SCRAPE_MAX_ATTEMPTS,
        retry_delays: Sequence[float] = SCRAPE_RETRY_DELAYS_SECONDS,
        data_ttl_seconds: float = DATA_CACHE_TTL_SECONDS,
    ):
        """
        Initialize orchestrator.

        Args:
            cache: Donation cache for data and subdomain records
            resolver: Subdomain resolver
            fetcher: Page fetcher
            tables: Currency lookup tables
            refresher: Worker pool for background refreshes
            logger: Logger instance
            error_tracker: Optional tracker for failed attempts
            clock: Returns the current time in epoch milliseconds
            sleep: Called with the backoff delay between attempts
            max_attempts: Attempts per scrape_with_retry call
            retry_delays: Backoff schedule in seconds (last value repeats)
            data_ttl_seconds: TTL for cached results
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not retry_delays:
            raise ValueError("retry_delays must not be empty")

        self.cache = cache
        self.resolver = resolver
        self.fetcher = fetcher
        self.tables = tables
        self.refresher = refresher or WorkerPool(logger=logger)
        self.logger = logger
        self.error_tracker = error_tracker
        self.clock = clock
        self.sleep = sleep
        self.max_attempts = max_attempts
        self.retry_delays = tuple(retry_delays)
        self.data_ttl_seconds = data_ttl_seconds

    # ─── Single attempt ───────────────────────────────────────────────────────

    def scrape_once(
        self,
        identifier: str,
        allow_subdomain_retry_on_404: bool = False,
        page_type: PageType = PageType.MEMBER,
    ) -> ScrapedResult:
        """
        Resolve, fetch and extract one donation page.

        Args:
            identifier: Member or team ID
            allow_subdomain_retry_on_404: On a 404, drop the cached subdomain,
                re-resolve and fetch once more from the new edition
            page_type: Member or team page

        Returns:
            ScrapedResult for the page

        Raises:
            PageNotFoundError: Page missing on every edition tried
            TransportError: Network or upstream failure
            ExtractionError: No raised amount in the fetched page
        """
        page_type = PageType(page_type)
        subdomain = self.resolver.resolve(identifier, page_type=page_type)
        url = build_page_url(identifier, subdomain, page_type)
        start = time.monotonic()

        if self.logger:
            self.logger.info(f"Starting scrape of {url}", subdomain=subdomain)

        try:
            result = self.fetcher.fetch(url)
            if result.is_not_found and allow_subdomain_retry_on_404:
                subdomain, url, result = self._refetch_with_fresh_subdomain(identifier, subdomain, url, page_type)

            if not result.success:
                raise self._fetch_failure(result, identifier, subdomain, url, page_type)

            html = result.raw_data or ""
            subdomain = self._follow_redirect(identifier, subdomain, result.final_url, page_type)
            self._check_currency_evidence(html, subdomain)

            amounts = extract_amounts(html)
            if not amounts.raised:
                raise self._extraction_failure(html, identifier, subdomain, url, page_type)

            scraped = self._build_result(amounts, subdomain)

        except AcquisitionError as e:
            if self.error_tracker:
                category = ErrorCategory.PARSING if isinstance(e, ExtractionError) else ErrorCategory.SCRAPING
                self.error_tracker.track(
                    e,
                    category,
                    ErrorSeverity.HIGH,
                    identifier=identifier,
                    subdomain=e.subdomain,
                    url=e.url,
                    duration_ms=int((time.monotonic() - start) * 1000),
                )
            if self.logger:
                self.logger.error(f"Scrape failed for {page_type.value} {identifier}: {e}", subdomain=e.subdomain)
            raise

        if self.logger:
            self.logger.info(
                f"Scrape completed in {format_duration((time.monotonic() - start) * 1000)}",
                amount=scraped.amount,
                target=scraped.target,
                percentage=scraped.percentage,
                currency=scraped.currency,
                subdomain=scraped.subdomain,
                raised_strategy=amounts.raised_strategy,
            )
        return scraped

    def _refetch_with_fresh_subdomain(
        self, identifier: str, subdomain: str, url: str, page_type: PageType
    ) -> Tuple[str, str, FetchResult]:
        if self.logger:
            self.logger.warning(f"Got 404 for {url}, clearing cached subdomain and re-detecting")

        self.cache.delete(CacheKind.SUBDOMAIN, identifier, page_type)
        new_subdomain = self.resolver.resolve(identifier, force_refresh=True, page_type=page_type)
        if new_subdomain == subdomain:
            raise PageNotFoundError(
                f"HTTP error! status: 404 (page not found - {page_type.value} may not exist)",
                identifier=identifier,
                subdomain=subdomain,
                url=url,
            )

        if self.logger:
            self.logger.info(f"Re-detected subdomain {new_subdomain} (was {subdomain}), retrying fetch")
        new_url = build_page_url(identifier, new_subdomain, page_type)
        return new_subdomain, new_url, self.fetcher.fetch(new_url)

    @staticmethod
    def _fetch_failure(
        result: FetchResult, identifier: str, subdomain: str, url: str, page_type: PageType
    ) -> TransportError:
        if result.is_not_found:
            return PageNotFoundError(
                f"HTTP error! status: 404 (page not found for {page_type.value} {identifier} on {subdomain})",
                identifier=identifier,
                subdomain=subdomain,
                url=url,
            )
        return TransportError(
            result.error or "Fetch failed",
            status_code=result.status_code,
            identifier=identifier,
            subdomain=subdomain,
            url=url,
        )

    def _follow_redirect(self, identifier: str, subdomain: str, final_url: Optional[str], page_type: PageType) -> str:
        """Adopt the edition the fetch actually landed on."""
        actual = extract_subdomain_from_url(final_url)
        if not actual or actual == subdomain:
            return subdomain

        if self.logger:
            self.logger.info(f"URL redirected from {subdomain} to {actual}, updating subdomain")
        self.cache.put(CacheKind.SUBDOMAIN, identifier, actual, SUBDOMAIN_CACHE_TTL_SECONDS, page_type)
        return actual

    def _check_currency_evidence(self, html: str, subdomain: str):
        """Log whether page currency agrees with the edition; never changes it."""
        if not self.logger:
            return
        detected = detect_subdomain_from_html(html, self.resolver.default_subdomain)
        if detected and detected != subdomain:
            self.logger.warning(
                f"HTML currency indicates {detected} but URL subdomain is {subdomain}; keeping {subdomain}"
            )
        elif detected:
            self.logger.debug(f"HTML currency confirms subdomain {subdomain}")

    def _extraction_failure(
        self, html: str, identifier: str, subdomain: str, url: str, page_type: PageType
    ) -> ExtractionError:
        dollar_amounts, potential_amounts = count_amount_markers(html)
        if self.logger:
            self.logger.warning(
                "No raised amount found",
                html_length=len(html),
                dollar_amounts=dollar_amounts,
                potential_amounts=potential_amounts,
                sample=CURRENCY_AMOUNT_PATTERN.findall(html)[:10],
            )
        return ExtractionError(
            f"Could not find raised amount in HTML for {page_type.value} {identifier} (subdomain: {subdomain}). "
            f"The page may require JavaScript execution or the HTML structure may have changed. "
            f"Found {dollar_amounts} dollar amounts in HTML.",
            html_length=len(html),
            dollar_amounts_found=dollar_amounts,
            potential_amounts_found=potential_amounts,
            identifier=identifier,
            subdomain=subdomain,
            url=url,
        )

    def _build_result(self, amounts: ExtractedAmounts, subdomain: str) -> ScrapedResult:
        raised = normalize(amounts.raised, subdomain, self.tables)
        fields = {
            "amount": format_amount(raised.value, raised.currency, self.tables),
            "currency": raised.currency,
            "subdomain": subdomain,
            "timestamp": self.clock(),
        }

        if amounts.target and is_valid_number(amounts.target):
            target = normalize(amounts.target, subdomain, self.tables)
            fields["target"] = format_amount(target.value, raised.currency, self.tables)
            fields["percentage"] = percentage(raised.value, target.value)
        elif amounts.target and self.logger:
            self.logger.warning(f'Target value "{amounts.target}" failed validation, skipping target')

        return ScrapedResult(**fields)

    # ─── Retries ──────────────────────────────────────────────────────────────

    def _retry_delay(self, attempt: int) -> float:
        return self.retry_delays[min(attempt, len(self.retry_delays) - 1)]

    def scrape_with_retry(self, identifier: str, page_type: PageType = PageType.MEMBER) -> ScrapedResult:
        """
        scrape_once with up to max_attempts attempts.

        The first attempt, and any attempt following a not-found failure,
        may re-resolve the subdomain on 404.

        Raises:
            AcquisitionError: The last failure once every attempt is used
        """
        page_type = PageType(page_type)
        last_error: Optional[AcquisitionError] = None

        for attempt in range(self.max_attempts):
            allow_retry_on_404 = attempt == 0 or is_not_found_error(last_error)
            try:
                return self.scrape_once(identifier, allow_retry_on_404, page_type)
            except AcquisitionError as e:
                last_error = e
                if is_not_found_error(e):
                    self.cache.invalidate(identifier, page_type)

                if attempt < self.max_attempts - 1:
                    delay = self._retry_delay(attempt)
                    if self.logger:
                        self.logger.warning(
                            f"Attempt {attempt + 1}/{self.max_attempts} failed, retrying in {delay}s: {e}"
                        )
                    self.sleep(delay)

        if self.logger:
            self.logger.error(f"All {self.max_attempts} attempts failed for {page_type.value} {identifier}")
        raise last_error

    # ─── Cache front ──────────────────────────────────────────────────────────

    def _store(self, identifier: str, result: ScrapedResult, page_type: PageType):
        self.cache.put(CacheKind.DATA, identifier, result, self.data_ttl_seconds, page_type)

    def _respond(
        self, identifier: str, page_type: PageType, result: ScrapedResult, status: CacheStatus, age: Optional[float] = None
    ) -> DataResponse:
        if self.logger:
            self.logger.log_cache_status(identifier, page_type.value, status.value, age_seconds=age)
        return DataResponse(result=result, status=status)

    def refresh(self, identifier: str, page_type: PageType = PageType.MEMBER) -> ScrapedResult:
        """Scrape and overwrite the cached result."""
        result = self.scrape_with_retry(identifier, page_type)
        self._store(identifier, result, page_type)
        return result

    def get_data(self, identifier: str, force_live: bool = False, page_type: PageType = PageType.MEMBER) -> DataResponse:
        """
        Donation data for an identifier, served from cache when possible.

        Args:
            identifier: Member or team ID
            force_live: Bypass the cache and scrape now
            page_type: Member or team page

        Returns:
            DataResponse with the result and HIT, MISS, STALE or LIVE

        Raises:
            ValueError: If the identifier is empty
            AcquisitionError: If a synchronous scrape fails every attempt
        """
        identifier = normalize_identifier(identifier)
        page_type = PageType(page_type)

        if force_live:
            return self._respond(identifier, page_type, self.refresh(identifier, page_type), CacheStatus.LIVE)

        # Peek without the expiring read so an expired record can still be served stale
        entry = self.cache.get_stale(CacheKind.DATA, identifier, page_type)
        now = self.clock()

        if entry is not None and not entry.is_expired(now):
            return self._respond(identifier, page_type, entry.data, CacheStatus.HIT, entry.age_seconds(now))

        if entry is not None:
            self.refresher.submit(self.refresh, identifier, page_type)
            return self._respond(identifier, page_type, entry.data, CacheStatus.STALE, entry.age_seconds(now))

        return self._respond(identifier, page_type, self.refresh(identifier, page_type), CacheStatus.MISS)

    def close(self, wait: bool = True):
        """Stop the background refresh pool."""
        self.refresher.shutdown(wait=wait)


def build_pipeline(
    proxy_url: Optional[str] = None,
    cache_dir: Optional[Path] = None,
    member_overrides: Optional[Mapping[str, str]] = None,
    logger: Optional[TrackerLogger] = None,
    rate_limit_delay: Optional[float] = None,
    timeout: Optional[float] = None,
) -> AcquisitionOrchestrator:
    """
    Wire the default pipeline.

    Args:
        proxy_url: Forwarding proxy base URL; None fetches directly
        cache_dir: Directory for the file cache; None keeps the cache in memory
        member_overrides: Read-only member override table
        logger: Logger shared by every component
        rate_limit_delay: Seconds between requests to one host
        timeout: Request timeout in seconds

    Returns:
        Ready AcquisitionOrchestrator
    """
    error_tracker = ErrorTracker(logger=logger)
    store = FileStore(cache_dir) if cache_dir is not None else MemoryStore()
    cache = DonationCache(store, logger=logger, error_tracker=error_tracker)

    fetcher_kwargs = {}
    if rate_limit_delay is not None:
        fetcher_kwargs["rate_limit_delay"] = rate_limit_delay
    if timeout is not None:
        fetcher_kwargs["timeout"] = timeout
    fetcher = PageFetcher(proxy_url=proxy_url, logger=logger, error_tracker=error_tracker, **fetcher_kwargs)

    resolver_kwargs = {}
    if member_overrides is not None:
        resolver_kwargs["member_overrides"] = member_overrides
    resolver = SubdomainResolver(cache, fetcher, logger=logger, error_tracker=error_tracker, **resolver_kwargs)

    return AcquisitionOrchestrator(
        cache=cache,
        resolver=resolver,
        fetcher=fetcher,
        logger=logger,
        error_tracker=error_tracker,
    )
