"""
Subdomain resolution for Movember donation pages.

The same member or team page exists on one country edition
("au.movember.com", "uk.movember.com", ...) and the edition decides the
currency. Resolution order:

1. Cached resolution (unless forced)
2. Manual override table (members only, never probed)
3. Sequential probes over the candidate list: a redirect to another
   edition wins outright, then currency evidence in the page body
4. A valid page with inconclusive currency evidence
5. One more probe of the default edition
6. The default edition

Every outcome is cached at the subdomain TTL.
"""

from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

from ..constants import (
    CANDIDATE_SUBDOMAINS,
    DEFAULT_SUBDOMAIN,
    MIN_VALID_PAGE_LENGTH,
    SUBDOMAIN_CACHE_TTL_SECONDS,
    PageType,
)
from ..extractors.patterns import (
    CURRENCY_CODE_PATTERNS,
    DEFAULT_EURO_SUBDOMAIN,
    DOLLAR_AMOUNT_PATTERN,
    DOLLAR_COUNTRY_PATTERNS,
    EURO_COUNTRY_PATTERNS,
    EURO_PATTERN,
    POUND_PATTERN,
)
from ..utils.donation_cache import CacheKind, DonationCache
from ..utils.error_tracking import ErrorCategory, ErrorSeverity, ErrorTracker
from ..utils.logger import TrackerLogger
from .base import FetchResult
from .network import PageFetcher, build_page_url, extract_subdomain_from_url


def _euro_country(html: str) -> str:
    for subdomain, pattern in EURO_COUNTRY_PATTERNS:
        if pattern.search(html):
            return subdomain
    return DEFAULT_EURO_SUBDOMAIN


def detect_subdomain_from_html(html: str, default_subdomain: str = DEFAULT_SUBDOMAIN) -> Optional[str]:
    """
    Guess the country edition from currency evidence in a page.

    Unambiguous symbols (£, €) are checked first, then ISO currency codes
    next to numbers, then "$" amounts disambiguated by country names.

    Args:
        html: Page source
        default_subdomain: Edition assumed for "$" amounts with no country hint

    Returns:
        Subdomain, or None when the page shows no currency at all
    """
    if not html:
        return None

    if POUND_PATTERN.search(html):
        return "uk"
    if EURO_PATTERN.search(html):
        return _euro_country(html)

    for subdomain, pattern in CURRENCY_CODE_PATTERNS:
        if pattern.search(html):
            return subdomain or _euro_country(html)

    if DOLLAR_AMOUNT_PATTERN.search(html):
        for subdomain, pattern in DOLLAR_COUNTRY_PATTERNS:
            if pattern.search(html):
                return subdomain
        return default_subdomain

    return None


class SubdomainResolver:
    """Determine and cache the country edition serving an identifier."""

    def __init__(
        self,
        cache: DonationCache,
        fetcher: PageFetcher,
        member_overrides: Mapping[str, str] = MappingProxyType({}),
        candidates: Sequence[str] = CANDIDATE_SUBDOMAINS,
        default_subdomain: str = DEFAULT_SUBDOMAIN,
        logger: Optional[TrackerLogger] = None,
        error_tracker: Optional[ErrorTracker] = None,
    ):
        """
        Initialize subdomain resolver.

        Args:
            cache: Donation cache holding subdomain records
            fetcher: Page fetcher used for probes
            member_overrides: Read-only member ID -> subdomain table
            candidates: Probe order, most common edition first
            default_subdomain: Edition used when nothing else resolves
            logger: Logger instance
            error_tracker: Optional tracker for unresolved identifiers
        """
        self.cache = cache
        self.fetcher = fetcher
        self.member_overrides = member_overrides
        self.candidates = tuple(candidates)
        self.default_subdomain = default_subdomain
        self.logger = logger
        self.error_tracker = error_tracker

    def resolve(self, identifier: str, force_refresh: bool = False, page_type: PageType = PageType.MEMBER) -> str:
        """
        Subdomain serving the identifier's donation page.

        Args:
            identifier: Member or team ID
            force_refresh: Skip the cached resolution
            page_type: Member or team page

        Returns:
            Lowercase subdomain (always; falls back to the default)
        """
        page_type = PageType(page_type)
        if not force_refresh:
            entry = self.cache.get(CacheKind.SUBDOMAIN, identifier, page_type)
            if entry is not None:
                if self.logger:
                    self.logger.debug(f"Using cached subdomain {entry.subdomain} for {page_type.value} {identifier}")
                return entry.subdomain

        if page_type == PageType.MEMBER and identifier in self.member_overrides:
            return self._remember(identifier, self.member_overrides[identifier], page_type, "override")

        subdomain, reason = self._probe_candidates(identifier, page_type)
        return self._remember(identifier, subdomain, page_type, reason)

    def _remember(self, identifier: str, subdomain: str, page_type: PageType, reason: str) -> str:
        self.cache.put(CacheKind.SUBDOMAIN, identifier, subdomain, SUBDOMAIN_CACHE_TTL_SECONDS, page_type)
        if self.logger:
            self.logger.info(f"Resolved subdomain for {page_type.value} {identifier}", subdomain=subdomain, reason=reason)
        return subdomain

    def _evaluate_probe(self, candidate: str, result: FetchResult) -> Tuple[Optional[str], bool]:
        """
        Judge one successful probe.

        Returns:
            (accepted subdomain or None, whether the page looked valid)
        """
        actual = extract_subdomain_from_url(result.final_url)
        if actual and actual != candidate:
            return actual, True

        html = result.raw_data or ""
        if len(html) <= MIN_VALID_PAGE_LENGTH:
            return None, False

        detected = detect_subdomain_from_html(html, self.default_subdomain)
        if detected and detected != candidate and self.logger:
            self.logger.info(f"Probe of {candidate} shows {detected} currency, preferring {detected}")
        return detected, True

    def _probe_candidates(self, identifier: str, page_type: PageType) -> Tuple[str, str]:
        fallback: Optional[str] = None

        for candidate in self.candidates:
            url = build_page_url(identifier, candidate, page_type)
            result = self.fetcher.fetch(url)
            if not result.success:
                if self.logger:
                    self.logger.debug(f"Probe failed for {candidate}: {result.error}")
                continue

            accepted, valid = self._evaluate_probe(candidate, result)
            if accepted:
                return accepted, f"probe:{candidate}"
            if valid and fallback is None:
                fallback = candidate

        if fallback:
            return fallback, "inconclusive-probe"

        url = build_page_url(identifier, self.default_subdomain, page_type)
        result = self.fetcher.fetch(url)
        if result.success and len(result.raw_data or "") > MIN_VALID_PAGE_LENGTH:
            return extract_subdomain_from_url(result.final_url) or self.default_subdomain, "default-probe"

        if self.logger:
            self.logger.warning(
                f"Could not detect subdomain for {page_type.value} {identifier}, using default {self.default_subdomain}"
            )
        if self.error_tracker:
            self.error_tracker.track(
                LookupError(f"No edition found for {page_type.value}; defaulted to {self.default_subdomain}"),
                ErrorCategory.SUBDOMAIN,
                ErrorSeverity.LOW,
                identifier=identifier,
            )
        return self.default_subdomain, "default"
