"""
Global constants for the donation tracker.

Centralizes magic numbers, lookup tables and URL templates used throughout
the acquisition pipeline for easier maintenance and tuning.
"""

from enum import Enum

# Cache TTLs (seconds)
DATA_CACHE_TTL_SECONDS = 5 * 60  # Donation totals change often
SUBDOMAIN_CACHE_TTL_SECONDS = 24 * 60 * 60  # Country editions rarely change
STALE_RETENTION_SECONDS = SUBDOMAIN_CACHE_TTL_SECONDS  # Keep expired data this long for stale reads

# Scrape Retry Configuration
SCRAPE_MAX_ATTEMPTS = 3  # Attempts per scrape_with_retry call
SCRAPE_RETRY_DELAYS_SECONDS = (1.0, 2.0, 4.0)  # Last value repeats past the end

# Network and Timeouts
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30  # Upstream/proxy request timeout
DEFAULT_RATE_LIMIT_DELAY_SECONDS = 0.5  # Minimum gap between requests to one host
MIN_VALID_PAGE_LENGTH = 1000  # Bodies shorter than this are not real donation pages

# Background refresh
REFRESH_MAX_WORKERS = 4  # Detached stale-while-revalidate refreshes

# Context scoring
CONTEXT_WINDOW_CHARS = 300  # Characters inspected either side of a candidate amount

# Error tracking
ERROR_LOG_MAX_ENTRIES = 50
ERROR_LOG_TTL_DAYS = 7
ERROR_MESSAGE_MAX_LENGTH = 200

# Upstream site
UPSTREAM_HOST = "movember.com"
MEMBER_URL_TEMPLATE = "https://{subdomain}.movember.com/donate/details?memberId={identifier}"
TEAM_URL_TEMPLATE = "https://{subdomain}.movember.com/team/{identifier}"
CACHE_KEY_NAMESPACE = "movember"
DEFAULT_MEMBER_ID = "14810348"

# Subdomains and currencies
DEFAULT_SUBDOMAIN = "au"
DEFAULT_CURRENCY = "AUD"
DEFAULT_CURRENCY_SYMBOL = "$"

# Probe order, most common edition first
CANDIDATE_SUBDOMAINS = (
    "au",
    "uk",
    "us",
    "ca",
    "nz",
    "ie",
    "za",
    "nl",
    "de",
    "fr",
    "es",
    "it",
    "cz",
    "dk",
    "se",
    "ex",
)

SUBDOMAIN_CURRENCY_MAP = {
    "uk": "GBP",
    "au": "AUD",
    "us": "USD",
    "ca": "CAD",
    "nz": "NZD",
    "ie": "EUR",
    "nl": "EUR",
    "de": "EUR",
    "fr": "EUR",
    "es": "EUR",
    "it": "EUR",
    "ex": "EUR",  # International edition
    "za": "ZAR",
    "cz": "CZK",
    "dk": "DKK",
    "se": "SEK",
}

CURRENCY_SYMBOL_MAP = {
    "USD": "$",
    "AUD": "$",
    "CAD": "$",
    "NZD": "$",
    "GBP": "£",
    "EUR": "€",
    "JPY": "¥",
    "ZAR": "R",
    "CZK": "Kč",
    "DKK": "kr",
    "SEK": "kr",
}

# Members whose edition is known; never probed
MEMBER_SUBDOMAIN_OVERRIDES: dict = {
    # "14810348": "au",
}


class PageType(str, Enum):
    """Kind of donation page an identifier names."""

    MEMBER = "member"
    TEAM = "team"
