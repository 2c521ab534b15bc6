"""Shared fixtures for tracker tests.

No test touches the network: pages are served by FakeFetcher and time is
driven by FakeClock.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest

# Add repo root to path so tests can import movember_tracker without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from movember_tracker.collectors.base import FetchResult
from movember_tracker.utils.donation_cache import DonationCache, MemoryStore

START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now_ms: int = START_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: float):
        self.now_ms += int(seconds * 1000)


def ok(html: str, final_url: str) -> FetchResult:
    return FetchResult(success=True, raw_data=html, final_url=final_url, status_code=200)


def not_found(url: str) -> FetchResult:
    return FetchResult(
        success=False, raw_data=None, final_url=url, status_code=404, error="HTTP error! status: 404 (Not Found)"
    )


def server_error(url: str) -> FetchResult:
    return FetchResult(
        success=False, raw_data=None, final_url=url, status_code=502, error="HTTP error! status: 502 (Bad Gateway)"
    )


class FakeFetcher:
    """
    Serves canned FetchResults by URL.

    A route may be a single result (served every time) or a list (served in
    order, last one repeating). Unrouted URLs answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, Union[FetchResult, List[FetchResult]]]] = None):
        self.routes = dict(routes or {})
        self.calls: List[str] = []
        self._served: Dict[str, int] = {}

    def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            return not_found(url)
        if isinstance(route, list):
            index = self._served.get(url, 0)
            self._served[url] = index + 1
            return route[min(index, len(route) - 1)]
        return route


def donation_page(body: str, pad: int = 1200) -> str:
    """Wrap body in a page long enough to count as a real donation page."""
    filler = "<!-- " + "x" * pad + " -->"
    return f"<html><head><title>Mo Space</title></head><body>{body}{filler}</body></html>"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def cache(store, clock):
    return DonationCache(store, clock=clock)


@pytest.fixture
def scenario_html():
    """Page whose totals only appear in embedded JSON."""
    return donation_page(
        "<script>window.__DATA__ = {"
        '"AmountRaised":{"convertedAmount":"2,500","currency":"USD"},'
        '"target":{"fundraising":{"value":"10,000"}}'
        "};</script>"
    )
