"""Tests for country-edition detection and subdomain resolution."""

from types import MappingProxyType

import pytest
from conftest import FakeFetcher, donation_page, ok, server_error

from movember_tracker.collectors import SubdomainResolver, build_page_url, detect_subdomain_from_html
from movember_tracker.constants import SUBDOMAIN_CACHE_TTL_SECONDS, PageType
from movember_tracker.utils.donation_cache import CacheKind
from movember_tracker.utils.error_tracking import ErrorCategory, ErrorTracker

MEMBER = "14810348"


def _url(subdomain: str, identifier: str = MEMBER, page_type: PageType = PageType.MEMBER) -> str:
    return build_page_url(identifier, subdomain, page_type)


def _resolver(cache, fetcher, **kwargs) -> SubdomainResolver:
    return SubdomainResolver(cache, fetcher, **kwargs)


# ─── HTML currency heuristic ──────────────────────────────────────────────────


class TestDetectSubdomainFromHtml:
    @pytest.mark.parametrize(
        "html,expected",
        [
            ("<p>£1,000 raised</p>", "uk"),
            ("<p>&pound;1,000 raised</p>", "uk"),
            ("<p>€500 raised in Germany</p>", "de"),
            ("<p>&euro;500 raised</p>", "ie"),
            ("<p>€500 for the Dutch team</p>", "nl"),
            ("<p>Raised EUR 500 in France</p>", "fr"),
            ("<p>Raised 1,000 USD</p>", "us"),
            ("<p>NZD 400</p>", "nz"),
            ("<p>Raised ZAR 9,000</p>", "za"),
            ("<p>Raised 5,000 SEK</p>", "se"),
            ("<p>$400 raised for Canadian men</p>", "ca"),
            ("<p>$400 raised across the United States</p>", "us"),
            ("<p>$400 raised in New Zealand</p>", "nz"),
        ],
    )
    def test_currency_evidence(self, html, expected):
        assert detect_subdomain_from_html(html) == expected

    def test_bare_dollar_uses_default(self):
        assert detect_subdomain_from_html("<p>$400 raised</p>", default_subdomain="us") == "us"
        assert detect_subdomain_from_html("<p>$400 raised</p>") == "au"

    def test_pound_beats_dollar(self):
        assert detect_subdomain_from_html("<p>$10 or £8</p>") == "uk"

    def test_no_currency_is_inconclusive(self):
        assert detect_subdomain_from_html("<p>Hello</p>") is None
        assert detect_subdomain_from_html("") is None


# ─── Resolver ─────────────────────────────────────────────────────────────────


class TestResolverCacheAndOverrides:
    def test_fresh_cache_short_circuits(self, cache):
        cache.put(CacheKind.SUBDOMAIN, MEMBER, "nz", SUBDOMAIN_CACHE_TTL_SECONDS)
        fetcher = FakeFetcher()
        assert _resolver(cache, fetcher).resolve(MEMBER) == "nz"
        assert fetcher.calls == []

    def test_override_never_probes(self, cache, clock):
        fetcher = FakeFetcher()
        resolver = _resolver(cache, fetcher, member_overrides=MappingProxyType({MEMBER: "ie"}))
        for _ in range(3):
            assert resolver.resolve(MEMBER) == "ie"
            clock.advance(SUBDOMAIN_CACHE_TTL_SECONDS + 1)
        assert resolver.resolve(MEMBER, force_refresh=True) == "ie"
        assert fetcher.calls == []
        assert cache.get(CacheKind.SUBDOMAIN, MEMBER).subdomain == "ie"

    def test_overrides_ignored_for_teams(self, cache):
        page = donation_page("<p>£50 raised</p>")
        fetcher = FakeFetcher({_url("au", "77", PageType.TEAM): ok(page, _url("au", "77", PageType.TEAM))})
        resolver = _resolver(cache, fetcher, member_overrides=MappingProxyType({"77": "ie"}))
        assert resolver.resolve("77", page_type=PageType.TEAM) == "uk"

    def test_force_refresh_skips_cache(self, cache):
        cache.put(CacheKind.SUBDOMAIN, MEMBER, "nz", SUBDOMAIN_CACHE_TTL_SECONDS)
        fetcher = FakeFetcher({_url("au"): ok("", _url("uk"))})
        assert _resolver(cache, fetcher).resolve(MEMBER, force_refresh=True) == "uk"
        assert fetcher.calls == [_url("au")]


class TestResolverProbing:
    def test_redirect_wins_without_further_probes(self, cache, clock):
        fetcher = FakeFetcher({_url("au"): ok(donation_page("<p>$10</p>"), _url("uk"))})
        assert _resolver(cache, fetcher).resolve(MEMBER) == "uk"
        assert fetcher.calls == [_url("au")]

        entry = cache.get(CacheKind.SUBDOMAIN, MEMBER)
        assert entry.subdomain == "uk"
        assert entry.ttl == SUBDOMAIN_CACHE_TTL_SECONDS * 1000
        assert entry.cached_at == clock()

    def test_currency_confirms_candidate(self, cache):
        fetcher = FakeFetcher({_url("au"): ok(donation_page("<p>$10 raised in Australia</p>"), _url("au"))})
        assert _resolver(cache, fetcher).resolve(MEMBER) == "au"

    def test_currency_evidence_outranks_probe(self, cache):
        fetcher = FakeFetcher({_url("au"): ok(donation_page("<p>€10 raised in Spain</p>"), _url("au"))})
        assert _resolver(cache, fetcher).resolve(MEMBER) == "es"
        assert fetcher.calls == [_url("au")]

    def test_failed_probes_move_on(self, cache):
        fetcher = FakeFetcher(
            {
                _url("au"): server_error(_url("au")),
                _url("us"): ok(donation_page("<p>$10 raised in the United States</p>"), _url("us")),
            }
        )
        assert _resolver(cache, fetcher).resolve(MEMBER) == "us"
        assert fetcher.calls == [_url("au"), _url("uk"), _url("us")]

    def test_short_pages_are_not_evidence(self, cache):
        fetcher = FakeFetcher(
            {
                _url("au"): ok("<p>£10</p>", _url("au")),
                _url("uk"): ok(donation_page("<p>£10</p>"), _url("uk")),
            }
        )
        assert _resolver(cache, fetcher).resolve(MEMBER) == "uk"

    def test_inconclusive_page_used_as_fallback(self, cache):
        fetcher = FakeFetcher({_url("ca"): ok(donation_page("<p>No amounts yet</p>"), _url("ca"))})
        resolver = _resolver(cache, fetcher)
        assert resolver.resolve(MEMBER) == "ca"
        assert len(fetcher.calls) == len(resolver.candidates)

    def test_default_probe_redirect(self, cache):
        """A default-edition probe that fails the first time and redirects on the retry."""
        fetcher = FakeFetcher({_url("au"): [server_error(_url("au")), ok(donation_page("<p>Hi</p>"), _url("nz"))]})
        resolver = _resolver(cache, fetcher, candidates=("au", "uk"))
        assert resolver.resolve(MEMBER) == "nz"
        assert fetcher.calls == [_url("au"), _url("uk"), _url("au")]

    def test_short_default_probe_page_is_not_trusted(self, cache):
        tracker = ErrorTracker()
        fetcher = FakeFetcher({_url("au"): [server_error(_url("au")), ok("", _url("nz"))]})
        resolver = _resolver(cache, fetcher, candidates=("au", "uk"), error_tracker=tracker)

        assert resolver.resolve(MEMBER) == "au"
        assert fetcher.calls == [_url("au"), _url("uk"), _url("au")]
        assert cache.get(CacheKind.SUBDOMAIN, MEMBER).subdomain == "au"
        assert len(tracker.get_errors(ErrorCategory.SUBDOMAIN)) == 1

    def test_unresolvable_falls_back_to_default_and_caches(self, cache):
        tracker = ErrorTracker()
        fetcher = FakeFetcher()
        resolver = _resolver(cache, fetcher, candidates=("uk", "us"), default_subdomain="au", error_tracker=tracker)
        assert resolver.resolve(MEMBER) == "au"
        assert cache.get(CacheKind.SUBDOMAIN, MEMBER).subdomain == "au"
        assert len(tracker.get_errors(ErrorCategory.SUBDOMAIN)) == 1

        resolver.resolve(MEMBER)
        assert len(fetcher.calls) == 3  # second call served from cache

    def test_team_urls(self, cache):
        team_url = _url("uk", "555", PageType.TEAM)
        fetcher = FakeFetcher({_url("au", "555", PageType.TEAM): ok("", team_url)})
        assert _resolver(cache, fetcher).resolve("555", page_type=PageType.TEAM) == "uk"
        assert cache.get(CacheKind.SUBDOMAIN, "555", PageType.TEAM).subdomain == "uk"
        assert cache.get(CacheKind.SUBDOMAIN, "555") is None
