"""Tests for PageFetcher and URL helpers. The requests session is mocked."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from movember_tracker.collectors import PageFetcher, build_page_url, extract_subdomain_from_url
from movember_tracker.constants import PageType
from movember_tracker.utils.error_tracking import ErrorCategory, ErrorTracker

PAGE_URL = "https://au.movember.com/donate/details?memberId=14810348"


def _response(status: int, body: str = "", url: str = PAGE_URL, headers=None, reason: str = "") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    response.url = url
    response.reason = reason
    response.headers.update(headers or {})
    return response


def _fetcher(response=None, side_effect=None, **kwargs):
    session = MagicMock(spec=requests.Session)
    session.get.return_value = response
    session.get.side_effect = side_effect
    return PageFetcher(session=session, rate_limit_delay=0, **kwargs), session


class TestUrlHelpers:
    def test_member_url(self):
        assert build_page_url("14810348", "uk") == "https://uk.movember.com/donate/details?memberId=14810348"

    def test_team_url(self):
        assert build_page_url("555", "ca", PageType.TEAM) == "https://ca.movember.com/team/555"

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://UK.movember.com/donate/details?memberId=1", "uk"),
            ("http://nz.movember.com/team/5", "nz"),
            ("https://example.com/page", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract_subdomain(self, url, expected):
        assert extract_subdomain_from_url(url) == expected


class TestDirectFetch:
    def test_success_uses_response_url(self):
        final = "https://uk.movember.com/donate/details?memberId=14810348"
        fetcher, session = _fetcher(_response(200, "<html>ok</html>", url=final))

        result = fetcher.fetch(PAGE_URL)

        assert result.success is True
        assert result.raw_data == "<html>ok</html>"
        assert result.final_url == final
        assert result.status_code == 200
        args, kwargs = session.get.call_args
        assert args == (PAGE_URL,)
        assert kwargs["params"] is None
        assert kwargs["allow_redirects"] is True

    def test_404_is_reported_not_raised(self):
        tracker = ErrorTracker()
        fetcher, _ = _fetcher(_response(404, "missing", reason="Not Found"), error_tracker=tracker)

        result = fetcher.fetch(PAGE_URL)

        assert result.success is False
        assert result.is_not_found is True
        assert result.error.startswith("HTTP error! status: 404")
        assert tracker.get_errors() == []

    def test_server_error_is_tracked(self):
        tracker = ErrorTracker()
        fetcher, _ = _fetcher(_response(503, "", reason="Service Unavailable"), error_tracker=tracker)

        result = fetcher.fetch(PAGE_URL)

        assert result.status_code == 503
        assert result.error == "HTTP error! status: 503 (503 Service Unavailable)"
        assert len(tracker.get_errors(ErrorCategory.NETWORK)) == 1

    def test_request_exception_has_no_status(self):
        fetcher, _ = _fetcher(side_effect=requests.ConnectionError("connection refused"))

        result = fetcher.fetch(PAGE_URL)

        assert result.success is False
        assert result.status_code is None
        assert result.final_url is None
        assert "connection refused" in result.error


class TestProxyFetch:
    def test_proxy_request_and_final_url_header(self):
        final = "https://uk.movember.com/donate/details?memberId=14810348"
        fetcher, session = _fetcher(
            _response(200, "<html/>", url="http://proxy.local/proxy", headers={"X-Final-URL": final}),
            proxy_url="http://proxy.local/",
        )

        result = fetcher.fetch(PAGE_URL)

        assert result.final_url == final
        args, kwargs = session.get.call_args
        assert args == ("http://proxy.local/proxy",)
        assert kwargs["params"] == {"url": PAGE_URL}

    def test_missing_header_falls_back_to_requested_url(self):
        fetcher, _ = _fetcher(_response(200, "<html/>", url="http://proxy.local/proxy"), proxy_url="http://proxy.local")
        assert fetcher.fetch(PAGE_URL).final_url == PAGE_URL

    def test_wrapped_upstream_404_is_not_found(self):
        body = json.dumps({"message": "Upstream HTTP error! status: 404"})
        fetcher, _ = _fetcher(
            _response(500, body, headers={"Content-Type": "application/json"}), proxy_url="http://proxy.local"
        )

        result = fetcher.fetch(PAGE_URL)

        assert result.status_code == 404
        assert result.is_not_found is True
        assert "Upstream HTTP error" in result.error

    def test_proxy_json_message_in_error(self):
        body = json.dumps({"message": "Upstream timeout"})
        fetcher, _ = _fetcher(
            _response(502, body, headers={"Content-Type": "application/json"}), proxy_url="http://proxy.local"
        )

        result = fetcher.fetch(PAGE_URL)

        assert result.status_code == 502
        assert result.error == "HTTP error! status: 502 (Upstream timeout)"
