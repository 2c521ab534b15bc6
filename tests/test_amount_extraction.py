"""Tests for the raised/target extraction cascade.

Each tier is exercised on its own, then the cascade order and the
context-ranking fallback.
"""

import re

import pytest
from conftest import donation_page

from movember_tracker.extractors import (
    RAISED_STRATEGIES,
    ExtractionCandidate,
    count_amount_markers,
    extract_amounts,
    first_success,
    rank_candidates,
)
from movember_tracker.extractors import amounts as amounts_module
from movember_tracker.extractors.amounts import (
    captured_amount,
    context_raised,
    context_target,
    embedded_raised,
    embedded_target,
    generic_raised,
    generic_target,
    structured_raised,
    structured_target,
)

# ─── Helpers ──────────────────────────────────────────────────────────────────

FILLER = "<p>" + "Moustaches for men's health. " * 15 + "</p>"  # > 300 chars, no keywords


def _never(html):
    return None


def _always(value, name):
    def strategy(html):
        return ExtractionCandidate(raw_value=value, source_strategy=name)

    return strategy


# ─── Scenario ─────────────────────────────────────────────────────────────────


class TestEmbeddedJsonScenario:
    def test_extracts_raised_and_target(self, scenario_html):
        amounts = extract_amounts(scenario_html)
        assert amounts.raised == "2,500"
        assert amounts.target == "10,000"
        assert amounts.raised_strategy == "embedded"
        assert amounts.target_strategy == "embedded"


# ─── Tier 1: structured ───────────────────────────────────────────────────────


class TestStructuredLookup:
    def test_template_classes(self):
        html = (
            '<div class="donationProgress">'
            '<span class="donationProgress--amount__raised">$1,234</span>'
            '<span class="donationProgress--amount__target">$5,000</span>'
            "</div>"
        )
        assert structured_raised(html).raw_value == "1,234"
        assert structured_target(html).raw_value == "5,000"

    def test_partial_class_match(self):
        html = '<span class="big donationProgress--amount__raised-large">£750.50 raised</span>'
        assert structured_raised(html).raw_value == "750.50"

    def test_data_attribute_when_text_empty(self):
        html = '<div data-raised="3,210"></div><div data-goal="$9,000"></div>'
        assert structured_raised(html).raw_value == "3,210"
        assert structured_target(html).raw_value == "9,000"

    def test_currency_code_in_text(self):
        html = '<span class="donationProgress--amount__raised">Raised USD 1,200</span>'
        assert structured_raised(html).raw_value == "1,200"

    def test_nothing_found(self):
        assert structured_raised("<p>No totals here</p>") is None

    def test_template_text_needs_currency(self):
        html = '<span class="donationProgress--amount__target">Goal for 2024</span>'
        assert structured_target(html) is None

    def test_non_amount_data_attributes_ignored(self):
        html = '<a data-toggle="collapse" data-target="#faq2">FAQ</a><div data-goal="about 5 mos"></div>'
        assert structured_target(html) is None

    def test_donate_button_amount_ignored(self):
        assert structured_raised('<button data-amount="25">$25</button>') is None


class TestDecoyMarkup:
    def test_collapse_toggle_does_not_replace_target(self, scenario_html):
        html = scenario_html + '<a data-toggle="collapse" data-target="#faq2">FAQ</a>'
        amounts = extract_amounts(html)
        assert amounts.target == "10,000"
        assert amounts.target_strategy == "embedded"

    def test_preset_donate_button_does_not_replace_raised(self, scenario_html):
        html = scenario_html + '<button data-amount="25">$25</button>'
        amounts = extract_amounts(html)
        assert amounts.raised == "2,500"
        assert amounts.raised_strategy == "embedded"


# ─── Tier 2: embedded data ────────────────────────────────────────────────────


class TestEmbeddedData:
    def test_json_keys_in_source(self):
        html = '<div data-x=\'{"raisedAmount": "4,321", "targetAmount": "8,000"}\'></div>'
        assert embedded_raised(html).raw_value == "4,321"
        assert embedded_target(html).raw_value == "8,000"

    def test_most_specific_pattern_wins(self):
        html = '{"raised": "1", "AmountRaised": {"convertedAmount": "2,000"}}'
        assert embedded_raised(html).raw_value == "2,000"

    def test_script_only_keys(self):
        """donationAmount is only trusted inside script payloads."""
        html = "<script>var page = {donationAmount: 1};</script><script>var stats = {\"donationAmount\": \"6,500\"};</script>"
        assert embedded_raised(html).raw_value == "6,500"

    def test_unquoted_script_target(self):
        html = "<script>config = { goal: 12000 };</script>"
        assert embedded_target(html).raw_value == "12000"


# ─── Tier 3: generic keyword adjacency ────────────────────────────────────────


class TestGenericPatterns:
    def test_amount_before_keyword(self):
        assert generic_raised("<p>$850 raised so far</p>").raw_value == "850"

    def test_keyword_before_amount(self):
        assert generic_raised("<p>Donated: €1,050</p>").raw_value == "1,050"

    def test_target_from_of_phrase_uses_second_amount(self):
        assert generic_target("<p>$300 of $1,000</p>").raw_value == "1,000"

    def test_goal_keyword(self):
        assert generic_target("<p>Goal: $2,000</p>").raw_value == "2,000"


class TestCapturedAmount:
    def test_falls_back_to_previous_group(self):
        match = re.search(r"(\d+)-([,]*)", "42-,")
        assert captured_amount(match) == "42"

    def test_no_valid_group(self):
        match = re.search(r"([,]+)", ",,")
        assert captured_amount(match) is None


# ─── Tier 4: context scoring ──────────────────────────────────────────────────


class TestContextRanking:
    def test_ranks_by_keyword_proximity(self):
        html = f"<p>Total raised $700 raised</p>{FILLER}<p>Target $2,000 goal</p>{FILLER}<p>Shipping $15</p>"
        raised = rank_candidates(html, "raised")
        target = rank_candidates(html, "target")
        assert raised[0].raw_value == "700"
        assert target[0].raw_value == "2,000"
        assert all(c.source_strategy == "context" for c in raised + target)

    def test_zero_score_dropped(self):
        assert rank_candidates("<p>Postage $15</p>", "raised") == []

    def test_ties_keep_page_order(self):
        html = f"<p>progress $100</p>{FILLER}<p>progress $200</p>"
        ranked = rank_candidates(html, "raised")
        assert [c.raw_value for c in ranked] == ["100", "200"]
        assert ranked[0].context_score == ranked[1].context_score

    def test_trailing_keyword_bonus(self):
        html = "<p>$300 raised of $1,000</p>"
        ranked = rank_candidates(html, "raised")
        assert ranked[0].raw_value == "300"
        assert ranked[0].context_score > ranked[1].context_score

    def test_pure_function(self):
        html = f"<p>raised $5</p>{FILLER}"
        assert rank_candidates(html, "raised") == rank_candidates(html, "raised")

    def test_context_strategies(self):
        html = f"<p>Current funds $640</p>{FILLER}<p>Our aim is $3,000</p>"
        assert context_raised(html).raw_value == "640"
        assert context_target(html).raw_value == "3,000"


# ─── Cascade ──────────────────────────────────────────────────────────────────


class TestCascade:
    def test_first_success_stops_at_first_hit(self):
        calls = []

        def tracking(name, value):
            def strategy(html):
                calls.append(name)
                return ExtractionCandidate(raw_value=value, source_strategy=name) if value else None

            return strategy

        winner = first_success([tracking("a", None), tracking("b", "10"), tracking("c", "20")], "")
        assert winner.source_strategy == "b"
        assert calls == ["a", "b"]

    def test_invalid_candidate_skipped(self):
        winner = first_success([_always("$", "bad"), _always("5", "good")], "")
        assert winner.raw_value == "5"

    def test_structured_beats_embedded(self):
        html = '<span class="donationProgress--amount__raised">$1,111</span>' '<script>{"raised": "2,222"}</script>'
        assert extract_amounts(html).raised == "1,111"

    def test_custom_strategies(self):
        amounts = extract_amounts("", raised_strategies=[_never, _always("9", "x")], target_strategies=[_never])
        assert amounts.raised == "9"
        assert amounts.target == ""
        assert amounts.target_strategy is None

    def test_missing_values_are_empty_strings(self):
        amounts = extract_amounts(donation_page("<p>Nothing to see</p>"))
        assert amounts.raised == ""
        assert amounts.target == ""

    def test_target_only_missing(self):
        amounts = extract_amounts("<p>$850 raised</p>")
        assert amounts.raised == "850"
        assert amounts.target == ""

    def test_non_string_input_raises(self):
        with pytest.raises(TypeError):
            extract_amounts(None)

    def test_default_order(self):
        assert [s.__name__ for s in RAISED_STRATEGIES] == [
            "structured_raised",
            "embedded_raised",
            "generic_raised",
            "context_raised",
        ]


class TestAmountMarkers:
    def test_counts(self):
        dollars, potential = count_amount_markers("<p>$1,000 and $25 and 12345</p>")
        assert dollars == 2
        assert potential == 2  # "1,000" and "12345"


class TestDocumentParsing:
    def test_page_parsed_once_per_extraction(self, monkeypatch, scenario_html):
        parsed = []
        real = amounts_module.BeautifulSoup

        def counting(markup, features):
            parsed.append(markup)
            return real(markup, features)

        monkeypatch.setattr(amounts_module, "BeautifulSoup", counting)

        extract_amounts(scenario_html)
        extract_amounts(scenario_html)

        assert len(parsed) == 2

    def test_no_document_kept_after_extraction(self, scenario_html):
        extract_amounts(scenario_html)
        assert amounts_module._current.document is None
