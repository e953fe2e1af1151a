"""Tests for value extraction near a search term."""

import pytest

from appraisal2json.values import (
    closest_value, context_snippet, estimate_page, extract_nearby_values,
    find_value_observations, parse_locale_number, term_variants, value_range
)


class TestLocaleNumbers:
    @pytest.mark.parametrize("raw, expected", [
        ("1,500", 1500.0),
        ("0,85", 0.85),
        ("1.275", 1.275),
        ("12,345,678", 12345678.0),
        ("7", 7.0),
    ])
    def test_parse(self, raw, expected):
        assert parse_locale_number(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "1,2345", "abc", "1.2.3"])
    def test_unparseable(self, raw):
        assert parse_locale_number(raw) is None


class TestExtractNearbyValues:
    def test_out_of_range_value_dropped(self):
        text = "The coefficient 0.85 was applied. Later the coefficient 2.9 was rejected."
        assert extract_nearby_values(text, "coefficient", 100) == [0.85]

    def test_date_is_never_a_value(self):
        text = "מקדם 2.4.2003 הוחלט"
        assert extract_nearby_values(text, "מקדם", 100) == []

    def test_value_after_date_is_found(self):
        text = "מקדם 2.4.2003 0.9"
        assert extract_nearby_values(text, "מקדם", 100) == [0.9]

    def test_comma_decimal(self):
        assert extract_nearby_values("מקדם דחייה: 0,85", "מקדם דחייה") == [0.85]

    def test_table_header_text_rejected(self):
        text = "מקדם דחייה שנקבע בטבלה להלן לפי השנים 0.9"
        assert extract_nearby_values(text, "מקדם דחייה", 100) == []

    def test_percent_range(self):
        text = "אחוז 150 לא סביר. אחוז 35 סביר."
        assert extract_nearby_values(text, "אחוז", 8) == [35.0]

    def test_no_range_keeps_large_values(self):
        assert extract_nearby_values("שווי הקרקע 1,500 ש\"ח", "שווי הקרקע") == [1500.0]

    def test_overlapping_occurrences_each_scanned(self):
        assert extract_nearby_values("aaa 5", "aa", 10) == [5.0, 5.0]

    def test_case_insensitive(self):
        assert extract_nearby_values("Coefficient 0.5", "coefficient") == [0.5]

    def test_window_limits_search(self):
        text = "מקדם" + " " * 50 + "0.5"
        assert extract_nearby_values(text, "מקדם", 20) == []

    def test_zero_is_not_a_value(self):
        assert extract_nearby_values("שווי 0 ש\"ח", "שווי") == []

    def test_comma_separated_list_keeps_first_value(self):
        assert extract_nearby_values("coefficient 0.85, 0.9", "coefficient", 100) == [0.85]

    def test_split_thousands_group_rejoined(self):
        assert extract_nearby_values("שווי הקרקע 1 ,500 ש\"ח", "שווי הקרקע") == [1500.0]
        assert extract_nearby_values("שווי הקרקע 2, 750 ש\"ח", "שווי הקרקע") == [2750.0]

    def test_date_cut_by_window_end_is_masked(self):
        assert extract_nearby_values("coefficient 2.4.2003", "coefficient", 5) == []

    def test_number_cut_by_window_end_is_ignored(self):
        assert extract_nearby_values("מקדם 1,500", "מקדם", 3) == []

    def test_offsets_survive_case_folding_that_changes_length(self):
        # "İ" lowercases to two characters
        text = "İİİ coefficient 0.7"
        [obs] = find_value_observations(text, "coefficient")
        assert obs.offset == text.index("coefficient")
        assert obs.value == 0.7

    @pytest.mark.parametrize("text, term", [("", "מקדם"), ("מקדם 0.5", ""), ("אין כאן כלום", "מקדם")])
    def test_empty_inputs(self, text, term):
        assert extract_nearby_values(text, term) == []


class TestObservations:
    def test_offset_and_page_from_form_feeds(self):
        text = "עמוד ראשון\fעמוד שני\fמקדם 0.7"
        [obs] = find_value_observations(text, "מקדם")

        assert obs.raw == "0.7"
        assert obs.offset == text.index("מקדם")
        assert obs.page == 3

    def test_page_estimated_without_breaks(self):
        text = "x" * 6000
        assert estimate_page(0, text) == 1
        assert estimate_page(4000, text) == 2

    def test_value_range_lookup(self):
        assert value_range("מקדם דחייה") == (0.01, 2.5)
        assert value_range("Discount Rate") == (0.0, 100.0)
        assert value_range("שווי") is None


class TestClosestValue:
    def test_variants(self):
        variants = term_variants("מקדם דחייה")
        assert variants[0] == "מקדם דחייה"
        assert "מקדם דחיה" in variants
        assert "מקדם הדחייה" in variants

    def test_definite_article_variant_matches(self):
        obs = closest_value("נקבע מקדם הדחייה: 0.87 לתקופה", "מקדם דחייה")
        assert obs is not None
        assert obs.value == 0.87

    def test_percent_suffix_skipped(self):
        obs = closest_value("היוון 5% ו 7", "היוון")
        assert obs.value == 7.0

    def test_year_count_skipped(self):
        obs = closest_value("היוון 3 שנים 12", "היוון")
        assert obs.value == 12.0

    def test_nothing_found(self):
        assert closest_value("ללא ערכים", "מקדם") is None

    def test_snippet(self):
        text = "רקע. נקבע מקדם דחייה של 0.85 לפי התכנית."
        snippet = context_snippet(text, "מקדם דחייה", 0.85)
        assert snippet.startswith("מקדם דחייה")
        assert "0.85" in snippet
        assert len(snippet) <= 120

    def test_snippet_missing_value(self):
        assert context_snippet("מקדם דחייה 0.85", "מקדם דחייה", 0.5) == ""
