"""Tests for scalar parsers, header resolution and row mapping."""

from datetime import date, datetime

import pytest

from adlens.parsing.headers import NOT_FOUND, find_column, resolve_columns
from adlens.parsing.rows import map_row
from adlens.parsing.scalars import normalize_date, parse_number, parse_percentage


# ---------------------------------------------------------------------------
# parse_number
# ---------------------------------------------------------------------------

class TestParseNumber:
    def test_thousands_separator(self):
        assert parse_number("1,234.5") == 1234.5

    def test_large_comma_formatted(self):
        assert parse_number("157,047") == 157047.0

    def test_dash_is_zero(self):
        assert parse_number("-") == 0

    def test_empty_is_zero(self):
        assert parse_number("") == 0

    def test_whitespace(self):
        assert parse_number("  42 ") == 42.0

    def test_numeric_passthrough(self):
        assert parse_number(3.5) == 3.5
        assert parse_number(7) == 7.0

    def test_none(self):
        assert parse_number(None) == 0.0

    def test_unparsable(self):
        assert parse_number("n/a") == 0.0

    def test_nan_becomes_zero(self):
        assert parse_number(float("nan")) == 0.0

    def test_negative(self):
        assert parse_number("-1,234") == -1234.0

    def test_trailing_text_ignored(self):
        assert parse_number("3.2x") == 3.2


# ---------------------------------------------------------------------------
# parse_percentage
# ---------------------------------------------------------------------------

class TestParsePercentage:
    def test_percent_string(self):
        assert parse_percentage("12.5%") == pytest.approx(0.125)

    def test_small_percent(self):
        assert parse_percentage("0.90%") == pytest.approx(0.009)

    def test_fraction_passthrough(self):
        assert parse_percentage(0.3) == 0.3

    def test_dash(self):
        assert parse_percentage("-") == 0.0

    def test_empty(self):
        assert parse_percentage("") == 0.0

    def test_unparsable(self):
        assert parse_percentage("N/A") == 0.0

    def test_string_without_sign_is_still_divided(self):
        assert parse_percentage("5") == pytest.approx(0.05)


# ---------------------------------------------------------------------------
# normalize_date
# ---------------------------------------------------------------------------

class TestNormalizeDate:
    def test_serial_number(self):
        # 45000 - 25569 = 19431 days after 1970-01-01
        assert normalize_date(45000) == "2023-03-15"

    def test_serial_epoch(self):
        assert normalize_date(25569) == "1970-01-01"

    def test_serial_with_time_fraction(self):
        assert normalize_date(45000.75) == "2023-03-15"

    def test_iso_string(self):
        assert normalize_date("2024-01-05") == "2024-01-05"

    def test_slash_string(self):
        assert normalize_date("2024/1/5") == "2024-01-05"

    def test_us_string(self):
        assert normalize_date("01/05/2024") == "2024-01-05"

    def test_iso_timestamp_utc(self):
        assert normalize_date("2024-01-05T16:00:00.000Z") == "2024-01-05"

    def test_chinese_format(self):
        assert normalize_date("2024年1月5日") == "2024-01-05"

    def test_date_object(self):
        assert normalize_date(date(2024, 2, 29)) == "2024-02-29"

    def test_datetime_object(self):
        assert normalize_date(datetime(2024, 2, 29, 13, 30)) == "2024-02-29"

    def test_unparsable(self):
        assert normalize_date("not a date") == ""

    def test_empty(self):
        assert normalize_date("") == ""
        assert normalize_date(None) == ""


# ---------------------------------------------------------------------------
# Header resolution
# ---------------------------------------------------------------------------

class TestFindColumn:
    def test_exact_match(self):
        assert find_column(["日期", "廣告活動"], ["廣告活動", "Campaign"]) == 1

    def test_case_insensitive(self):
        assert find_column(["date", "SPENT"], ["費用", "spent", "Spent"]) == 1

    def test_native_label_preferred(self):
        headers = ["Campaign", "廣告活動"]
        assert find_column(headers, ["廣告活動", "Campaign"]) == 1

    def test_fuzzy_substring(self):
        assert find_column(["Day", "Spent (USD)"], ["費用", "spent", "Spent"]) == 1

    def test_fuzzy_only_for_english_candidates(self):
        # "Campaign Name" holds a space, so it is never used as a substring
        assert find_column(["My Campaign Name X"], ["Campaign Name"]) == NOT_FOUND

    def test_exact_beats_fuzzy(self):
        headers = ["Total CPC", "CPC"]
        assert find_column(headers, ["流量成本", "cpc", "CPC"]) == 1

    def test_not_found(self):
        assert find_column(["A", "B"], ["ROAS", "roas"]) == NOT_FOUND


class TestResolveColumns:
    def test_bilingual_headers(self):
        cols = resolve_columns(["日期", "廣告活動", "費用", "流量成本", "ROAS", "CVR", "CPA"])
        assert cols["date"] == 0
        assert cols["campaign_name"] == 1
        assert cols["spent"] == 2
        assert cols["cpc"] == 3
        assert cols["cpa"] == 6
        assert cols["impressions"] == NOT_FOUND

    def test_headers_are_trimmed(self):
        cols = resolve_columns(["  Date ", " Campaign Name", None])
        assert cols["date"] == 0
        assert cols["campaign_name"] == 1

    def test_meta_only_fields_never_resolve(self):
        cols = resolve_columns(["Date", "Campaign Name", "meta_cpc"])
        assert cols["meta_cpc"] == NOT_FOUND


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------

HEADERS = ["Date", "Campaign Name", "Spent", "CPC", "ROAS", "CVR", "CPA"]


class TestMapRow:
    def setup_method(self):
        self.cols = resolve_columns(HEADERS)

    def test_derived_counts(self):
        r = map_row(["2024-01-01", "Camp A", "100", "2", "1.5", "5%", "25"], self.cols)
        assert r.clicks == 50
        assert r.conversions == 4
        assert r.revenue == 150
        assert r.cvr == pytest.approx(0.05)

    def test_zero_cpc_no_division(self):
        r = map_row(["2024-01-01", "Camp A", "100", "0", "1", "0", "0"], self.cols)
        assert r.clicks == 0
        assert r.conversions == 0

    def test_missing_date_dropped(self):
        assert map_row(["", "Camp A", "100", "2", "1", "5%", "25"], self.cols) is None

    def test_missing_campaign_dropped(self):
        assert map_row(["2024-01-01", "  ", "100"], self.cols) is None

    def test_unparsable_date_dropped(self):
        assert map_row(["someday", "Camp A", "100"], self.cols) is None

    def test_short_row_defaults_to_zero(self):
        r = map_row(["2024-01-01", "Camp A"], self.cols)
        assert r.spent == 0
        assert r.cpc == 0
        assert r.impressions is None

    def test_campaign_trimmed(self):
        r = map_row(["2024-01-01", "  Camp A  ", "1"], self.cols)
        assert r.campaign_name == "Camp A"

    def test_absent_column_is_zero(self):
        cols = resolve_columns(["Date", "Campaign", "Spent"])
        r = map_row([45000, "Camp A", "1,000"], cols)
        assert r.date == "2023-03-15"
        assert r.spent == 1000
        assert r.roas == 0 and r.revenue == 0

    def test_enrichment_columns_read_back(self):
        cols = resolve_columns(HEADERS + ["Reach", "Impressions", "CPM", "CTR", "Frequency"])
        r = map_row(
            ["2024-01-01", "Camp A", 100, 2, 1, 0.05, 25, 400, 1000, 100, 0.02, 2.5],
            cols,
        )
        assert r.reach == 400
        assert r.impressions == 1000
        assert r.ctr == 0.02
        assert r.frequency == 2.5

    def test_blank_enrichment_cells_stay_unset(self):
        cols = resolve_columns(HEADERS + ["Reach", "Impressions"])
        r = map_row(["2024-01-01", "Camp A", 100, 2, 1, 0.05, 25, "", ""], cols)
        assert r.reach is None
        assert r.impressions is None

    def test_empty_row(self):
        assert map_row([], self.cols) is None


# ---------------------------------------------------------------------------
# Field registry
# ---------------------------------------------------------------------------

class TestFieldRegistry:
    def test_enrichment_flag_splits_fields(self):
        from adlens.core.metric_registry import CORE_FIELDS, ENRICHMENT_FIELDS

        assert list(CORE_FIELDS) == ["date", "campaign_name", "spent", "cpc", "roas", "cvr", "cpa"]
        assert "impressions" in ENRICHMENT_FIELDS
        assert "meta_cvr" in ENRICHMENT_FIELDS
        assert not set(CORE_FIELDS) & set(ENRICHMENT_FIELDS)

    def test_meta_ratios_are_not_persisted(self):
        from adlens.core.metric_registry import CANONICAL_HEADERS

        assert len(CANONICAL_HEADERS) == 14
        assert CANONICAL_HEADERS[-2:] == ["Link Clicks", "Purchases"]
