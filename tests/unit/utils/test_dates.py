"""Tests for date parsing and formatting."""

from datetime import datetime

import pytest

from commonmeta.utils import dates


class TestDateParts:
    """Tests for date-parts conversion."""

    @pytest.mark.parametrize(
        "parts,expected",
        [
            ([[2021, 1, 22]], "2021-01-22"),
            ([[2021, 1]], "2021-01"),
            ([["2021", "3"]], "2021-03"),
            ([[None]], ""),
            ([[]], ""),
            (None, ""),
        ],
    )
    def test_get_date_from_date_parts(self, parts, expected: str) -> None:
        assert dates.get_date_from_date_parts(parts) == expected

    def test_get_date_from_parts(self) -> None:
        assert dates.get_date_from_parts() == ""
        assert dates.get_date_from_parts(2021) == "2021"
        assert dates.get_date_from_parts(2021, 0, 22) == "2021"

    def test_get_date_from_crossref_parts(self) -> None:
        assert dates.get_date_from_crossref_parts("2014", "02", "11") == "2014-02-11"
        assert dates.get_date_from_crossref_parts("2014", "", "") == "2014"

    def test_get_date_parts(self) -> None:
        assert dates.get_date_parts("2021-01-22") == [[2021, 1, 22]]
        assert dates.get_date_parts("2021") == [[2021]]
        assert dates.get_date_parts("unknown") == []


class TestParse:
    """Tests for parse_date() and parse_datetime()."""

    def test_parse_date(self) -> None:
        assert dates.parse_date("2021-01-22T10:00:00Z") == "2021-01-22"
        assert dates.parse_date("2021-01") == "2021-01"
        assert dates.parse_date("not a date") == ""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("20240101123000", "2024-01-01T12:30:00Z"),
            ("2024-01-01T12:30:00+02:00", "2024-01-01T10:30:00Z"),
            ("2021-01-22 10:05:00", "2021-01-22T10:05:00Z"),
            ("2021-01-22T00:00:00Z", "2021-01-22"),
            ("2021", "2021"),
            ("yesterday", ""),
            ("", ""),
        ],
    )
    def test_parse_datetime(self, value: str, expected: str) -> None:
        assert dates.parse_datetime(value) == expected

    def test_validate_edtf(self) -> None:
        assert dates.validate_edtf("2021-01-22") == "2021-01-22"
        assert dates.validate_edtf("2021-01/2021-02") == "2021-01/2021-02"
        assert dates.validate_edtf("2021-13") == ""


class TestTimestamps:
    """Tests for Unix and Crossref timestamps."""

    def test_unix_timestamps(self) -> None:
        assert dates.get_date_from_unix_timestamp(1611311475) == "2021-01-22"
        assert dates.get_datetime_from_unix_timestamp(1611311475) == "2021-01-22T10:31:15Z"
        assert dates.get_date_from_unix_timestamp(None) == ""
        assert dates.get_date_from_unix_timestamp(0) == "1970-01-01"
        assert dates.get_datetime_from_unix_timestamp(0) == "1970-01-01T00:00:00Z"
        assert dates.get_datetime_from_unix_timestamp(None) == ""
        assert dates.get_unix_timestamp("2021-01-22") == 1611273600
        assert dates.get_unix_timestamp("garbage") == 0

    def test_crossref_timestamp(self) -> None:
        assert dates.get_datetime_from_time(datetime(2024, 1, 1, 12, 30, 0)) == "20240101123000"
        assert len(dates.get_datetime_from_time()) == 14

    def test_strip_milliseconds(self) -> None:
        assert dates.strip_milliseconds("2021-01-22T10:31:15.123Z") == "2021-01-22T10:31:15Z"
        assert dates.strip_milliseconds("2021-01-22T10:31:15+00:00") == "2021-01-22T10:31:15Z"
        assert dates.strip_milliseconds("2021-01-22T00:00:00Z") == "2021-01-22"
