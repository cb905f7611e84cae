"""Unit tests for the cell value helpers."""

from datetime import date, datetime

import pytest

from src.domain.utils import (
    increase_last_number,
    is_blank,
    parse_date_value,
    parse_decimal,
    split_codes,
)


class TestParseDateValue:
    """Test suite for date and timestamp parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("2020-01-31", date(2020, 1, 31)),
        ("31.01.2020", date(2020, 1, 31)),
        ("20200131", date(2020, 1, 31)),
    ])
    def test_date_only_values_keep_date_precision(self, value, expected):
        """Test that date-only cells become date objects."""
        parsed = parse_date_value(value)
        assert parsed == expected
        assert not isinstance(parsed, datetime)

    @pytest.mark.parametrize("value,expected", [
        ("2020-01-31T08:15:00", datetime(2020, 1, 31, 8, 15)),
        ("2020-01-31 08:15", datetime(2020, 1, 31, 8, 15)),
        ("31.01.2020 08:15", datetime(2020, 1, 31, 8, 15)),
        ("2020-01-31T08:15:00.123Z", datetime(2020, 1, 31, 8, 15)),
    ])
    def test_timestamps(self, value, expected):
        """Test the supported timestamp notations."""
        assert parse_date_value(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "gestern", "2020-13-45"])
    def test_unparsable_values_return_none(self, value):
        """Test that bad values never raise."""
        assert parse_date_value(value) is None


class TestParseDecimal:
    """Test suite for numeric cells."""

    def test_comma_decimal_separator(self):
        assert parse_decimal("7,5") == 7.5

    def test_point_and_sign(self):
        assert parse_decimal("-0.25") == -0.25

    @pytest.mark.parametrize("value", [None, "", "< 5", "positiv", "1.2.3"])
    def test_non_numeric(self, value):
        assert parse_decimal(value) is None


class TestMiscHelpers:
    """Test suite for small helpers."""

    def test_is_blank(self):
        assert is_blank(None) and is_blank("") and is_blank("  ")
        assert not is_blank("0")

    def test_split_codes(self):
        """Test that multi-code cells are split on '+'."""
        assert split_codes("I10 + E11.9") == ["I10", "E11.9"]
        assert split_codes(None) == []
        assert split_codes("I10++") == ["I10"]

    @pytest.mark.parametrize("value,offset,expected", [
        ("P-000012", 5, "P-000017"),
        ("P-99", 1, "P-100"),
        ("A1-B2", 10, "A1-B12"),
        ("ABC", 3, "ABC"),
    ])
    def test_increase_last_number(self, value, offset, expected):
        """Test that only the last digit run changes and its width is kept."""
        assert increase_last_number(value, offset) == expected
