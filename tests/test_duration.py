"""
Tests for ISO 8601 duration parsing.
"""

import pytest
from datetime import timedelta

from obtasks.item import DEFAULT_DURATION, DurationFormatError, parse_duration


@pytest.mark.unit
@pytest.mark.parametrize(
    "text, expected",
    [
        ("", timedelta(days=1)),  # default
        ("P1D", timedelta(days=1)),
        ("P10D", timedelta(days=10)),
        ("P5D", timedelta(days=5)),
        ("P1W", timedelta(days=7)),
        ("PT2H", timedelta(hours=2)),
        ("PT30M", timedelta(minutes=30)),
        ("PT45S", timedelta(seconds=45)),
        ("P1DT2H", timedelta(hours=26)),
        ("P1M", timedelta(days=30)),  # approximation
        ("P1Y", timedelta(days=365)),  # approximation
        ("P1Y2M3D", timedelta(days=365 + 60 + 3)),
        ("P1MT1M", timedelta(days=30, minutes=1)),
        ("P2W1D", timedelta(days=15)),
    ],
)
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.unit
class TestDurationErrors:
    def test_must_start_with_p(self):
        with pytest.raises(DurationFormatError, match="duration must start with P"):
            parse_duration("invalid")

    def test_xyz(self):
        with pytest.raises(DurationFormatError) as info:
            parse_duration("XYZ")
        assert info.value.text == "XYZ"

    def test_lowercase_is_rejected(self):
        with pytest.raises(DurationFormatError):
            parse_duration("p1d")

    def test_unknown_date_unit(self):
        with pytest.raises(DurationFormatError, match="unknown unit X"):
            parse_duration("P3X")

    def test_unknown_time_unit(self):
        with pytest.raises(DurationFormatError, match="unknown unit D"):
            parse_duration("PT1D")

    def test_week_is_not_a_time_unit(self):
        with pytest.raises(DurationFormatError, match="unknown unit W"):
            parse_duration("PT1W")

    def test_letter_without_number(self):
        with pytest.raises(DurationFormatError, match="unknown unit D"):
            parse_duration("PD")

    def test_number_without_unit(self):
        with pytest.raises(DurationFormatError, match="missing unit after 5"):
            parse_duration("P5")

    @pytest.mark.parametrize("text", ["P", "PT", "P0D", "PT0S"])
    def test_zero_is_rejected(self, text):
        with pytest.raises(DurationFormatError, match="positive"):
            parse_duration(text)

    def test_is_a_value_error(self):
        assert issubclass(DurationFormatError, ValueError)


@pytest.mark.unit
def test_surrounding_whitespace_is_ignored():
    assert parse_duration("  P2D ") == timedelta(days=2)
    assert parse_duration("   ") == DEFAULT_DURATION


@pytest.mark.unit
def test_too_large_for_timedelta():
    with pytest.raises(DurationFormatError, match="duration too large") as info:
        parse_duration("P999999999Y")
    assert info.value.text == "P999999999Y"


@pytest.mark.unit
def test_large_but_representable():
    assert parse_duration("P8000Y") == timedelta(days=8000 * 365)
