"""
Tests for start date resolution and definition resolution.
"""

import pytest
from datetime import date, timedelta

from obtasks.item import (
    DurationFormatError,
    ResolvedDefinition,
    TaskDefinition,
    default_start,
    parse_start,
    resolve_definition,
    resolve_start,
)

FALLBACK = date(2000, 1, 1)


@pytest.mark.unit
@pytest.mark.parametrize(
    "text, expected",
    [
        ("2024-01-20", date(2024, 1, 20)),
        ("2025-10-18", date(2025, 10, 18)),
        ("2024-01-20T15:04:05Z", date(2024, 1, 20)),
        ("2024-01-20T23:59:59", date(2024, 1, 20)),
        ("20240120T000000Z", date(2024, 1, 20)),
    ],
)
def test_resolve_start_formats(text, expected):
    assert resolve_start(text, FALLBACK) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "next tuesday",
        "2024/01/20",
        "20240120T101010Z",
        "2024-13-01",
        # fields are fixed width
        "2025-1-5",
        "2025-01-5",
        "2025-01-05T1:2:3Z",
        "2025-01-05T01:02:3",
    ],
)
def test_resolve_start_falls_back(text):
    assert resolve_start(text, FALLBACK) == FALLBACK
    assert parse_start(text) is None


@pytest.mark.unit
class TestDefaultStart:
    def test_one_calendar_year_back(self):
        assert default_start(date(2025, 9, 26)) == date(2024, 9, 26)

    def test_leap_day(self):
        assert default_start(date(2024, 2, 29)) == date(2023, 2, 28)


@pytest.mark.unit
class TestResolveDefinition:
    def test_resolves_all_fields(self):
        resolved = resolve_definition(
            TaskDefinition(rule="FREQ=DAILY", duration="P2D", start="2024-01-05"),
            today=date(2025, 9, 26),
        )
        assert resolved == ResolvedDefinition(
            rule="FREQ=DAILY", duration=timedelta(days=2), start=date(2024, 1, 5)
        )
        assert not resolved.is_one_time

    def test_defaults(self):
        resolved = resolve_definition(TaskDefinition(rule="FREQ=DAILY"), date(2025, 9, 26))
        assert resolved.duration == timedelta(days=1)
        assert resolved.start == date(2024, 9, 26)

    def test_one_time(self):
        resolved = resolve_definition(TaskDefinition(start="2025-10-18"), date(2025, 9, 26))
        assert resolved.is_one_time

    def test_bad_duration_raises(self):
        with pytest.raises(DurationFormatError):
            resolve_definition(TaskDefinition(duration="XYZ"), date(2025, 9, 26))

    def test_unparseable_start_is_logged_not_raised(self, isolated_home):
        resolved = resolve_definition(
            TaskDefinition(rule="FREQ=DAILY", start="someday soon"), date(2025, 9, 26)
        )
        assert resolved.start == date(2024, 9, 26)

        logs = list(isolated_home.glob("logs/log_*.md"))
        assert len(logs) == 1
        assert "someday soon" in logs[0].read_text(encoding="utf-8")


@pytest.mark.unit
def test_resolved_definition_requires_positive_duration():
    with pytest.raises(ValueError):
        ResolvedDefinition(rule="", duration=timedelta(0), start=date(2025, 1, 1))
