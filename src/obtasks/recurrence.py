"""
Recurrence source: expands an RFC 5545 RRULE into occurrence dates.

The engine only depends on the RecurrenceSource protocol; the default
implementation hands the rule text to dateutil's ``rrulestr``.
"""

from datetime import date, datetime, time
from functools import lru_cache
from typing import Protocol

from dateutil.rrule import rrulestr


class RuleParseError(ValueError):
    """Raised when a recurrence rule is rejected by the rule parser."""

    def __init__(self, rule: str, reason: str):
        super().__init__(f"RRULE parsing error: {reason}")
        self.rule = rule
        self.reason = reason


class RecurrenceSource(Protocol):
    def occurrences_between(
        self,
        rule: str,
        reference_start: date,
        range_start: date,
        range_end: date,
    ) -> list[date]:
        """
        Ascending occurrence dates of rule anchored at reference_start,
        including both range_start and range_end. Raises RuleParseError.
        """
        ...


def midnight(d: date) -> datetime:
    return datetime.combine(d, time.min)


def _describe(e: Exception) -> str:
    if isinstance(e, KeyError) and e.args:
        return f"unsupported value {e.args[0]}"
    return str(e) or e.__class__.__name__


# name: (low, high, negatives allowed). rrulestr does not check these.
BY_RANGES = {
    "BYMONTH": (1, 12, False),
    "BYMONTHDAY": (1, 31, True),
    "BYYEARDAY": (1, 366, True),
    "BYWEEKNO": (1, 53, True),
    "BYSETPOS": (1, 366, True),
    "BYHOUR": (0, 23, False),
    "BYMINUTE": (0, 59, False),
    "BYSECOND": (0, 59, False),
}


def _rule_parts(rule: str):
    """Yield (NAME, value) for every part of the RRULE lines in rule."""
    for line in rule.splitlines():
        head, sep, tail = line.strip().partition(":")
        if sep:
            if head.upper() not in ("RRULE", "EXRULE"):
                continue
            line = tail
        for part in line.split(";"):
            name, _, value = part.partition("=")
            if name.strip():
                yield name.strip().upper(), value.strip()


def check_ranges(rule: str) -> None:
    """
    Raise RuleParseError for INTERVAL < 1 or a BY* value outside BY_RANGES.
    """
    for name, value in _rule_parts(rule):
        if name == "INTERVAL":
            if not value.isdigit() or int(value) < 1:
                raise RuleParseError(rule, f"INTERVAL must be a positive integer, not {value}")
            continue
        if name not in BY_RANGES:
            continue
        low, high, signed = BY_RANGES[name]
        for item in value.split(","):
            try:
                number = int(item)
            except ValueError:
                raise RuleParseError(rule, f"invalid {name} value {item}") from None
            magnitude = abs(number) if signed else number
            if not low <= magnitude <= high:
                raise RuleParseError(rule, f"{name} value {number} out of range")


@lru_cache(maxsize=512)
def compile_rule(rule: str, reference_start: date):
    """
    Parse rule text anchored at midnight of reference_start.

    Times are kept naive: a trailing 'Z' on UNTIL is ignored so that it
    compares with the naive DTSTART.
    """
    try:
        compiled = rrulestr(rule, dtstart=midnight(reference_start), ignoretz=True)
    except (ValueError, KeyError, TypeError, IndexError) as e:
        raise RuleParseError(rule, _describe(e)) from e
    check_ranges(rule)
    return compiled


class DateutilRecurrenceSource:
    """RecurrenceSource backed by dateutil.rrule."""

    def occurrences_between(
        self,
        rule: str,
        reference_start: date,
        range_start: date,
        range_end: date,
    ) -> list[date]:
        compiled = compile_rule(rule.strip(), reference_start)
        try:
            found = compiled.between(
                midnight(range_start), datetime.combine(range_end, time.max), inc=True
            )
        except (ValueError, TypeError) as e:
            raise RuleParseError(rule, _describe(e)) from e

        dates: list[date] = []
        for dt in found:
            d = dt.date()
            # several occurrences on one day (BYHOUR etc.) count once
            if not dates or dates[-1] != d:
                dates.append(d)
        return dates
