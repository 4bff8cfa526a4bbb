"""
Activation engine.

``evaluate`` decides whether a resolved definition is active on a given
day. It reads no clock, does no I/O and keeps no state, so the same
(definition, today) pair always gives the same result.

Windows are half open: an occurrence starting on day ``o`` with
duration ``d`` is active for every day ``t`` with ``o <= t < o + d``.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from .item import DurationFormatError, ResolvedDefinition, TaskDefinition, resolve_definition
from .recurrence import DateutilRecurrenceSource, RecurrenceSource, RuleParseError, midnight

ONE_DAY = timedelta(days=1)
ONE_SECOND = timedelta(seconds=1)
LOOKAHEAD = relativedelta(years=1)

_default_source = DateutilRecurrenceSource()


class ErrorKind(str, Enum):
    DURATION = "duration"
    RULE = "rrule"


@dataclass(frozen=True)
class Active:
    due_date: date
    window_start: date


@dataclass(frozen=True)
class Inactive:
    next_start: Optional[date] = None


@dataclass(frozen=True)
class Errored:
    kind: ErrorKind
    message: str


ActivationResult = Union[Active, Inactive, Errored]


def in_window(start: date, duration: timedelta, today: date) -> bool:
    begin = midnight(start)
    return begin <= midnight(today) < begin + duration


def due_date(start: date, duration: timedelta) -> date:
    """
    Last calendar day inside [start, start + duration).

    For whole-day durations this is start + duration - 1 day.
    """
    return (midnight(start) + duration - ONE_SECOND).date()


def evaluate(
    definition: ResolvedDefinition,
    today: date,
    source: Optional[RecurrenceSource] = None,
) -> ActivationResult:
    try:
        if definition.is_one_time:
            return _evaluate_once(definition, today)
        return _evaluate_recurring(definition, today, source or _default_source)
    except OverflowError as e:
        # window or lookahead reaches past date.max
        return Errored(ErrorKind.DURATION, f"date out of range: {e}")


def _evaluate_once(definition: ResolvedDefinition, today: date) -> ActivationResult:
    if in_window(definition.start, definition.duration, today):
        return Active(
            due_date=due_date(definition.start, definition.duration),
            window_start=definition.start,
        )
    if definition.start > today:
        return Inactive(next_start=definition.start)
    return Inactive()


def _evaluate_recurring(
    definition: ResolvedDefinition, today: date, source: RecurrenceSource
) -> ActivationResult:
    # Look past today: an occurrence from an earlier day can still be open.
    horizon = (midnight(today) + definition.duration).date()
    try:
        occurrences = source.occurrences_between(
            definition.rule, definition.start, definition.start, horizon
        )
        # first match in chronological order wins
        for occurrence in occurrences:
            if in_window(occurrence, definition.duration, today):
                return Active(
                    due_date=due_date(occurrence, definition.duration),
                    window_start=occurrence,
                )

        upcoming = source.occurrences_between(
            definition.rule, definition.start, today + ONE_DAY, today + LOOKAHEAD
        )
    except RuleParseError as e:
        return Errored(ErrorKind.RULE, str(e))

    return Inactive(next_start=upcoming[0] if upcoming else None)


def evaluate_definition(
    definition: TaskDefinition,
    today: date,
    source: Optional[RecurrenceSource] = None,
) -> ActivationResult:
    """
    Resolve the raw strings of a definition and evaluate it.

    A malformed duration never reaches the engine; it becomes an Errored
    result, as does a malformed rule.
    """
    try:
        resolved = resolve_definition(definition, today)
    except DurationFormatError as e:
        return Errored(ErrorKind.DURATION, f"duration parsing error: {e}")
    return evaluate(resolved, today, source)
