"""
Task definitions as read from note front matter, and their resolution.

A TaskDefinition holds the raw strings found under the ``rrule``,
``duration`` and ``dtstart`` keys. Resolving it parses the duration
(fatal on error) and the start date (falls back to a default) so that
the activation engine in ``model`` only ever sees concrete values.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import yaml
from dateutil.relativedelta import relativedelta

from .shared import log_msg, ONCE_LABEL

DEFAULT_DURATION = timedelta(days=1)

# Deliberate approximations: a month is 30 days and a year 365 days.
DATE_UNITS = {
    "Y": 365 * 24 * 60 * 60,
    "M": 30 * 24 * 60 * 60,
    "W": 7 * 24 * 60 * 60,
    "D": 24 * 60 * 60,
}
TIME_UNITS = {
    "H": 60 * 60,
    "M": 60,
    "S": 1,
}

# Tried in order, first match wins. Every field is fixed width: the
# pattern must match before strptime is tried.
START_FORMATS = (
    (re.compile(r"\d{4}-\d{2}-\d{2}"), "%Y-%m-%d"),
    (re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z"), "%Y-%m-%dT%H:%M:%SZ"),
    (re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}"), "%Y-%m-%dT%H:%M:%S"),
    (re.compile(r"\d{8}T000000Z"), "%Y%m%dT000000Z"),
)

_COMPONENT = re.compile(r"(\d*)(\D?)")
_DATE_PREFIX = re.compile(r"^(\d{4}[-_.]\d{1,2}[-_.]\d{1,2}[\s_-]*)+")
_TAG_SPLIT = re.compile(r"[,\s]+")


class DurationFormatError(ValueError):
    """Raised for duration text that is not a supported ISO 8601 duration."""

    def __init__(self, message: str, text: str = ""):
        super().__init__(message)
        self.text = text


class FrontMatterError(ValueError):
    """Raised when a note's front matter block cannot be read as a mapping."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
        self.message = message


@dataclass(frozen=True)
class TaskDefinition:
    rule: str = ""
    duration: str = ""
    start: str = ""
    tags: tuple[str, ...] = ()

    @property
    def is_task(self) -> bool:
        """Notes with neither a rule nor a start date are plain notes."""
        return bool(self.rule or self.start)

    @property
    def is_one_time(self) -> bool:
        return not self.rule

    @property
    def rule_label(self) -> str:
        return self.rule or ONCE_LABEL


@dataclass(frozen=True)
class ResolvedDefinition:
    rule: str
    duration: timedelta
    start: date

    def __post_init__(self) -> None:
        if self.duration <= timedelta(0):
            raise ValueError("duration must be positive")

    @property
    def is_one_time(self) -> bool:
        return not self.rule


# ---------------------------------------------------------------------
# Duration
# ---------------------------------------------------------------------


def _component_seconds(part: str, units: dict[str, int], text: str) -> int:
    total = 0
    pos = 0
    while pos < len(part):
        m = _COMPONENT.match(part, pos)
        number, unit = m.groups()
        if not number:
            raise DurationFormatError(f"unknown unit {unit}", text)
        if not unit:
            raise DurationFormatError(f"missing unit after {number}", text)
        if unit not in units:
            raise DurationFormatError(f"unknown unit {unit}", text)
        total += int(number) * units[unit]
        pos = m.end()
    return total


def parse_duration(text: str) -> timedelta:
    """
    Convert an ISO 8601 style duration such as 'P1DT2H' into a timedelta.

    An empty string means one day. Units are summed rather than applied to
    a calendar, so 'P1M' is always 30 days and 'P1Y' always 365 days.

    Raises:
        DurationFormatError: for a missing 'P' prefix, an unknown unit letter,
            a number without a unit, a total of zero, or a total too large
            for a timedelta.
    """
    text = (text or "").strip()
    if not text:
        return DEFAULT_DURATION
    if not text.startswith("P"):
        raise DurationFormatError("duration must start with P", text)

    date_part, _, time_part = text[1:].partition("T")
    seconds = _component_seconds(date_part, DATE_UNITS, text)
    seconds += _component_seconds(time_part, TIME_UNITS, text)
    if seconds <= 0:
        raise DurationFormatError("duration must be positive", text)
    try:
        return timedelta(seconds=seconds)
    except OverflowError as e:
        raise DurationFormatError("duration too large", text) from e


# ---------------------------------------------------------------------
# Start date
# ---------------------------------------------------------------------


def default_start(today: date) -> date:
    """One calendar year before today."""
    return today - relativedelta(years=1)


def parse_start(text: str) -> Optional[date]:
    """
    Return the UTC calendar date for text in one of START_FORMATS, or None.
    """
    text = (text or "").strip()
    if not text:
        return None
    for pattern, fmt in START_FORMATS:
        if not pattern.fullmatch(text):
            continue
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def resolve_start(text: str, fallback: date) -> date:
    parsed = parse_start(text)
    return fallback if parsed is None else parsed


def resolve_definition(definition: TaskDefinition, today: date) -> ResolvedDefinition:
    """
    Resolve raw strings into concrete values.

    Raises DurationFormatError. An unparseable start date is logged and
    replaced by default_start(today).
    """
    duration = parse_duration(definition.duration)
    start = parse_start(definition.start)
    if start is None:
        start = default_start(today)
        if definition.start:
            log_msg(
                f"dtstart {definition.start!r} not recognized, using {start.isoformat()}"
            )
    return ResolvedDefinition(rule=definition.rule, duration=duration, start=start)


# ---------------------------------------------------------------------
# Front matter
# ---------------------------------------------------------------------


def _yaml_text(value: Any) -> str:
    """
    YAML turns unquoted dates into date/datetime objects; turn them back
    into text the start date formats accept.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return value.strftime("%Y-%m-%dT%H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def _yaml_tags(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        raw = [str(v) for v in value if v is not None]
    else:
        raw = _TAG_SPLIT.split(str(value))
    return tuple(t.strip().lstrip("#") for t in raw if t.strip().lstrip("#"))


def parse_front_matter(content: str, path: str = "") -> Optional[TaskDefinition]:
    """
    Extract the task definition from a note's YAML front matter.

    Returns None when the note has no front matter at all.

    Raises:
        FrontMatterError: the block is unterminated, is not valid YAML,
            or is not a mapping.
    """
    if not content.startswith("---"):
        return None

    parts = content.split("---", 2)
    if len(parts) < 3:
        raise FrontMatterError(path, "invalid frontmatter format")

    try:
        data = yaml.safe_load(parts[1]) or {}
    except yaml.YAMLError as e:
        raise FrontMatterError(path, f"YAML parsing error: {e}") from e

    if not isinstance(data, dict):
        raise FrontMatterError(path, "front matter must be a mapping")

    return TaskDefinition(
        rule=_yaml_text(data.get("rrule")),
        duration=_yaml_text(data.get("duration")),
        start=_yaml_text(data.get("dtstart")),
        tags=_yaml_tags(data.get("tags")),
    )


def clean_filename(filename: str) -> str:
    """
    Drop leading date prefixes like '2025-05-22 ' and the '.md' suffix.
    """
    cleaned = _DATE_PREFIX.sub("", filename)
    if cleaned.endswith(".md"):
        cleaned = cleaned[: -len(".md")]
    return cleaned
