"""
Shared pytest fixtures for obtasks tests.

This module provides common fixtures used across all test files, including:
- An isolated obtasks home directory for every test
- Time freezing utilities
- A notes folder inside an Obsidian vault, and a note factory
- Recurrence sources (the dateutil one and a recording fake)
"""

import pytest
from datetime import date
from pathlib import Path
from freezegun import freeze_time

from obtasks.recurrence import DateutilRecurrenceSource


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """
    Point $OBTASKS_HOME at a fresh directory so that config files and
    logs written during a test never touch the real home directory.
    """
    home = tmp_path / "obtasks-home"
    monkeypatch.setenv("OBTASKS_HOME", str(home))
    monkeypatch.delenv("OBSIDIAN_NOTES_DIR", raising=False)
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture
def frozen_time():
    """
    Freezes time to Friday 2025-09-26 12:00:00 UTC for the duration of the test.
    """
    with freeze_time("2025-09-26 12:00:00") as frozen:
        yield frozen


@pytest.fixture
def freeze_at():
    """
    Returns a function that freezes time to a specific datetime.

    Usage:
        def test_something(freeze_at):
            with freeze_at("2025-01-15 10:00:00"):
                ...
    """
    return freeze_time


@pytest.fixture
def source():
    return DateutilRecurrenceSource()


class RecordingSource:
    """
    RecurrenceSource returning canned dates and remembering every query.

    ``batches`` is consumed one list per call; once exhausted, calls
    return an empty list.
    """

    def __init__(self, *batches: list[date]):
        self.batches = list(batches)
        self.calls: list[tuple] = []

    def occurrences_between(self, rule, reference_start, range_start, range_end):
        self.calls.append((rule, reference_start, range_start, range_end))
        if self.batches:
            return self.batches.pop(0)
        return []


@pytest.fixture
def recording_source():
    return RecordingSource


@pytest.fixture
def vault_dir(tmp_path) -> Path:
    """A vault named 'vault' (it holds a .obsidian folder)."""
    vault = tmp_path / "vault"
    (vault / ".obsidian").mkdir(parents=True)
    return vault


@pytest.fixture
def notes_dir(vault_dir) -> Path:
    notes = vault_dir / "notes"
    notes.mkdir()
    return notes


@pytest.fixture
def write_note(notes_dir):
    """
    Returns a function writing a note below notes_dir.

    Usage:
        path = write_note("Weekly.md", "rrule: FREQ=WEEKLY\\nduration: P1D")
        path = write_note("Plain.md", None)   # no front matter
    """

    def _write(name: str, front_matter: str | None, body: str = "# Note\n") -> Path:
        path = notes_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if front_matter is None:
            text = body
        else:
            text = f"---\n{front_matter.strip()}\n---\n\n{body}"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_notes(write_note):
    """
    Writes a realistic mix of notes. As of 2025-09-26 (a Friday):

    active:    Weekly (due today), sub/Daily
    inactive:  Rent (next 2025-10-01), Trip (next 2025-10-18)
    errors:    Broken (rrule), Bad duration (duration)
    skipped:   Plain, Meta, .trash/Old
    unreadable: Bad yaml
    """
    return {
        "weekly": write_note(
            "Weekly.md",
            "rrule: FREQ=WEEKLY;BYDAY=FR\nduration: P1D\ndtstart: 2024-01-05\ntags: [chores]",
        ),
        "daily": write_note(
            "sub/Daily.md", "rrule: FREQ=DAILY\ndtstart: 2025-01-01\ntags: journal"
        ),
        "rent": write_note(
            "2025-01-01 Rent.md",
            "rrule: FREQ=MONTHLY;BYMONTHDAY=1\nduration: P3D\ndtstart: 2024-01-01\ntags:\n  - chores\n  - money",
        ),
        "trip": write_note("Trip.md", "dtstart: 2025-10-18\nduration: P6D"),
        "broken": write_note("Broken.md", "rrule: FREQ=SOMETIMES\ndtstart: 2024-01-01"),
        "bad_duration": write_note(
            "Bad duration.md", "rrule: FREQ=DAILY\nduration: XYZ\ndtstart: 2024-01-01"
        ),
        "plain": write_note("Plain.md", None),
        "meta": write_note("Meta.md", "title: Just a note"),
        "trash": write_note(".trash/Old.md", "rrule: FREQ=DAILY\ndtstart: 2024-01-01"),
        "bad_yaml": write_note("Bad yaml.md", "rrule: [FREQ=DAILY\ndtstart: 2024-01-01"),
    }
