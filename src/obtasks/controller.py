from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator, Optional
from urllib.parse import quote

from .item import FrontMatterError, TaskDefinition, clean_filename, parse_front_matter
from .model import ActivationResult, Active, Errored, Inactive, evaluate_definition
from .obtasks_env import ObtasksConfig
from .recurrence import RecurrenceSource
from .shared import ONCE_LABEL, log_msg

NOTE_SUFFIX = ".md"
VAULT_MARKER = ".obsidian"


@dataclass(frozen=True)
class Vault:
    name: str
    path: Path


@dataclass(frozen=True)
class TaskRow:
    """One evaluated note, ready for display."""

    name: str
    path: Path
    rule_label: str
    duration_text: str
    tags: tuple[str, ...]
    result: ActivationResult
    uri: Optional[str] = None

    @property
    def is_one_time(self) -> bool:
        return self.rule_label == ONCE_LABEL


@dataclass(frozen=True)
class NoteProblem:
    path: Path
    message: str


@dataclass
class ScanReport:
    today: date
    vault: Optional[Vault] = None
    active: list[TaskRow] = field(default_factory=list)
    inactive: list[TaskRow] = field(default_factory=list)
    errors: list[TaskRow] = field(default_factory=list)
    problems: list[NoteProblem] = field(default_factory=list)

    @property
    def rows(self) -> list[TaskRow]:
        return sorted(self.active + self.inactive + self.errors, key=lambda r: r.path)

    def add(self, row: TaskRow) -> None:
        if isinstance(row.result, Active):
            self.active.append(row)
        elif isinstance(row.result, Inactive):
            self.inactive.append(row)
        else:
            self.errors.append(row)


# ---------------------------------------------------------------------
# Vaults and links
# ---------------------------------------------------------------------


def detect_vault(notes_dir: Path) -> Optional[Vault]:
    """
    Return the nearest directory at or above notes_dir holding '.obsidian'.
    """
    current = notes_dir.expanduser().resolve()
    for candidate in (current, *current.parents):
        if (candidate / VAULT_MARKER).is_dir():
            return Vault(name=candidate.name, path=candidate)
    return None


def obsidian_uri(vault: Vault, file_path: Path) -> str:
    """
    obsidian://open?vault=<name>&file=<note path relative to the vault, no .md>
    """
    relative = file_path.resolve().relative_to(vault.path).as_posix()
    if relative.endswith(NOTE_SUFFIX):
        relative = relative[: -len(NOTE_SUFFIX)]
    return f"obsidian://open?vault={quote(vault.name, safe='')}&file={quote(relative, safe='')}"


# ---------------------------------------------------------------------
# Note discovery
# ---------------------------------------------------------------------


def iter_note_files(root: Path, skip_hidden: bool = True) -> Iterator[Path]:
    """
    Yield Markdown notes below root in path order.

    With skip_hidden, notes inside dot-directories (.obsidian, .trash, ...)
    are ignored.
    """
    for path in sorted(root.rglob(f"*{NOTE_SUFFIX}")):
        if skip_hidden and any(
            part.startswith(".") for part in path.relative_to(root).parts[:-1]
        ):
            continue
        if path.is_file():
            yield path


def load_note(path: Path) -> Optional[TaskDefinition]:
    """
    Read a note's task definition. None for notes that are not tasks.
    """
    content = path.read_text(encoding="utf-8")
    definition = parse_front_matter(content, str(path))
    if definition is None or not definition.is_task:
        return None
    return definition


# ---------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------


class Controller:
    def __init__(
        self,
        notes_dir: Path,
        config: Optional[ObtasksConfig] = None,
        source: Optional[RecurrenceSource] = None,
    ):
        self.notes_dir = Path(notes_dir)
        self.config = config or ObtasksConfig()
        self.source = source
        self.vault = detect_vault(self.notes_dir)

    def build_row(self, path: Path, definition: TaskDefinition, today: date) -> TaskRow:
        result = evaluate_definition(definition, today, self.source)
        if isinstance(result, Errored):
            log_msg(f"{path}: {result.message}")
        uri = None
        if self.vault is not None:
            try:
                uri = obsidian_uri(self.vault, path)
            except ValueError:
                # note reached through a link from outside the vault
                uri = None
        return TaskRow(
            name=clean_filename(path.name),
            path=path,
            rule_label=definition.rule_label,
            duration_text=definition.duration,
            tags=definition.tags,
            result=result,
            uri=uri,
        )

    def check_note(self, path: Path, today: date) -> Optional[TaskRow]:
        """
        Evaluate a single note. Raises FrontMatterError and OSError.
        """
        definition = load_note(path)
        if definition is None:
            return None
        return self.build_row(path, definition, today)

    def _process(
        self, path: Path, today: date, tags: frozenset[str]
    ) -> TaskRow | NoteProblem | None:
        try:
            definition = load_note(path)
        except (FrontMatterError, OSError, UnicodeDecodeError) as e:
            log_msg(f"Error processing {path}: {e}")
            return NoteProblem(path=path, message=str(e))

        if definition is None:
            return None
        if tags and not tags.intersection(definition.tags):
            return None
        return self.build_row(path, definition, today)

    def scan(
        self,
        today: date,
        tags: Iterable[str] = (),
        workers: Optional[int] = None,
    ) -> ScanReport:
        """
        Evaluate every task note below the notes directory.

        Notes are evaluated independently, on up to ``workers`` threads;
        each group of the report is in path order whatever the completion
        order.
        """
        wanted = frozenset(t.lstrip("#") for t in tags if t)
        workers = workers or self.config.scan.workers
        paths = list(iter_note_files(self.notes_dir, self.config.scan.skip_hidden))

        if workers > 1 and len(paths) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                outcomes = list(pool.map(lambda p: self._process(p, today, wanted), paths))
        else:
            outcomes = [self._process(p, today, wanted) for p in paths]

        report = ScanReport(today=today, vault=self.vault)
        for outcome in sorted(
            (o for o in outcomes if o is not None), key=lambda o: o.path
        ):
            if isinstance(outcome, NoteProblem):
                report.problems.append(outcome)
            else:
                report.add(outcome)

        log_msg(
            f"scanned {len(paths)} notes in {self.notes_dir}: "
            f"{len(report.active)} active, {len(report.inactive)} inactive, "
            f"{len(report.errors)} errors, {len(report.problems)} unreadable"
        )
        return report
