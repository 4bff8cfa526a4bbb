from rich.console import Console
from rich.style import Style
from rich.text import Text

from .controller import ScanReport, TaskRow
from .model import Active, Errored, Inactive
from .shared import (
    ACTIVE_COLOR,
    DUE_COLOR,
    DUE_MARK,
    DUE_TODAY_COLOR,
    DUE_TODAY_MARK,
    ERROR_COLOR,
    ERROR_MARK,
    HEADER_COLOR,
    INACTIVE_COLOR,
    NEXT_COLOR,
    PROBLEM_COLOR,
    VAULT_COLOR,
    VAULT_MARK,
    fmt_date,
)


def _name(row: TaskRow, color: str, hyperlinks: bool) -> Text:
    style = Style.parse(color)
    if hyperlinks and row.uri:
        style += Style(link=row.uri)
    return Text(row.name, style=style)


def format_row(row: TaskRow, color: str, today, hyperlinks: bool = True) -> Text:
    """
    '  - name (rule, duration → date)' with the suffix chosen by the result.
    """
    line = Text("  - ")
    line.append_text(_name(row, color, hyperlinks))
    line.append(f" ({row.rule_label}")
    if row.duration_text:
        line.append(f", {row.duration_text}")

    result = row.result
    if isinstance(result, Active):
        if result.due_date == today:
            line.append(f" {DUE_TODAY_MARK} {fmt_date(result.due_date)}", style=DUE_TODAY_COLOR)
        else:
            line.append(f" {DUE_MARK} {fmt_date(result.due_date)}", style=DUE_COLOR)
        line.append(")")
    elif isinstance(result, Inactive):
        if result.next_start is not None:
            line.append(f" {DUE_MARK} {fmt_date(result.next_start)}", style=NEXT_COLOR)
        line.append(")")
    elif isinstance(result, Errored):
        line.append(")")
        line.append(f" {ERROR_MARK} {result.message}", style="red")
    return line


def _section(console: Console, title: str, rows, color: str, today, hyperlinks: bool):
    if not rows:
        return
    console.print()
    console.print(Text(f"{title}:", style=HEADER_COLOR))
    for row in rows:
        console.print(format_row(row, color, today, hyperlinks))


def render_report(
    report: ScanReport,
    console: Console | None = None,
    hyperlinks: bool = True,
    show_inactive: bool = True,
):
    console = console or Console(highlight=False, soft_wrap=True)

    if report.vault is not None:
        console.print(Text(f"{VAULT_MARK} Vault: {report.vault.name}", style=VAULT_COLOR))

    today = report.today
    _section(console, "Active tasks", report.active, ACTIVE_COLOR, today, hyperlinks)
    if show_inactive:
        _section(console, "Inactive tasks", report.inactive, INACTIVE_COLOR, today, hyperlinks)
    _section(console, "Tasks with syntax errors", report.errors, ERROR_COLOR, today, hyperlinks)

    if report.problems:
        console.print()
        console.print(Text("Unreadable notes:", style=HEADER_COLOR))
        for problem in report.problems:
            console.print(Text(f"  - {problem.message}", style=PROBLEM_COLOR))

    if not (report.active or report.inactive or report.errors or report.problems):
        console.print("[dim]No task notes found.[/dim]")
