import sys
import os
import click
from pathlib import Path
from rich import print
from rich.console import Console
from rich.markup import escape

from obtasks import __version__
from obtasks.controller import Controller
from obtasks.item import DurationFormatError, FrontMatterError, parse_duration
from obtasks.model import Active, Errored, Inactive
from obtasks.obtasks_env import HOME_VAR, NOTES_DIR_VAR, ObtasksEnvironment
from obtasks.shared import fmt_date, format_span
from obtasks.view import render_report

from datetime import date, datetime, timezone


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class _DateParam(click.ParamType):
    name = "date"

    def convert(self, value, param, ctx):
        if value is None:
            return None
        if isinstance(value, date):
            return value
        s = str(value).strip().lower()
        if s in ("today", "now"):
            return utc_today()
        try:
            return datetime.strptime(s, "%Y-%m-%d").date()
        except ValueError:
            self.fail("Expected YYYY-MM-DD or 'today'", param, ctx)


_DATE = _DateParam()

HELP = f"""
Obsidian tasks – list the recurring and one-time tasks in your notes.

Tasks are Markdown notes whose YAML front matter holds an iCal RRULE,
an ISO 8601 DURATION and a DTSTART:

\b
    ---
    rrule: FREQ=WEEKLY;BYDAY=FR
    duration: P1D
    dtstart: 2025-01-03
    ---

A note with dtstart but no rrule is a one-time task. The notes directory
comes from --notes-dir, ${NOTES_DIR_VAR} or notes_dir in config.toml.
"""


@click.group(invoke_without_command=True, help=HELP)
@click.version_option(
    __version__, prog_name="obtasks", message="%(prog)s version %(version)s"
)
@click.option(
    "--home",
    help=f"Override the obtasks home directory (equivalent to setting ${HOME_VAR}).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, home, verbose):
    if home:
        os.environ[HOME_VAR] = home  # Must be set before ObtasksEnvironment is instantiated

    ctx.ensure_object(dict)
    ctx.obj["ENV"] = ObtasksEnvironment()
    ctx.obj["VERBOSE"] = verbose

    if ctx.invoked_subcommand is None:
        ctx.invoke(list_tasks)


@cli.command(name="list")
@click.option(
    "--notes-dir",
    "-n",
    type=click.Path(file_okay=False),
    help=f"Folder of notes to scan (overrides ${NOTES_DIR_VAR} and config.toml).",
)
@click.option(
    "--today",
    "today",
    type=_DATE,
    default=None,
    help="Evaluate as of this date (YYYY-MM-DD). Defaults to today (UTC).",
)
@click.option(
    "--tag",
    "-t",
    "tags",
    multiple=True,
    help="Only list notes carrying this tag (repeatable).",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(1, 64),
    default=None,
    help="Number of notes evaluated concurrently.",
)
@click.option("--no-links", is_flag=True, help="Do not render obsidian:// hyperlinks.")
@click.pass_context
def list_tasks(ctx, notes_dir=None, today=None, tags=(), workers=None, no_links=False):
    """List active, inactive and broken task notes."""
    env = ctx.obj["ENV"]
    verbose = ctx.obj["VERBOSE"]
    config = env.config

    root = env.notes_dir(notes_dir)
    if root is None:
        print(
            "[red]✘ Notes directory not configured.[/red] Set "
            f"{NOTES_DIR_VAR}, pass --notes-dir or add notes_dir to "
            f"{escape(str(env.config_path))}"
        )
        sys.exit(1)
    if not root.is_dir():
        print(f"[red]✘ Notes directory not found:[/red] {escape(str(root))}")
        sys.exit(1)

    today = today or utc_today()
    if verbose:
        print(f"[blue]obtasks version:[/blue] {__version__}")
        print(f"[blue]using home directory:[/blue] {escape(str(env.home))}")
        print(f"[blue]scanning:[/blue] {escape(str(root))} [blue]as of[/blue] {fmt_date(today)}")

    controller = Controller(root, config)
    report = controller.scan(today, tags=tags, workers=workers)

    console = Console(highlight=False, soft_wrap=True)
    render_report(
        report,
        console,
        hyperlinks=config.display.hyperlinks and not no_links,
        show_inactive=config.display.show_inactive,
    )


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--today",
    "today",
    type=_DATE,
    default=None,
    help="Evaluate as of this date (YYYY-MM-DD). Defaults to today (UTC).",
)
@click.pass_context
def check(ctx, path, today):
    """Evaluate a single note and show whether it is active."""
    verbose = ctx.obj["VERBOSE"]
    note = Path(path)
    today = today or utc_today()

    controller = Controller(note.parent)
    try:
        row = controller.check_note(note, today)
    except (FrontMatterError, OSError, UnicodeDecodeError) as e:
        print(f"[red]✘ Cannot read note:[/red] {escape(str(e))}")
        sys.exit(1)

    if row is None:
        print(f"[yellow]✘ {escape(note.name)} is not a task[/yellow]")
        sys.exit(1)

    if verbose:
        print(f"[blue]rule:[/blue] {escape(row.rule_label)}")
        print(f"[blue]duration:[/blue] {escape(row.duration_text or '(default P1D)')}")

    result = row.result
    if isinstance(result, Active):
        print(f"[green]✔ active[/green], due {fmt_date(result.due_date)}")
    elif isinstance(result, Inactive):
        print(f"· inactive, next start {fmt_date(result.next_start)}")
    elif isinstance(result, Errored):
        print(f"[red]✘ {result.kind.value} error:[/red] {escape(result.message)}")
        sys.exit(1)


@cli.command()
@click.argument("text", default="")
def duration(text):
    """Show how a DURATION value is interpreted."""
    try:
        span = parse_duration(text)
    except DurationFormatError as e:
        print(f"[red]✘ Invalid duration:[/red] {escape(str(e))}")
        sys.exit(1)

    seconds = int(span.total_seconds())
    print(f"{escape(text or '(empty)')} = {format_span(seconds)} ({seconds} seconds)")


if __name__ == "__main__":
    cli()
