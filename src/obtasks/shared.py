import inspect
import textwrap
import shutil
import threading
from datetime import date, datetime
from pathlib import Path

from obtasks.obtasks_env import ObtasksEnvironment

ONCE_LABEL = "ONCE"

# Colors for report sections, as rich style strings
HEADER_COLOR = "bold yellow"
VAULT_COLOR = "bold cyan"
ACTIVE_COLOR = "bold green"
INACTIVE_COLOR = "bold bright_black"
ERROR_COLOR = "bold red"
DUE_COLOR = "yellow"
DUE_TODAY_COLOR = "bold red"
NEXT_COLOR = "cyan"
PROBLEM_COLOR = "magenta"

DUE_MARK = "→"
DUE_TODAY_MARK = "⚠️"
ERROR_MARK = "❌"
VAULT_MARK = "📓"

# worker threads share the daily log file
_log_lock = threading.Lock()


def fmt_date(d: date | None) -> str:
    if d is None:
        return "none"
    return d.strftime("%Y-%m-%d")


def format_span(seconds: int) -> str:
    """
    Describe a span in days, hours, minutes and seconds, e.g. '1d 2h'.
    """
    if seconds <= 0:
        return "0s"
    parts = []
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        amount, seconds = divmod(seconds, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return " ".join(parts)


def _get_runtime_home() -> Path:
    return ObtasksEnvironment().home


def _resolve_log_file_path(file_path: str | Path) -> Path:
    path = Path(file_path)
    if path.is_absolute():
        return path
    return _get_runtime_home() / path


def _default_log_path(kind: str) -> Path:
    """Return <home>/logs/<kind>_<YYMMDD>.md."""
    suffix = datetime.now().strftime("%y%m%d")
    return ObtasksEnvironment().log_dir / f"{kind}_{suffix}.md"


def _caller_name(frame) -> str:
    func_name = frame.f_code.co_name
    if "self" in frame.f_locals:  # instance method
        return f"{frame.f_locals['self'].__class__.__name__}.{func_name}"
    if "cls" in frame.f_locals:  # classmethod
        return f"{frame.f_locals['cls'].__name__}.{func_name}"
    return func_name


def log_msg(
    msg: str,
    file_path: str | Path | None = None,
    print_output: bool = False,
):
    """
    Append a message to the daily log file.

    Args:
        msg (str): The message to log.
        file_path (str | Path | None, optional): Overrides the default path when
            provided. Defaults to ``None`` which writes to ``logs/log_<YYMMDD>.md``
            under the obtasks home directory.
        print_output (bool, optional): If True, also print to console.
    """
    caller_name = _caller_name(inspect.stack()[1].frame)

    lines = [
        f"- {datetime.now().strftime('%H:%M:%S')} log_msg ({caller_name}):  ",
    ]
    lines.extend(
        [
            f"\n{x}"
            for x in textwrap.wrap(
                msg.strip(),
                width=max(shutil.get_terminal_size()[0] - 6, 40),
                initial_indent="   ",
                subsequent_indent="   ",
            )
        ]
    )
    lines.append("\n\n")

    # Fall back to the console when the file is unwritable.
    if file_path is None:
        file_path = _default_log_path("log")
    log_path = _resolve_log_file_path(file_path)

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with _log_lock, open(log_path, "a", encoding="utf-8") as f:
            f.writelines(lines)
    except OSError:
        print_output = True

    if print_output:
        print("".join(lines))
