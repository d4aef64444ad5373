"""
Console output for kira-dependencies, rendered with Rich.

User-facing output only: the per-dependency progress lines printed while
a run is in flight, status messages, and the summary table at the end.
Diagnostics belong to :mod:`kira_dependencies.utils.logger`.

Typical usage::

    start_progress("  - Updating rich (from 13.0.0)…")
    finish_progress("submitted")
    print_summary(rows)
"""

from __future__ import annotations

import sys
import threading
from typing import Dict, List, Optional, Sequence

from rich.table import Table
from rich.theme import Theme
from rich.console import Console

from kira_dependencies.utils.logger import colors_supported

KIRA_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
    }
)

#: Row style per outcome in the summary table.
RESULT_STYLES: Dict[str, str] = {
    "created": "green",
    "updated": "cyan",
    "unchanged": "dim",
    "skipped": "dim",
    "failed": "red",
}

SUMMARY_COLUMNS = ("Dependency", "From", "To", "Result", "Detail")

_lock = threading.Lock()
_console: Optional[Console] = None
_progress_open = False


def get_console() -> Console:
    """Return the shared console, creating it on first use."""
    global _console
    with _lock:
        if _console is None:
            use_color = colors_supported(sys.stdout)
            _console = Console(
                theme=KIRA_THEME,
                no_color=not use_color,
                highlight=False,
            )
        return _console


def reconfigure_console() -> None:
    """Drop the shared console so the next call picks up ``NO_COLOR``."""
    global _console, _progress_open
    with _lock:
        _console = None
        _progress_open = False


# ---------------------------------------------------------------------------
# Progress lines
# ---------------------------------------------------------------------------


def start_progress(message: str) -> None:
    """Print ``message`` and keep the cursor on the line."""
    global _progress_open
    get_console().print(message, end="", markup=False)
    _progress_open = True


def finish_progress(suffix: str) -> None:
    """Append ``suffix`` to an open progress line and end it.

    Does nothing when no progress line is open.
    """
    global _progress_open
    if _progress_open:
        get_console().print(f" {suffix}", markup=False)
        _progress_open = False


# ---------------------------------------------------------------------------
# Status messages
# ---------------------------------------------------------------------------


def _status(style: Optional[str], prefix: str, message: str) -> None:
    finish_progress("")
    text = f"{prefix} {message}" if prefix else message
    get_console().print(text, style=style, markup=False)


def print_info(message: str) -> None:
    _status(None, "", message)


def print_success(message: str) -> None:
    _status("success", "[OK]", message)


def print_warning(message: str) -> None:
    _status("warning", "[WARNING]", message)


def print_error(message: str) -> None:
    _status("error", "[ERROR]", message)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------


def build_summary_table(
    rows: Sequence[Dict[str, str]],
    *,
    title: Optional[str] = None,
    columns: Sequence[str] = SUMMARY_COLUMNS,
) -> Table:
    """Build the run summary table, one row per dependency outcome.

    Rows are styled by their ``Result`` value; long URLs in the last
    column fold instead of being cut.
    """
    table = Table(title=title, header_style="bold")
    for column in columns:
        table.add_column(
            column,
            no_wrap=column != columns[-1],
            overflow="fold",
        )
    for row in rows:
        table.add_row(
            *(str(row.get(column, "")) for column in columns),
            style=RESULT_STYLES.get(row.get("Result", "")),
        )
    return table


def print_summary(rows: List[Dict[str, str]], *, title: Optional[str] = None) -> None:
    """Print the summary table; an empty run prints a single line instead."""
    if not rows:
        print_info("No dependencies to report")
        return
    finish_progress("")
    get_console().print(build_summary_table(rows, title=title))
