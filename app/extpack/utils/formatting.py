"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from extpack.core.theme import get_theme

if TYPE_CHECKING:
    from extpack.models.catalog import CatalogEntry


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_entries_table(
    entries: Sequence[CatalogEntry],
    title: str = "Extensions",
    numbered: bool = False,
) -> Table:
    """Create a table listing catalog entries.

    Args:
        entries: Entries to list.
        title: Table title.
        numbered: Prefix each row with its 1-based index (used for selection).

    Returns:
        Rich Table with one row per entry.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    if numbered:
        table.add_column("#", justify="right", style="muted")
    table.add_column("Name", no_wrap=True, style="entry.name")
    table.add_column("Identifier", style="identifier")
    table.add_column("Version", style="version")
    table.add_column("Publisher", style="muted", overflow="ellipsis")

    for index, entry in enumerate(entries, start=1):
        row = [entry.name, entry.identifier, entry.version or "-", entry.publisher or "-"]
        if numbered:
            row.insert(0, str(index))
        table.add_row(*row)

    return table


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
