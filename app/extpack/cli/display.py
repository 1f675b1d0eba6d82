"""Shared Rich display functions for import runs.

Provides table builders and summary printers for resolved entries,
downloaded artifacts and the launched installer.
"""

from collections.abc import Sequence
from pathlib import Path

from rich.table import Table

from extpack.models.artifact import FetchedArtifact, ImportResult
from extpack.models.catalog import CatalogEntry
from extpack.utils.formatting import console, create_entries_table, print_info, print_success


def create_artifacts_table(artifacts: Sequence[FetchedArtifact]) -> Table:
    """Create a Rich table listing downloaded artifacts.

    Args:
        artifacts: Downloaded artifacts.

    Returns:
        Rich Table with File and Extension columns.
    """
    table = Table(
        title="Downloaded",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("File", style="muted", no_wrap=True)
    table.add_column("Extension", style="entry.name")
    table.add_column("Version", style="version")

    for artifact in artifacts:
        table.add_row(artifact.filename, artifact.entry.name, artifact.entry.version or "-")

    return table


def create_staged_table(staging_dir: Path, filenames: Sequence[str]) -> Table:
    """Create a Rich table listing files in the staging directory.

    Args:
        staging_dir: Directory holding the files.
        filenames: File names relative to the directory.

    Returns:
        Rich Table with File and Size columns.
    """
    table = Table(
        title="Staged Packages",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("File", style="muted", no_wrap=True)
    table.add_column("Size", justify="right")

    for name in filenames:
        size = (staging_dir / name).stat().st_size
        table.add_row(name, f"{size / 1024:.1f} KiB")

    return table


def print_plan(entries: Sequence[CatalogEntry], requested: Sequence[str]) -> None:
    """Print what a dry run resolved.

    Args:
        entries: Resolved entries.
        requested: Identifiers listed in the manifest.
    """
    if entries:
        console.print(create_entries_table(entries, title="Resolved Extensions"))

    resolved = {entry.identifier.casefold() for entry in entries}
    unresolved = [i for i in requested if i.casefold() not in resolved]
    summary = f"\nResolved [success]{len(entries)}[/success] of {len(requested)} extension(s)"
    if unresolved:
        summary += f", [warning]{len(unresolved)} not found[/warning]"
    console.print(summary)
    for identifier in unresolved:
        console.print(f"  [warning]-[/warning] [identifier]{identifier}[/identifier]")


def print_import_summary(result: ImportResult) -> None:
    """Print the outcome of a completed import.

    Args:
        result: Finished import result.
    """
    if result.artifacts:
        console.print(create_artifacts_table(result.artifacts))

    if result.installer_started:
        print_success(f"Installer started for {len(result.artifacts)} extension(s).")
        print_info(f"Arguments: {result.command_line}")
    else:
        print_info("No extensions selected. Nothing to install.")
