"""Status command implementation.

Lists the packages currently held in the staging directory, e.g. those
left behind by a failed import.
"""

import typer

from extpack.cli.display import create_staged_table
from extpack.core.config import SettingsError, load_settings
from extpack.core.installer import list_staged_artifacts
from extpack.core.paths import get_staging_dir
from extpack.utils.formatting import console, print_error, print_info


def status(ctx: typer.Context) -> None:
    """Show the packages in the staging directory."""
    try:
        settings = load_settings((ctx.obj or {}).get("config_path"))
    except SettingsError as e:
        print_error(f"Failed to load settings: {e}")
        raise typer.Exit(code=1) from e

    staging_dir = settings.staging_dir or get_staging_dir()
    print_info(f"Staging directory: {staging_dir}")

    if not staging_dir.is_dir():
        print_info("The staging directory does not exist.")
        return

    filenames = list_staged_artifacts(staging_dir, settings.artifact_extension)
    if not filenames:
        print_info("No staged packages.")
        return

    console.print(create_staged_table(staging_dir, filenames))
    console.print(f"\n[muted]{len(filenames)} package(s)[/muted]")
