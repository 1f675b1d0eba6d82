"""Settings commands.

Provides commands to show the effective settings and to write a
settings file with every key spelled out.
"""

from typing import Annotated

import tomli_w
import typer

from extpack.core.config import (
    Settings,
    SettingsError,
    load_settings,
    save_settings,
    settings_to_dict,
)
from extpack.core.paths import get_config_path
from extpack.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or create the settings file.",
    no_args_is_help=True,
)


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the effective settings as TOML."""
    config_path = (ctx.obj or {}).get("config_path") or get_config_path()

    try:
        settings = load_settings(config_path)
    except SettingsError as e:
        print_error(f"Failed to load settings: {e}")
        raise typer.Exit(code=1) from e

    source = str(config_path) if config_path.exists() else "defaults"
    print_info(f"# Source: {source}")
    console.print(
        tomli_w.dumps(settings_to_dict(settings, include_defaults=True)),
        markup=False,
        highlight=False,
    )


@app.command()
def init(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing settings file.",
        ),
    ] = False,
) -> None:
    """Write a settings file containing every default value."""
    config_path = (ctx.obj or {}).get("config_path") or get_config_path()

    if config_path.exists() and not force:
        print_error(f"Settings file already exists: {config_path}")
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1)

    try:
        saved = save_settings(Settings(), config_path, include_defaults=True)
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Settings written to {saved}")
