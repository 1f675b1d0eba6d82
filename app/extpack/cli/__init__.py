"""CLI package for extpack.

This package contains the Typer application and all subcommands.
"""

from extpack.cli.main import app

__all__ = ["app"]
