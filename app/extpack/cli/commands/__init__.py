"""CLI commands for extpack.

This package contains all subcommand implementations.
"""

from extpack.cli.commands import config, import_, status

__all__ = ["config", "import_", "status"]
