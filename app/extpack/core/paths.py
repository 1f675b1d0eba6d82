"""XDG-compliant path management for extpack.

This module provides standardized paths following the XDG Base Directory
Specification for configuration, plus the staging
directory used to hold downloaded packages.

XDG defaults:
- Config: ~/.config/extpack/
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

# Application identifier for directory naming
APP_NAME = "extpack"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/extpack/ (or XDG_CONFIG_HOME/extpack/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_config_path() -> Path:
    """Get the settings file path.

    Returns:
        Path to ~/.config/extpack/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_theme_path() -> Path:
    """Get the user theme file path.

    Returns:
        Path to ~/.config/extpack/theme.toml.
    """
    return get_config_dir() / "theme.toml"


def get_staging_dir() -> Path:
    """Get the default staging directory for downloaded packages.

    The path is fixed per application, not per run, so two concurrent
    imports share (and clobber) the same directory.

    Returns:
        Path to <tempdir>/extpack.
    """
    return Path(tempfile.gettempdir()) / APP_NAME


def prepare_staging_dir(path: Path) -> Path:
    """Recreate the staging directory.

    Any existing directory (and its content) is removed first so that
    files from an earlier run never leak into this one.

    Args:
        path: Staging directory to recreate.

    Returns:
        The freshly created, empty directory.

    Raises:
        RuntimeError: If the directory cannot be removed or created.
    """
    if path.exists():
        logger.debug("Removing stale staging directory %s", path)
        try:
            shutil.rmtree(path)
        except OSError as e:
            msg = f"Cannot clear staging directory {path}: {e}"
            raise RuntimeError(msg) from e
    return _ensure_dir(path, "staging")


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path
