"""User settings for extpack.

Settings are stored in ~/.config/extpack/config.toml. Every key is
optional; a missing file means "all defaults".
"""

import logging
import os
import tomllib
from enum import Enum
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from extpack.core.paths import get_config_path

logger = logging.getLogger(__name__)

DEFAULT_GALLERY_URL = "https://marketplace.visualstudio.com"
DEFAULT_TARGET = "Microsoft.VisualStudio.Ide"
DEFAULT_INSTALLER_NAME = "VSIXInstaller.exe"
DEFAULT_INSTANCE_COMMAND = ["vswhere", "-latest", "-property", "instanceId"]


class CleanupPolicy(str, Enum):
    """What to do with already-downloaded files when a batch fails."""

    KEEP = "keep"
    REMOVE = "remove"


class Settings(BaseModel):
    """Effective extpack settings.

    Attributes:
        gallery_url: Base URL of the extension gallery.
        target: Gallery installation target used to scope the query.
        locale: Locale sent with the catalog query.
        include_preview: Whether preview releases may be resolved.
        catalog_timeout: Timeout in seconds for the catalog query.
        download_timeout: Per-download timeout in seconds (None = wait forever).
        artifact_extension: File extension given to downloaded packages.
        installer_name: Installer executable name, looked up next to the running program.
        installer_path: Explicit installer location, overrides the lookup.
        instance_id: Fixed target instance id, skips instance discovery.
        instance_command: Command printing the target instance id.
        staging_dir: Overrides the default staging directory.
        cleanup_on_failure: Policy for completed downloads when a batch fails.
    """

    model_config = ConfigDict(extra="forbid")

    gallery_url: Annotated[str, Field(description="Gallery base URL")] = DEFAULT_GALLERY_URL
    target: Annotated[str, Field(description="Gallery installation target")] = DEFAULT_TARGET
    locale: Annotated[str, Field(description="Catalog query locale")] = "en-US"
    include_preview: Annotated[bool, Field(description="Resolve preview releases")] = False
    catalog_timeout: Annotated[
        float,
        Field(gt=0, description="Catalog query timeout in seconds"),
    ] = 30.0
    download_timeout: Annotated[
        float | None,
        Field(gt=0, description="Download timeout in seconds"),
    ] = None
    artifact_extension: Annotated[
        str,
        Field(description="Extension of downloaded package files"),
    ] = ".vsix"
    installer_name: Annotated[
        str,
        Field(description="Installer executable name"),
    ] = DEFAULT_INSTALLER_NAME
    installer_path: Annotated[Path | None, Field(description="Installer location")] = None
    instance_id: Annotated[str | None, Field(description="Fixed target instance id")] = None
    instance_command: Annotated[
        list[str],
        Field(
            default_factory=lambda: list(DEFAULT_INSTANCE_COMMAND),
            description="Instance discovery command",
        ),
    ]
    staging_dir: Annotated[Path | None, Field(description="Staging directory")] = None
    cleanup_on_failure: Annotated[
        CleanupPolicy,
        Field(description="Cleanup policy for failed batches"),
    ] = CleanupPolicy.KEEP

    @field_validator("artifact_extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        """Normalize the artifact extension to start with a dot."""
        ext = v.strip()
        if not ext or ext == ".":
            msg = "artifact_extension cannot be empty"
            raise ValueError(msg)
        return ext if ext.startswith(".") else f".{ext}"

    @field_validator("instance_command")
    @classmethod
    def validate_instance_command(cls, v: list[str]) -> list[str]:
        """Reject an empty discovery command."""
        if not v:
            msg = "instance_command cannot be empty"
            raise ValueError(msg)
        return v


class SettingsError(Exception):
    """Base exception for settings errors."""


class SettingsParseError(SettingsError):
    """Raised when the settings file cannot be parsed."""


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from a TOML file.

    Args:
        path: Path to the settings file. If None, uses the default config path.

    Returns:
        Validated Settings; defaults if the file does not exist.

    Raises:
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the file cannot be read or the content is invalid.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.debug("No settings file at %s, using defaults", config_path)
        return Settings()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read settings: {e}") from e

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings content: {e}") from e


def save_settings(
    settings: Settings,
    path: Path | None = None,
    *,
    include_defaults: bool = False,
) -> Path:
    """Save settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        settings: The Settings object to save.
        path: Path to save to. If None, uses the default config path.
        include_defaults: Also write keys that hold their default value.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = settings_to_dict(settings, include_defaults=include_defaults)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return config_path


def settings_to_dict(settings: Settings, *, include_defaults: bool = False) -> dict[str, Any]:
    """Convert Settings to a dictionary for TOML serialization.

    None values are always dropped since TOML has no null.

    Args:
        settings: The Settings to convert.
        include_defaults: Keep keys that still hold their default value.

    Returns:
        Dictionary ready for TOML serialization.
    """
    data = settings.model_dump(mode="json", exclude_none=True)
    if include_defaults:
        return data
    defaults = Settings().model_dump(mode="json", exclude_none=True)
    return {key: value for key, value in data.items() if defaults.get(key) != value}
