"""Manifest file I/O operations.

This module provides functions for loading extension-pack manifests
(JSON documents with the ``.vsext`` extension) with validation using
Pydantic models.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from extpack.models.manifest import Manifest

logger = logging.getLogger(__name__)

# File extension accepted for manifests
MANIFEST_EXTENSION = ".vsext"

# File name suggested when prompting for a manifest
DEFAULT_MANIFEST_NAME = f"extensions{MANIFEST_EXTENSION}"


class ManifestError(Exception):
    """Base exception for manifest-related errors."""


class ManifestNotFoundError(ManifestError):
    """Raised when manifest file is not found."""


class ManifestParseError(ManifestError):
    """Raised when manifest file cannot be parsed."""


class ManifestValidationError(ManifestError):
    """Raised when manifest content is invalid."""


def is_manifest_file(path: Path) -> bool:
    """Check if a path carries the manifest file extension.

    Args:
        path: Path to check.

    Returns:
        True if the suffix is ``.vsext`` (case-insensitive).
    """
    return path.suffix.lower() == MANIFEST_EXTENSION


def load_manifest(path: Path) -> Manifest:
    """Load and validate a manifest from a JSON file.

    Args:
        path: Path to the manifest file.

    Returns:
        Validated Manifest object.

    Raises:
        ManifestNotFoundError: If the manifest file doesn't exist.
        ManifestParseError: If the JSON syntax is invalid.
        ManifestValidationError: If the content doesn't match the schema.
        ManifestError: If the file cannot be read.
    """
    if not path.is_file():
        raise ManifestNotFoundError(f"Manifest not found: {path}")

    try:
        # utf-8-sig: manifests written on Windows often carry a BOM
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Failed to read manifest: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestParseError(f"Invalid JSON syntax: {e}") from e

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as e:
        raise ManifestValidationError(f"Invalid manifest content: {e}") from e

    logger.debug("Loaded manifest %s with %d extension(s)", path, manifest.extension_count)
    return manifest
