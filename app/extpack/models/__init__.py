"""Data models for extpack.

This module exports the core data structures used throughout the application.
"""

from extpack.models.artifact import FetchedArtifact, ImportResult, ImportState
from extpack.models.catalog import CatalogEntry, Selection
from extpack.models.manifest import ExtensionRef, Manifest

__all__ = [
    "CatalogEntry",
    "ExtensionRef",
    "FetchedArtifact",
    "ImportResult",
    "ImportState",
    "Manifest",
    "Selection",
]
