"""Remote catalog clients.

This module provides the abstract catalog interface and the gallery
implementation used to resolve manifest identifiers into downloadable
entries.
"""

from extpack.catalog.base import CatalogClient, ResolutionError
from extpack.catalog.gallery import GalleryCatalog

__all__ = ["CatalogClient", "GalleryCatalog", "ResolutionError"]
