"""Abstract base class for catalog clients.

This module defines the CatalogClient interface that maps extension
identifiers to downloadable catalog entries.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from extpack.models.catalog import CatalogEntry


class ResolutionError(Exception):
    """Raised when the catalog cannot be queried or returns garbage."""


class CatalogClient(ABC):
    """Abstract base class for all catalog clients.

    Example:
        >>> catalog = GalleryCatalog()
        >>> for entry in catalog.resolve(["Publisher.Extension"]):
        ...     print(f"{entry.identifier}: {entry.download_url}")
    """

    @abstractmethod
    def resolve(
        self,
        identifiers: Sequence[str],
        locale: str = "en-US",
        include_preview: bool = False,
    ) -> list[CatalogEntry]:
        """Resolve identifiers into catalog entries with a single lookup.

        Identifiers the catalog does not recognize produce no entry.
        Entries come back in catalog order, without duplicates.

        Args:
            identifiers: Identifiers to look up.
            locale: Locale for display metadata.
            include_preview: Whether preview releases may be returned.

        Returns:
            List of resolved entries.

        Raises:
            ResolutionError: If the lookup fails.
        """
