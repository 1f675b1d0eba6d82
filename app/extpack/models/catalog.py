"""Catalog models.

Defines the resolved gallery entries and the operator's selection
among them.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """A downloadable extension as returned by the remote catalog.

    Attributes:
        identifier: Identifier the entry was matched on.
        name: Display name.
        download_url: URL of the installable package.
        version: Version offered by the catalog (if known).
        publisher: Publisher display name (if known).
        description: Short description (if known).
        metadata: Raw catalog record.
    """

    identifier: str
    name: str
    download_url: str
    version: str | None = None
    publisher: str | None = None
    description: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.identifier:
            msg = "Catalog entry identifier cannot be empty"
            raise ValueError(msg)
        if not self.download_url:
            msg = f"Catalog entry {self.identifier} has no download URL"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Selection:
    """Outcome of the selection prompt.

    Attributes:
        confirmed: False if the operator declined or cancelled.
        identifiers: Chosen identifiers (may be empty when confirmed).
    """

    confirmed: bool
    identifiers: tuple[str, ...] = ()

    @classmethod
    def cancelled(cls) -> "Selection":
        """Create a selection representing a cancelled prompt."""
        return cls(confirmed=False)

    @property
    def is_empty(self) -> bool:
        """Check if the selection was confirmed without any entries."""
        return self.confirmed and not self.identifiers

    def filter(self, entries: Iterable[CatalogEntry]) -> list[CatalogEntry]:
        """Return the selected entries, keeping the order of ``entries``.

        Identifiers are compared case-insensitively.
        """
        if not self.confirmed:
            return []
        wanted = {identifier.casefold() for identifier in self.identifiers}
        return [entry for entry in entries if entry.identifier.casefold() in wanted]
