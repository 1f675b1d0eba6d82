"""Download and import result models."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from extpack.models.catalog import CatalogEntry, Selection


@dataclass(frozen=True, slots=True)
class FetchedArtifact:
    """A package file downloaded into the staging directory.

    Attributes:
        entry: Catalog entry the file was downloaded from.
        path: Location of the file.
    """

    entry: CatalogEntry
    path: Path

    @property
    def filename(self) -> str:
        """File name relative to the staging directory."""
        return self.path.name


class ImportState(Enum):
    """Stages of an import run."""

    IDLE = "idle"
    AWAITING_FILE_CHOICE = "awaiting-file-choice"
    AWAITING_RESOLUTION = "awaiting-resolution"
    AWAITING_USER_SELECTION = "awaiting-user-selection"
    DOWNLOADING = "downloading"
    INVOKING = "invoking"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(slots=True)
class ImportResult:
    """Summary of a finished import run.

    Attributes:
        state: Final state (COMPLETED or ABORTED).
        entries: Entries resolved from the catalog.
        selection: Operator's selection, None if never reached.
        artifacts: Files downloaded in this run.
        command_line: Installer command line, None if no installer was launched.
    """

    state: ImportState
    entries: list[CatalogEntry] = field(default_factory=list)
    selection: Selection | None = None
    artifacts: list[FetchedArtifact] = field(default_factory=list)
    command_line: str | None = None

    @property
    def aborted(self) -> bool:
        """Check if the run was cancelled by the operator."""
        return self.state == ImportState.ABORTED

    @property
    def installer_started(self) -> bool:
        """Check if an installer process was launched."""
        return self.command_line is not None
