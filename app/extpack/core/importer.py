"""Import orchestration.

Runs the import pipeline: resolve the manifest against the catalog, let
the selector pick entries, download them concurrently and hand the files
to the installer. Stages run strictly one after another; only the
downloads run in parallel.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from extpack.core.manifest import load_manifest
from extpack.core.paths import prepare_staging_dir
from extpack.models.artifact import ImportResult, ImportState

if TYPE_CHECKING:
    from extpack.catalog.base import CatalogClient
    from extpack.core.fetcher import ConcurrentFetcher
    from extpack.core.installer import InstallerInvoker
    from extpack.core.selection import Selector
    from extpack.models.catalog import CatalogEntry
    from extpack.models.manifest import Manifest

logger = logging.getLogger(__name__)

STATUS_DOWNLOADING = "Downloading extensions..."
STATUS_DOWNLOADED = "Extensions downloaded. Starting VSIX Installer..."


def _no_status(message: str) -> None:
    logger.info(message)


@dataclass
class Importer:
    """Bulk-fetch-then-install pipeline with injected collaborators.

    Attributes:
        catalog: Resolves identifiers into downloadable entries.
        selector: Picks the entries to install.
        fetcher: Downloads the selected entries.
        invoker: Launches the installer.
        staging_dir: Scratch directory, recreated on every confirmed run.
        locale: Locale passed to the catalog.
        include_preview: Whether the catalog may return preview releases.
        status: Receives coarse human-readable status messages.
    """

    catalog: CatalogClient
    selector: Selector
    fetcher: ConcurrentFetcher
    invoker: InstallerInvoker
    staging_dir: Path
    locale: str = "en-US"
    include_preview: bool = False
    status: Callable[[str], None] = field(default=_no_status)
    state: ImportState = field(default=ImportState.IDLE, init=False)

    def _enter(self, state: ImportState) -> None:
        logger.debug("Import state: %s -> %s", self.state.value, state.value)
        self.state = state

    def load(self, path: Path) -> Manifest:
        """Load the manifest file the operator chose.

        Raises:
            ManifestError: If the file is missing or invalid.
        """
        self._enter(ImportState.AWAITING_FILE_CHOICE)
        try:
            return load_manifest(path)
        except Exception:
            self._enter(ImportState.IDLE)
            raise

    def plan(self, manifest: Manifest) -> list[CatalogEntry]:
        """Resolve the manifest without selecting or downloading anything.

        Raises:
            ResolutionError: If the catalog query fails.
        """
        return self.catalog.resolve(
            manifest.identifiers,
            locale=self.locale,
            include_preview=self.include_preview,
        )

    def run(self, manifest: Manifest, root_suffix: str | None = None) -> ImportResult:
        """Run the full pipeline for a loaded manifest.

        Args:
            manifest: Manifest listing the wanted identifiers.
            root_suffix: Optional instance qualifier forwarded to the installer.

        Returns:
            ImportResult in state COMPLETED, or ABORTED if the operator cancelled.

        Raises:
            ResolutionError: If the catalog query fails.
            DownloadError: If any download fails.
            LaunchError: If the installer cannot be started.
            RuntimeError: If the staging directory cannot be prepared.
        """
        try:
            return self._run(manifest, root_suffix)
        except Exception:
            logger.debug("Import failed in state %s", self.state.value)
            self._enter(ImportState.IDLE)
            raise

    def _run(self, manifest: Manifest, root_suffix: str | None) -> ImportResult:
        self._enter(ImportState.AWAITING_RESOLUTION)
        entries = self.plan(manifest)
        result = ImportResult(state=self.state, entries=entries)

        self._enter(ImportState.AWAITING_USER_SELECTION)
        selection = self.selector.choose(entries)
        result.selection = selection
        if not selection.confirmed:
            logger.info("Selection cancelled, nothing to do")
            return self._finish(result, ImportState.ABORTED)

        prepare_staging_dir(self.staging_dir)
        selected = selection.filter(entries)
        if not selected:
            logger.info("No extensions selected")
            return self._finish(result, ImportState.COMPLETED)

        self._enter(ImportState.DOWNLOADING)
        self.status(STATUS_DOWNLOADING)
        result.artifacts = self.fetcher.fetch_all_sync(selected, self.staging_dir)
        self.status(STATUS_DOWNLOADED)

        self._enter(ImportState.INVOKING)
        launched = self.invoker.invoke(self.staging_dir, result.artifacts, root_suffix)
        result.command_line = launched.command_line
        return self._finish(result, ImportState.COMPLETED)

    def _finish(self, result: ImportResult, state: ImportState) -> ImportResult:
        self._enter(state)
        result.state = state
        self._enter(ImportState.IDLE)
        return result
