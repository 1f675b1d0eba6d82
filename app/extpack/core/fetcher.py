"""Concurrent package downloads.

Downloads every selected catalog entry in parallel into the staging
directory and joins them with an all-or-nothing barrier.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

import httpx

from extpack.core.config import CleanupPolicy
from extpack.models.artifact import FetchedArtifact
from extpack.models.catalog import CatalogEntry

logger = logging.getLogger(__name__)


class DownloadError(Exception):
    """Raised when one or more downloads fail.

    Attributes:
        failures: (entry, exception) pairs for every failed download.
        completed: Artifacts that were downloaded before the batch failed.
    """

    def __init__(
        self,
        message: str,
        *,
        failures: list[tuple[CatalogEntry, BaseException]] | None = None,
        completed: list[FetchedArtifact] | None = None,
    ) -> None:
        super().__init__(message)
        self.failures = failures or []
        self.completed = completed or []


class Downloader(ABC):
    """Abstract base class for file downloaders."""

    @abstractmethod
    async def download(self, url: str, dest: Path) -> None:
        """Download ``url`` into the file ``dest``.

        Raises:
            DownloadError: If the transfer or the write fails.
        """


class HttpDownloader(Downloader):
    """Downloader streaming HTTP(S) responses to disk with httpx.

    Attributes:
        timeout: Per-request timeout in seconds, None for no timeout.
    """

    _CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the downloader.

        Args:
            timeout: Per-request timeout in seconds, None for no timeout.
            client: Shared async client; a new one is opened per download if None.
        """
        self.timeout = timeout
        self._client = client

    async def download(self, url: str, dest: Path) -> None:
        """Stream ``url`` into ``dest``.

        Raises:
            DownloadError: On HTTP errors, transport errors or write failures.
        """
        try:
            if self._client is not None:
                await self._stream(self._client, url, dest)
            else:
                async with httpx.AsyncClient(
                    timeout=self.timeout,
                    follow_redirects=True,
                ) as client:
                    await self._stream(client, url, dest)
        except httpx.HTTPStatusError as e:
            msg = f"Download of {url} failed with HTTP {e.response.status_code}"
            raise DownloadError(msg) from e
        except httpx.HTTPError as e:
            raise DownloadError(f"Download of {url} failed: {e}") from e
        except OSError as e:
            raise DownloadError(f"Cannot write {dest}: {e}") from e

    async def _stream(self, client: httpx.AsyncClient, url: str, dest: Path) -> None:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                async for chunk in response.aiter_bytes(self._CHUNK_SIZE):
                    f.write(chunk)


class ConcurrentFetcher:
    """Downloads a batch of catalog entries in parallel.

    Every download writes to its own freshly named file. The batch fails
    if any single download fails; what happens to the files that did
    complete is governed by the cleanup policy.

    Attributes:
        downloader: Downloader used for each entry.
        extension: File extension given to every artifact.
        cleanup: Policy for completed artifacts when the batch fails.

    Example:
        >>> fetcher = ConcurrentFetcher(HttpDownloader())
        >>> artifacts = fetcher.fetch_all_sync(entries, Path("/tmp/extpack"))
    """

    def __init__(
        self,
        downloader: Downloader,
        extension: str = ".vsix",
        cleanup: CleanupPolicy = CleanupPolicy.KEEP,
    ) -> None:
        self.downloader = downloader
        self.extension = extension
        self.cleanup = cleanup

    def new_artifact_path(self, target_dir: Path) -> Path:
        """Generate a unique artifact path inside ``target_dir``."""
        return target_dir / f"{uuid.uuid4().hex}{self.extension}"

    async def _fetch_one(self, entry: CatalogEntry, path: Path) -> FetchedArtifact:
        logger.debug("Downloading %s -> %s", entry.download_url, path.name)
        try:
            await self.downloader.download(entry.download_url, path)
        except BaseException:
            # a failed download never leaves an artifact behind
            path.unlink(missing_ok=True)
            raise
        logger.info("Downloaded %s", entry.identifier)
        return FetchedArtifact(entry=entry, path=path)

    async def fetch_all(
        self,
        entries: Sequence[CatalogEntry],
        target_dir: Path,
    ) -> list[FetchedArtifact]:
        """Download all entries concurrently into ``target_dir``.

        All downloads are started before any is awaited, and the call
        returns only once every download has settled.

        Args:
            entries: Entries to download.
            target_dir: Existing directory receiving the files.

        Returns:
            Artifacts in the order of ``entries``.

        Raises:
            DownloadError: If any download failed.
        """
        if not entries:
            return []

        paths = [self.new_artifact_path(target_dir) for _ in entries]
        tasks = [
            asyncio.create_task(self._fetch_one(entry, path))
            for entry, path in zip(entries, paths, strict=True)
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        completed = [o for o in outcomes if isinstance(o, FetchedArtifact)]
        failures = [
            (entry, outcome)
            for entry, outcome in zip(entries, outcomes, strict=True)
            if isinstance(outcome, BaseException)
        ]
        if not failures:
            return completed

        for entry, error in failures:
            logger.error("Download of %s failed: %s", entry.identifier, error)
        self._apply_cleanup(completed)

        first_entry, first_error = failures[0]
        msg = (
            f"{len(failures)} of {len(entries)} download(s) failed "
            f"({first_entry.identifier}: {first_error})"
        )
        raise DownloadError(msg, failures=failures, completed=completed) from first_error

    def fetch_all_sync(
        self,
        entries: Sequence[CatalogEntry],
        target_dir: Path,
    ) -> list[FetchedArtifact]:
        """Run :meth:`fetch_all` on a fresh event loop."""
        return asyncio.run(self.fetch_all(entries, target_dir))

    def _apply_cleanup(self, completed: list[FetchedArtifact]) -> None:
        if not completed:
            return
        if self.cleanup == CleanupPolicy.KEEP:
            logger.warning(
                "Leaving %d downloaded file(s) in %s",
                len(completed),
                completed[0].path.parent,
            )
            return
        for artifact in completed:
            logger.debug("Removing %s", artifact.path)
            artifact.path.unlink(missing_ok=True)
