"""Unit tests for the concurrent fetcher.

Downloads are faked; HttpDownloader is tested against httpx.MockTransport.
"""

import asyncio
from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from extpack.core.config import CleanupPolicy
from extpack.core.fetcher import ConcurrentFetcher, Downloader, DownloadError, HttpDownloader
from extpack.models.catalog import CatalogEntry


class FakeDownloader(Downloader):
    """Writes the URL into the destination, failing for selected URLs."""

    def __init__(self, fail_urls: set[str] | None = None) -> None:
        self.fail_urls = fail_urls or set()
        self.calls: list[tuple[str, Path]] = []

    async def download(self, url: str, dest: Path) -> None:
        self.calls.append((url, dest))
        await asyncio.sleep(0)
        if url in self.fail_urls:
            dest.write_bytes(b"partial")
            raise DownloadError(f"Download of {url} failed with HTTP 404")
        dest.write_text(url, encoding="utf-8")


class BarrierDownloader(Downloader):
    """Completes only once every expected download has started."""

    def __init__(self, expected: int) -> None:
        self.expected = expected
        self.started = 0
        self.max_in_flight = 0
        self._all_started: asyncio.Event | None = None

    async def download(self, url: str, dest: Path) -> None:
        if self._all_started is None:
            self._all_started = asyncio.Event()
        self.started += 1
        self.max_in_flight = max(self.max_in_flight, self.started)
        if self.started == self.expected:
            self._all_started.set()
        await asyncio.wait_for(self._all_started.wait(), timeout=5)
        dest.write_bytes(b"ok")


@pytest.fixture
def entries(make_entry: Callable[..., CatalogEntry]) -> list[CatalogEntry]:
    return [make_entry("X.A"), make_entry("X.B"), make_entry("X.C")]


class TestConcurrentFetcher:
    """Tests for ConcurrentFetcher."""

    def test_downloads_every_entry(self, tmp_path: Path, entries: list[CatalogEntry]) -> None:
        """Each entry is downloaded into its own distinct file."""
        fetcher = ConcurrentFetcher(FakeDownloader())

        artifacts = fetcher.fetch_all_sync(entries, tmp_path)

        assert [a.entry.identifier for a in artifacts] == ["X.A", "X.B", "X.C"]
        paths = {a.path for a in artifacts}
        assert len(paths) == 3
        for artifact in artifacts:
            assert artifact.path.parent == tmp_path
            assert artifact.path.suffix == ".vsix"
            assert artifact.path.read_text(encoding="utf-8") == artifact.entry.download_url

    def test_empty_batch(self, tmp_path: Path) -> None:
        """An empty batch downloads nothing."""
        downloader = FakeDownloader()
        fetcher = ConcurrentFetcher(downloader)

        assert fetcher.fetch_all_sync([], tmp_path) == []
        assert downloader.calls == []

    def test_custom_extension(self, tmp_path: Path, entries: list[CatalogEntry]) -> None:
        """Artifacts get the configured extension."""
        fetcher = ConcurrentFetcher(FakeDownloader(), extension=".zip")

        artifacts = fetcher.fetch_all_sync(entries[:1], tmp_path)

        assert artifacts[0].path.suffix == ".zip"

    def test_new_artifact_path_unique(self, tmp_path: Path) -> None:
        """Generated artifact paths never repeat."""
        fetcher = ConcurrentFetcher(FakeDownloader())

        paths = {fetcher.new_artifact_path(tmp_path) for _ in range(50)}

        assert len(paths) == 50

    def test_downloads_run_concurrently(self, tmp_path: Path, entries: list[CatalogEntry]) -> None:
        """All downloads are in flight before any of them completes."""
        downloader = BarrierDownloader(expected=len(entries))
        fetcher = ConcurrentFetcher(downloader)

        artifacts = fetcher.fetch_all_sync(entries, tmp_path)

        assert len(artifacts) == 3
        assert downloader.max_in_flight == 3

    def test_failure_keeps_completed(self, tmp_path: Path, entries: list[CatalogEntry]) -> None:
        """One failure fails the batch; completed files stay with KEEP."""
        downloader = FakeDownloader(fail_urls={entries[1].download_url})
        fetcher = ConcurrentFetcher(downloader, cleanup=CleanupPolicy.KEEP)

        with pytest.raises(DownloadError, match="1 of 3 download") as exc_info:
            fetcher.fetch_all_sync(entries, tmp_path)

        error = exc_info.value
        assert [entry.identifier for entry, _ in error.failures] == ["X.B"]
        assert [a.entry.identifier for a in error.completed] == ["X.A", "X.C"]
        assert len(downloader.calls) == 3
        assert sorted(p.name for p in tmp_path.iterdir()) == sorted(
            a.path.name for a in error.completed
        )

    def test_failure_removes_completed(self, tmp_path: Path, entries: list[CatalogEntry]) -> None:
        """With REMOVE, no files are left after a failed batch."""
        downloader = FakeDownloader(fail_urls={entries[0].download_url})
        fetcher = ConcurrentFetcher(downloader, cleanup=CleanupPolicy.REMOVE)

        with pytest.raises(DownloadError):
            fetcher.fetch_all_sync(entries, tmp_path)

        assert list(tmp_path.iterdir()) == []

    def test_failed_download_leaves_no_partial_file(
        self, tmp_path: Path, make_entry: Callable[..., CatalogEntry]
    ) -> None:
        """A failed download removes its own partial file."""
        entry = make_entry("X.A")
        fetcher = ConcurrentFetcher(FakeDownloader(fail_urls={entry.download_url}))

        with pytest.raises(DownloadError):
            fetcher.fetch_all_sync([entry], tmp_path)

        assert list(tmp_path.iterdir()) == []

    def test_error_chains_first_failure(
        self, tmp_path: Path, entries: list[CatalogEntry]
    ) -> None:
        """The batch error is chained to the first underlying failure."""
        urls = {entries[0].download_url, entries[2].download_url}
        fetcher = ConcurrentFetcher(FakeDownloader(fail_urls=urls))

        with pytest.raises(DownloadError, match="2 of 3") as exc_info:
            fetcher.fetch_all_sync(entries, tmp_path)

        assert "X.A" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, DownloadError)


class TestHttpDownloader:
    """Tests for HttpDownloader."""

    @staticmethod
    def _download(handler: Callable[[httpx.Request], httpx.Response], dest: Path) -> None:
        async def _run() -> None:
            transport = httpx.MockTransport(handler)
            async with httpx.AsyncClient(transport=transport) as client:
                await HttpDownloader(client=client).download("https://gallery.test/a.vsix", dest)

        asyncio.run(_run())

    def test_writes_body(self, tmp_path: Path) -> None:
        """The response body is written to the destination."""
        dest = tmp_path / "a.vsix"

        self._download(lambda request: httpx.Response(200, content=b"PK\x03\x04data"), dest)

        assert dest.read_bytes() == b"PK\x03\x04data"

    def test_http_error(self, tmp_path: Path) -> None:
        """Non-success status codes raise DownloadError."""
        with pytest.raises(DownloadError, match="HTTP 404"):
            self._download(lambda request: httpx.Response(404), tmp_path / "a.vsix")

    def test_transport_error(self, tmp_path: Path) -> None:
        """Connection failures raise DownloadError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DownloadError, match="connection refused"):
            self._download(handler, tmp_path / "a.vsix")

    def test_write_error(self, tmp_path: Path) -> None:
        """An unwritable destination raises DownloadError."""
        dest = tmp_path / "missing" / "a.vsix"

        with pytest.raises(DownloadError, match="Cannot write"):
            self._download(lambda request: httpx.Response(200, content=b"data"), dest)
