"""Unit tests for the import command.

The pipeline is replaced by a mock importer; wiring is tested separately
through create_importer.
"""

from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from extpack.catalog.base import ResolutionError
from extpack.catalog.gallery import GalleryCatalog
from extpack.cli.commands.import_ import create_importer
from extpack.cli.main import app
from extpack.core.config import CleanupPolicy, Settings
from extpack.core.fetcher import DownloadError
from extpack.core.importer import Importer
from extpack.core.installer import (
    CommandInstanceResolver,
    InstallerNotFoundError,
    StaticInstanceResolver,
)
from extpack.core.manifest import load_manifest
from extpack.core.selection import InteractiveSelector, SelectAll, SelectIdentifiers
from extpack.models.artifact import FetchedArtifact, ImportResult, ImportState
from extpack.models.catalog import CatalogEntry, Selection
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Settings path that does not exist, so defaults apply."""
    return tmp_path / "config.toml"


@pytest.fixture
def mock_importer() -> MagicMock:
    importer = MagicMock()
    importer.load.side_effect = load_manifest
    return importer


@pytest.fixture
def mock_create(mock_importer: MagicMock) -> Iterator[MagicMock]:
    with patch(
        "extpack.cli.commands.import_.create_importer", return_value=mock_importer
    ) as mock_create:
        yield mock_create


def _invoke(config_path: Path, *args: str):
    return runner.invoke(app, ["--config", str(config_path), "import", *args])


class TestImportCommand:
    """Tests for extpack import."""

    def test_success(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
        make_entry: Callable[..., CatalogEntry],
        tmp_path: Path,
    ) -> None:
        """A successful run reports the started installer."""
        entry = make_entry("X.A")
        mock_importer.run.return_value = ImportResult(
            state=ImportState.COMPLETED,
            entries=[entry],
            selection=Selection(confirmed=True, identifiers=("X.A",)),
            artifacts=[FetchedArtifact(entry=entry, path=tmp_path / "a.vsix")],
            command_line="a.vsix /instanceIds:abc123",
        )

        result = _invoke(config_path, str(manifest_file), "--yes")

        assert result.exit_code == 0
        assert "Installer started for 1 extension(s)." in result.output
        assert "/instanceIds:abc123" in result.output
        manifest = mock_importer.run.call_args.args[0]
        assert manifest.extension_count == 3
        assert mock_importer.run.call_args.kwargs["root_suffix"] is None
        assert isinstance(mock_create.call_args.args[1], SelectAll)

    def test_nothing_selected(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """A confirmed empty selection ends successfully without an installer."""
        mock_importer.run.return_value = ImportResult(state=ImportState.COMPLETED)

        result = _invoke(config_path, str(manifest_file), "--yes")

        assert result.exit_code == 0
        assert "Nothing to install" in result.output

    def test_aborted_selection(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """A cancelled selection exits cleanly."""
        mock_importer.run.return_value = ImportResult(state=ImportState.ABORTED)

        result = _invoke(config_path, str(manifest_file))

        assert result.exit_code == 0
        assert "Aborted." in result.output
        assert isinstance(mock_create.call_args.args[1], InteractiveSelector)

    def test_root_suffix_option(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """--root-suffix is forwarded to the pipeline."""
        mock_importer.run.return_value = ImportResult(state=ImportState.COMPLETED)

        _invoke(config_path, str(manifest_file), "--yes", "--root-suffix", "Exp")

        assert mock_importer.run.call_args.kwargs["root_suffix"] == "Exp"

    def test_root_suffix_env(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """The root suffix can come from the environment."""
        mock_importer.run.return_value = ImportResult(state=ImportState.COMPLETED)

        runner.invoke(
            app,
            ["--config", str(config_path), "import", str(manifest_file), "--yes"],
            env={"EXTPACK_ROOT_SUFFIX": "Exp"},
        )

        assert mock_importer.run.call_args.kwargs["root_suffix"] == "Exp"

    def test_only_option(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """--only selects identifiers without prompting."""
        mock_importer.run.return_value = ImportResult(state=ImportState.COMPLETED)

        _invoke(config_path, str(manifest_file), "--only", "X.A", "--only", "X.B")

        selector = mock_create.call_args.args[1]
        assert isinstance(selector, SelectIdentifiers)
        assert selector.identifiers == ["X.A", "X.B"]

    def test_setting_overrides(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """Command-line options override settings."""
        mock_importer.run.return_value = ImportResult(state=ImportState.COMPLETED)

        _invoke(
            config_path,
            str(manifest_file),
            "--yes",
            "--include-preview",
            "--locale",
            "de-DE",
            "--cleanup",
            "remove",
            "--instance-id",
            "abc123",
        )

        settings = mock_create.call_args.args[0]
        assert settings.include_preview is True
        assert settings.locale == "de-DE"
        assert settings.cleanup_on_failure == CleanupPolicy.REMOVE
        assert mock_create.call_args.kwargs["instance_id"] == "abc123"

    def test_dry_run(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
        make_entry: Callable[..., CatalogEntry],
    ) -> None:
        """--dry-run only resolves the manifest."""
        mock_importer.plan.return_value = [make_entry("madskristensen.fileicons")]

        result = _invoke(config_path, str(manifest_file), "--dry-run")

        assert result.exit_code == 0
        assert "Resolved 1 of 3 extension(s)" in result.output
        assert "2 not found" in result.output
        assert "- MadsKristensen.AddNewFile" in result.output
        assert "- MadsKristensen.TrailingWhitespace" in result.output
        assert "- MadsKristensen.FileIcons" not in result.output
        assert "Dry-run mode" in result.output
        mock_importer.run.assert_not_called()

    def test_prompts_for_manifest(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """Without a path argument the manifest path is asked for."""
        mock_importer.run.return_value = ImportResult(state=ImportState.COMPLETED)

        result = runner.invoke(
            app,
            ["--config", str(config_path), "import", "--yes"],
            input=f"{manifest_file}\n",
        )

        assert result.exit_code == 0
        mock_importer.run.assert_called_once()

    def test_wrong_file_type(
        self,
        config_path: Path,
        tmp_path: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """Choosing a non-manifest file ends the command without changes."""
        other = tmp_path / "pack.json"
        other.write_text("{}", encoding="utf-8")

        result = _invoke(config_path, str(other))

        assert result.exit_code == 0
        assert "Aborted." in result.output
        mock_create.assert_not_called()

    def test_missing_manifest(
        self,
        config_path: Path,
        tmp_path: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """A missing manifest exits with an error."""
        result = _invoke(config_path, str(tmp_path / "missing.vsext"))

        assert result.exit_code == 1
        assert "Manifest not found" in result.output
        mock_importer.run.assert_not_called()

    def test_invalid_manifest(
        self, config_path: Path, tmp_path: Path, mock_create: MagicMock
    ) -> None:
        """A malformed manifest exits with an error."""
        path = tmp_path / "broken.vsext"
        path.write_text("{not json", encoding="utf-8")

        result = _invoke(config_path, str(path))

        assert result.exit_code == 1
        assert "Failed to load manifest" in result.output

    def test_invalid_settings(self, tmp_path: Path, manifest_file: Path) -> None:
        """Broken settings exit with an error."""
        config_path = tmp_path / "config.toml"
        config_path.write_text("locale = [\n", encoding="utf-8")

        result = _invoke(config_path, str(manifest_file))

        assert result.exit_code == 1
        assert "Failed to load settings" in result.output

    @pytest.mark.parametrize(
        ("error", "message"),
        [
            (ResolutionError("HTTP 503"), "Gallery query failed"),
            (DownloadError("1 of 2 download(s) failed"), "Download failed"),
            (InstallerNotFoundError("Installer not found"), "Cannot start installer"),
            (RuntimeError("Cannot clear staging directory"), "Cannot clear staging directory"),
        ],
    )
    def test_pipeline_errors(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
        error: Exception,
        message: str,
    ) -> None:
        """Pipeline failures exit with code 1 and a message."""
        mock_importer.run.side_effect = error

        result = _invoke(config_path, str(manifest_file), "--yes")

        assert result.exit_code == 1
        assert message in result.output

    def test_dry_run_resolution_error(
        self,
        config_path: Path,
        manifest_file: Path,
        mock_create: MagicMock,
        mock_importer: MagicMock,
    ) -> None:
        """A failed query during a dry run exits with code 1."""
        mock_importer.plan.side_effect = ResolutionError("HTTP 500")

        result = _invoke(config_path, str(manifest_file), "--dry-run")

        assert result.exit_code == 1
        assert "Gallery query failed" in result.output


class TestCreateImporter:
    """Tests for create_importer wiring."""

    def test_wires_settings(self, tmp_path: Path) -> None:
        """Settings flow into the collaborators."""
        settings = Settings(
            gallery_url="https://gallery.test",
            locale="fr-FR",
            staging_dir=tmp_path / "staging",
            artifact_extension=".zip",
            cleanup_on_failure=CleanupPolicy.REMOVE,
        )

        importer = create_importer(settings, SelectAll())

        assert isinstance(importer.catalog, GalleryCatalog)
        assert importer.catalog.gallery_url == "https://gallery.test"
        assert importer.staging_dir == tmp_path / "staging"
        assert importer.locale == "fr-FR"
        assert importer.fetcher.extension == ".zip"
        assert importer.fetcher.cleanup == CleanupPolicy.REMOVE
        assert isinstance(importer.invoker.resolver, CommandInstanceResolver)

    def test_explicit_instance_id(self) -> None:
        """An explicit instance id skips discovery."""
        importer = create_importer(Settings(), SelectAll(), instance_id="abc123")

        resolver = importer.invoker.resolver
        assert isinstance(resolver, StaticInstanceResolver)
        assert resolver.instance_id == "abc123"

    def test_default_staging_dir(self) -> None:
        """Without a configured staging directory the temp location is used."""
        with patch(
            "extpack.cli.commands.import_.get_staging_dir", return_value=Path("/tmp/extpack")
        ):
            importer = create_importer(Settings(), SelectAll())

        assert importer.staging_dir == Path("/tmp/extpack")

    def test_blank_instance_id_uses_discovery(self) -> None:
        """Whitespace-only instance ids count as unset."""
        importer = create_importer(Settings(instance_id="  "), SelectAll(), instance_id=" ")

        assert isinstance(importer.invoker.resolver, CommandInstanceResolver)


class TestImportInstanceId:
    """Tests for the --instance-id option with the real wiring."""

    def test_blank_instance_id(self, config_path: Path, manifest_file: Path) -> None:
        """A blank --instance-id runs instead of failing with a traceback."""
        with patch.object(
            Importer, "run", autospec=True, return_value=ImportResult(state=ImportState.COMPLETED)
        ) as mock_run:
            result = _invoke(config_path, str(manifest_file), "--yes", "--instance-id", " ")

        assert result.exit_code == 0
        assert result.exception is None
        importer = mock_run.call_args.args[0]
        assert isinstance(importer.invoker.resolver, CommandInstanceResolver)

    def test_instance_id_option_stripped(self, config_path: Path, manifest_file: Path) -> None:
        """A given --instance-id is used without discovery."""
        with patch.object(
            Importer, "run", autospec=True, return_value=ImportResult(state=ImportState.COMPLETED)
        ) as mock_run:
            result = _invoke(config_path, str(manifest_file), "--yes", "--instance-id", " abc ")

        assert result.exit_code == 0
        resolver = mock_run.call_args.args[0].invoker.resolver
        assert isinstance(resolver, StaticInstanceResolver)
        assert resolver.instance_id == "abc"
