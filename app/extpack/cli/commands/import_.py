"""Import command implementation.

Installs the extensions listed in a .vsext manifest: resolves them
against the gallery, lets the user pick, downloads the picks in
parallel and starts the installer.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from extpack.catalog.base import ResolutionError
from extpack.catalog.gallery import GalleryCatalog
from extpack.cli.display import print_import_summary, print_plan
from extpack.core.config import CleanupPolicy, Settings, SettingsError, load_settings
from extpack.core.fetcher import ConcurrentFetcher, DownloadError, HttpDownloader
from extpack.core.importer import Importer
from extpack.core.installer import (
    CommandInstanceResolver,
    InstallerInvoker,
    InstanceResolver,
    LaunchError,
    StaticInstanceResolver,
)
from extpack.core.manifest import (
    DEFAULT_MANIFEST_NAME,
    MANIFEST_EXTENSION,
    ManifestError,
    ManifestNotFoundError,
    is_manifest_file,
)
from extpack.core.paths import get_staging_dir
from extpack.core.selection import InteractiveSelector, SelectAll, SelectIdentifiers, Selector
from extpack.models.manifest import Manifest
from extpack.utils.formatting import print_error, print_info, print_warning

logger = logging.getLogger(__name__)


def _choose_manifest_path(path: Path | None) -> Path | None:
    """Return the manifest path, asking for one when none was given.

    Args:
        path: Path given on the command line.

    Returns:
        The chosen path, or None if the user cancelled.
    """
    if path is None:
        try:
            answer = typer.prompt("Manifest file", default=DEFAULT_MANIFEST_NAME)
        except typer.Abort:
            return None
        if not answer.strip():
            return None
        path = Path(answer.strip()).expanduser()

    if not is_manifest_file(path):
        print_warning(f"Not a {MANIFEST_EXTENSION} file: {path}")
        return None
    return path


def _get_selector(yes: bool, only: list[str] | None) -> Selector:
    """Get the selection strategy for the given options.

    Args:
        yes: Select every resolved extension without asking.
        only: Select exactly these identifiers without asking.

    Returns:
        Selector instance.
    """
    if only:
        return SelectIdentifiers(only)
    if yes:
        return SelectAll()
    return InteractiveSelector()


def _get_instance_resolver(settings: Settings, instance_id: str | None) -> InstanceResolver:
    """Get the instance resolver, preferring an explicit instance id.

    Args:
        settings: Effective settings.
        instance_id: Instance id given on the command line.

    Returns:
        InstanceResolver instance.
    """
    explicit = (instance_id or "").strip() or (settings.instance_id or "").strip()
    if explicit:
        return StaticInstanceResolver(explicit)
    return CommandInstanceResolver(settings.instance_command)


def create_importer(
    settings: Settings,
    selector: Selector,
    instance_id: str | None = None,
    quiet: bool = False,
) -> Importer:
    """Wire an Importer from settings.

    Args:
        settings: Effective settings.
        selector: Selection strategy.
        instance_id: Explicit target instance id.
        quiet: Send status messages to the log only.

    Returns:
        Configured Importer.
    """
    catalog = GalleryCatalog(
        gallery_url=settings.gallery_url,
        target=settings.target,
        timeout=settings.catalog_timeout,
    )
    fetcher = ConcurrentFetcher(
        HttpDownloader(timeout=settings.download_timeout),
        extension=settings.artifact_extension,
        cleanup=settings.cleanup_on_failure,
    )
    invoker = InstallerInvoker(
        _get_instance_resolver(settings, instance_id),
        installer_name=settings.installer_name,
        installer_path=settings.installer_path,
    )
    return Importer(
        catalog=catalog,
        selector=selector,
        fetcher=fetcher,
        invoker=invoker,
        staging_dir=settings.staging_dir or get_staging_dir(),
        locale=settings.locale,
        include_preview=settings.include_preview,
        status=logger.info if quiet else print_info,
    )


def _load_settings(config_path: Path | None) -> Settings:
    try:
        return load_settings(config_path)
    except SettingsError as e:
        print_error(f"Failed to load settings: {e}")
        raise typer.Exit(code=1) from e


def _load_manifest(importer: Importer, path: Path) -> Manifest:
    try:
        return importer.load(path)
    except ManifestNotFoundError as e:
        print_error(f"Manifest not found: {path}")
        raise typer.Exit(code=1) from e
    except ManifestError as e:
        print_error(f"Failed to load manifest: {e}")
        raise typer.Exit(code=1) from e


def import_manifest(
    ctx: typer.Context,
    manifest_path: Annotated[
        Path | None,
        typer.Argument(
            help="Manifest (.vsext) listing the extensions. Prompted for if omitted.",
            show_default=False,
        ),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Install every resolved extension without asking.",
        ),
    ] = False,
    only: Annotated[
        list[str] | None,
        typer.Option(
            "--only",
            "-o",
            help="Install only this extension (repeatable). Implies no prompt.",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Resolve the manifest and show the result without downloading.",
        ),
    ] = False,
    root_suffix: Annotated[
        str | None,
        typer.Option(
            "--root-suffix",
            "-r",
            envvar="EXTPACK_ROOT_SUFFIX",
            help="Instance qualifier forwarded to the installer as /rootSuffix.",
        ),
    ] = None,
    instance_id: Annotated[
        str | None,
        typer.Option(
            "--instance-id",
            help="Target instance id; skips instance discovery.",
        ),
    ] = None,
    include_preview: Annotated[
        bool | None,
        typer.Option(
            "--include-preview/--no-include-preview",
            help="Allow preview releases.",
            show_default=False,
        ),
    ] = None,
    locale: Annotated[
        str | None,
        typer.Option(
            "--locale",
            help="Locale for the gallery query (e.g. en-US).",
        ),
    ] = None,
    cleanup: Annotated[
        CleanupPolicy | None,
        typer.Option(
            "--cleanup",
            help="What to do with finished downloads when another one fails.",
            case_sensitive=False,
        ),
    ] = None,
) -> None:
    """Import extensions from a manifest.

    Resolves every extension in the manifest with a single gallery query,
    asks which ones to install, downloads them in parallel into a scratch
    directory and starts the installer with the downloaded files.

    Cancelling at the file or selection prompt ends the command without
    changes.

    Examples:
        extpack import extensions.vsext            # Pick interactively
        extpack import extensions.vsext --yes      # Install everything
        extpack import extensions.vsext --dry-run  # Only resolve
        extpack import pack.vsext -o Pub.Ext -r Exp
    """
    obj = ctx.obj or {}
    quiet = bool(obj.get("quiet", False))

    settings = _load_settings(obj.get("config_path"))
    overrides: dict[str, object] = {}
    if include_preview is not None:
        overrides["include_preview"] = include_preview
    if locale:
        overrides["locale"] = locale
    if cleanup is not None:
        overrides["cleanup_on_failure"] = cleanup
    if overrides:
        settings = settings.model_copy(update=overrides)

    path = _choose_manifest_path(manifest_path)
    if path is None:
        print_info("Aborted.")
        return

    importer = create_importer(
        settings,
        _get_selector(yes, only),
        instance_id=instance_id,
        quiet=quiet,
    )
    manifest = _load_manifest(importer, path)

    if dry_run:
        try:
            entries = importer.plan(manifest)
        except ResolutionError as e:
            print_error(f"Gallery query failed: {e}")
            raise typer.Exit(code=1) from e
        print_plan(entries, manifest.identifiers)
        print_info("\nDry-run mode: Nothing was downloaded.")
        return

    try:
        result = importer.run(manifest, root_suffix=root_suffix)
    except ResolutionError as e:
        print_error(f"Gallery query failed: {e}")
        raise typer.Exit(code=1) from e
    except DownloadError as e:
        print_error(f"Download failed: {e}")
        raise typer.Exit(code=1) from e
    except LaunchError as e:
        print_error(f"Cannot start installer: {e}")
        raise typer.Exit(code=1) from e
    except RuntimeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if result.aborted:
        print_info("Aborted.")
        return

    print_import_summary(result)
