"""Installer discovery and invocation.

Locates the external installer next to the running program, builds its
command line from the downloaded artifacts and launches it detached.
"""

import logging
import subprocess
import sys
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from extpack.core.config import DEFAULT_INSTALLER_NAME, DEFAULT_INSTANCE_COMMAND
from extpack.models.artifact import FetchedArtifact
from extpack.utils.shell import run_command, spawn_detached

logger = logging.getLogger(__name__)

INSTANCE_FLAG = "/instanceIds:"
ROOT_SUFFIX_FLAG = "/rootSuffix:"

# Launcher signature: (args, cwd) -> pid
Launcher = Callable[..., int]


class LaunchError(Exception):
    """Base exception for installer launch failures."""


class InstallerNotFoundError(LaunchError):
    """Raised when the installer executable does not exist."""


class InstanceNotFoundError(LaunchError):
    """Raised when the target instance cannot be determined."""


class InstanceResolver(ABC):
    """Determines the installed product instance to install into."""

    @abstractmethod
    def resolve(self) -> str:
        """Return the target instance id.

        Raises:
            InstanceNotFoundError: If no instance can be determined.
        """


class StaticInstanceResolver(InstanceResolver):
    """Resolver returning a fixed, user-supplied instance id."""

    def __init__(self, instance_id: str) -> None:
        if not instance_id.strip():
            msg = "Instance id cannot be empty"
            raise ValueError(msg)
        self.instance_id = instance_id.strip()

    def resolve(self) -> str:
        return self.instance_id


class CommandInstanceResolver(InstanceResolver):
    """Resolver asking a setup-discovery command for the instance id.

    The first non-empty line printed by the command is the id.

    Attributes:
        args: Discovery command and arguments.
        timeout: Maximum time in seconds to wait for the command.
    """

    def __init__(
        self,
        args: Sequence[str] = DEFAULT_INSTANCE_COMMAND,
        timeout: float = 30.0,
    ) -> None:
        self.args = list(args)
        self.timeout = timeout

    def resolve(self) -> str:
        """Run the discovery command and parse its output.

        Raises:
            InstanceNotFoundError: If the command is missing, fails or prints nothing.
        """
        logger.debug("Discovering instance with: %s", " ".join(self.args))
        try:
            result = run_command(self.args, timeout=self.timeout)
        except FileNotFoundError as e:
            msg = f"Instance discovery command not found: {self.args[0]}"
            raise InstanceNotFoundError(msg) from e
        except (subprocess.TimeoutExpired, OSError) as e:
            raise InstanceNotFoundError(f"Instance discovery failed: {e}") from e

        if not result.success:
            error = result.stderr.strip() or f"exit code {result.returncode}"
            raise InstanceNotFoundError(f"Instance discovery failed: {error}")

        for line in result.stdout.splitlines():
            if line.strip():
                return line.strip()

        raise InstanceNotFoundError("Instance discovery returned no instance id")


def get_program_dir() -> Path:
    """Return the directory of the running program.

    Uses the script that started the process, falling back to the
    interpreter's directory when that is unavailable.
    """
    main = sys.argv[0] if sys.argv else ""
    if main:
        path = Path(main).resolve()
        if path.exists():
            return path.parent
    return Path(sys.executable).resolve().parent


def locate_installer(
    name: str = DEFAULT_INSTALLER_NAME,
    search_dir: Path | None = None,
) -> Path:
    """Find the installer executable.

    Args:
        name: Executable file name.
        search_dir: Directory to look in. If None, the running program's directory.

    Returns:
        Path to the installer.

    Raises:
        InstallerNotFoundError: If the installer does not exist there.
    """
    directory = search_dir or get_program_dir()
    installer = directory / name
    if not installer.is_file():
        raise InstallerNotFoundError(f"Installer not found: {installer}")
    return installer


def build_installer_args(
    filenames: Sequence[str],
    instance_id: str,
    root_suffix: str | None = None,
) -> list[str]:
    """Build the installer arguments.

    Order: every artifact file name, then the instance flag, then the
    root suffix flag when a suffix is given.

    Args:
        filenames: Artifact file names relative to the staging directory.
        instance_id: Target instance id.
        root_suffix: Optional instance qualifier.

    Returns:
        Argument list (without the executable).
    """
    args = list(filenames)
    args.append(f"{INSTANCE_FLAG}{instance_id}")
    if root_suffix:
        args.append(f"{ROOT_SUFFIX_FLAG}{root_suffix}")
    return args


def format_command_line(args: Sequence[str]) -> str:
    """Join installer arguments into a single space-separated string."""
    return " ".join(args)


def list_staged_artifacts(staging_dir: Path, extension: str = ".vsix") -> list[str]:
    """List artifact file names present in the staging directory.

    Args:
        staging_dir: Directory to list.
        extension: Artifact file extension.

    Returns:
        Sorted file names; empty if the directory does not exist.
    """
    if not staging_dir.is_dir():
        return []
    return sorted(
        p.name for p in staging_dir.iterdir() if p.is_file() and p.suffix == extension
    )


@dataclass(frozen=True, slots=True)
class LaunchedInstaller:
    """An installer process that was started.

    Attributes:
        executable: Installer path.
        args: Arguments passed to it.
        cwd: Working directory (the staging directory).
        pid: Process id.
    """

    executable: Path
    args: tuple[str, ...]
    cwd: Path
    pid: int

    @property
    def command_line(self) -> str:
        """Arguments as a single string."""
        return format_command_line(self.args)


class InstallerInvoker:
    """Launches the external installer for a set of artifacts.

    Attributes:
        resolver: Provides the target instance id.
        installer_name: Executable name looked up next to the running program.
        installer_path: Explicit installer path, skips the lookup.
    """

    def __init__(
        self,
        resolver: InstanceResolver,
        launcher: Launcher = spawn_detached,
        installer_name: str = DEFAULT_INSTALLER_NAME,
        installer_path: Path | None = None,
    ) -> None:
        self.resolver = resolver
        self.installer_name = installer_name
        self.installer_path = installer_path
        self._launcher = launcher

    def find_installer(self) -> Path:
        """Return the installer executable path.

        Raises:
            InstallerNotFoundError: If the installer does not exist.
        """
        if self.installer_path is not None:
            if not self.installer_path.is_file():
                raise InstallerNotFoundError(f"Installer not found: {self.installer_path}")
            return self.installer_path
        return locate_installer(self.installer_name)

    def invoke(
        self,
        staging_dir: Path,
        artifacts: Sequence[FetchedArtifact],
        root_suffix: str | None = None,
    ) -> LaunchedInstaller:
        """Start the installer for exactly the given artifacts.

        The process is started detached with the staging directory as its
        working directory; it is not waited for.

        Args:
            staging_dir: Directory holding the artifacts.
            artifacts: Artifacts downloaded in this run.
            root_suffix: Optional instance qualifier.

        Returns:
            Description of the launched process.

        Raises:
            LaunchError: If there is nothing to install, the installer or
                instance cannot be found, or the process cannot start.
        """
        if not artifacts:
            raise LaunchError("No artifacts to install")

        executable = self.find_installer()
        instance_id = self.resolver.resolve()
        args = build_installer_args(
            [artifact.filename for artifact in artifacts],
            instance_id,
            root_suffix,
        )

        logger.info("Starting %s %s", executable, format_command_line(args))
        try:
            pid = self._launcher([str(executable), *args], cwd=staging_dir)
        except OSError as e:
            raise LaunchError(f"Failed to start installer {executable}: {e}") from e

        return LaunchedInstaller(
            executable=executable,
            args=tuple(args),
            cwd=staging_dir,
            pid=pid,
        )
