"""
Deployment of HUDs into, and removal from, the HUDs directory.

Installing never raises for expected failures: the outcome is returned as an
Install status so the registry always records the result of an attempt.
Uninstalling reports its failures to the caller.
"""

import asyncio
import logging
import os
import shutil
import stat
import tempfile
from pathlib import Path

from .domain import (
    Failed,
    HudName,
    Install,
    Installed,
    PackageEntry,
    Scanner,
    Source,
    UnitShape,
)
from .exceptions import (
    ContractViolationError,
    DeploymentError,
    HudNotFoundError,
    UninstallError,
)
from .resolver import PackageResolver


def _lexical_path(path: Path) -> Path:
    """
    Resolves the parent of a path, leaving its last component alone so a
    symlink is named rather than followed. Dot components are collapsed
    first: `units/..` is the parent of `units`, never a child of it.
    """
    path = Path(os.path.normpath(Path(path).absolute()))
    return path.parent.resolve() / path.name


def ensure_inside(path: Path, directory: Path) -> Path:
    """
    Checks that `path` is strictly below `directory`.

    Raises:
        ContractViolationError: If it is not.
    """
    candidate = _lexical_path(path)
    root = Path(directory).resolve()
    if root not in candidate.parents:
        raise ContractViolationError(
            f"Refusing to touch '{path}': it is not inside '{directory}'"
        )
    return candidate


class DeploymentService:
    """Installs HUDs from their source and uninstalls them."""

    def __init__(self, resolver: PackageResolver, scanner: Scanner):
        """Initializes the service with necessary dependencies."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.resolver = resolver
        self.scanner = scanner

    def _deploy_blocking(self, entry: PackageEntry, destination: Path):
        """Moves a HUD directory, or copies a HUD file, into place."""
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            if entry.shape is UnitShape.DIRECTORY:
                if destination.exists():
                    raise DeploymentError(
                        f"Failed to move '{entry.path.name}': "
                        f"'{destination}' already exists"
                    )
                try:
                    shutil.move(str(entry.path), str(destination))
                except (OSError, shutil.Error):
                    # A failed cross-filesystem move leaves a partial copy.
                    shutil.rmtree(destination, ignore_errors=True)
                    raise
            else:
                shutil.copyfile(entry.path, destination)
        except (OSError, shutil.Error) as e:
            raise DeploymentError(
                f"Failed to deploy '{entry.path.name}' to '{destination}': {e}"
            ) from e

    async def _install(
        self, source: Source, name: HudName, huds_directory: Path
    ) -> PackageEntry:
        with tempfile.TemporaryDirectory(prefix=f"install_{name}_") as temp:
            package = await self.resolver.fetch_package(source, Path(temp))

            entry = package.find_hud(name)
            if entry is None:
                raise HudNotFoundError(name)

            destination = Path(huds_directory) / entry.path.name
            self.logger.info(f"Deploying {name} to {destination}...")
            await asyncio.to_thread(self._deploy_blocking, entry, destination)

        installed = await self.scanner.open_entry(destination)
        if installed.name != name or installed.shape is not entry.shape:
            raise DeploymentError(
                f"Deployed HUD at '{destination}' no longer reads as '{name}'"
            )

        return installed

    async def install(
        self, source: Source, name: HudName, huds_directory: Path
    ) -> Install:
        """
        Install a HUD from its source into the HUDs directory.

        The package is resolved into a private temporary directory, which is
        deleted when the attempt ends, whatever the outcome.

        Args:
            source: Where to fetch the package from.
            name: The HUD to pick in the package.
            huds_directory: The directory to install into.

        Returns:
            Installed on success, Failed carrying the error otherwise.

        Raises:
            ContractViolationError: If the source is NoSource.
        """

        try:
            entry = await self._install(source, name, huds_directory)
        except ContractViolationError:
            raise
        except Exception as e:
            self.logger.warning(f"Installation of {name} failed: {e}")
            return Failed.from_error(e)

        self.logger.info(f"Installed {name} at {entry.path}")
        return Installed.now(entry.path)

    def _remove_blocking(self, path: Path):
        mode = path.lstat().st_mode
        if stat.S_ISLNK(mode) or stat.S_ISREG(mode):
            path.unlink()
        elif stat.S_ISDIR(mode):
            shutil.rmtree(path)
        else:
            raise ContractViolationError(
                f"Refusing to remove '{path}': unsupported file type"
            )

    async def uninstall(self, hud_path: Path, huds_directory: Path):
        """
        Remove an installed HUD from the HUDs directory.

        Args:
            hud_path: The installed HUD directory or file.
            huds_directory: The directory HUDs are installed into.

        Raises:
            ContractViolationError: If `hud_path` is not inside
                                    `huds_directory`. Nothing is removed.
            UninstallError: If removing fails.
        """

        path = ensure_inside(hud_path, huds_directory)

        self.logger.info(f"Removing {path}...")
        try:
            await asyncio.to_thread(self._remove_blocking, path)
        except OSError as e:
            raise UninstallError(path, str(e)) from e
        self.logger.info(f"Removed {path.name}")
