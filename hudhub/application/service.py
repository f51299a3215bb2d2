"""
The core application service, containing the orchestration logic.

This module defines the HudHubService, which owns the registry and drives
browsing, installation and removal of HUDs. It enforces the single-slot
policy of the HUDs directory: a new HUD is only installed after the current
one has been uninstalled.
"""

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import List

from .deployment import DeploymentService
from .domain import *
from .exceptions import (
    ConfigurationError,
    HudMetadataError,
    HudNotFoundError,
    MissingSourceError,
)
from .registry import Registry
from .resolver import PackageResolver

logger = logging.getLogger(__name__)


class HudHubService:
    """Orchestrates the registry and the HUDs directory."""

    def __init__(
        self,
        resolver: PackageResolver,
        deployment: DeploymentService,
        scanner: Scanner,
        state_store: StateStore,
        paths: PathsProvider,
        overwrite_existing_sources: bool = False,
    ):
        """Initializes the service with an empty registry."""
        self.resolver = resolver
        self.deployment = deployment
        self.scanner = scanner
        self.state_store = state_store
        self.paths = paths
        self.registry = Registry(overwrite_existing=overwrite_existing_sources)

    def _require_huds_directory(self) -> Path:
        huds_directory = self.paths.huds_directory()
        if huds_directory is None:
            raise ConfigurationError(
                "The HUDs directory is unavailable. "
                "Please set paths.huds_directory in your config files."
            )
        return huds_directory

    def _require_info(self, name: HudName) -> HudInfo:
        info = self.registry.get(name)
        if info is None:
            raise HudNotFoundError(name)
        return info

    async def load_state(self):
        """Replaces the registry with the persisted one."""
        registry = await self.state_store.load()
        registry.overwrite_existing = self.registry.overwrite_existing
        self.registry = registry
        logger.info(f"Loaded {len(registry)} HUD(s) from state.")

    async def save_state(self):
        await self.state_store.save(self.registry)

    async def browse(self, source: Source) -> List[HudName]:
        """Lists the HUDs a source provides, without installing anything."""
        with tempfile.TemporaryDirectory(prefix="fetch_package_name_") as temp:
            package = await self.resolver.fetch_package(source, Path(temp))
        return list(package.hud_names())

    async def add_from_source(self, source: Source) -> List[HudName]:
        """Registers every HUD a source provides."""
        names = await self.browse(source)
        for name in names:
            self.registry.add(name, source)

        logger.info(f"Added {len(names)} HUD(s) from {source}")
        return names

    async def install_hud(self, name: HudName) -> Install:
        """
        Install a registered HUD, replacing the currently installed one.

        Returns:
            The status recorded in the registry for `name`.

        Raises:
            HudNotFoundError: If the HUD is not registered.
            MissingSourceError: If the HUD has no source to fetch from.
            ConfigurationError: If the HUDs directory is unavailable.
            UninstallError: If the current HUD cannot be removed.
        """

        info = self._require_info(name)
        if info.is_installed:
            logger.info(f"{name} is already installed.")
            return info.install
        if isinstance(info.source, NoSource):
            raise MissingSourceError(name)

        huds_directory = self._require_huds_directory()

        installed = self.registry.get_installed()
        if installed is not None:
            await self.uninstall_hud(installed.name)

        install = await self.deployment.install(
            info.source, name, huds_directory
        )
        self.registry.set_install(name, install)

        return install

    async def uninstall_hud(self, name: HudName):
        """
        Remove an installed HUD and mark it as not installed.

        A HUD that is not installed is left untouched. On failure the
        recorded status is kept and the error propagates.
        """

        info = self._require_info(name)
        if not isinstance(info.install, Installed):
            logger.info(f"{name} is not installed.")
            return

        huds_directory = self._require_huds_directory()
        await self.deployment.uninstall(info.install.path, huds_directory)
        self.registry.set_install(name, NotInstalled())

    async def remove_hud(self, name: HudName) -> HudInfo:
        """Forgets a HUD, uninstalling it first when needed."""
        info = self._require_info(name)
        if info.is_installed:
            await self.uninstall_hud(name)
        return self.registry.remove(name)

    async def _find_installed(self, huds_directory: Path) -> List[PackageEntry]:
        if not huds_directory.is_dir():
            return []

        children = await asyncio.to_thread(
            lambda: sorted(huds_directory.iterdir())
        )
        entries = []
        for child in children:
            try:
                entries.append(await self.scanner.open_entry(child))
            except HudMetadataError as e:
                logger.debug(f"Ignoring {child.name}: {e}")
        return entries

    async def reconcile_installed(self) -> List[PackageEntry]:
        """
        Records the HUDs actually present in the HUDs directory.

        Unknown HUDs are registered without a source. Known HUDs are marked
        installed at the path they were found at.
        """

        huds_directory = self.paths.huds_directory()
        if huds_directory is None:
            return []

        entries = await self._find_installed(huds_directory)

        for entry in entries:
            info = self.registry.get(entry.name)
            if info is None:
                self.registry.add(entry.name, NoSource())
                self.registry.set_install(entry.name, Installed.now(entry.path))
            elif not (
                isinstance(info.install, Installed)
                and info.install.path == entry.path
            ):
                self.registry.set_install(entry.name, Installed.now(entry.path))

        logger.info(f"Found {len(entries)} installed HUD(s).")
        return entries
