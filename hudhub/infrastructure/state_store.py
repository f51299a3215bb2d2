"""JSON file implementation of the StateStore port."""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Generator

from pydantic import ValidationError

from ..application.domain import (
    DownloadUrl,
    Failed,
    HudName,
    Install,
    Installed,
    LocalPath,
    NoSource,
    NotInstalled,
    Source,
    StateStore,
)
from ..application.exceptions import StateFileError
from ..application.registry import Registry

from .state_models import HudInfoModel, InstallModel, SourceModel, StateModel


def _source_to_model(source: Source) -> SourceModel:
    if isinstance(source, DownloadUrl):
        return SourceModel(kind="download_url", value=source.url)
    if isinstance(source, LocalPath):
        return SourceModel(kind="local_path", value=str(source.path))
    return SourceModel(kind="none")


def _source_from_model(model: SourceModel) -> Source:
    if model.kind == "download_url" and model.value:
        return DownloadUrl(model.value)
    if model.kind == "local_path" and model.value:
        return LocalPath(Path(model.value))
    return NoSource()


def _install_to_model(install: Install) -> InstallModel:
    if isinstance(install, Installed):
        return InstallModel(
            status="installed",
            path=str(install.path),
            timestamp=install.timestamp,
        )
    if isinstance(install, Failed):
        return InstallModel(status="failed", error=install.error)
    return InstallModel(status="not_installed")


def _install_from_model(model: InstallModel) -> Install:
    if model.status == "installed":
        if model.path is None or model.timestamp is None:
            raise StateFileError("Invalid file format: incomplete install")
        return Installed(path=Path(model.path), timestamp=model.timestamp)
    if model.status == "failed":
        return Failed(error=model.error or "")
    return NotInstalled()


class JsonStateStore(StateStore):
    """A store that persists the registry as a JSON document."""

    def __init__(self, path: Path):
        """Initializes the store."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.path = Path(path)

    @contextlib.contextmanager
    def _atomic_target(self) -> Generator[Path, None, None]:
        """Provides a temporary '.part' path and ensures cleanup."""
        part_path = self.path.with_suffix(self.path.suffix + ".part")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            yield part_path
        finally:
            part_path.unlink(missing_ok=True)

    def _map_to_domain(self, state: StateModel) -> Registry:
        """Maps the validated document to a registry."""
        registry = Registry()
        for model in state.huds:
            name = HudName(model.name)
            registry.add(name, _source_from_model(model.source))
            registry.set_install(name, _install_from_model(model.install))
        return registry

    def _map_to_model(self, registry: Registry) -> StateModel:
        return StateModel(
            huds=[
                HudInfoModel(
                    name=info.name.value,
                    source=_source_to_model(info.source),
                    install=_install_to_model(info.install),
                )
                for info in registry
            ]
        )

    def _load_blocking(self) -> Registry:
        if not self.path.exists():
            self.logger.info(f"No state at {self.path}, starting empty.")
            return Registry()

        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StateFileError(f"Failed to read '{self.path}': {e}") from e

        try:
            state = StateModel.model_validate_json(content)
        except ValidationError as e:
            raise StateFileError("Invalid file format") from e

        return self._map_to_domain(state)

    def _save_blocking(self, registry: Registry):
        content = self._map_to_model(registry).model_dump_json(indent=2)
        try:
            with self._atomic_target() as part_path:
                part_path.write_text(content, encoding="utf-8")
                part_path.replace(self.path)
        except OSError as e:
            raise StateFileError(f"Failed to write '{self.path}': {e}") from e

    async def load(self) -> Registry:
        """
        Load the registry persisted at the store's path.

        Returns:
            The persisted registry, or an empty one when no file exists.

        Raises:
            StateFileError: If the file cannot be read or is malformed.
        """
        self.logger.info(f"Loading state from {self.path}")
        return await asyncio.to_thread(self._load_blocking)

    async def save(self, registry: Registry):
        """Persist the registry, replacing the file atomically."""
        self.logger.info(f"Saving state to {self.path}")
        await asyncio.to_thread(self._save_blocking, registry)
