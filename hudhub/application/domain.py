"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the application's business logic operates on, together with
the ports that infrastructure adapters implement.
"""

import dataclasses
import enum
from datetime import datetime, timezone
from pathlib import Path

from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Union


# --- Domain Models ---

@dataclasses.dataclass(frozen=True, order=True)
class HudName:
    """The case-sensitive identifier of a HUD, as declared in its info.vdf."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclasses.dataclass(frozen=True)
class NoSource:
    """A HUD found on disk that cannot be downloaded again."""


@dataclasses.dataclass(frozen=True)
class DownloadUrl:
    """A remote archive location."""

    url: str

    def __str__(self) -> str:
        return self.url


@dataclasses.dataclass(frozen=True)
class LocalPath:
    """An archive, a single-file HUD or a directory on the local disk."""

    path: Path

    def __str__(self) -> str:
        return str(self.path)


Source = Union[NoSource, DownloadUrl, LocalPath]


class UnitShape(enum.Enum):
    """How a HUD is laid out on disk."""

    DIRECTORY = "directory"
    SINGLE_FILE = "single_file"


@dataclasses.dataclass(frozen=True)
class PackageEntry:
    """A HUD discovered inside a package or a HUD directory."""

    path: Path
    name: HudName
    shape: UnitShape


@dataclasses.dataclass(frozen=True)
class Package:
    """
    A package containing zero or more HUDs.

    Usually a package contains a single info.vdf file, but it can contain
    more than one when the archive bundles several HUDs.
    """

    root_directory: Path
    entries: List[PackageEntry]

    def hud_names(self) -> Iterator[HudName]:
        return (entry.name for entry in self.entries)

    def find_hud(self, name: HudName) -> Optional[PackageEntry]:
        return next(
            (entry for entry in self.entries if entry.name == name), None
        )


@dataclasses.dataclass(frozen=True)
class NotInstalled:
    """The HUD is known but not present in the HUDs directory."""


@dataclasses.dataclass(frozen=True)
class Installed:
    """The HUD was deployed to `path` at `timestamp`."""

    path: Path
    timestamp: datetime

    @classmethod
    def now(cls, path: Path) -> "Installed":
        return cls(path=Path(path), timestamp=datetime.now(timezone.utc))


@dataclasses.dataclass(frozen=True)
class Failed:
    """The last installation attempt failed."""

    error: str

    @classmethod
    def from_error(cls, error: BaseException) -> "Failed":
        return cls(error=str(error) or type(error).__name__)


Install = Union[NotInstalled, Installed, Failed]


@dataclasses.dataclass
class HudInfo:
    """A registry entry: what a HUD is, where it comes from, its status."""

    name: HudName
    source: Source
    install: Install = dataclasses.field(default_factory=NotInstalled)

    @property
    def is_installed(self) -> bool:
        return isinstance(self.install, Installed)


# --- Ports (Interfaces) ---

class Downloader(ABC):
    """A port for any archive downloader."""

    @abstractmethod
    async def download(self, url: str, directory: Path) -> Path:
        """Downloads an archive into a directory and returns its path."""
        pass


class Extractor(ABC):
    """A port for unpacking archives."""

    @abstractmethod
    def supports(self, archive: Path) -> bool:
        """Tells whether the archive format is recognised."""
        pass

    @abstractmethod
    async def extract(self, archive: Path, destination: Path) -> Path:
        """
        Unpacks an archive into a directory.
        Returns the content root. Raises ArchiveError on failure.
        """
        pass


class Scanner(ABC):
    """A port for discovering HUDs on disk."""

    @abstractmethod
    async def scan(self, root_directory: Path) -> List[PackageEntry]:
        """Lists every HUD found under a directory."""
        pass

    @abstractmethod
    async def open_entry(self, path: Path) -> PackageEntry:
        """
        Evaluates a single directory or file as a HUD.
        Raises HudMetadataError if it is not one.
        """
        pass

    @abstractmethod
    def is_single_file(self, path: Path) -> bool:
        """Tells whether a file name denotes a single-file HUD."""
        pass


class StateStore(ABC):
    """A port for persisting the registry."""

    @abstractmethod
    async def load(self):
        """Loads the registry, or returns an empty one."""
        pass

    @abstractmethod
    async def save(self, registry) -> None:
        """Persists the registry."""
        pass


class PathsProvider(ABC):
    """A port providing the directories this application works with."""

    @abstractmethod
    def huds_directory(self) -> Optional[Path]:
        """The directory HUDs are installed into, if it is available."""
        pass

    @abstractmethod
    def state_file(self) -> Path:
        """The file the registry is persisted to."""
        pass
