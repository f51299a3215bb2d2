"""Configuration-backed implementation of the PathsProvider port."""

from pathlib import Path
from typing import Optional

from ..application.domain import PathsProvider


class SettingsPathsProvider(PathsProvider):
    """Provides the paths written in the configuration files."""

    def __init__(self, huds_directory: Optional[str], state_file: str):
        self._huds_directory = huds_directory
        self._state_file = state_file

    def huds_directory(self) -> Optional[Path]:
        if not self._huds_directory:
            return None
        return Path(self._huds_directory).expanduser()

    def state_file(self) -> Path:
        return Path(self._state_file).expanduser()
