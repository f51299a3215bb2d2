"""
Pydantic models describing the persisted application state.

These models serve as a strict contract for the JSON state file, ensuring
that a damaged or foreign file is rejected at the infrastructure layer
before anything reaches the registry.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel


class SourceModel(BaseModel):
    """Where a HUD comes from; `value` is empty for 'none'."""

    kind: Literal["none", "download_url", "local_path"]
    value: Optional[str] = None


class InstallModel(BaseModel):
    """
    The installation status of a HUD.

    Fields are Optional because each status only uses some of them:
    'installed' needs a path and a timestamp, 'failed' an error.
    """

    status: Literal["not_installed", "installed", "failed"]
    path: Optional[str] = None
    timestamp: Optional[datetime] = None
    error: Optional[str] = None


class HudInfoModel(BaseModel):
    """A single registry entry."""

    name: str
    source: SourceModel
    install: InstallModel


class StateModel(BaseModel):
    """Represents the top-level structure of the state file."""

    version: int = 1
    huds: List[HudInfoModel] = []
