"""The registry of known HUDs and their installation status."""

from typing import Dict, Iterator, Optional

from .domain import HudInfo, HudName, Install, NotInstalled, Source


class Registry:
    """
    An ordered mapping from HUD name to tracked metadata.

    Iteration follows name order. The registry performs no I/O; keeping at
    most one HUD installed at a time is the caller's responsibility.
    """

    def __init__(self, overwrite_existing: bool = False):
        self._info: Dict[HudName, HudInfo] = {}
        self.overwrite_existing = overwrite_existing

    def __iter__(self) -> Iterator[HudInfo]:
        return (self._info[name] for name in sorted(self._info))

    def __len__(self) -> int:
        return len(self._info)

    def __contains__(self, name: HudName) -> bool:
        return name in self._info

    def add(self, name: HudName, source: Source):
        """
        Starts tracking a HUD as not installed.

        A HUD that is already known keeps its entry, unless the registry was
        created with `overwrite_existing`, in which case only its source is
        replaced.
        """
        existing = self._info.get(name)
        if existing is not None:
            if self.overwrite_existing:
                existing.source = source
            return

        self._info[name] = HudInfo(
            name=name, source=source, install=NotInstalled()
        )

    def remove(self, name: HudName) -> Optional[HudInfo]:
        return self._info.pop(name, None)

    def get(self, name: HudName) -> Optional[HudInfo]:
        return self._info.get(name)

    def get_installed(self) -> Optional[HudInfo]:
        return next((info for info in self if info.is_installed), None)

    def set_install(self, name: HudName, install: Install):
        info = self._info.get(name)
        if info is not None:
            info.install = install
