"""
Infrastructure adapter discovering HUDs in a directory tree.

A directory is a HUD when it directly contains an info.vdf file whose root
key is the HUD's name. A file is a HUD when its extension denotes a packed
single-file HUD (a .vpk by default); its name is the file stem.
"""

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Iterable, List, Optional

import vdf

from ..application.domain import HudName, PackageEntry, Scanner, UnitShape
from ..application.exceptions import HudMetadataError, ScanError

INFO_VDF_FILE_NAME = "info.vdf"

_FIRST_QUOTED_TOKEN = re.compile(r'"([^"]*)"')


def parse_hud_name(text: str) -> Optional[HudName]:
    """
    Extracts the HUD name from the content of an info.vdf file.

    The name is the root key of the KeyValues document. Files that are not
    well-formed KeyValues fall back to the first double-quoted token.
    """
    text = text.lstrip("\ufeff")
    if '"' not in text:
        return None

    try:
        document = vdf.loads(text)
    except (SyntaxError, ValueError, TypeError):
        document = None

    if document:
        key = next(iter(document)).strip()
        if key:
            return HudName(key)

    match = _FIRST_QUOTED_TOKEN.search(text)
    if match is None or not match.group(1).strip():
        return None

    return HudName(match.group(1).strip())


class HudScanner(Scanner):
    """An adapter that implements the Scanner port on the local disk."""

    def __init__(self, single_file_extensions: Iterable[str] = (".vpk",)):
        """Initializes the scanner."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.single_file_extensions = frozenset(
            extension.lower() for extension in single_file_extensions
        )

    def is_single_file(self, path: Path) -> bool:
        return path.suffix.lower() in self.single_file_extensions

    def _open_directory(self, directory: Path) -> PackageEntry:
        """Reads the name declared in a directory's info.vdf."""
        try:
            text = (directory / INFO_VDF_FILE_NAME).read_text(
                encoding="utf-8", errors="replace"
            )
        except OSError as e:
            raise HudMetadataError(
                directory, f"Failed to read {INFO_VDF_FILE_NAME}: {e}"
            ) from e

        name = parse_hud_name(text)
        if name is None:
            raise HudMetadataError(
                directory, f"Failed to find HUD's name in {INFO_VDF_FILE_NAME}"
            )

        return PackageEntry(
            path=directory, name=name, shape=UnitShape.DIRECTORY
        )

    def _open_file(self, path: Path) -> PackageEntry:
        return PackageEntry(
            path=path, name=HudName(path.stem), shape=UnitShape.SINGLE_FILE
        )

    def _open_entry_blocking(self, path: Path) -> PackageEntry:
        if path.is_dir():
            return self._open_directory(path)
        if path.is_file() and self.is_single_file(path):
            return self._open_file(path)
        raise HudMetadataError(path, "neither a HUD directory nor a HUD file")

    def _log_walk_error(self, error: OSError):
        self.logger.debug(f"Skipping unreadable directory: {error}")

    def _scan_blocking(self, root_directory: Path) -> List[PackageEntry]:
        """Walks the tree top-down, keeping the order of discovery."""
        if root_directory.is_file():
            if self.is_single_file(root_directory):
                return [self._open_file(root_directory)]
            return []

        if not root_directory.is_dir():
            raise ScanError(f"Can't read directory '{root_directory}'")

        entries = []
        for dirpath, dirnames, filenames in os.walk(
            root_directory, onerror=self._log_walk_error
        ):
            dirnames.sort()
            directory = Path(dirpath)

            if INFO_VDF_FILE_NAME in filenames:
                try:
                    entries.append(self._open_directory(directory))
                except HudMetadataError as e:
                    self.logger.debug(f"Skipping candidate: {e}")

            if directory == root_directory:
                entries.extend(
                    self._open_file(directory / file_name)
                    for file_name in sorted(filenames)
                    if self.is_single_file(Path(file_name))
                )

        return entries

    async def scan(self, root_directory: Path) -> List[PackageEntry]:
        """
        Discover every HUD under a directory.

        Candidates with a missing or unparseable info.vdf are skipped, so
        a malformed HUD never fails the whole scan. Duplicate names are
        all kept.

        Args:
            root_directory: The directory (or single file) to scan.

        The walk is top-down and visits sibling directories in sorted name
        order, so the discovery order is the same on every platform. The
        result itself is not sorted.

        Returns:
            The HUDs found, in the order they were discovered.

        Raises:
            ScanError: If the root itself cannot be read.
        """

        self.logger.info(f"Scanning {root_directory} for HUDs...")
        entries = await asyncio.to_thread(self._scan_blocking, root_directory)
        self.logger.info(
            f"Found {len(entries)} HUD(s) in {root_directory.name}"
        )

        return entries

    async def open_entry(self, path: Path) -> PackageEntry:
        return await asyncio.to_thread(self._open_entry_blocking, path)
