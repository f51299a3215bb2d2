"""
Infrastructure adapter unpacking the archive formats HUDs are shipped in.
"""

import asyncio
import logging
import lzma
import shutil
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Optional

import py7zr
import rarfile

from ..application.domain import Extractor
from ..application.exceptions import (
    CopyFileFailedError,
    CreateDirectoryFailedError,
    CreateFileFailedError,
    ReadFailedError,
    UnsupportedArchiveTypeError,
)

# Errors raised by zipfile while decoding member data.
_ZIP_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    RuntimeError,
)

# Errors raised by py7zr and its codecs while decoding member data.
_7Z_READ_ERRORS = (
    py7zr.exceptions.ArchiveError,
    py7zr.exceptions.PasswordRequired,
    lzma.LZMAError,
    zlib.error,
    EOFError,
    ValueError,
)


def enclosed_name(name: str) -> Optional[Path]:
    """
    Maps an archive member name to a relative path that stays inside the
    extraction directory, or returns None when that is impossible.
    """
    if not name or "\0" in name:
        return None

    member = PurePosixPath(name.replace("\\", "/"))
    if member.is_absolute():
        return None

    parts = [part for part in member.parts if part not in ("", ".")]
    if not parts or ".." in parts or ":" in parts[0]:
        return None

    return Path(*parts)


class ArchiveExtractor(Extractor):
    """
    An adapter that implements the Extractor port for ZIP, 7z and RAR.

    ZIP archives are expected to hold a single top-level folder, which is
    returned as the content root. 7z and RAR archives have no such
    convention, so the extraction directory itself is the content root.
    """

    def __init__(self):
        """Initializes the extractor."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self._handlers: Dict[str, Callable[[Path, Path], Path]] = {
            ".zip": self._extract_zip,
            ".7z": self._extract_7z,
            ".rar": self._extract_rar,
        }

    def supports(self, archive: Path) -> bool:
        return archive.suffix.lower() in self._handlers

    def _zip_content_root(
        self,
        first: zipfile.ZipInfo,
        written: List[Path],
        destination: Path,
    ) -> Path:
        """Picks the single top-level folder, or the destination itself."""
        if not first.is_dir():
            return destination

        top = enclosed_name(first.filename)
        if top is None:
            return destination

        for relative in written:
            if relative != top and top not in relative.parents:
                self.logger.debug(
                    f"'{relative}' lies outside '{top}', "
                    f"using the extraction directory as content root."
                )
                return destination

        return destination / top

    def _write_zip_member(
        self,
        archive: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        archive_path: Path,
        target: Path,
    ):
        """Writes a single ZIP member, creating its parents on demand."""
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CreateDirectoryFailedError(target.parent, str(e)) from e

        try:
            out_file = open(target, "wb")
        except OSError as e:
            raise CreateFileFailedError(target, str(e)) from e

        with out_file:
            try:
                with archive.open(info) as member:
                    shutil.copyfileobj(member, out_file)
            except _ZIP_READ_ERRORS as e:
                raise ReadFailedError(archive_path, str(e)) from e
            except OSError as e:
                raise CopyFileFailedError(target, str(e)) from e

    def _extract_zip(self, archive_path: Path, destination: Path) -> Path:
        try:
            archive = zipfile.ZipFile(archive_path)
        except (zipfile.BadZipFile, OSError) as e:
            raise ReadFailedError(archive_path, str(e)) from e

        with archive:
            members = archive.infolist()
            if not members:
                raise ReadFailedError(archive_path, "archive is empty")

            written = []
            for info in members:
                relative = enclosed_name(info.filename)
                if relative is None:
                    self.logger.warning(
                        f"Skipping unsafe entry '{info.filename}' "
                        f"in {archive_path.name}"
                    )
                    continue

                target = destination / relative
                if info.filename.endswith(("/", "\\")):
                    try:
                        target.mkdir(parents=True, exist_ok=True)
                    except OSError as e:
                        raise CreateDirectoryFailedError(target, str(e)) from e
                else:
                    self._write_zip_member(archive, info, archive_path, target)
                written.append(relative)

            return self._zip_content_root(members[0], written, destination)

    def _extract_7z(self, archive_path: Path, destination: Path) -> Path:
        try:
            archive = py7zr.SevenZipFile(archive_path, mode="r")
        except (py7zr.Bad7zFile, OSError) + _7Z_READ_ERRORS as e:
            raise ReadFailedError(archive_path, str(e)) from e

        with archive:
            try:
                archive.extractall(path=destination)
            except _7Z_READ_ERRORS as e:
                raise ReadFailedError(archive_path, str(e)) from e
            except OSError as e:
                raise CreateFileFailedError(destination, str(e)) from e

        return destination

    def _extract_rar(self, archive_path: Path, destination: Path) -> Path:
        try:
            with rarfile.RarFile(archive_path) as archive:
                archive.extractall(path=destination)
        except rarfile.Error as e:
            raise ReadFailedError(
                archive_path, f"Failed to unrar archive: {e}"
            ) from e
        except OSError as e:
            raise CreateFileFailedError(destination, str(e)) from e

        return destination

    async def extract(self, archive: Path, destination: Path) -> Path:
        """
        Unpack an archive, dispatching on its file extension.

        This public method fulfills the Extractor port contract. The heavy,
        blocking decoding work runs in a separate thread to avoid blocking
        the async event loop.

        Args:
            archive: The archive file to unpack.
            destination: The directory to unpack into.

        Returns:
            The content root to scan for HUDs.

        Raises:
            ArchiveError: If the format is unsupported, the archive cannot
                          be read, or its content cannot be written.
        """

        handler = self._handlers.get(archive.suffix.lower())
        if handler is None:
            raise UnsupportedArchiveTypeError(archive)

        self.logger.info(f"Extracting {archive.name}...")
        content_root = await asyncio.to_thread(handler, archive, destination)
        self.logger.info(f"Extracted {archive.name} to {content_root}")

        return content_root
