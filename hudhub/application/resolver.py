"""Resolution of a source into a package of HUDs."""

import asyncio
import logging
import shutil
from pathlib import Path

from .domain import (
    Downloader,
    DownloadUrl,
    Extractor,
    LocalPath,
    NoSource,
    Package,
    Scanner,
    Source,
)
from .exceptions import ContractViolationError, FetchError, ScanError


class PackageResolver:
    """Fetches, unpacks and scans a source into a working directory."""

    def __init__(
        self,
        downloader: Downloader,
        extractor: Extractor,
        scanner: Scanner,
    ):
        """Initializes the resolver with necessary dependencies (ports)."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.downloader = downloader
        self.extractor = extractor
        self.scanner = scanner

    def _copy_local(self, path: Path, working_directory: Path) -> Path:
        """Copies a local source so deployment never moves the user's files."""
        target = working_directory / path.name
        try:
            if path.is_dir():
                shutil.copytree(path, target)
            elif path.is_file():
                shutil.copyfile(path, target)
            else:
                raise ScanError(f"Can't read '{path}'")
        except OSError as e:
            raise FetchError(f"Failed to copy '{path}': {e}") from e
        return target

    async def _unpack(self, payload: Path, working_directory: Path) -> Path:
        """Turns a fetched file or directory into a content root."""
        if payload.is_dir():
            return payload
        if self.scanner.is_single_file(payload):
            return working_directory
        return await self.extractor.extract(payload, working_directory)

    async def fetch_package(
        self, source: Source, working_directory: Path
    ) -> Package:
        """
        Resolve a source into the full inventory of HUDs it provides.

        Args:
            source: Where the package comes from.
            working_directory: A private directory to download and unpack
                               into. It must outlive the returned package.

        Returns:
            The package, rooted inside the working directory.

        Raises:
            FetchError: If downloading, extracting or scanning fails.
            ContractViolationError: If the source is NoSource.
        """

        if isinstance(source, NoSource):
            raise ContractViolationError(
                "Trying to fetch a package without source"
            )

        if isinstance(source, DownloadUrl):
            payload = await self.downloader.download(
                source.url, working_directory
            )
        elif isinstance(source, LocalPath):
            self.logger.info(f"Copying {source.path}...")
            payload = await asyncio.to_thread(
                self._copy_local, Path(source.path), working_directory
            )
        else:
            raise ContractViolationError(f"Unknown source {source!r}")

        root_directory = await self._unpack(payload, working_directory)
        entries = await self.scanner.scan(root_directory)

        return Package(root_directory=root_directory, entries=entries)
