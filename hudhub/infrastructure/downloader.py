"""HTTP implementation of the Downloader port."""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Generator, Optional

import httpx

from ..application.domain import Downloader
from ..application.exceptions import DownloadError, InvalidUrlError

from .decorators import retry_on_network_error


def extract_file_name(url: str) -> Optional[str]:
    """
    Returns the last path segment of a URL, without its query string.

    >>> extract_file_name("https://www.dropbox.com/s/x/3HUD.7z?dl=1")
    '3HUD.7z'
    """
    position = url.rfind("/")
    if position == -1 or position + 1 >= len(url):
        return None

    return url[position + 1:].split("?", 1)[0]


def is_valid_file_name(file_name: Optional[str]) -> bool:
    """A file name is usable when it carries an extension."""
    return bool(file_name) and Path(file_name).suffix != ""


def derive_file_name(request_url: str, response_url: str) -> Optional[str]:
    """
    Picks the local file name of a downloaded archive.

    The request URL is tried first, then the final URL after redirects.
    """
    for candidate in (request_url, response_url):
        file_name = extract_file_name(candidate)
        if is_valid_file_name(file_name):
            return file_name

    return None


class HttpDownloader(Downloader):
    """A downloader that fetches an archive with a single HTTP GET."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: int,
        retry_attempts: int = 1,
    ):
        """Initializes the downloader adapter."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.client = client
        self.timeout = timeout
        self._get = retry_on_network_error(retry_attempts)(self._execute_get)

    @contextlib.contextmanager
    def _atomic_target(self, destination: Path) -> Generator[Path, None, None]:
        """Provides a temporary '.part' path and ensures cleanup."""
        part_path = destination.with_suffix(destination.suffix + ".part")
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            yield part_path
        finally:
            part_path.unlink(missing_ok=True)

    async def _execute_get(self, url: str) -> httpx.Response:
        """Executes the raw HTTP GET request, buffering the whole body."""
        response = await self.client.get(
            url, timeout=self.timeout, follow_redirects=True
        )
        response.raise_for_status()
        return response

    async def _write(self, content: bytes, destination: Path):
        """Writes the downloaded bytes verbatim."""
        with self._atomic_target(destination) as part_path:
            await asyncio.to_thread(part_path.write_bytes, content)
            part_path.rename(destination)

    async def download(self, url: str, directory: Path) -> Path:
        """
        Download an archive into a directory.

        This is the public method that fulfills the Downloader port contract.
        The file name comes from the request URL, or from the final URL when
        a redirect changed the path.

        Args:
            url: The archive location.
            directory: The working directory to write the archive into.

        Returns:
            The path of the downloaded archive.

        Raises:
            InvalidUrlError: If the URL is malformed or names no file.
            DownloadError: If the request or the write fails.
        """

        self.logger.info(f"Downloading {url}...")
        try:
            response = await self._get(url)
        except httpx.InvalidURL as e:
            raise InvalidUrlError(url) from e
        except httpx.UnsupportedProtocol as e:
            raise InvalidUrlError(url) from e
        except httpx.HTTPError as e:
            raise DownloadError(f"Failed to download '{url}': {e}") from e

        file_name = derive_file_name(url, response.url.path)
        if file_name is None:
            raise InvalidUrlError(url)

        destination = directory / file_name
        try:
            await self._write(response.content, destination)
        except OSError as e:
            raise DownloadError(
                f"Failed to write archive '{destination}': {e}"
            ) from e

        self.logger.info(
            f"Finished downloading {file_name} ({len(response.content)} bytes)"
        )

        return destination
