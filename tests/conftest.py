from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Union

import httpx
import pytest

from hudhub.application.deployment import DeploymentService
from hudhub.application.resolver import PackageResolver
from hudhub.infrastructure.archives import ArchiveExtractor
from hudhub.infrastructure.downloader import HttpDownloader
from hudhub.infrastructure.scanner import HudScanner

# url -> (status, body, headers)
Route = Tuple[int, bytes, Dict[str, str]]


def vdf_text(name: str) -> str:
    return f'"{name}"\n{{\n    "ui_version"    "3"\n}}\n'


def write_info_vdf(directory: Path, content: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "info.vdf"
    path.write_text(content, encoding="utf-8")
    return path


def build_zip(members: Dict[str, Optional[Union[bytes, str]]]) -> bytes:
    """Builds a ZIP in memory; a None member is a directory entry."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in members.items():
            archive.writestr(name, b"" if content is None else content)
    return buffer.getvalue()


AHUD_ZIP = build_zip(
    {
        "ahud-master/": None,
        "ahud-master/info.vdf": '"ahud-master"',
        "ahud-master/resource/": None,
        "ahud-master/resource/clientscheme.res": "scheme",
    }
)


def make_client(routes: Dict[str, Route]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, content=b"not found")
        status, body, headers = route
        return httpx.Response(status, content=body, headers=headers)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def scanner() -> HudScanner:
    return HudScanner()


@pytest.fixture
def extractor() -> ArchiveExtractor:
    return ArchiveExtractor()


@pytest.fixture
def resolver_factory(
    scanner: HudScanner, extractor: ArchiveExtractor
) -> Callable[[Dict[str, Route]], PackageResolver]:
    def factory(routes: Dict[str, Route]) -> PackageResolver:
        downloader = HttpDownloader(make_client(routes), timeout=5)
        return PackageResolver(downloader, extractor, scanner)

    return factory


@pytest.fixture
def deployment_factory(
    resolver_factory, scanner: HudScanner
) -> Callable[[Dict[str, Route]], DeploymentService]:
    def factory(routes: Dict[str, Route]) -> DeploymentService:
        return DeploymentService(resolver_factory(routes), scanner)

    return factory
