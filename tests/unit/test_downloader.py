from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx
import pytest

from conftest import make_client
from hudhub.application.exceptions import DownloadError, InvalidUrlError
from hudhub.infrastructure.downloader import (
    HttpDownloader,
    derive_file_name,
    extract_file_name,
)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/n0kk/ahud/archive/refs/heads/master.zip", "master.zip"),
        ("https://github.com/n0kk/ahud/archive/refs/heads/", None),
        ("https://www.dropbox.com/s/cwwmppnn3nn68av/3HUD.7z?dl=1", "3HUD.7z"),
        ("https://gamebanana.com/dl/815166", "815166"),
        ("", None),
    ],
)
def test_extract_file_name(url: str, expected: Optional[str]) -> None:
    assert extract_file_name(url) == expected


def test_derive_file_name_prefers_the_request_url() -> None:
    assert (
        derive_file_name("https://example.com/a/hud.zip", "/b/other.7z")
        == "hud.zip"
    )


def test_derive_file_name_falls_back_to_the_final_url() -> None:
    assert (
        derive_file_name("https://gamebanana.com/dl/815166", "/mods/hl_hud.rar")
        == "hl_hud.rar"
    )


def test_derive_file_name_without_extension_anywhere() -> None:
    assert derive_file_name("https://gamebanana.com/dl/815166", "/dl/815166") is None


async def test_download_writes_the_body_verbatim(tmp_path: Path) -> None:
    url = "https://www.dropbox.com/s/cwwmppnn3nn68av/3HUD.7z?dl=1"
    client = make_client({url: (200, b"7z-bytes", {})})

    path = await HttpDownloader(client, timeout=5).download(url, tmp_path)

    assert path == tmp_path / "3HUD.7z"
    assert path.read_bytes() == b"7z-bytes"
    assert not (tmp_path / "3HUD.7z.part").exists()


async def test_download_follows_redirects_for_the_file_name(tmp_path: Path) -> None:
    url = "https://gamebanana.com/dl/815166"
    final = "https://files.gamebanana.com/mods/hl_hud.rar"
    client = make_client(
        {
            url: (302, b"", {"Location": final}),
            final: (200, b"rar-bytes", {}),
        }
    )

    path = await HttpDownloader(client, timeout=5).download(url, tmp_path)

    assert path == tmp_path / "hl_hud.rar"
    assert path.read_bytes() == b"rar-bytes"


async def test_download_without_file_name_fails(tmp_path: Path) -> None:
    url = "https://gamebanana.com/dl/601806"
    client = make_client({url: (200, b"bytes", {})})

    with pytest.raises(InvalidUrlError) as error:
        await HttpDownloader(client, timeout=5).download(url, tmp_path)

    assert error.value.url == url
    assert list(tmp_path.iterdir()) == []


async def test_download_http_error_fails(tmp_path: Path) -> None:
    client = make_client({})

    with pytest.raises(DownloadError, match="404"):
        await HttpDownloader(client, timeout=5).download(
            "https://example.com/missing.zip", tmp_path
        )


async def test_download_connection_error_is_not_retried_by_default(
    tmp_path: Path,
) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    with pytest.raises(DownloadError, match="connection refused"):
        await HttpDownloader(client, timeout=5).download(
            "https://example.com/hud.zip", tmp_path
        )

    assert len(calls) == 1


async def test_download_retries_when_configured(tmp_path: Path) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, content=b"zip-bytes")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    downloader = HttpDownloader(client, timeout=5, retry_attempts=2)

    path = await downloader.download("https://example.com/hud.zip", tmp_path)

    assert path.read_bytes() == b"zip-bytes"
    assert len(calls) == 2
