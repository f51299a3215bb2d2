from __future__ import annotations

from pathlib import Path

import py7zr
import pytest

from conftest import AHUD_ZIP, build_zip, vdf_text, write_info_vdf
from hudhub.application.exceptions import (
    CreateDirectoryFailedError,
    ReadFailedError,
    UnsupportedArchiveTypeError,
)
from hudhub.infrastructure.archives import ArchiveExtractor, enclosed_name


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("hud/info.vdf", Path("hud/info.vdf")),
        ("hud/", Path("hud")),
        ("./hud/./info.vdf", Path("hud/info.vdf")),
        ("hud\\resource\\scheme.res", Path("hud/resource/scheme.res")),
        ("../evil.txt", None),
        ("hud/../../evil.txt", None),
        ("/etc/passwd", None),
        ("C:/Windows/evil.dll", None),
        ("", None),
        ("./", None),
    ],
)
def test_enclosed_name(name: str, expected) -> None:
    assert enclosed_name(name) == expected


def _write(tmp_path: Path, file_name: str, content: bytes) -> Path:
    path = tmp_path / file_name
    path.write_bytes(content)
    return path


async def test_zip_with_single_top_folder(
    tmp_path: Path, extractor: ArchiveExtractor
) -> None:
    archive = _write(tmp_path, "master.zip", AHUD_ZIP)
    destination = tmp_path / "out"
    destination.mkdir()

    root = await extractor.extract(archive, destination)

    assert root == destination / "ahud-master"
    assert (root / "info.vdf").read_text() == '"ahud-master"'
    assert (root / "resource" / "clientscheme.res").read_text() == "scheme"


async def test_zip_without_directory_entries(
    tmp_path: Path, extractor: ArchiveExtractor
) -> None:
    archive = _write(
        tmp_path,
        "flat.zip",
        build_zip({"hud/info.vdf": vdf_text("hud"), "minhud_plus.vpk": b"VPK"}),
    )
    destination = tmp_path / "out"

    root = await extractor.extract(archive, destination)

    assert root == destination
    assert (destination / "hud" / "info.vdf").exists()
    assert (destination / "minhud_plus.vpk").read_bytes() == b"VPK"


async def test_zip_with_several_top_folders_uses_destination(
    tmp_path: Path, extractor: ArchiveExtractor
) -> None:
    archive = _write(
        tmp_path,
        "pack.zip",
        build_zip(
            {
                "a/": None,
                "a/info.vdf": vdf_text("a"),
                "b/": None,
                "b/info.vdf": vdf_text("b"),
            }
        ),
    )
    destination = tmp_path / "out"

    root = await extractor.extract(archive, destination)

    assert root == destination


async def test_zip_skips_entries_escaping_the_destination(
    tmp_path: Path, extractor: ArchiveExtractor
) -> None:
    archive = _write(
        tmp_path,
        "evil.zip",
        build_zip(
            {
                "hud/": None,
                "hud/info.vdf": vdf_text("hud"),
                "hud/../../evil.txt": b"evil",
            }
        ),
    )
    destination = tmp_path / "out"

    root = await extractor.extract(archive, destination)

    assert root == destination / "hud"
    assert not (tmp_path / "evil.txt").exists()


async def test_empty_zip_fails(tmp_path: Path, extractor: ArchiveExtractor) -> None:
    archive = _write(tmp_path, "empty.zip", build_zip({}))

    with pytest.raises(ReadFailedError, match="empty"):
        await extractor.extract(archive, tmp_path / "out")


async def test_corrupt_zip_fails(tmp_path: Path, extractor: ArchiveExtractor) -> None:
    archive = _write(tmp_path, "corrupt.zip", b"this is not a zip file")

    with pytest.raises(ReadFailedError) as error:
        await extractor.extract(archive, tmp_path / "out")

    assert error.value.path == archive


async def test_zip_into_unwritable_destination(
    tmp_path: Path, extractor: ArchiveExtractor
) -> None:
    archive = _write(tmp_path, "master.zip", AHUD_ZIP)
    destination = _write(tmp_path, "not-a-directory", b"")

    with pytest.raises(CreateDirectoryFailedError) as error:
        await extractor.extract(archive, destination)

    assert error.value.path == destination / "ahud-master"


async def test_unsupported_archive_type(
    tmp_path: Path, extractor: ArchiveExtractor
) -> None:
    archive = _write(tmp_path, "hud.tar", b"")

    with pytest.raises(UnsupportedArchiveTypeError) as error:
        await extractor.extract(archive, tmp_path)

    assert error.value.path == archive
    assert not extractor.supports(archive)
    assert extractor.supports(Path("HUD.ZIP"))


async def test_7z_extracts_into_destination(
    tmp_path: Path, extractor: ArchiveExtractor
) -> None:
    source = tmp_path / "source"
    write_info_vdf(source, vdf_text("3HUD"))
    archive = tmp_path / "3HUD.7z"
    with py7zr.SevenZipFile(archive, "w") as writer:
        writer.writeall(source, arcname="3HUD")
    destination = tmp_path / "out"
    destination.mkdir()

    root = await extractor.extract(archive, destination)

    assert root == destination
    assert (destination / "3HUD" / "info.vdf").read_text() == vdf_text("3HUD")


async def test_corrupt_7z_fails(tmp_path: Path, extractor: ArchiveExtractor) -> None:
    archive = _write(tmp_path, "broken.7z", b"not a 7z archive")

    with pytest.raises(ReadFailedError):
        await extractor.extract(archive, tmp_path / "out")


@pytest.mark.parametrize("offset", [32, 36, 48])
async def test_7z_with_corrupt_data_fails(
    tmp_path: Path, extractor: ArchiveExtractor, offset: int
) -> None:
    source = tmp_path / "source"
    write_info_vdf(source, vdf_text("3HUD"))
    (source / "resource").mkdir()
    (source / "resource" / "clientscheme.res").write_text(
        "".join(f'"Font{i}" {{ "tall" "{i}" }}\n' for i in range(200))
    )
    archive = tmp_path / "3HUD.7z"
    with py7zr.SevenZipFile(archive, "w") as writer:
        writer.writeall(source, arcname="3HUD")
    data = bytearray(archive.read_bytes())
    data[offset] ^= 0xFF
    archive.write_bytes(bytes(data))
    destination = tmp_path / "out"
    destination.mkdir()

    with pytest.raises(ReadFailedError):
        await extractor.extract(archive, destination)


async def test_corrupt_rar_fails(tmp_path: Path, extractor: ArchiveExtractor) -> None:
    archive = _write(tmp_path, "broken.rar", b"not a rar archive")

    with pytest.raises(ReadFailedError, match="unrar"):
        await extractor.extract(archive, tmp_path / "out")
