# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Archive and resource store tests.
"""

import io
import tarfile
import zipfile
from pathlib import Path

import pytest
import zstandard as zstd

from catalogbr.archive import create_archive, extract_archive, is_zstd_archive
from catalogbr.exceptions import ArchiveError, ResourceStoreError
from catalogbr.layout import RESOURCE_FOLDERS, copy_folder
from catalogbr.resources import ResourceStore


def _tree(base: Path) -> Path:
    (base / "workspaces" / "topp").mkdir(parents=True)
    (base / "workspaces" / "topp" / "workspace.xml").write_text("<workspace/>")
    (base / "global.xml").write_text("<global/>")
    return base


# ============================================================================
# Archives
# ============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["backup.zip", "backup.tar.zst", "backup.tzst"])
async def test_archive_round_trip(temp_dir: Path, name: str):
    source = _tree(temp_dir / "source")
    archive = temp_dir / name

    await create_archive(source, archive, zstd_level=3)
    await extract_archive(archive, temp_dir / "extracted")

    extracted = temp_dir / "extracted"
    assert (extracted / "global.xml").read_text() == "<global/>"
    assert (extracted / "workspaces" / "topp" / "workspace.xml").read_text() == "<workspace/>"
    assert not archive.with_name(archive.name + ".tmp").exists()


def test_is_zstd_archive():
    assert is_zstd_archive(Path("a.tar.zst"))
    assert is_zstd_archive(Path("A.TZST"))
    assert not is_zstd_archive(Path("a.zip"))


@pytest.mark.asyncio
async def test_create_archive_requires_directory(temp_dir: Path):
    with pytest.raises(ArchiveError):
        await create_archive(temp_dir / "missing", temp_dir / "out.zip")


@pytest.mark.asyncio
async def test_zip_with_parent_reference_is_rejected(temp_dir: Path):
    """
    SECURITY: entries escaping the extraction folder are refused before
    anything is extracted.
    """
    archive = temp_dir / "evil.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("global.xml", "<global/>")
        zf.writestr("../evil.txt", "gotcha")

    with pytest.raises(ArchiveError, match="Unsafe path"):
        await extract_archive(archive, temp_dir / "extracted")

    assert not (temp_dir / "evil.txt").exists()
    assert not (temp_dir / "extracted" / "global.xml").exists()


@pytest.mark.asyncio
async def test_tar_with_absolute_path_is_rejected(temp_dir: Path):
    archive = temp_dir / "evil.tar.zst"
    raw = io.BytesIO()
    with tarfile.open(fileobj=raw, mode="w") as tar:
        info = tarfile.TarInfo("/etc/evil.txt")
        payload = b"gotcha"
        info.size = len(payload)
        tar.addfile(info, io.BytesIO(payload))
    archive.write_bytes(zstd.ZstdCompressor().compress(raw.getvalue()))

    with pytest.raises(ArchiveError, match="Unsafe path"):
        await extract_archive(archive, temp_dir / "extracted")


@pytest.mark.asyncio
async def test_corrupt_archive(temp_dir: Path):
    archive = temp_dir / "corrupt.tar.zst"
    archive.write_bytes(b"not zstd at all")

    with pytest.raises(ArchiveError, match="Failed to extract archive"):
        await extract_archive(archive, temp_dir / "extracted")


# ============================================================================
# Resource store
# ============================================================================

@pytest.mark.asyncio
async def test_resource_store_read_write_delete(temp_dir: Path):
    store = ResourceStore(temp_dir)
    resource = store.get("workspaces/topp/workspace.xml")

    await resource.write_text("<workspace/>")

    assert resource.exists()
    assert resource.name == "workspace.xml"
    assert resource.parent().path == "workspaces/topp"
    assert await resource.read_text() == "<workspace/>"
    assert [r.name for r in store.list("workspaces")] == ["topp"]
    assert [r.path for r in store.glob("workspaces/*/workspace.xml")] == [resource.path]

    assert store.delete("workspaces")
    assert not resource.exists()
    assert not store.delete("workspaces")


@pytest.mark.asyncio
async def test_resource_store_missing_resource(temp_dir: Path):
    with pytest.raises(ResourceStoreError):
        await ResourceStore(temp_dir).get("nothing.xml").read_bytes()


@pytest.mark.asyncio
async def test_copy_between_stores(temp_dir: Path):
    source = ResourceStore(temp_dir / "a")
    target = ResourceStore(temp_dir / "b")
    await source.get("www/img/logo.png").write_bytes(b"png")

    copied = await target.copy(source.get("www"), "www")

    assert copied.is_dir()
    assert (temp_dir / "b" / "www" / "img" / "logo.png").read_bytes() == b"png"


@pytest.mark.asyncio
async def test_resource_folder_filters(temp_dir: Path):
    """logs keeps only .properties; styles leaves style bodies to the style section."""
    source = ResourceStore(temp_dir / "data")
    target = ResourceStore(temp_dir / "staging")
    for path in (
        "logs/app.log",
        "logs/DEFAULT_LOGGING.properties",
        "styles/point.sld",
        "styles/point.xml",
        "styles/icons/marker.png",
    ):
        await source.get(path).write_text("x")

    filters = {folder.name: folder.accept for folder in RESOURCE_FOLDERS}
    logs = await copy_folder(source.get("logs"), target.get("logs"), filters["logs"])
    styles = await copy_folder(source.get("styles"), target.get("styles"), filters["styles"])

    assert logs == 1
    assert styles == 1
    assert target.exists("logs/DEFAULT_LOGGING.properties")
    assert not target.exists("logs/app.log")
    assert target.exists("styles/icons/marker.png")
    assert not target.exists("styles/point.sld")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name,target,method",
    [
        ("backup.zip", zipfile.ZipFile, "write"),
        ("backup.tar.zst", tarfile.TarFile, "add"),
    ],
)
async def test_failed_creation_leaves_no_temp_file(monkeypatch, temp_dir: Path, name, target, method):
    source = _tree(temp_dir / "source")
    archive = temp_dir / name

    def disk_full(*args, **kwargs):
        raise OSError("No space left on device")

    monkeypatch.setattr(target, method, disk_full)

    with pytest.raises(ArchiveError, match="Failed to create archive"):
        await create_archive(source, archive)

    assert not archive.exists()
    assert not archive.with_name(archive.name + ".tmp").exists()
