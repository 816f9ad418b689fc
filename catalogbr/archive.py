# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Archive - Packing and unpacking backup archives.

A backup archive is the staging directory tree packed either as a zip file
(default) or as a zstandard-compressed tarball when the target name ends
with .tar.zst or .tzst. Work runs in a thread pool so the event loop is
never blocked by compression.
"""

import asyncio
import tarfile
import zipfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import structlog
import zstandard as zstd

from catalogbr.config import DEFAULT_ZSTD_LEVEL
from catalogbr.exceptions import ArchiveError

logger = structlog.get_logger()

# Thread pool for CPU-bound compression
_executor = ThreadPoolExecutor(max_workers=2)

ZSTD_SUFFIXES = (".tar.zst", ".tzst")


def is_zstd_archive(archive: Path) -> bool:
    return archive.name.lower().endswith(ZSTD_SUFFIXES)


def _check_member(name: str, archive: Path) -> None:
    # Security: Check for path traversal
    if name.startswith("/") or ".." in Path(name).parts:
        raise ArchiveError(
            f"Unsafe path in archive: {name}",
            details={"archive": str(archive)},
        )


async def create_archive(
    source_dir: Path,
    archive: Path,
    zstd_level: int = DEFAULT_ZSTD_LEVEL,
) -> Path:
    """
    Pack a directory tree into an archive.

    Args:
        source_dir: Directory whose contents become the archive root
        archive: Target archive file (.zip, .tar.zst or .tzst)
        zstd_level: Compression level for zstd archives

    Returns:
        Path to the created archive
    """
    if not source_dir.is_dir():
        raise ArchiveError(
            f"Archive source is not a directory: {source_dir}",
            details={"source_dir": str(source_dir)},
        )

    loop = asyncio.get_running_loop()
    try:
        if is_zstd_archive(archive):
            await loop.run_in_executor(
                _executor, _create_tar_zst_sync, source_dir, archive, zstd_level
            )
        else:
            await loop.run_in_executor(_executor, _create_zip_sync, source_dir, archive)
    except ArchiveError:
        raise
    except Exception as e:
        raise ArchiveError(
            f"Failed to create archive: {e}",
            details={"archive": str(archive)},
        )

    logger.info(
        "archive_created",
        archive=str(archive),
        size=archive.stat().st_size,
    )
    return archive


def _create_zip_sync(source_dir: Path, archive: Path) -> None:
    temp_path = archive.with_name(archive.name + ".tmp")
    try:
        with zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for path in sorted(source_dir.rglob("*")):
                zf.write(path, path.relative_to(source_dir).as_posix())
        temp_path.replace(archive)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def _create_tar_zst_sync(source_dir: Path, archive: Path, level: int) -> None:
    temp_path = archive.with_name(archive.name + ".tmp")
    cctx = zstd.ZstdCompressor(level=level)
    try:
        with open(temp_path, "wb") as fh:
            with cctx.stream_writer(fh) as writer:
                with tarfile.open(fileobj=writer, mode="w|") as tar:
                    for path in sorted(source_dir.rglob("*")):
                        tar.add(path, arcname=path.relative_to(source_dir).as_posix(), recursive=False)
        temp_path.replace(archive)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


async def extract_archive(archive: Path, extract_to: Path) -> Path:
    """
    Unpack an archive into a directory.

    Entries with absolute paths or parent references are rejected.

    Args:
        archive: Archive file (.zip, .tar.zst or .tzst)
        extract_to: Directory to extract to (created if needed)

    Returns:
        The extraction directory
    """
    loop = asyncio.get_running_loop()
    try:
        extract_to.mkdir(parents=True, exist_ok=True)
        if is_zstd_archive(archive):
            await loop.run_in_executor(_executor, _extract_tar_zst_sync, archive, extract_to)
        else:
            await loop.run_in_executor(_executor, _extract_zip_sync, archive, extract_to)
    except ArchiveError:
        raise
    except Exception as e:
        raise ArchiveError(
            f"Failed to extract archive: {e}",
            details={"archive": str(archive)},
        )

    logger.info("archive_extracted", archive=str(archive), extract_to=str(extract_to))
    return extract_to


def _extract_zip_sync(archive: Path, extract_to: Path) -> None:
    with zipfile.ZipFile(archive) as zf:
        for name in zf.namelist():
            _check_member(name, archive)
        zf.extractall(extract_to)


def _extract_tar_zst_sync(archive: Path, extract_to: Path) -> None:
    dctx = zstd.ZstdDecompressor()
    with open(archive, "rb") as fh:
        with dctx.stream_reader(fh) as reader:
            with tarfile.open(fileobj=reader, mode="r|") as tar:
                for member in tar:
                    _check_member(member.name, archive)
                    tar.extract(member, extract_to, filter="data")
