# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Resource Store - Hierarchical resource namespace over a directory.

Resources are addressed by slash-separated paths relative to the store's
base directory, so the same relative path names the same logical resource
in the live data directory, in a staging folder and inside an archive.
"""

import asyncio
import shutil
from pathlib import Path
from typing import Callable, List

import aiofiles
import structlog

from catalogbr.exceptions import ResourceStoreError

logger = structlog.get_logger()

ResourceFilter = Callable[["Resource"], bool]


def any_filter(resource: "Resource") -> bool:
    """Accept every resource."""
    return True


class Resource:
    """A file or directory inside a ResourceStore."""

    def __init__(self, store: "ResourceStore", path: str):
        self.store = store
        self.path = path.strip("/")

    def __repr__(self) -> str:
        return f"Resource({self.path!r} in {self.store.base_dir})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Resource):
            return NotImplemented
        return self.file == other.file

    def __hash__(self) -> int:
        return hash(self.file)

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1] if self.path else self.store.base_dir.name

    @property
    def file(self) -> Path:
        return self.store.base_dir / self.path if self.path else self.store.base_dir

    def parent(self) -> "Resource":
        return Resource(self.store, self.path.rsplit("/", 1)[0] if "/" in self.path else "")

    def get(self, *parts: str) -> "Resource":
        """Return a child resource, joining path parts with '/'."""
        segments = [self.path] if self.path else []
        segments.extend(p.strip("/") for p in parts if p)
        return Resource(self.store, "/".join(segments))

    def exists(self) -> bool:
        return self.file.exists()

    def is_dir(self) -> bool:
        return self.file.is_dir()

    def size(self) -> int:
        return self.file.stat().st_size if self.file.is_file() else 0

    def mkdirs(self) -> "Resource":
        """Create this resource as a directory (and its parents)."""
        try:
            self.file.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResourceStoreError(
                f"Failed to create directory: {e}",
                details={"path": str(self.file)},
            )
        return self

    async def read_bytes(self) -> bytes:
        try:
            async with aiofiles.open(self.file, "rb") as f:
                return await f.read()
        except FileNotFoundError:
            raise ResourceStoreError(
                f"Resource not found: {self.path}",
                details={"path": str(self.file)},
            )

    async def read_text(self) -> str:
        return (await self.read_bytes()).decode("utf-8")

    async def write_bytes(self, data: bytes) -> None:
        """
        Write the resource atomically (temp file, then rename).
        """
        self.parent().mkdirs()
        temp_path = self.file.with_name(self.file.name + ".tmp")
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(data)
            temp_path.replace(self.file)
        except OSError as e:
            raise ResourceStoreError(
                f"Failed to write resource: {e}",
                details={"path": str(self.file)},
            )

    async def write_text(self, text: str) -> None:
        await self.write_bytes(text.encode("utf-8"))

    def delete(self) -> bool:
        """Delete a file or a whole directory tree. Returns False if absent."""
        if not self.file.exists():
            return False
        if self.file.is_dir():
            shutil.rmtree(self.file)
        else:
            self.file.unlink()
        return True

    def list(self, resource_filter: ResourceFilter = any_filter) -> List["Resource"]:
        """List direct children accepted by the filter, sorted by name."""
        if not self.is_dir():
            return []
        children = [self.get(child.name) for child in sorted(self.file.iterdir())]
        return [child for child in children if resource_filter(child)]

    async def copy_to(self, target: "Resource") -> None:
        """Copy this file or directory tree onto target."""
        if not self.exists():
            raise ResourceStoreError(
                f"Cannot copy missing resource: {self.path}",
                details={"path": str(self.file)},
            )
        if self.is_dir():
            await asyncio.to_thread(
                shutil.copytree, self.file, target.file, dirs_exist_ok=True
            )
        else:
            await target.write_bytes(await self.read_bytes())


class ResourceStore:
    """Path-addressed resource namespace rooted at a base directory."""

    def __init__(self, base_dir: Path | str):
        self.base_dir = Path(base_dir)

    def __repr__(self) -> str:
        return f"ResourceStore({str(self.base_dir)!r})"

    def get(self, path: str = "") -> Resource:
        return Resource(self, path)

    def exists(self, path: str) -> bool:
        return self.get(path).exists()

    def delete(self, path: str) -> bool:
        return self.get(path).delete()

    def create_directory(self, path: str) -> Resource:
        return self.get(path).mkdirs()

    def list(self, path: str, resource_filter: ResourceFilter = any_filter) -> List[Resource]:
        return self.get(path).list(resource_filter)

    async def copy(self, source: Resource, path: str) -> Resource:
        """Copy a resource (possibly from another store) to path in this store."""
        target = self.get(path)
        await source.copy_to(target)
        logger.debug("resource_copied", source=str(source.file), target=str(target.file))
        return target

    def glob(self, pattern: str) -> List[Resource]:
        """Resources whose relative path matches a glob pattern, sorted."""
        if not self.base_dir.exists():
            return []
        return [
            self.get(p.relative_to(self.base_dir).as_posix())
            for p in sorted(self.base_dir.glob(pattern))
        ]
