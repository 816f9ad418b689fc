# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Plugin Config Providers - Plugin-owned configuration files.

Plugins that keep their own configuration files next to the catalog
declare them through a provider, so that backups carry them and restores
put them back. Providers run once per job, after the catalog stages.
"""

import xml.etree.ElementTree as ET
from typing import Dict, List, Protocol, Sequence

import structlog

from catalogbr.exceptions import SerializationError
from catalogbr.resources import Resource, ResourceStore

logger = structlog.get_logger()


class ConfigProvider(Protocol):
    """Contract of a plugin configuration provider."""

    name: str

    def file_locations(self) -> List[Resource]: ...

    async def save_configuration(self, target: ResourceStore) -> None: ...

    async def load_configuration(self, source: ResourceStore) -> None: ...

    async def check_configuration(self, resource: Resource) -> None: ...

    async def reload(self) -> None: ...


def parse_properties(text: str) -> Dict[str, str]:
    """
    Parse a .properties document (key=value or key: value lines).

    Raises:
        SerializationError: If a non-comment line has no separator
    """
    properties: Dict[str, str] = {}
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(("#", "!")):
            continue
        separators = [i for i in (line.find("="), line.find(":")) if i >= 0]
        if not separators:
            raise SerializationError(
                f"Invalid properties line {number}: {line!r}",
                details={"line": number},
            )
        index = min(separators)
        properties[line[:index].strip()] = line[index + 1:].strip()
    return properties


class PropertiesConfigProvider:
    """
    Provider for plugins configured through .properties files.

    Args:
        name: Plugin name
        store: Live data directory store
        relative_paths: Declared files, relative to the data directory
    """

    def __init__(self, name: str, store: ResourceStore, relative_paths: Sequence[str]):
        self.name = name
        self.store = store
        self.relative_paths = list(relative_paths)
        self.properties: Dict[str, Dict[str, str]] = {}

    def __repr__(self) -> str:
        return f"PropertiesConfigProvider({self.name!r}, {self.relative_paths!r})"

    def file_locations(self) -> List[Resource]:
        return [self.store.get(path) for path in self.relative_paths]

    async def save_configuration(self, target: ResourceStore) -> None:
        """Copy the declared files that exist into target, at the same paths."""
        for resource in self.file_locations():
            if not resource.exists():
                logger.debug("plugin_file_missing", plugin=self.name, path=resource.path)
                continue
            await target.copy(resource, resource.path)

    async def load_configuration(self, source: ResourceStore) -> None:
        """Parse the declared files present in source."""
        loaded: Dict[str, Dict[str, str]] = {}
        for path in self.relative_paths:
            resource = source.get(path)
            if resource.exists():
                loaded[path] = parse_properties(await resource.read_text())
        self.properties = loaded

    async def check_configuration(self, resource: Resource) -> None:
        """Raise SerializationError if a file is not a valid properties file."""
        parse_properties(await resource.read_text())

    async def reload(self) -> None:
        await self.load_configuration(self.store)
        logger.info("plugin_configuration_reloaded", plugin=self.name, files=len(self.properties))


# Tile cache settings plus the tile cache's own layer configuration
TILE_CACHE_FILES = ("gwc-gs.xml", "gwc/geowebcache.xml")


def parse_xml_document(text: str, path: str) -> ET.Element:
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise SerializationError(
            f"Malformed XML in {path}: {e}",
            details={"path": path},
        )


class TileCacheConfigProvider(PropertiesConfigProvider):
    """
    Provider for the tile cache service, configured through XML files kept
    next to the catalog. Empty files are treated as absent.
    """

    def __init__(
        self,
        store: ResourceStore,
        relative_paths: Sequence[str] = TILE_CACHE_FILES,
        name: str = "tilecache",
    ):
        super().__init__(name, store, relative_paths)
        self.documents: Dict[str, ET.Element] = {}

    async def save_configuration(self, target: ResourceStore) -> None:
        for resource in self.file_locations():
            if not resource.exists() or not await resource.read_bytes():
                logger.debug("plugin_file_missing", plugin=self.name, path=resource.path)
                continue
            await target.copy(resource, resource.path)

    async def load_configuration(self, source: ResourceStore) -> None:
        loaded: Dict[str, ET.Element] = {}
        for path in self.relative_paths:
            resource = source.get(path)
            if resource.exists():
                loaded[path] = parse_xml_document(await resource.read_text(), path)
        self.documents = loaded

    async def check_configuration(self, resource: Resource) -> None:
        parse_xml_document(await resource.read_text(), resource.path)

    async def reload(self) -> None:
        await self.load_configuration(self.store)
        logger.info("plugin_configuration_reloaded", plugin=self.name, files=len(self.documents))
