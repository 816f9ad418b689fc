# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Server Configuration - Global configuration plus the catalog.

A ServerConfig ties together the server-level configuration objects
(global info, settings, logging, services), the catalog and the data
directory they are persisted to. The configuration lock serializes any
operation that swaps or reloads this global state.
"""

import asyncio
from pathlib import Path
from typing import Dict, List, Tuple

import structlog

from catalogbr.catalog.catalog import Catalog
from catalogbr.catalog.model import (
    GlobalInfo,
    LoggingInfo,
    ServiceInfo,
    SettingsInfo,
    WorkspaceInfo,
)
from catalogbr.config import SerializationFormat
from catalogbr.resources import ResourceStore

logger = structlog.get_logger()


def _workspace_key(workspace: WorkspaceInfo | None) -> str | None:
    return workspace.name if workspace is not None else None


class ServerConfig:
    """Live (or restore-private) server configuration."""

    def __init__(self, data_store: ResourceStore, catalog: Catalog | None = None):
        self.data_store = data_store
        self.catalog = catalog or Catalog(data_store)
        self.global_info: GlobalInfo | None = None
        self.logging: LoggingInfo | None = None
        self._settings: Dict[str | None, SettingsInfo] = {}
        self._services: Dict[Tuple[str | None, str], ServiceInfo] = {}
        self.configuration_lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        data_dir: Path | str,
        serialization_format: SerializationFormat = SerializationFormat.XML,
    ) -> "ServerConfig":
        """Create a ServerConfig and load it from a data directory."""
        server = cls(ResourceStore(data_dir))
        await server.reload(serialization_format)
        return server

    @property
    def settings(self) -> SettingsInfo | None:
        return self._settings.get(None)

    def get_settings(self, workspace: WorkspaceInfo | None = None) -> SettingsInfo | None:
        return self._settings.get(_workspace_key(workspace))

    def set_settings(self, settings: SettingsInfo) -> None:
        self._settings[_workspace_key(settings.workspace)] = settings

    def get_workspace_settings(self) -> List[SettingsInfo]:
        return [s for key, s in sorted(self._settings.items(), key=_sort_key) if key is not None]

    def add_service(self, service: ServiceInfo) -> None:
        """Add a service, replacing any service of the same type and scope."""
        self._services[(_workspace_key(service.workspace), service.type)] = service

    def get_service(self, service_type: str, workspace: WorkspaceInfo | None = None) -> ServiceInfo | None:
        return self._services.get((_workspace_key(workspace), service_type))

    def get_services(self, workspace: WorkspaceInfo | None = None) -> List[ServiceInfo]:
        scope = _workspace_key(workspace)
        return [
            service
            for (ws, _), service in sorted(self._services.items(), key=_sort_key)
            if ws == scope
        ]

    def get_workspace_services(self) -> List[ServiceInfo]:
        return [
            service
            for (ws, _), service in sorted(self._services.items(), key=_sort_key)
            if ws is not None
        ]

    def dispose(self) -> None:
        """Drop global configuration objects and the catalog's entities."""
        self.global_info = None
        self.logging = None
        self._settings.clear()
        self._services.clear()
        self.catalog.dispose()

    async def reload(
        self, serialization_format: SerializationFormat = SerializationFormat.XML
    ) -> None:
        """
        Re-read the whole data directory.

        Uses the same section layout the backup and restore pipelines use,
        then notifies catalog listeners that the catalog was reloaded.
        """
        from catalogbr.codec import create_codec
        from catalogbr.layout import SECTIONS

        self.dispose()
        codec = create_codec(serialization_format, self.catalog)

        loaded = 0
        for section in SECTIONS:
            for resource in section.discover(self.data_store, codec.extension):
                entity = await codec.read(resource.parent(), resource.name)
                section.apply(entity, self)
                loaded += 1

        self.catalog.fire_reloaded()
        logger.info(
            "configuration_reloaded",
            data_dir=str(self.data_store.base_dir),
            entities=loaded,
        )


def _sort_key(item: tuple) -> tuple:
    key = item[0]
    if isinstance(key, tuple):
        return tuple("" if part is None else part for part in key)
    return ("" if key is None else key,)
