# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Catalog Model - Plain value objects for configuration entities.

Entities reference each other directly (a store holds its workspace, a
layer holds its resource), and workspace-scoped entities are addressed by
their prefixed name "<workspace>:<name>".
"""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass(eq=False)
class WorkspaceInfo:
    """A workspace groups stores, styles, layer groups and local services."""

    name: str = ""
    isolated: bool = False
    id: str | None = None

    @property
    def prefixed_name(self) -> str:
        return self.name


@dataclass(eq=False)
class NamespaceInfo:
    """A namespace binds a prefix (normally the workspace name) to a URI."""

    prefix: str = ""
    uri: str = ""
    isolated: bool = False
    id: str | None = None

    @property
    def name(self) -> str:
        return self.prefix

    @property
    def prefixed_name(self) -> str:
        return self.prefix


@dataclass(eq=False)
class StoreInfo:
    """Base class for data and coverage stores."""

    name: str = ""
    workspace: WorkspaceInfo | None = None
    type: str = ""
    description: str | None = None
    enabled: bool = True
    id: str | None = None

    @property
    def prefixed_name(self) -> str:
        if self.workspace is None:
            return self.name
        return f"{self.workspace.name}:{self.name}"


@dataclass(eq=False)
class DataStoreInfo(StoreInfo):
    connection_parameters: Dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class CoverageStoreInfo(StoreInfo):
    url: str | None = None


@dataclass(eq=False)
class ResourceInfo:
    """Base class for published resources (feature types, coverages)."""

    name: str = ""
    native_name: str | None = None
    title: str | None = None
    abstract: str | None = None
    namespace: NamespaceInfo | None = None
    store: StoreInfo | None = None
    srs: str | None = None
    enabled: bool = True
    id: str | None = None

    @property
    def prefixed_name(self) -> str:
        if self.namespace is None:
            return self.name
        return f"{self.namespace.prefix}:{self.name}"


@dataclass(eq=False)
class FeatureTypeInfo(ResourceInfo):
    max_features: int = 0


@dataclass(eq=False)
class CoverageInfo(ResourceInfo):
    native_format: str | None = None


@dataclass(eq=False)
class StyleInfo:
    """A style; its body lives in a separate style file next to the entity."""

    name: str = ""
    workspace: WorkspaceInfo | None = None
    filename: str | None = None
    format: str = "sld"
    format_version: str = "1.0.0"
    id: str | None = None

    @property
    def prefixed_name(self) -> str:
        if self.workspace is None:
            return self.name
        return f"{self.workspace.name}:{self.name}"


@dataclass(eq=False)
class LayerInfo:
    """A published layer over a resource."""

    name: str = ""
    resource: ResourceInfo | None = None
    default_style: StyleInfo | None = None
    styles: List[StyleInfo] = field(default_factory=list)
    type: str = "VECTOR"
    enabled: bool = True
    id: str | None = None

    @property
    def prefixed_name(self) -> str:
        if self.resource is not None:
            return self.resource.prefixed_name
        return self.name


@dataclass(eq=False)
class LayerGroupInfo:
    name: str = ""
    workspace: WorkspaceInfo | None = None
    title: str | None = None
    mode: str = "SINGLE"
    layers: List[LayerInfo] = field(default_factory=list)
    styles: List[StyleInfo] = field(default_factory=list)
    id: str | None = None

    @property
    def prefixed_name(self) -> str:
        if self.workspace is None:
            return self.name
        return f"{self.workspace.name}:{self.name}"


@dataclass(eq=False)
class GlobalInfo:
    """Server-wide configuration (global.xml)."""

    update_sequence: int = 0
    feature_type_cache_size: int = 0
    global_services: bool = True
    xml_post_request_log_buffer_size: int = 1024
    resource_error_handling: str = "SKIP_MISCONFIGURED_LAYERS"
    id: str | None = None


@dataclass(eq=False)
class SettingsInfo:
    """Global settings, or workspace-local settings when workspace is set."""

    workspace: WorkspaceInfo | None = None
    title: str | None = None
    charset: str = "UTF-8"
    num_decimals: int = 8
    proxy_base_url: str | None = None
    verbose: bool = False
    verbose_exceptions: bool = False
    contact: Dict[str, str] = field(default_factory=dict)
    id: str | None = None


@dataclass(eq=False)
class LoggingInfo:
    level: str = "DEFAULT_LOGGING"
    location: str = "logs/catalog.log"
    stdout_logging: bool = False
    id: str | None = None


@dataclass(eq=False)
class ServiceInfo:
    """A global service, or a workspace-local one when workspace is set."""

    type: str = ""
    name: str = ""
    workspace: WorkspaceInfo | None = None
    enabled: bool = True
    title: str | None = None
    abstract: str | None = None
    maintainer: str | None = None
    metadata: Dict[str, str] = field(default_factory=dict)
    id: str | None = None


# Entities registered in a Catalog (as opposed to server-level configuration)
CATALOG_TYPES = (
    WorkspaceInfo,
    NamespaceInfo,
    StoreInfo,
    ResourceInfo,
    StyleInfo,
    LayerInfo,
    LayerGroupInfo,
)


def collection_type(info: object) -> type:
    """Return the catalog collection an entity belongs to."""
    for base in CATALOG_TYPES:
        if isinstance(info, base):
            return base
    raise TypeError(f"Not a catalog entity: {type(info).__name__}")
