# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Catalog - In-memory registry of configuration entities.

The catalog keeps one collection per entity family, keyed by prefixed name,
validates references on add, and notifies its listeners of every change.
"""

from typing import Dict, List, Protocol, Type, TypeVar

import structlog
from ulid import ULID

from catalogbr.catalog.model import (
    CoverageInfo,
    CoverageStoreInfo,
    DataStoreInfo,
    FeatureTypeInfo,
    LayerGroupInfo,
    LayerInfo,
    NamespaceInfo,
    ResourceInfo,
    StoreInfo,
    StyleInfo,
    WorkspaceInfo,
    CATALOG_TYPES,
    collection_type,
)
from catalogbr.exceptions import CatalogError
from catalogbr.resources import Resource, ResourceStore

logger = structlog.get_logger()

T = TypeVar("T")


class CatalogListener(Protocol):
    """Observer of catalog changes."""

    def handle_add(self, info: object) -> None: ...

    def handle_remove(self, info: object) -> None: ...

    def reloaded(self) -> None: ...


class ResourcePool:
    """
    Cache of file-backed resources (style bodies) resolved through a loader.

    A pool can be shared by several catalogs so that they resolve files
    identically.
    """

    def __init__(self, loader: ResourceStore):
        self.loader = loader
        self._styles: Dict[str, bytes] = {}

    def style_dir(self, style: StyleInfo) -> Resource:
        if style.workspace is None:
            return self.loader.get("styles")
        return self.loader.get(f"workspaces/{style.workspace.name}/styles")

    def style_file(self, style: StyleInfo) -> Resource | None:
        if not style.filename:
            return None
        return self.style_dir(style).get(style.filename)

    async def read_style(self, style: StyleInfo) -> bytes:
        key = style.prefixed_name
        if key not in self._styles:
            resource = self.style_file(style)
            if resource is None:
                raise CatalogError(
                    f"Style {key} has no style file",
                    details={"style": key},
                )
            self._styles[key] = await resource.read_bytes()
        return self._styles[key]

    def dispose(self) -> None:
        logger.debug("resource_pool_disposed", cached_styles=len(self._styles))
        self._styles.clear()


class Catalog:
    """In-memory catalog of workspaces, stores, resources, layers and styles."""

    def __init__(
        self,
        resource_loader: ResourceStore,
        resource_pool: ResourcePool | None = None,
    ):
        self.resource_loader = resource_loader
        self.resource_pool = resource_pool or ResourcePool(resource_loader)
        self.listeners: List[CatalogListener] = []
        self.default_workspace: WorkspaceInfo | None = None
        self.default_namespace: NamespaceInfo | None = None
        self._collections: Dict[type, Dict[str, object]] = {
            base: {} for base in CATALOG_TYPES
        }

    def __repr__(self) -> str:
        counts = {base.__name__: len(items) for base, items in self._collections.items()}
        return f"Catalog({counts})"

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: CatalogListener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: CatalogListener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def fire_reloaded(self) -> None:
        for listener in list(self.listeners):
            listener.reloaded()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, info: object) -> object:
        """
        Register an entity.

        References to other entities must already be registered, and the
        prefixed name must be unique within the entity family.

        Raises:
            CatalogError: If the entity is invalid or a duplicate
        """
        base = collection_type(info)
        self._validate(info)

        key = info.prefixed_name
        collection = self._collections[base]
        if key in collection:
            raise CatalogError(
                f"{base.__name__} named '{key}' already exists",
                details={"name": key},
            )

        if getattr(info, "id", None) is None:
            info.id = f"{base.__name__}-{ULID()}"
        collection[key] = info

        if isinstance(info, WorkspaceInfo) and self.default_workspace is None:
            self.default_workspace = info
        if isinstance(info, NamespaceInfo) and self.default_namespace is None:
            self.default_namespace = info

        for listener in list(self.listeners):
            listener.handle_add(info)
        return info

    def remove(self, info: object) -> None:
        base = collection_type(info)
        key = info.prefixed_name
        if self._collections[base].get(key) is not info:
            raise CatalogError(
                f"{base.__name__} named '{key}' is not in the catalog",
                details={"name": key},
            )
        del self._collections[base][key]

        if info is self.default_workspace:
            self.default_workspace = None
        if info is self.default_namespace:
            self.default_namespace = None

        for listener in list(self.listeners):
            listener.handle_remove(info)

    def set_default_workspace(self, workspace: WorkspaceInfo) -> None:
        if self.get_workspace_by_name(workspace.name) is not workspace:
            raise CatalogError(
                f"Workspace '{workspace.name}' is not in the catalog",
                details={"name": workspace.name},
            )
        self.default_workspace = workspace

    def set_default_namespace(self, namespace: NamespaceInfo) -> None:
        if self.get_namespace_by_prefix(namespace.prefix) is not namespace:
            raise CatalogError(
                f"Namespace '{namespace.prefix}' is not in the catalog",
                details={"prefix": namespace.prefix},
            )
        self.default_namespace = namespace

    def clear(self) -> None:
        """Drop every entity; listeners and the resource pool are kept."""
        for collection in self._collections.values():
            collection.clear()
        self.default_workspace = None
        self.default_namespace = None

    def dispose(self) -> None:
        """Drop every entity and dispose the resource pool."""
        self.clear()
        self.resource_pool.dispose()
        logger.debug("catalog_disposed")

    def _validate(self, info: object) -> None:
        errors: List[str] = []

        if not info.prefixed_name or not info.name:
            errors.append("name is required")

        if isinstance(info, StoreInfo):
            if info.workspace is None:
                errors.append("store must belong to a workspace")
            elif not self._registered(info.workspace):
                errors.append(f"unknown workspace '{info.workspace.name}'")

        if isinstance(info, ResourceInfo):
            if info.store is None or not self._registered(info.store):
                errors.append("resource must belong to a registered store")
            if info.namespace is None or not self._registered(info.namespace):
                errors.append("resource must belong to a registered namespace")

        if isinstance(info, LayerInfo):
            if info.resource is None or not self._registered(info.resource):
                errors.append("layer must publish a registered resource")

        if isinstance(info, (StyleInfo, LayerGroupInfo)):
            if info.workspace is not None and not self._registered(info.workspace):
                errors.append(f"unknown workspace '{info.workspace.name}'")

        if isinstance(info, LayerGroupInfo):
            for layer in info.layers:
                if not self._registered(layer):
                    errors.append(f"unknown layer '{layer.prefixed_name}'")

        if errors:
            raise CatalogError(
                f"Invalid {type(info).__name__}",
                details={"name": getattr(info, "prefixed_name", None), "errors": errors},
            )

    def _registered(self, info: object) -> bool:
        base = collection_type(info)
        return self._collections[base].get(info.prefixed_name) is info

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, info_type: Type[T], name: str) -> T | None:
        """Find an entity of the given type (or a subtype) by prefixed name."""
        base = next(b for b in CATALOG_TYPES if issubclass(info_type, b))
        info = self._collections[base].get(name)
        if info is not None and isinstance(info, info_type):
            return info
        return None

    def list(self, info_type: Type[T]) -> List[T]:
        base = next(b for b in CATALOG_TYPES if issubclass(info_type, b))
        return [
            info
            for _, info in sorted(self._collections[base].items())
            if isinstance(info, info_type)
        ]

    def get_workspace_by_name(self, name: str) -> WorkspaceInfo | None:
        return self.lookup(WorkspaceInfo, name)

    def get_namespace_by_prefix(self, prefix: str) -> NamespaceInfo | None:
        return self.lookup(NamespaceInfo, prefix)

    def get_store_by_name(self, name: str) -> StoreInfo | None:
        return self.lookup(StoreInfo, name)

    def get_resource_by_name(self, name: str) -> ResourceInfo | None:
        return self.lookup(ResourceInfo, name)

    def get_layer_by_name(self, name: str) -> LayerInfo | None:
        return self.lookup(LayerInfo, name)

    def get_style_by_name(self, name: str) -> StyleInfo | None:
        return self.lookup(StyleInfo, name)

    def get_layer_group_by_name(self, name: str) -> LayerGroupInfo | None:
        return self.lookup(LayerGroupInfo, name)

    def get_workspaces(self) -> List[WorkspaceInfo]:
        return self.list(WorkspaceInfo)

    def get_namespaces(self) -> List[NamespaceInfo]:
        return self.list(NamespaceInfo)

    def get_stores(self) -> List[StoreInfo]:
        return self.list(StoreInfo)

    def get_data_stores(self) -> List[DataStoreInfo]:
        return self.list(DataStoreInfo)

    def get_coverage_stores(self) -> List[CoverageStoreInfo]:
        return self.list(CoverageStoreInfo)

    def get_resources(self, info_type: Type[T] = ResourceInfo) -> List[T]:
        return self.list(info_type)

    def get_feature_types(self) -> List[FeatureTypeInfo]:
        return self.list(FeatureTypeInfo)

    def get_coverages(self) -> List[CoverageInfo]:
        return self.list(CoverageInfo)

    def get_styles(self) -> List[StyleInfo]:
        return self.list(StyleInfo)

    def get_layers(self) -> List[LayerInfo]:
        return self.list(LayerInfo)

    def get_layer_groups(self) -> List[LayerGroupInfo]:
        return self.list(LayerGroupInfo)
