# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Layout - Where every configuration entity lives on disk.

A Section describes one part of the configuration hierarchy: which
entities it holds, the directory and file each entity is written to, how
to find those files again, and how a decoded entity is applied to a
server configuration. Backup, restore, commit and reload all walk the same
SECTIONS in the same order, so the write layout always equals the read
layout.

    global.xml  settings.xml  logging.xml  services/<type>.xml
    workspaces/<ws>/workspace.xml  workspaces/<ws>/namespace.xml
    workspaces/default.xml  workspaces/defaultnamespace.xml
    workspaces/<ws>/<store>/datastore.xml
    workspaces/<ws>/<store>/<resource>/featuretype.xml
    styles/<style>.xml  workspaces/<ws>/styles/<style>.xml
    workspaces/<ws>/<store>/<resource>/layer.xml
    layergroups/<group>.xml  workspaces/<ws>/layergroups/<group>.xml
    workspaces/<ws>/settings.xml  workspaces/<ws>/services/<type>.xml
"""

import fnmatch
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

import structlog

from catalogbr.catalog.model import (
    CoverageInfo,
    CoverageStoreInfo,
    DataStoreInfo,
    FeatureTypeInfo,
    LayerGroupInfo,
    LayerInfo,
    NamespaceInfo,
    ResourceInfo,
    ServiceInfo,
    SettingsInfo,
    StyleInfo,
    WorkspaceInfo,
)
from catalogbr.exceptions import CatalogError
from catalogbr.resources import Resource, ResourceStore

logger = structlog.get_logger()

Location = Tuple[str, str]


def _noop_companions(entity: Any) -> List[str]:
    return []


@dataclass(frozen=True)
class Section:
    """
    One section of the configuration hierarchy.

    Attributes:
        name: Section name used in logs and error details
        entities: Entities of a server configuration, in write order
        location: (directory, base filename without extension) of an entity
        patterns: Glob patterns (with '{ext}') matching the section's files
        apply: Registers a decoded entity with a server configuration
        companions: Extra files stored next to the entity (style bodies)
    """

    name: str
    entities: Callable[[Any], List[Any]]
    location: Callable[[Any], Location]
    patterns: Tuple[str, ...]
    apply: Callable[[Any, Any], None]
    companions: Callable[[Any], List[str]] = _noop_companions

    def discover(self, store: ResourceStore, extension: str) -> List[Resource]:
        """Files of this section present in a store, in a stable order."""
        found: List[Resource] = []
        for pattern in self.patterns:
            found.extend(store.glob(pattern.format(ext=extension)))
        return [r for r in found if not r.is_dir()]

    def target(self, entity: Any, store: ResourceStore, extension: str) -> Tuple[Resource, str]:
        directory, base = self.location(entity)
        return store.get(directory), f"{base}{extension}"


# ============================================================================
# Locations
# ============================================================================


def _workspace_dir(workspace: WorkspaceInfo | None) -> str:
    return f"workspaces/{workspace.name}" if workspace is not None else ""


def _store_dir(store: Any) -> str:
    return f"{_workspace_dir(store.workspace)}/{store.name}"


def _resource_dir(resource: ResourceInfo) -> str:
    return f"{_store_dir(resource.store)}/{resource.name}"


def _layer_location(layer: LayerInfo) -> Location:
    return _resource_dir(layer.resource), "layer"


def _scoped_dir(workspace: WorkspaceInfo | None, folder: str) -> str:
    if workspace is None:
        return folder
    return f"{_workspace_dir(workspace)}/{folder}"


def _service_location(service: ServiceInfo) -> Location:
    return _scoped_dir(service.workspace, "services"), service.type


def _style_companions(style: StyleInfo) -> List[str]:
    return [style.filename] if style.filename else []


# ============================================================================
# Apply
# ============================================================================


def _set_global(entity: Any, server: Any) -> None:
    server.global_info = entity


def _set_logging(entity: Any, server: Any) -> None:
    server.logging = entity


def _set_settings(entity: SettingsInfo, server: Any) -> None:
    server.set_settings(entity)


def _add_service(entity: ServiceInfo, server: Any) -> None:
    server.add_service(entity)


def _add_to_catalog(entity: Any, server: Any) -> None:
    server.catalog.add(entity)


def _set_default_workspace(entity: WorkspaceInfo, server: Any) -> None:
    workspace = server.catalog.get_workspace_by_name(entity.name)
    if workspace is None:
        raise CatalogError(
            f"Default workspace '{entity.name}' is not in the catalog",
            details={"name": entity.name},
        )
    server.catalog.set_default_workspace(workspace)


def _set_default_namespace(entity: NamespaceInfo, server: Any) -> None:
    namespace = server.catalog.get_namespace_by_prefix(entity.prefix)
    if namespace is None:
        raise CatalogError(
            f"Default namespace '{entity.prefix}' is not in the catalog",
            details={"prefix": entity.prefix},
        )
    server.catalog.set_default_namespace(namespace)


def _optional(value: Any) -> List[Any]:
    return [value] if value is not None else []


# ============================================================================
# Sections
# ============================================================================


GLOBAL = Section(
    name="global",
    entities=lambda server: _optional(server.global_info),
    location=lambda entity: ("", "global"),
    patterns=("global{ext}",),
    apply=_set_global,
)

SETTINGS = Section(
    name="settings",
    entities=lambda server: _optional(server.settings),
    location=lambda entity: ("", "settings"),
    patterns=("settings{ext}",),
    apply=_set_settings,
)

LOGGING = Section(
    name="logging",
    entities=lambda server: _optional(server.logging),
    location=lambda entity: ("", "logging"),
    patterns=("logging{ext}",),
    apply=_set_logging,
)

SERVICES = Section(
    name="services",
    entities=lambda server: server.get_services(None),
    location=_service_location,
    patterns=("services/*{ext}",),
    apply=_add_service,
)

WORKSPACES = Section(
    name="workspaces",
    entities=lambda server: server.catalog.get_workspaces(),
    location=lambda ws: (_workspace_dir(ws), "workspace"),
    patterns=("workspaces/*/workspace{ext}",),
    apply=_add_to_catalog,
)

NAMESPACES = Section(
    name="namespaces",
    entities=lambda server: server.catalog.get_namespaces(),
    location=lambda ns: (f"workspaces/{ns.prefix}", "namespace"),
    patterns=("workspaces/*/namespace{ext}",),
    apply=_add_to_catalog,
)

DEFAULT_WORKSPACE = Section(
    name="default_workspace",
    entities=lambda server: _optional(server.catalog.default_workspace),
    location=lambda ws: ("workspaces", "default"),
    patterns=("workspaces/default{ext}",),
    apply=_set_default_workspace,
)

DEFAULT_NAMESPACE = Section(
    name="default_namespace",
    entities=lambda server: _optional(server.catalog.default_namespace),
    location=lambda ns: ("workspaces", "defaultnamespace"),
    patterns=("workspaces/defaultnamespace{ext}",),
    apply=_set_default_namespace,
)

DATA_STORES = Section(
    name="datastores",
    entities=lambda server: server.catalog.get_data_stores(),
    location=lambda store: (_store_dir(store), "datastore"),
    patterns=("workspaces/*/*/datastore{ext}",),
    apply=_add_to_catalog,
)

COVERAGE_STORES = Section(
    name="coveragestores",
    entities=lambda server: server.catalog.get_coverage_stores(),
    location=lambda store: (_store_dir(store), "coveragestore"),
    patterns=("workspaces/*/*/coveragestore{ext}",),
    apply=_add_to_catalog,
)

FEATURE_TYPES = Section(
    name="featuretypes",
    entities=lambda server: server.catalog.get_resources(FeatureTypeInfo),
    location=lambda resource: (_resource_dir(resource), "featuretype"),
    patterns=("workspaces/*/*/*/featuretype{ext}",),
    apply=_add_to_catalog,
)

COVERAGES = Section(
    name="coverages",
    entities=lambda server: server.catalog.get_resources(CoverageInfo),
    location=lambda resource: (_resource_dir(resource), "coverage"),
    patterns=("workspaces/*/*/*/coverage{ext}",),
    apply=_add_to_catalog,
)

LAYERS = Section(
    name="layers",
    entities=lambda server: server.catalog.get_layers(),
    location=_layer_location,
    patterns=("workspaces/*/*/*/layer{ext}",),
    apply=_add_to_catalog,
)

STYLES = Section(
    name="styles",
    entities=lambda server: server.catalog.get_styles(),
    location=lambda style: (_scoped_dir(style.workspace, "styles"), style.name),
    patterns=("styles/*{ext}", "workspaces/*/styles/*{ext}"),
    apply=_add_to_catalog,
    companions=_style_companions,
)

LAYER_GROUPS = Section(
    name="layergroups",
    entities=lambda server: server.catalog.get_layer_groups(),
    location=lambda group: (_scoped_dir(group.workspace, "layergroups"), group.name),
    patterns=("layergroups/*{ext}", "workspaces/*/layergroups/*{ext}"),
    apply=_add_to_catalog,
)

WORKSPACE_SETTINGS = Section(
    name="workspace_settings",
    entities=lambda server: server.get_workspace_settings(),
    location=lambda settings: (_workspace_dir(settings.workspace), "settings"),
    patterns=("workspaces/*/settings{ext}",),
    apply=_set_settings,
)

WORKSPACE_SERVICES = Section(
    name="workspace_services",
    entities=lambda server: server.get_workspace_services(),
    location=_service_location,
    patterns=("workspaces/*/services/*{ext}",),
    apply=_add_service,
)

# Write order == commit order == reload order; styles precede the layers
# that reference them
SECTIONS: Tuple[Section, ...] = (
    GLOBAL,
    SETTINGS,
    LOGGING,
    SERVICES,
    WORKSPACES,
    NAMESPACES,
    DEFAULT_WORKSPACE,
    DEFAULT_NAMESPACE,
    DATA_STORES,
    COVERAGE_STORES,
    FEATURE_TYPES,
    COVERAGES,
    STYLES,
    LAYERS,
    LAYER_GROUPS,
    WORKSPACE_SETTINGS,
    WORKSPACE_SERVICES,
)

# Pipeline step -> sections it handles
STEP_SECTIONS: Dict[str, Tuple[Section, ...]] = {
    "globals": (GLOBAL, SETTINGS, LOGGING, SERVICES),
    "workspaces": (WORKSPACES, NAMESPACES, DEFAULT_WORKSPACE, DEFAULT_NAMESPACE),
    "stores": (DATA_STORES, COVERAGE_STORES),
    "resources": (FEATURE_TYPES, COVERAGES),
    "styles": (STYLES,),
    "layers": (LAYERS,),
    "layer_groups": (LAYER_GROUPS,),
    "workspace_settings": (WORKSPACE_SETTINGS, WORKSPACE_SERVICES),
}

# Trees owned by the sections, cleared before a hard restore rewrites them
CONFIGURATION_TREES = ("workspaces", "styles", "layergroups", "services")


# ============================================================================
# Auxiliary resource folders
# ============================================================================


def everything(resource: Resource) -> bool:
    return True


def properties_only(resource: Resource) -> bool:
    return resource.is_dir() or fnmatch.fnmatch(resource.name, "*.properties")


def style_resources(resource: Resource) -> bool:
    """Everything but style bodies and style entities, which the style section owns."""
    if resource.is_dir():
        return True
    return not resource.name.endswith((".sld", ".xml", ".json"))


@dataclass(frozen=True)
class ResourceFolder:
    name: str
    accept: Callable[[Resource], bool] = field(default=everything)


RESOURCE_FOLDERS: Tuple[ResourceFolder, ...] = (
    ResourceFolder("demo"),
    ResourceFolder("images"),
    ResourceFolder("logs", properties_only),
    ResourceFolder("palettes"),
    ResourceFolder("plugIns"),
    ResourceFolder("styles", style_resources),
    ResourceFolder("user_projections"),
    ResourceFolder("validation"),
    ResourceFolder("www"),
)


async def copy_folder(source: Resource, target: Resource, accept: Callable[[Resource], bool]) -> int:
    """
    Recursively copy the accepted files of source into target.

    Returns:
        Number of files copied
    """
    copied = 0
    for child in source.list(accept):
        if child.is_dir():
            copied += await copy_folder(child, target.get(child.name), accept)
        else:
            await child.copy_to(target.get(child.name))
            copied += 1
    return copied
