# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Catalog - Configuration entities, the catalog and the server configuration.
"""

from catalogbr.catalog.model import (
    WorkspaceInfo,
    NamespaceInfo,
    StoreInfo,
    DataStoreInfo,
    CoverageStoreInfo,
    ResourceInfo,
    FeatureTypeInfo,
    CoverageInfo,
    LayerInfo,
    StyleInfo,
    LayerGroupInfo,
    GlobalInfo,
    SettingsInfo,
    LoggingInfo,
    ServiceInfo,
)

from catalogbr.catalog.catalog import (
    Catalog,
    CatalogListener,
    ResourcePool,
)

from catalogbr.catalog.server import ServerConfig

__all__ = [
    # Entities
    "WorkspaceInfo",
    "NamespaceInfo",
    "StoreInfo",
    "DataStoreInfo",
    "CoverageStoreInfo",
    "ResourceInfo",
    "FeatureTypeInfo",
    "CoverageInfo",
    "LayerInfo",
    "StyleInfo",
    "LayerGroupInfo",
    "GlobalInfo",
    "SettingsInfo",
    "LoggingInfo",
    "ServiceInfo",
    # Catalog
    "Catalog",
    "CatalogListener",
    "ResourcePool",
    # Server
    "ServerConfig",
]
