# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Catalog and server configuration tests.
"""

from pathlib import Path

import pytest

from catalogbr.catalog import (
    Catalog,
    DataStoreInfo,
    FeatureTypeInfo,
    LayerGroupInfo,
    LayerInfo,
    NamespaceInfo,
    ResourceInfo,
    ServerConfig,
    ServiceInfo,
    SettingsInfo,
    StoreInfo,
    StyleInfo,
    WorkspaceInfo,
)
from catalogbr.exceptions import CatalogError
from catalogbr.resources import ResourceStore

from conftest import BK_TEST_SIMPLE, RecordingListener, catalog_counts


@pytest.fixture
def catalog(temp_dir: Path) -> Catalog:
    return Catalog(ResourceStore(temp_dir))


# ============================================================================
# Catalog
# ============================================================================

def test_add_assigns_id_and_first_workspace_becomes_default(catalog: Catalog):
    topp = catalog.add(WorkspaceInfo(name="topp"))
    catalog.add(WorkspaceInfo(name="sf"))

    assert topp.id.startswith("WorkspaceInfo-")
    assert catalog.default_workspace is topp
    assert [ws.name for ws in catalog.get_workspaces()] == ["sf", "topp"]


def test_add_rejects_duplicates(catalog: Catalog):
    catalog.add(WorkspaceInfo(name="topp"))

    with pytest.raises(CatalogError, match="already exists"):
        catalog.add(WorkspaceInfo(name="topp"))


def test_add_rejects_unregistered_references(catalog: Catalog):
    with pytest.raises(CatalogError) as exc_info:
        catalog.add(DataStoreInfo(name="states", workspace=WorkspaceInfo(name="ghost")))

    assert "unknown workspace 'ghost'" in exc_info.value.details["errors"]
    assert catalog.get_stores() == []


def test_add_rejects_nameless_entity(catalog: Catalog):
    with pytest.raises(CatalogError):
        catalog.add(WorkspaceInfo())


def test_resource_requires_store_and_namespace(catalog: Catalog):
    ws = catalog.add(WorkspaceInfo(name="topp"))
    store = catalog.add(DataStoreInfo(name="states", workspace=ws))

    with pytest.raises(CatalogError) as exc_info:
        catalog.add(FeatureTypeInfo(name="states", store=store))

    assert exc_info.value.details["errors"] == ["resource must belong to a registered namespace"]


def test_prefixed_names_and_typed_lookup(catalog: Catalog):
    ws = catalog.add(WorkspaceInfo(name="topp"))
    ns = catalog.add(NamespaceInfo(prefix="topp", uri="http://topp"))
    store = catalog.add(DataStoreInfo(name="states", workspace=ws))
    ft = catalog.add(FeatureTypeInfo(name="states", namespace=ns, store=store))
    layer = catalog.add(LayerInfo(name="states", resource=ft))

    assert store.prefixed_name == "topp:states"
    assert layer.prefixed_name == "topp:states"
    assert catalog.get_store_by_name("topp:states") is store
    assert catalog.lookup(DataStoreInfo, "topp:states") is store
    assert catalog.get_resource_by_name("topp:states") is ft
    assert catalog.get_resources(FeatureTypeInfo) == [ft]
    assert catalog.get_coverages() == []
    assert catalog.lookup(ResourceInfo, "topp:missing") is None


def test_layer_group_requires_registered_layers(catalog: Catalog):
    with pytest.raises(CatalogError):
        catalog.add(LayerGroupInfo(name="group", layers=[LayerInfo(name="loose")]))


def test_set_default_workspace_must_be_registered(catalog: Catalog):
    catalog.add(WorkspaceInfo(name="topp"))

    with pytest.raises(CatalogError):
        catalog.set_default_workspace(WorkspaceInfo(name="topp"))

    sf = catalog.add(WorkspaceInfo(name="sf"))
    catalog.set_default_workspace(sf)
    assert catalog.default_workspace is sf


def test_listeners_see_adds_and_removes(catalog: Catalog):
    listener = RecordingListener()
    catalog.add_listener(listener)

    ws = catalog.add(WorkspaceInfo(name="topp"))
    catalog.remove(ws)

    assert listener.added == [ws]
    assert listener.removed == [ws]
    assert catalog.default_workspace is None

    catalog.remove_listener(listener)
    catalog.add(WorkspaceInfo(name="sf"))
    assert len(listener.added) == 1


def test_remove_unknown_entity_raises(catalog: Catalog):
    with pytest.raises(CatalogError):
        catalog.remove(WorkspaceInfo(name="nowhere"))


def test_clear_keeps_listeners_dispose_drops_pool_cache(catalog: Catalog):
    listener = RecordingListener()
    catalog.add_listener(listener)
    catalog.add(WorkspaceInfo(name="topp"))

    catalog.clear()

    assert catalog.get_workspaces() == []
    assert catalog.default_workspace is None
    assert catalog.listeners == [listener]

    catalog.dispose()
    assert catalog.listeners == [listener]


@pytest.mark.asyncio
async def test_resource_pool_reads_and_caches_style_bodies(catalog: Catalog, temp_dir: Path):
    ws = catalog.add(WorkspaceInfo(name="sf"))
    style = catalog.add(StyleInfo(name="point", workspace=ws, filename="point.sld"))
    body = temp_dir / "workspaces" / "sf" / "styles" / "point.sld"
    body.parent.mkdir(parents=True)
    body.write_text("<sld/>")

    pool = catalog.resource_pool
    assert pool.style_file(style).path == "workspaces/sf/styles/point.sld"
    assert await pool.read_style(style) == b"<sld/>"

    body.write_text("<changed/>")
    assert await pool.read_style(style) == b"<sld/>"

    pool.dispose()
    assert await pool.read_style(style) == b"<changed/>"


@pytest.mark.asyncio
async def test_resource_pool_style_without_file(catalog: Catalog):
    style = catalog.add(StyleInfo(name="inline"))

    with pytest.raises(CatalogError):
        await catalog.resource_pool.read_style(style)


def test_catalogs_can_share_a_resource_pool(catalog: Catalog):
    working = Catalog(catalog.resource_loader, catalog.resource_pool)

    assert working.resource_pool is catalog.resource_pool
    assert working.resource_loader is catalog.resource_loader


# ============================================================================
# Server configuration
# ============================================================================

@pytest.mark.asyncio
async def test_server_config_open_reads_data_directory():
    server = await ServerConfig.open(BK_TEST_SIMPLE)

    counts = catalog_counts(server.catalog)
    assert counts["workspaces"] == 1
    assert counts["data_stores"] == 1
    assert counts["styles"] == 6
    assert server.catalog.default_workspace.name == "sf"
    assert server.global_info.update_sequence == 37
    assert server.settings.contact["contactPerson"] == "Claudius Ptolomaeus"
    assert server.logging.level == "DEFAULT_LOGGING"
    assert [s.type for s in server.get_services()] == ["wfs", "wms"]


@pytest.mark.asyncio
async def test_server_config_reload_notifies_listeners():
    server = await ServerConfig.open(BK_TEST_SIMPLE)
    listener = RecordingListener()
    server.catalog.add_listener(listener)
    first = server.catalog.get_workspace_by_name("sf")

    await server.reload()

    assert listener.reloads == 1
    assert server.catalog.get_workspace_by_name("sf") is not first
    assert len(server.catalog.get_styles()) == 6


@pytest.mark.asyncio
async def test_server_config_open_missing_directory(temp_dir: Path):
    server = await ServerConfig.open(temp_dir / "does-not-exist")

    assert catalog_counts(server.catalog)["workspaces"] == 0
    assert server.global_info is None


def test_services_and_settings_are_scoped(temp_dir: Path):
    server = ServerConfig(ResourceStore(temp_dir))
    sf = server.catalog.add(WorkspaceInfo(name="sf"))

    server.add_service(ServiceInfo(type="wms", name="WMS"))
    server.add_service(ServiceInfo(type="wms", name="WMS", workspace=sf, title="local"))
    server.add_service(ServiceInfo(type="wms", name="WMS", title="replaced"))
    server.set_settings(SettingsInfo(title="global"))
    server.set_settings(SettingsInfo(workspace=sf, title="local"))

    assert server.get_service("wms").title == "replaced"
    assert server.get_service("wms", sf).title == "local"
    assert len(server.get_services()) == 1
    assert [s.title for s in server.get_workspace_services()] == ["local"]
    assert server.settings.title == "global"
    assert [s.title for s in server.get_workspace_settings()] == ["local"]

    server.dispose()
    assert server.get_services() == []
    assert server.settings is None
    assert server.catalog.get_workspaces() == []


def test_store_base_class_lookup(catalog: Catalog):
    ws = catalog.add(WorkspaceInfo(name="topp"))
    store = catalog.add(DataStoreInfo(name="states", workspace=ws))

    assert catalog.lookup(StoreInfo, "topp:states") is store
    assert catalog.get_data_stores() == [store]
    assert catalog.get_coverage_stores() == []
