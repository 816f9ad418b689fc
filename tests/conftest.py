# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for catalogbr tests.

Provides a populated live configuration, an empty restore target, the
bk_test_simple archive and test configuration helpers.
"""

import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, Generator, List

import pytest
import pytest_asyncio

from catalogbr.builder import create_config
from catalogbr.catalog import (
    Catalog,
    CoverageInfo,
    CoverageStoreInfo,
    DataStoreInfo,
    FeatureTypeInfo,
    GlobalInfo,
    LayerGroupInfo,
    LayerInfo,
    LoggingInfo,
    NamespaceInfo,
    ServerConfig,
    ServiceInfo,
    SettingsInfo,
    StyleInfo,
    WorkspaceInfo,
)
from catalogbr.config import BRConfig
from catalogbr.facade import BackupFacade
from catalogbr.resources import ResourceStore

# Set test environment variables
os.environ["CATALOGBR_ADMIN_API_KEY"] = "test-api-key-12345"

FIXTURES_DIR = Path(__file__).parent / "fixtures"
BK_TEST_SIMPLE = FIXTURES_DIR / "bk_test_simple"

SLD_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<StyledLayerDescriptor version="1.0.0" xmlns="http://www.opengis.net/sld">
  <NamedLayer><Name>{name}</Name></NamedLayer>
</StyledLayerDescriptor>
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def make_config(data_dir: Path, staging_dir: Path, **kwargs) -> BRConfig:
    """Test configuration with a short admission slice."""
    kwargs.setdefault("gate_timeout", 5.0)
    return create_config(data_dir=data_dir, staging_dir=staging_dir, **kwargs)


@pytest.fixture
def br_config(temp_dir: Path) -> BRConfig:
    """Configuration of the populated live server."""
    return make_config(temp_dir / "data", temp_dir / "staging")


@pytest.fixture
def target_config(temp_dir: Path) -> BRConfig:
    """Configuration of the empty restore target."""
    return make_config(temp_dir / "restored", temp_dir / "staging")


def write_file(base: Path, relative: str, content: str | bytes) -> Path:
    path = base / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content)
    return path


def populate(server: ServerConfig) -> None:
    """
    Fill a server configuration with a small but complete catalog.

    Two workspaces, a data store and a coverage store, one resource of each
    kind, three styles (one workspace-local), two layers, a layer group,
    global and workspace-local settings and services, plus a few auxiliary
    files in the data directory.
    """
    base = server.data_store.base_dir
    catalog = server.catalog

    topp = catalog.add(WorkspaceInfo(name="topp"))
    sf = catalog.add(WorkspaceInfo(name="sf"))
    topp_ns = catalog.add(NamespaceInfo(prefix="topp", uri="http://www.openplans.org/topp"))
    sf_ns = catalog.add(NamespaceInfo(prefix="sf", uri="http://www.openplans.org/spearfish"))

    states_store = catalog.add(DataStoreInfo(
        name="states_shapefile",
        workspace=topp,
        type="Shapefile",
        connection_parameters={"url": "file:data/shapefiles/states.shp", "charset": "ISO-8859-1"},
    ))
    dem_store = catalog.add(CoverageStoreInfo(
        name="sfdem",
        workspace=sf,
        type="GeoTIFF",
        url="file:data/sf/sfdem.tif",
    ))

    states = catalog.add(FeatureTypeInfo(
        name="states",
        native_name="states",
        title="USA Population",
        namespace=topp_ns,
        store=states_store,
        srs="EPSG:4326",
        max_features=500,
    ))
    dem = catalog.add(CoverageInfo(
        name="sfdem",
        title="Spearfish DEM",
        namespace=sf_ns,
        store=dem_store,
        srs="EPSG:26713",
        native_format="GeoTIFF",
    ))

    polygon = catalog.add(StyleInfo(name="polygon", filename="polygon.sld"))
    raster = catalog.add(StyleInfo(name="raster", filename="raster.sld"))
    sf_point = catalog.add(StyleInfo(name="sf_point", workspace=sf, filename="sf_point.sld"))
    write_file(base, "styles/polygon.sld", SLD_TEMPLATE.format(name="polygon"))
    write_file(base, "styles/raster.sld", SLD_TEMPLATE.format(name="raster"))
    write_file(base, "workspaces/sf/styles/sf_point.sld", SLD_TEMPLATE.format(name="sf_point"))

    catalog.add(LayerInfo(name="states", resource=states, default_style=polygon, styles=[polygon, sf_point]))
    dem_layer = catalog.add(LayerInfo(name="sfdem", resource=dem, default_style=raster, type="RASTER"))
    catalog.add(LayerGroupInfo(
        name="spearfish",
        workspace=sf,
        title="Spearfish",
        layers=[dem_layer],
        styles=[raster],
    ))

    server.global_info = GlobalInfo(update_sequence=12)
    server.logging = LoggingInfo(level="PRODUCTION_LOGGING")
    server.set_settings(SettingsInfo(title="Catalog", contact={"contactPerson": "Admin"}))
    server.set_settings(SettingsInfo(workspace=sf, title="Spearfish", num_decimals=4))
    server.add_service(ServiceInfo(type="wms", name="WMS", title="Web Map Service"))
    server.add_service(ServiceInfo(type="wfs", name="WFS", metadata={"maxFeatures": "1000"}))
    server.add_service(ServiceInfo(type="wms", name="WMS", workspace=sf, title="Spearfish WMS"))

    write_file(base, "www/index.html", "<html><body>catalog</body></html>")
    write_file(base, "logs/app.log", "runtime log, never archived")
    write_file(base, "logs/logging.properties", "level=INFO")
    write_file(base, "styles/legend.png", b"\x89PNG\r\n\x1a\n")


def catalog_counts(catalog: Catalog) -> Dict[str, int]:
    """Entity counts of a catalog, per family."""
    return {
        "workspaces": len(catalog.get_workspaces()),
        "namespaces": len(catalog.get_namespaces()),
        "data_stores": len(catalog.get_data_stores()),
        "coverage_stores": len(catalog.get_coverage_stores()),
        "feature_types": len(catalog.get_feature_types()),
        "coverages": len(catalog.get_coverages()),
        "styles": len(catalog.get_styles()),
        "layers": len(catalog.get_layers()),
        "layer_groups": len(catalog.get_layer_groups()),
    }


POPULATED_COUNTS = {
    "workspaces": 2,
    "namespaces": 2,
    "data_stores": 1,
    "coverage_stores": 1,
    "feature_types": 1,
    "coverages": 1,
    "styles": 3,
    "layers": 2,
    "layer_groups": 1,
}


@pytest_asyncio.fixture
async def live_server(br_config: BRConfig) -> ServerConfig:
    """A live server configuration populated in memory (style files on disk)."""
    br_config.data_dir.mkdir(parents=True, exist_ok=True)
    server = ServerConfig(ResourceStore(br_config.data_dir))
    populate(server)
    return server


@pytest_asyncio.fixture
async def facade(live_server: ServerConfig, br_config: BRConfig) -> BackupFacade:
    """Facade over the populated live server."""
    return BackupFacade(live_server, br_config)


@pytest_asyncio.fixture
async def target_server(target_config: BRConfig) -> ServerConfig:
    """An empty live server, loaded from an empty data directory."""
    return await ServerConfig.open(target_config.data_dir)


@pytest_asyncio.fixture
async def target_facade(target_server: ServerConfig, target_config: BRConfig) -> BackupFacade:
    """Facade over the empty restore target."""
    return BackupFacade(target_server, target_config)


def zip_tree(source: Path, archive: Path) -> Path:
    """Zip a directory tree, entries relative to its root."""
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(source.rglob("*")):
            zf.write(path, path.relative_to(source).as_posix())
    return archive


@pytest.fixture
def bk_test_simple_zip(temp_dir: Path) -> Path:
    """The bk_test_simple fixture tree packed as a zip archive."""
    return zip_tree(BK_TEST_SIMPLE, temp_dir / "bk_test_simple.zip")


@pytest.fixture
def bk_test_simple_copy(temp_dir: Path) -> Path:
    """A writable copy of the bk_test_simple tree, for corrupting."""
    target = temp_dir / "bk_test_simple_copy"
    shutil.copytree(BK_TEST_SIMPLE, target)
    return target


def archive_names(archive: Path) -> List[str]:
    with zipfile.ZipFile(archive) as zf:
        return sorted(name.rstrip("/") for name in zf.namelist())


class RecordingListener:
    """Catalog listener that records every notification."""

    def __init__(self) -> None:
        self.added: List[object] = []
        self.removed: List[object] = []
        self.reloads = 0

    def handle_add(self, info: object) -> None:
        self.added.append(info)

    def handle_remove(self, info: object) -> None:
        self.removed.append(info)

    def reloaded(self) -> None:
        self.reloads += 1
