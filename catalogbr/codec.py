# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
catalogbr Codec - Entity serialization to XML or JSON.

Every entity type has an explicit schema (element alias plus typed fields),
so encoding never relies on runtime introspection. Cross references are
always written by name and resolved against the catalog the codec is bound
to when reading:

    <dataStore>
      <name>store</name>
      <workspace><name>ws</name></workspace>
      ...
    </dataStore>
"""

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple

import structlog

from catalogbr.catalog.catalog import Catalog
from catalogbr.catalog.model import (
    CoverageInfo,
    CoverageStoreInfo,
    DataStoreInfo,
    FeatureTypeInfo,
    GlobalInfo,
    LayerGroupInfo,
    LayerInfo,
    LoggingInfo,
    NamespaceInfo,
    ResourceInfo,
    ServiceInfo,
    SettingsInfo,
    StoreInfo,
    StyleInfo,
    WorkspaceInfo,
)
from catalogbr.config import SerializationFormat
from catalogbr.exceptions import SerializationError
from catalogbr.resources import Resource

logger = structlog.get_logger()


class FieldKind(str, Enum):
    STR = "str"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    MAP = "map"
    REF = "ref"
    REF_LIST = "ref_list"


@dataclass(frozen=True)
class Field:
    """One serialized attribute of an entity."""

    name: str
    kind: FieldKind = FieldKind.STR
    ref_type: type | None = None
    item: str | None = None

    @property
    def tag(self) -> str:
        head, *rest = self.name.split("_")
        return head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class EntitySchema:
    entity_type: type
    alias: str
    fields: Tuple[Field, ...]


_ID = Field("id")
_WORKSPACE_REF = Field("workspace", FieldKind.REF, WorkspaceInfo)

SCHEMAS: Tuple[EntitySchema, ...] = (
    EntitySchema(WorkspaceInfo, "workspace", (
        _ID,
        Field("name"),
        Field("isolated", FieldKind.BOOL),
    )),
    EntitySchema(NamespaceInfo, "namespace", (
        _ID,
        Field("prefix"),
        Field("uri"),
        Field("isolated", FieldKind.BOOL),
    )),
    EntitySchema(DataStoreInfo, "dataStore", (
        _ID,
        Field("name"),
        Field("type"),
        Field("description"),
        Field("enabled", FieldKind.BOOL),
        _WORKSPACE_REF,
        Field("connection_parameters", FieldKind.MAP),
    )),
    EntitySchema(CoverageStoreInfo, "coverageStore", (
        _ID,
        Field("name"),
        Field("type"),
        Field("description"),
        Field("enabled", FieldKind.BOOL),
        _WORKSPACE_REF,
        Field("url"),
    )),
    EntitySchema(FeatureTypeInfo, "featureType", (
        _ID,
        Field("name"),
        Field("native_name"),
        Field("title"),
        Field("abstract"),
        Field("namespace", FieldKind.REF, NamespaceInfo),
        Field("store", FieldKind.REF, StoreInfo),
        Field("srs"),
        Field("enabled", FieldKind.BOOL),
        Field("max_features", FieldKind.INT),
    )),
    EntitySchema(CoverageInfo, "coverage", (
        _ID,
        Field("name"),
        Field("native_name"),
        Field("title"),
        Field("abstract"),
        Field("namespace", FieldKind.REF, NamespaceInfo),
        Field("store", FieldKind.REF, StoreInfo),
        Field("srs"),
        Field("enabled", FieldKind.BOOL),
        Field("native_format"),
    )),
    EntitySchema(LayerInfo, "layer", (
        _ID,
        Field("name"),
        Field("type"),
        Field("enabled", FieldKind.BOOL),
        Field("resource", FieldKind.REF, ResourceInfo),
        Field("default_style", FieldKind.REF, StyleInfo),
        Field("styles", FieldKind.REF_LIST, StyleInfo, item="style"),
    )),
    EntitySchema(StyleInfo, "style", (
        _ID,
        Field("name"),
        _WORKSPACE_REF,
        Field("filename"),
        Field("format"),
        Field("format_version"),
    )),
    EntitySchema(LayerGroupInfo, "layerGroup", (
        _ID,
        Field("name"),
        _WORKSPACE_REF,
        Field("title"),
        Field("mode"),
        Field("layers", FieldKind.REF_LIST, LayerInfo, item="layer"),
        Field("styles", FieldKind.REF_LIST, StyleInfo, item="style"),
    )),
    EntitySchema(GlobalInfo, "global", (
        _ID,
        Field("update_sequence", FieldKind.INT),
        Field("feature_type_cache_size", FieldKind.INT),
        Field("global_services", FieldKind.BOOL),
        Field("xml_post_request_log_buffer_size", FieldKind.INT),
        Field("resource_error_handling"),
    )),
    EntitySchema(SettingsInfo, "settings", (
        _ID,
        _WORKSPACE_REF,
        Field("title"),
        Field("charset"),
        Field("num_decimals", FieldKind.INT),
        Field("proxy_base_url"),
        Field("verbose", FieldKind.BOOL),
        Field("verbose_exceptions", FieldKind.BOOL),
        Field("contact", FieldKind.MAP),
    )),
    EntitySchema(LoggingInfo, "logging", (
        _ID,
        Field("level"),
        Field("location"),
        Field("stdout_logging", FieldKind.BOOL),
    )),
    EntitySchema(ServiceInfo, "service", (
        _ID,
        Field("type"),
        Field("name"),
        _WORKSPACE_REF,
        Field("enabled", FieldKind.BOOL),
        Field("title"),
        Field("abstract"),
        Field("maintainer"),
        Field("metadata", FieldKind.MAP),
    )),
)

_BY_TYPE: Dict[type, EntitySchema] = {schema.entity_type: schema for schema in SCHEMAS}
_BY_ALIAS: Dict[str, EntitySchema] = {schema.alias: schema for schema in SCHEMAS}


def unwrap(item: Any) -> Any:
    """Follow __wrapped__ chains down to the plain entity."""
    while hasattr(item, "__wrapped__"):
        item = item.__wrapped__
    return item


def schema_for(entity: Any) -> EntitySchema:
    schema = _BY_TYPE.get(type(entity))
    if schema is None:
        raise SerializationError(
            f"No schema registered for {type(entity).__name__}",
            details={"type": type(entity).__name__},
        )
    return schema


# ============================================================================
# Service loaders
# ============================================================================


DEFAULT_SERVICE_TYPES = ("wms", "wfs", "wcs", "wmts")


@dataclass(frozen=True)
class ServiceLoader:
    """Persists the services of one service type as '<type><ext>'."""

    service_type: str

    def filename(self, extension: str) -> str:
        return f"{self.service_type}{extension}"

    def check(self, service: ServiceInfo) -> ServiceInfo:
        if service.type != self.service_type:
            raise SerializationError(
                f"Service file for '{self.service_type}' holds a '{service.type}' service",
                details={"expected": self.service_type, "found": service.type},
            )
        return service


class ServiceLoaderRegistry:
    """Service loaders keyed by service type."""

    def __init__(self, service_types: Tuple[str, ...] = DEFAULT_SERVICE_TYPES):
        self._loaders: Dict[str, ServiceLoader] = {}
        for service_type in service_types:
            self.register(ServiceLoader(service_type))

    def register(self, loader: ServiceLoader) -> None:
        self._loaders[loader.service_type] = loader

    def get(self, service_type: str) -> ServiceLoader:
        if service_type not in self._loaders:
            logger.debug("service_loader_created", service_type=service_type)
            self.register(ServiceLoader(service_type))
        return self._loaders[service_type]

    def for_filename(self, filename: str, extension: str) -> ServiceLoader | None:
        for loader in self._loaders.values():
            if loader.filename(extension) == filename:
                return loader
        return None

    @property
    def service_types(self) -> List[str]:
        return sorted(self._loaders)


# ============================================================================
# Codecs
# ============================================================================


class EntityCodec:
    """
    Base entity codec.

    Subclasses turn the neutral record produced by _to_record() into bytes
    and back. References are resolved against `catalog` when decoding.
    """

    extension = ""
    format: SerializationFormat

    def __init__(
        self,
        catalog: Catalog | None = None,
        exclude_ids: bool = False,
        service_loaders: ServiceLoaderRegistry | None = None,
    ):
        self.catalog = catalog
        self.exclude_ids = exclude_ids
        self.service_loaders = service_loaders or ServiceLoaderRegistry()

    def filename(self, base: str) -> str:
        return f"{base}{self.extension}"

    async def write(self, entity: Any, directory: Resource, filename: str) -> Resource:
        """Serialize an entity to directory/filename."""
        target = directory.get(filename)
        await target.write_bytes(self.encode(entity))
        return target

    async def read(
        self,
        directory: Resource,
        filename: str,
        expected_type: type | None = None,
    ) -> Any:
        """Deserialize the entity stored at directory/filename."""
        source = directory.get(filename)
        entity = self.decode(await source.read_bytes(), expected_type)

        if isinstance(entity, ServiceInfo):
            loader = self.service_loaders.for_filename(filename, self.extension)
            if loader is not None:
                loader.check(entity)
        return entity

    def encode(self, entity: Any) -> bytes:
        entity = unwrap(entity)
        schema = schema_for(entity)
        return self._dump(schema.alias, self._to_record(schema, entity))

    def decode(self, data: bytes, expected_type: type | None = None) -> Any:
        alias, record = self._load(data)
        schema = _BY_ALIAS.get(alias)
        if schema is None:
            raise SerializationError(
                f"Unknown entity element '{alias}'",
                details={"alias": alias},
            )
        if expected_type is not None and not issubclass(schema.entity_type, expected_type):
            raise SerializationError(
                f"Expected {expected_type.__name__}, found '{alias}'",
                details={"alias": alias, "expected": expected_type.__name__},
            )
        return self._from_record(schema, record)

    def _to_record(self, schema: EntitySchema, entity: Any) -> Dict[str, Any]:
        record: Dict[str, Any] = {}
        for f in schema.fields:
            if f.name == "id" and self.exclude_ids:
                continue
            value = getattr(entity, f.name)
            if value is None:
                continue
            if f.kind == FieldKind.REF:
                record[f.tag] = unwrap(value).prefixed_name
            elif f.kind == FieldKind.REF_LIST:
                record[f.tag] = [unwrap(v).prefixed_name for v in value]
            elif f.kind == FieldKind.MAP:
                record[f.tag] = {str(k): str(v) for k, v in value.items()}
            else:
                record[f.tag] = value
        return record

    def _from_record(self, schema: EntitySchema, record: Dict[str, Any]) -> Any:
        values: Dict[str, Any] = {}
        for f in schema.fields:
            if f.tag not in record:
                continue
            raw = record[f.tag]
            try:
                values[f.name] = self._coerce(f, raw)
            except (TypeError, ValueError) as e:
                raise SerializationError(
                    f"Invalid value for {schema.alias}.{f.tag}: {raw!r}",
                    details={"alias": schema.alias, "field": f.tag},
                ) from e
        return schema.entity_type(**values)

    def _coerce(self, f: Field, raw: Any) -> Any:
        if f.kind == FieldKind.STR:
            return str(raw)
        if f.kind == FieldKind.INT:
            return int(raw)
        if f.kind == FieldKind.FLOAT:
            return float(raw)
        if f.kind == FieldKind.BOOL:
            if isinstance(raw, bool):
                return raw
            if str(raw).strip().lower() in ("true", "false"):
                return str(raw).strip().lower() == "true"
            raise ValueError(f"not a boolean: {raw!r}")
        if f.kind == FieldKind.MAP:
            return {str(k): str(v) for k, v in dict(raw).items()}
        if f.kind == FieldKind.REF:
            return self._resolve(f, raw)
        if f.kind == FieldKind.REF_LIST:
            return [self._resolve(f, name) for name in raw]
        raise ValueError(f"unsupported field kind {f.kind}")

    def _resolve(self, f: Field, name: str) -> Any:
        if self.catalog is None:
            raise SerializationError(
                "Cannot resolve references without a catalog",
                details={"field": f.tag, "name": name},
            )
        info = self.catalog.lookup(f.ref_type, name)
        if info is None:
            raise SerializationError(
                f"Unresolved {f.ref_type.__name__} reference '{name}'",
                details={"field": f.tag, "name": name},
            )
        return info

    def _dump(self, alias: str, record: Dict[str, Any]) -> bytes:
        raise NotImplementedError

    def _load(self, data: bytes) -> Tuple[str, Dict[str, Any]]:
        raise NotImplementedError


class XmlCodec(EntityCodec):
    extension = ".xml"
    format = SerializationFormat.XML

    def _dump(self, alias: str, record: Dict[str, Any]) -> bytes:
        schema = _BY_ALIAS[alias]
        root = ET.Element(alias)
        for f in schema.fields:
            if f.tag not in record:
                continue
            value = record[f.tag]
            element = ET.SubElement(root, f.tag)
            if f.kind == FieldKind.REF:
                ET.SubElement(element, "name").text = value
            elif f.kind == FieldKind.REF_LIST:
                for name in value:
                    ET.SubElement(ET.SubElement(element, f.item or "ref"), "name").text = name
            elif f.kind == FieldKind.MAP:
                for key, item in value.items():
                    entry = ET.SubElement(element, "entry", key=key)
                    entry.text = item
            elif f.kind == FieldKind.BOOL:
                element.text = "true" if value else "false"
            else:
                element.text = str(value)
        ET.indent(root)
        return ET.tostring(root, encoding="utf-8")

    def _load(self, data: bytes) -> Tuple[str, Dict[str, Any]]:
        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise SerializationError(f"Malformed XML: {e}") from e

        schema = _BY_ALIAS.get(root.tag)
        fields = {f.tag: f for f in schema.fields} if schema else {}
        record: Dict[str, Any] = {}
        for element in root:
            f = fields.get(element.tag)
            if f is None:
                logger.debug("unknown_element_ignored", alias=root.tag, element=element.tag)
                continue
            if f.kind == FieldKind.REF:
                record[f.tag] = element.findtext("name", default="")
            elif f.kind == FieldKind.REF_LIST:
                record[f.tag] = [item.findtext("name", default="") for item in element]
            elif f.kind == FieldKind.MAP:
                record[f.tag] = {
                    entry.get("key", ""): entry.text or "" for entry in element
                }
            else:
                record[f.tag] = element.text or ""
        return root.tag, record


class JsonCodec(EntityCodec):
    extension = ".json"
    format = SerializationFormat.JSON

    def _dump(self, alias: str, record: Dict[str, Any]) -> bytes:
        schema = _BY_ALIAS[alias]
        kinds = {f.tag: f.kind for f in schema.fields}
        body: Dict[str, Any] = {}
        for tag, value in record.items():
            if kinds[tag] == FieldKind.REF:
                body[tag] = {"name": value}
            elif kinds[tag] == FieldKind.REF_LIST:
                body[tag] = [{"name": name} for name in value]
            else:
                body[tag] = value
        return json.dumps({alias: body}, indent=2).encode("utf-8")

    def _load(self, data: bytes) -> Tuple[str, Dict[str, Any]]:
        try:
            document = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SerializationError(f"Malformed JSON: {e}") from e

        if not isinstance(document, dict) or len(document) != 1:
            raise SerializationError("JSON entity must be an object with a single root key")

        alias, body = next(iter(document.items()))
        if not isinstance(body, dict):
            raise SerializationError(f"JSON entity '{alias}' is not an object")

        schema = _BY_ALIAS.get(alias)
        kinds = {f.tag: f.kind for f in schema.fields} if schema else {}
        record: Dict[str, Any] = {}
        for tag, value in body.items():
            kind = kinds.get(tag)
            if kind == FieldKind.REF:
                record[tag] = value.get("name", "") if isinstance(value, dict) else value
            elif kind == FieldKind.REF_LIST:
                record[tag] = [
                    item.get("name", "") if isinstance(item, dict) else item
                    for item in value
                ]
            elif kind is not None:
                record[tag] = value
        return alias, record


def create_codec(
    serialization_format: SerializationFormat,
    catalog: Catalog | None = None,
    exclude_ids: bool = False,
    service_loaders: ServiceLoaderRegistry | None = None,
) -> EntityCodec:
    """
    Create an entity codec for the configured format.

    Args:
        serialization_format: XML or JSON
        catalog: Catalog used to resolve references when reading
        exclude_ids: Omit entity ids from the output (backup mode)
        service_loaders: Service loader registry (defaults to the built-in types)
    """
    codec_cls = JsonCodec if serialization_format == SerializationFormat.JSON else XmlCodec
    return codec_cls(catalog, exclude_ids=exclude_ids, service_loaders=service_loaders)
