"""Catalog configuration and construction.

Values are resolved in order: explicit properties (e.g. CLI options), then
METACAT_* environment variables, then defaults. The registry backend is
inferred from the URI scheme and the object store from the warehouse
location.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from metacat.core.adapters.localfs import LocalObjectStore
from metacat.core.adapters.memory import InMemoryObjectStore, InMemoryRegistryStore
from metacat.core.catalog import WAREHOUSE, RegistryCatalog
from metacat.core.objectstore import ObjectStore
from metacat.core.registry import RegistryStore

logger = logging.getLogger(__name__)

URI = "uri"
IO = "io"
DATABRICKS_PROFILE = "databricks.profile"
ECHO = "echo"

CATALOG_ENV = "METACAT_CATALOG"
URI_ENV = "METACAT_URI"
WAREHOUSE_ENV = "METACAT_WAREHOUSE"
IO_ENV = "METACAT_IO"
DATABRICKS_PROFILE_ENV = "METACAT_DATABRICKS_PROFILE"
ECHO_ENV = "METACAT_SQL_ECHO"

DEFAULT_CATALOG_NAME = "default"
DEFAULT_URI = "memory://"


class RegistryType(str, Enum):
    """Supported registry backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    POSTGRES = "postgres"


class IoType(str, Enum):
    """Supported object stores."""

    LOCAL = "local"
    MEMORY = "memory"
    DATABRICKS = "databricks"


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


def infer_registry_type(uri: str) -> RegistryType:
    """Map a registry URI onto a backend type."""
    scheme = uri.split("://", 1)[0].lower() if "://" in uri else ""
    if scheme == "memory":
        return RegistryType.MEMORY
    if scheme.startswith("sqlite"):
        return RegistryType.SQLITE
    if scheme.startswith("postgres"):
        return RegistryType.POSTGRES
    raise ValueError(f"Could not infer the registry type from the uri: {uri}")


def normalize_sql_uri(uri: str) -> str:
    """Default PostgreSQL URIs without an explicit driver to psycopg 3."""
    for prefix in ("postgres://", "postgresql://"):
        if uri.startswith(prefix):
            return "postgresql+psycopg://" + uri[len(prefix):]
    return uri


@dataclass
class CatalogConfig:
    """Resolved catalog settings.

    Attributes:
        name: Logical catalog name; entries of other catalogs are invisible.
        uri: Registry URI (`memory://`, `sqlite:///file.db`, `postgresql://...`).
        warehouse: Root location under which new tables are placed.
        io: Object store kind; inferred when not given.
        databricks_profile: Profile for the Databricks volume store.
        echo: Log every SQL statement (SQLAlchemy echo).
    """

    name: str = DEFAULT_CATALOG_NAME
    uri: str = DEFAULT_URI
    warehouse: str | None = None
    io: IoType | None = None
    databricks_profile: str | None = None
    echo: bool = False

    @classmethod
    def resolve(
        cls,
        name: str | None = None,
        properties: Mapping[str, str | None] | None = None,
    ) -> CatalogConfig:
        """Build a config from properties, falling back to the environment."""
        props = {k: v for k, v in (properties or {}).items() if v is not None}

        def pick(key: str, env: str) -> str | None:
            value = props.get(key)
            return value if value is not None else os.getenv(env)

        io_raw = pick(IO, IO_ENV)
        try:
            io = IoType(io_raw.lower()) if io_raw else None
        except ValueError as exc:
            raise ValueError(
                f"Unknown io {io_raw!r}; expected one of {[t.value for t in IoType]}"
            ) from exc

        return cls(
            name=name or os.getenv(CATALOG_ENV) or DEFAULT_CATALOG_NAME,
            uri=pick(URI, URI_ENV) or DEFAULT_URI,
            warehouse=pick(WAREHOUSE, WAREHOUSE_ENV),
            io=io,
            databricks_profile=pick(DATABRICKS_PROFILE, DATABRICKS_PROFILE_ENV),
            echo=_truthy(pick(ECHO, ECHO_ENV)),
        )

    @property
    def registry_type(self) -> RegistryType:
        return infer_registry_type(self.uri)

    @property
    def io_type(self) -> IoType:
        if self.io is not None:
            return self.io
        if self.registry_type is RegistryType.MEMORY:
            return IoType.MEMORY
        warehouse = self.warehouse or ""
        if warehouse.startswith(("dbfs:/", "/Volumes/")):
            return IoType.DATABRICKS
        return IoType.LOCAL

    def catalog_properties(self) -> dict[str, str]:
        """Properties handed to Catalog.initialize."""
        props = {URI: self.uri}
        if self.warehouse:
            props[WAREHOUSE] = self.warehouse
        return props


def build_registry(config: CatalogConfig) -> RegistryStore:
    """Instantiate the registry store selected by the config."""
    registry_type = config.registry_type
    if registry_type is RegistryType.MEMORY:
        return InMemoryRegistryStore()

    from metacat.core.adapters.sqlregistry import SqlRegistryStore

    return SqlRegistryStore.from_uri(normalize_sql_uri(config.uri), echo=config.echo)


def build_object_store(config: CatalogConfig) -> ObjectStore:
    """Instantiate the object store selected by the config."""
    io_type = config.io_type
    if io_type is IoType.MEMORY:
        return InMemoryObjectStore()
    if io_type is IoType.DATABRICKS:
        from metacat.core.adapters.databricksfiles import DatabricksFilesObjectStore
        from metacat.core.auth import get_workspace_client

        return DatabricksFilesObjectStore(get_workspace_client(config.databricks_profile))
    return LocalObjectStore()


def catalog_from_config(config: CatalogConfig) -> RegistryCatalog:
    """Build and initialize a catalog for a resolved config."""
    catalog = RegistryCatalog(
        registry=build_registry(config),
        io=build_object_store(config),
    )
    catalog.initialize(config.name, config.catalog_properties())
    logger.debug(
        "Catalog %s uses %s registry and %s object store",
        config.name,
        config.registry_type.value,
        config.io_type.value,
    )
    return catalog


def load_catalog(name: str | None = None, **properties: str | None) -> RegistryCatalog:
    """
    Build and initialize a catalog from properties and the environment.

    Example:
        catalog = load_catalog("prod", uri="postgresql://...", warehouse="/data/wh")
    """
    return catalog_from_config(CatalogConfig.resolve(name, properties))
