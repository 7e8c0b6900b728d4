"""Application context management for the CLI."""

from dataclasses import dataclass

from metacat.cli.common.exits import USAGE_ERROR, die, exit_from_exc
from metacat.core.catalog import WAREHOUSE, RegistryCatalog
from metacat.core.config import (
    DATABRICKS_PROFILE,
    URI,
    CatalogConfig,
    catalog_from_config,
    infer_registry_type,
)
from metacat.core.errors import CatalogError


@dataclass
class CatalogAppContext:
    """Application context holding the resolved config and an open catalog."""

    config: CatalogConfig
    catalog: RegistryCatalog


def build_catalog_context(
    *,
    uri: str | None,
    catalog: str | None,
    warehouse: str | None,
    profile: str | None,
) -> CatalogAppContext:
    """Resolve configuration and open the catalog.

    Args:
        uri: Registry URI; falls back to METACAT_URI.
        catalog: Catalog name; falls back to METACAT_CATALOG.
        warehouse: Warehouse root; falls back to METACAT_WAREHOUSE.
        profile: Databricks profile for volume warehouses.

    Returns:
        CatalogAppContext: Context with an initialized catalog.
    """
    try:
        config = CatalogConfig.resolve(
            catalog,
            {URI: uri, WAREHOUSE: warehouse, DATABRICKS_PROFILE: profile},
        )
        infer_registry_type(config.uri)
    except ValueError as exc:
        die(str(exc), code=USAGE_ERROR)

    try:
        cat = catalog_from_config(config)
    except CatalogError as exc:
        exit_from_exc(exc, message=f"Could not open catalog '{config.name}': {exc}")
    return CatalogAppContext(config=config, catalog=cat)
