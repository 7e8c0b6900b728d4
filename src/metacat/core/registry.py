"""Registry store interface.

The registry is the single source of truth for which metadata file is
current. Each method is one round trip executing one atomic statement;
interpreting affected-row counts is left to the catalog service.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from metacat.core.models import CatalogEntry

REGISTRY_TABLE = "iceberg_tables"
MAX_NAME_LENGTH = 255
MAX_LOCATION_LENGTH = 5000


class RegistryStore(Protocol):
    """Relational primitives the catalog service is built on."""

    def create_tables(self) -> None:
        """Create the registry table if it does not exist yet."""
        ...

    def insert(self, entry: CatalogEntry) -> None:
        """Insert a new entry; raise AlreadyExistsError on a key conflict."""
        ...

    def select(
        self, catalog_name: str, namespace: str, table_name: str
    ) -> Sequence[CatalogEntry]:
        """Return all entries matching the full key."""
        ...

    def select_namespace(
        self, catalog_name: str, namespace: str
    ) -> Sequence[CatalogEntry]:
        """Return all entries of one namespace."""
        ...

    def select_namespaces(self, catalog_name: str) -> Sequence[str]:
        """Return the distinct encoded namespaces of a catalog."""
        ...

    def compare_and_swap(
        self,
        catalog_name: str,
        namespace: str,
        table_name: str,
        new_location: str,
        expected_location: str,
    ) -> int:
        """
        Set the pointer to `new_location` (and the previous pointer to
        `expected_location`) only where the stored pointer equals
        `expected_location`. Return the number of rows affected.
        """
        ...

    def delete(
        self,
        catalog_name: str,
        namespace: str,
        table_name: str,
        expected_location: str | None = None,
    ) -> int:
        """Delete matching rows (optionally only if the pointer matches)."""
        ...

    def close(self) -> None:
        """Release connections held by the store."""
        ...
