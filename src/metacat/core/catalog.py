"""Catalog capability and the registry-backed catalog service.

The service maps each catalog operation onto exactly one registry statement
(plus, for loads, one object store read). It keeps no in-process locks:
the only thing standing between two racing writers is the conditional
update executed by the registry, so correctness holds across processes as
well as threads.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping

from metacat.core.codec import JsonMetadataCodec, MetadataCodec
from metacat.core.errors import (
    BackendError,
    CatalogError,
    CommitConflictError,
    NotFoundError,
    RegistryIntegrityError,
)
from metacat.core.identifiers import (
    IdentifierLike,
    Namespace,
    NamespaceLike,
    TableIdentifier,
    to_identifier,
    to_namespace,
)
from metacat.core.models import CatalogEntry, Schema
from metacat.core.objectstore import ObjectStore
from metacat.core.registry import RegistryStore
from metacat.core.table import Table, TableBuilder

logger = logging.getLogger(__name__)

WAREHOUSE = "warehouse"


class Catalog(ABC):
    """
    Generic catalog capability.

    Table and transaction code is written against this interface so it can
    run on any backing registry. Identifiers may be given as TableIdentifier
    values or dotted strings (`ns1.ns2.table`).
    """

    name: str | None
    properties: dict[str, str]
    io: ObjectStore
    codec: MetadataCodec

    @abstractmethod
    def initialize(self, name: str, properties: Mapping[str, str] | None = None) -> None:
        """Bind the catalog name and properties and prepare the registry."""

    @abstractmethod
    def list_tables(self, namespace: NamespaceLike) -> list[TableIdentifier]:
        """List the tables of one namespace (order unspecified)."""

    @abstractmethod
    def list_namespaces(self) -> list[Namespace]:
        """List namespaces that hold at least one table."""

    @abstractmethod
    def table_exists(self, identifier: IdentifierLike) -> bool:
        """Return True iff exactly one entry matches the identifier."""

    @abstractmethod
    def load_table(self, identifier: IdentifierLike) -> Table:
        """Load the current metadata of a table.

        Raises:
            NotFoundError: If the table is not registered.
            RegistryIntegrityError: If the registry returned several entries.
            BackendError: If the registry or object store failed.
            MetadataDecodeError: If the metadata file could not be parsed.
        """

    @abstractmethod
    def register_table(self, identifier: IdentifierLike, metadata_location: str) -> Table:
        """Register an existing metadata file as a new table.

        Raises:
            AlreadyExistsError: If the identifier is already registered.
        """

    @abstractmethod
    def update_table(
        self,
        identifier: IdentifierLike,
        new_metadata_location: str,
        previous_metadata_location: str,
    ) -> Table:
        """Swap the metadata pointer if it still equals the expected value.

        Raises:
            CommitConflictError: If the stored pointer no longer matches
                (or the table is gone). Reload and retry.
            RegistryIntegrityError: If more than one entry was updated.
        """

    @abstractmethod
    def drop_table(
        self,
        identifier: IdentifierLike,
        expected_metadata_location: str | None = None,
    ) -> None:
        """Remove a table entry. Metadata and data files are left untouched.

        Raises:
            NotFoundError: If the table is not registered.
            CommitConflictError: If an expected location was given and the
                stored pointer no longer matches it.
        """

    @abstractmethod
    def invalidate_table(self, identifier: IdentifierLike) -> None:
        """Drop any cached state for a table."""

    @abstractmethod
    def build_table(
        self,
        identifier: IdentifierLike,
        schema: Schema,
        properties: Mapping[str, str] | None = None,
    ) -> TableBuilder:
        """Return a builder wired to this catalog."""

    def create_table(
        self,
        identifier: IdentifierLike,
        schema: Schema,
        properties: Mapping[str, str] | None = None,
    ) -> Table:
        """Create a table: write initial metadata, then register it."""
        return self.build_table(identifier, schema, properties).commit()

    def close(self) -> None:  # noqa: B027
        """Release resources held by the catalog."""

    def __enter__(self) -> Catalog:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class RegistryCatalog(Catalog):
    """
    Catalog service over a RegistryStore and an ObjectStore.

    Args:
        registry: Relational registry holding the metadata pointers.
        io: Object store holding the metadata files.
        codec: Metadata codec (JSON by default).
    """

    def __init__(
        self,
        registry: RegistryStore,
        io: ObjectStore,
        codec: MetadataCodec | None = None,
    ) -> None:
        self.registry = registry
        self.io = io
        self.codec = codec or JsonMetadataCodec()
        self.name = None
        self.properties = {}

    def initialize(self, name: str, properties: Mapping[str, str] | None = None) -> None:
        if not name:
            raise ValueError("Catalog name must not be empty.")
        self.name = name
        self.properties = dict(properties or {})
        self.registry.create_tables()
        logger.info("Initialized catalog %s", name)

    def _catalog_name(self) -> str:
        if self.name is None:
            raise CatalogError("Catalog is not initialized; call initialize() first.")
        return self.name

    def _lookup(self, ident: TableIdentifier) -> CatalogEntry:
        """Return the single entry for `ident`, enforcing key uniqueness."""
        rows = self.registry.select(
            self._catalog_name(), ident.namespace.render(), ident.name
        )
        if not rows:
            raise NotFoundError(f"Table does not exist: {ident}")
        if len(rows) > 1:
            raise RegistryIntegrityError(
                f"Registry holds {len(rows)} entries for {ident} in catalog {self.name}"
            )
        return rows[0]

    @staticmethod
    def _check_rowcount(affected: int, action: str, ident: TableIdentifier) -> None:
        if affected < 0:
            raise BackendError(f"Registry did not report affected rows for {action} of {ident}")
        if affected > 1:
            raise RegistryIntegrityError(
                f"{action.capitalize()} of {ident} affected {affected} entries"
            )

    def list_tables(self, namespace: NamespaceLike) -> list[TableIdentifier]:
        ns = to_namespace(namespace)
        rows = self.registry.select_namespace(self._catalog_name(), ns.render())
        return [
            TableIdentifier(namespace=Namespace.parse(r.namespace), name=r.table_name)
            for r in rows
        ]

    def list_namespaces(self) -> list[Namespace]:
        return [Namespace.parse(ns) for ns in self.registry.select_namespaces(self._catalog_name())]

    def table_exists(self, identifier: IdentifierLike) -> bool:
        ident = to_identifier(identifier)
        rows = self.registry.select(
            self._catalog_name(), ident.namespace.render(), ident.name
        )
        return len(rows) == 1

    def load_table(self, identifier: IdentifierLike) -> Table:
        ident = to_identifier(identifier)
        entry = self._lookup(ident)
        if entry.metadata_location is None:
            raise NotFoundError(f"Table {ident} has no committed metadata yet")
        data = self.io.get(entry.metadata_location)
        metadata = self.codec.decode(data)
        logger.debug("Loaded %s from %s", ident, entry.metadata_location)
        return Table(ident, metadata, entry.metadata_location, self)

    def register_table(self, identifier: IdentifierLike, metadata_location: str) -> Table:
        ident = to_identifier(identifier)
        if not metadata_location:
            raise ValueError("Metadata location must not be empty.")
        self.registry.insert(
            CatalogEntry(
                catalog_name=self._catalog_name(),
                namespace=ident.namespace.render(),
                table_name=ident.name,
                metadata_location=metadata_location,
                previous_metadata_location=None,
            )
        )
        logger.info("Registered %s at %s", ident, metadata_location)
        return self.load_table(ident)

    def update_table(
        self,
        identifier: IdentifierLike,
        new_metadata_location: str,
        previous_metadata_location: str,
    ) -> Table:
        ident = to_identifier(identifier)
        if not new_metadata_location:
            raise ValueError("New metadata location must not be empty.")
        affected = self.registry.compare_and_swap(
            self._catalog_name(),
            ident.namespace.render(),
            ident.name,
            new_metadata_location,
            previous_metadata_location,
        )
        if affected == 0:
            logger.warning(
                "Commit to %s rejected: pointer is no longer %s",
                ident,
                previous_metadata_location,
            )
            raise CommitConflictError(
                f"Commit to {ident} failed: the table does not exist or its current "
                f"metadata is no longer {previous_metadata_location}"
            )
        self._check_rowcount(affected, "update", ident)
        logger.info(
            "Committed %s: %s -> %s",
            ident,
            previous_metadata_location,
            new_metadata_location,
        )
        return self.load_table(ident)

    def drop_table(
        self,
        identifier: IdentifierLike,
        expected_metadata_location: str | None = None,
    ) -> None:
        ident = to_identifier(identifier)
        affected = self.registry.delete(
            self._catalog_name(),
            ident.namespace.render(),
            ident.name,
            expected_metadata_location,
        )
        if affected == 0:
            if expected_metadata_location is None:
                raise NotFoundError(f"Table does not exist: {ident}")
            raise CommitConflictError(
                f"Drop of {ident} failed: the table does not exist or its current "
                f"metadata is no longer {expected_metadata_location}"
            )
        self._check_rowcount(affected, "drop", ident)
        logger.info("Dropped %s (metadata files are not deleted)", ident)

    def invalidate_table(self, identifier: IdentifierLike) -> None:
        # Nothing is cached; only confirm the entry is there.
        ident = to_identifier(identifier)
        self._lookup(ident)
        logger.debug("Invalidated %s", ident)

    def default_location(self, identifier: IdentifierLike) -> str:
        """Return `<warehouse>/<ns1>/<ns2>/<table>` for an identifier."""
        ident = to_identifier(identifier)
        warehouse = self.properties.get(WAREHOUSE)
        if not warehouse:
            raise ValueError(
                "No warehouse location is configured; set the `warehouse` property."
            )
        return "/".join([warehouse.rstrip("/"), *ident.namespace.levels, ident.name])

    def build_table(
        self,
        identifier: IdentifierLike,
        schema: Schema,
        properties: Mapping[str, str] | None = None,
    ) -> TableBuilder:
        ident = to_identifier(identifier)
        self._catalog_name()
        return TableBuilder(
            location=self.default_location(ident),
            schema=schema,
            identifier=ident,
            catalog=self,
            properties=properties,
        )

    def close(self) -> None:
        self.registry.close()
