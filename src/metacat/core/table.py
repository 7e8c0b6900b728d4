"""Table handles and the table builder.

A Table is bound to the catalog that loaded it, so committing a new metadata
version routes back through that catalog's compare-and-swap. Both the
builder and Table.commit write the metadata file before publishing its
location: an unreferenced file is a harmless orphan, whereas a pointer to a
missing file would break every reader.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import replace
from typing import TYPE_CHECKING, Iterable, Mapping

from metacat.core.codec import new_metadata_location, parse_metadata_version
from metacat.core.identifiers import TableIdentifier
from metacat.core.models import MetadataLogEntry, Schema, TableMetadata

if TYPE_CHECKING:
    from metacat.core.catalog import Catalog

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_table_metadata(
    location: str,
    schema: Schema,
    properties: Mapping[str, str] | None = None,
) -> TableMetadata:
    """Build version-zero metadata, assigning fresh field ids to `schema`."""
    fresh = replace(schema.with_fresh_ids(), schema_id=0)
    return TableMetadata(
        table_uuid=str(uuid.uuid4()),
        location=location.rstrip("/"),
        last_updated_ms=_now_ms(),
        last_column_id=fresh.highest_field_id(),
        schemas=(fresh,),
        current_schema_id=fresh.schema_id,
        properties=dict(properties or {}),
    )


class Table:
    """In-memory handle of a loaded table."""

    def __init__(
        self,
        identifier: TableIdentifier,
        metadata: TableMetadata,
        metadata_location: str,
        catalog: Catalog,
    ) -> None:
        self.identifier = identifier
        self.metadata = metadata
        self.metadata_location = metadata_location
        self.catalog = catalog

    def __repr__(self) -> str:
        return f"Table({self.identifier}, metadata_location={self.metadata_location!r})"

    @property
    def location(self) -> str:
        return self.metadata.location

    @property
    def properties(self) -> Mapping[str, str]:
        return self.metadata.properties

    def schema(self) -> Schema:
        return self.metadata.schema()

    def refresh(self) -> Table:
        """Reload the current pointer and metadata from the catalog in place."""
        fresh = self.catalog.load_table(self.identifier)
        self.metadata = fresh.metadata
        self.metadata_location = fresh.metadata_location
        return self

    def commit(self, metadata: TableMetadata) -> Table:
        """
        Publish `metadata` as the next version of this table.

        Writes the next metadata file, then asks the catalog to swap the
        pointer from the location this handle was loaded from. Raises
        CommitConflictError if another writer committed in between; the
        written file is then left unreferenced.

        Returns:
            A fresh handle for the committed version.
        """
        version = parse_metadata_version(self.metadata_location) + 1
        staged = replace(
            metadata,
            last_updated_ms=_now_ms(),
            metadata_log=self.metadata.metadata_log
            + (
                MetadataLogEntry(
                    metadata_file=self.metadata_location,
                    timestamp_ms=self.metadata.last_updated_ms,
                ),
            ),
        )
        new_location = new_metadata_location(staged.location, version)
        self.catalog.io.put(new_location, self.catalog.codec.encode(staged))
        logger.debug("Staged %s version %d at %s", self.identifier, version, new_location)
        return self.catalog.update_table(
            self.identifier, new_location, self.metadata_location
        )

    def update_properties(
        self,
        updates: Mapping[str, str] | None = None,
        removals: Iterable[str] = (),
    ) -> Table:
        """Commit a property change against this handle's version."""
        removals = set(removals)
        updates = dict(updates or {})
        overlap = removals & set(updates)
        if overlap:
            raise ValueError(f"Updates and removals overlap: {sorted(overlap)}")
        props = {k: v for k, v in self.properties.items() if k not in removals}
        props.update(updates)
        return self.commit(replace(self.metadata, properties=props))


class TableBuilder:
    """
    Builder for a new table, pre-wired by Catalog.build_table.

    Args:
        location: Root location of the table's files.
        schema: Table schema; field ids are reassigned on commit.
        identifier: Identifier the table will be registered under.
        catalog: Catalog that registers the table on commit.
        properties: Initial table properties.
    """

    def __init__(
        self,
        location: str,
        schema: Schema,
        identifier: TableIdentifier,
        catalog: Catalog,
        properties: Mapping[str, str] | None = None,
    ) -> None:
        self.location = location
        self.schema = schema
        self.identifier = identifier
        self.catalog = catalog
        self.properties: dict[str, str] = dict(properties or {})

    def with_location(self, location: str) -> TableBuilder:
        self.location = location
        return self

    def with_property(self, key: str, value: str) -> TableBuilder:
        self.properties[key] = value
        return self

    def commit(self) -> Table:
        """Write version-zero metadata and register the table."""
        metadata = new_table_metadata(self.location, self.schema, self.properties)
        metadata_location = new_metadata_location(metadata.location, 0)
        self.catalog.io.put(metadata_location, self.catalog.codec.encode(metadata))
        return self.catalog.register_table(self.identifier, metadata_location)
