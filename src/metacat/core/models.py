"""Core domain models for the catalog.

These models are plain, immutable values. They carry no database or object
store types so that every backend and frontend can share them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping


@dataclass(frozen=True)
class CatalogEntry:
    """One registry row: the current metadata pointer of a table.

    Attributes:
        catalog_name: Logical catalog the entry belongs to.
        namespace: Dotted namespace string (see Namespace.render).
        table_name: Table name, unique within (catalog_name, namespace).
        metadata_location: Location of the current metadata file.
        previous_metadata_location: Location superseded by the current one.
            Kept as an audit trail only.
    """

    catalog_name: str
    namespace: str
    table_name: str
    metadata_location: str | None
    previous_metadata_location: str | None = None


@dataclass(frozen=True)
class SchemaField:
    """A single top-level column of a table schema."""

    id: int
    name: str
    type: str
    required: bool = False
    doc: str | None = None


@dataclass(frozen=True)
class Schema:
    """Ordered set of fields. Field ids are assigned when a table is built."""

    fields: tuple[SchemaField, ...] = ()
    schema_id: int = 0

    @classmethod
    def of(cls, *fields: SchemaField) -> Schema:
        return cls(fields=tuple(fields))

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def find_field(self, name: str) -> SchemaField:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    def highest_field_id(self) -> int:
        return max((f.id for f in self.fields), default=0)

    def with_fresh_ids(self, start: int = 1) -> Schema:
        """Return a copy whose field ids are renumbered from `start`."""
        fields = tuple(
            replace(f, id=start + i) for i, f in enumerate(self.fields)
        )
        return replace(self, fields=fields)


@dataclass(frozen=True)
class MetadataLogEntry:
    """A previous metadata file of a table and when it was superseded."""

    metadata_file: str
    timestamp_ms: int


@dataclass(frozen=True)
class TableMetadata:
    """
    The subset of table-format metadata the catalog needs to build handles.

    The catalog itself never interprets these values; they are produced and
    consumed by the codec and the table builder.
    """

    table_uuid: str
    location: str
    last_updated_ms: int
    last_column_id: int
    schemas: tuple[Schema, ...]
    current_schema_id: int = 0
    format_version: int = 2
    properties: Mapping[str, str] = field(default_factory=dict)
    metadata_log: tuple[MetadataLogEntry, ...] = ()

    def schema(self) -> Schema:
        """Return the current schema."""
        for s in self.schemas:
            if s.schema_id == self.current_schema_id:
                return s
        raise ValueError(
            f"Current schema id {self.current_schema_id} is not among the table schemas."
        )
