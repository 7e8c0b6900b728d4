"""Table-metadata codec.

Serializes TableMetadata to and from the Iceberg-style JSON document stored
in the object store, and names metadata files
`<table location>/metadata/<version>-<uuid>.metadata.json`.
"""

from __future__ import annotations

import json
import re
import uuid
from typing import Any, Protocol

from metacat.core.errors import MetadataDecodeError
from metacat.core.models import MetadataLogEntry, Schema, SchemaField, TableMetadata

METADATA_DIR = "metadata"

_METADATA_FILE_RE = re.compile(
    r"""
    (\d+)              # version
    -
    ([\w-]{36})        # uuid
    \.metadata\.json
    """,
    re.X,
)


class MetadataCodec(Protocol):
    """Interface for turning metadata into bytes and back."""

    def encode(self, metadata: TableMetadata) -> bytes:
        """Serialize metadata."""
        ...

    def decode(self, data: bytes) -> TableMetadata:
        """Deserialize metadata, raising MetadataDecodeError on bad input."""
        ...


def _field_to_dict(f: SchemaField) -> dict[str, Any]:
    out: dict[str, Any] = {
        "id": f.id,
        "name": f.name,
        "required": f.required,
        "type": f.type,
    }
    if f.doc is not None:
        out["doc"] = f.doc
    return out


def _schema_to_dict(schema: Schema) -> dict[str, Any]:
    return {
        "type": "struct",
        "schema-id": schema.schema_id,
        "fields": [_field_to_dict(f) for f in schema.fields],
    }


def schema_from_dict(raw: Any) -> Schema:
    """
    Build a Schema from either an Iceberg struct document or a bare list of
    field objects. Missing field ids default to 0 so a builder can assign them.
    """
    if isinstance(raw, list):
        raw = {"fields": raw}
    if not isinstance(raw, dict):
        raise ValueError("Schema must be a JSON object or a list of fields.")
    fields = []
    for item in raw.get("fields", []):
        if not isinstance(item, dict) or "name" not in item or "type" not in item:
            raise ValueError("Every schema field needs at least `name` and `type`.")
        fields.append(
            SchemaField(
                id=int(item.get("id", 0)),
                name=str(item["name"]),
                type=str(item["type"]),
                required=bool(item.get("required", False)),
                doc=item.get("doc"),
            )
        )
    return Schema(fields=tuple(fields), schema_id=int(raw.get("schema-id", 0)))


class JsonMetadataCodec:
    """Encode/decode TableMetadata as UTF-8 JSON."""

    def encode(self, metadata: TableMetadata) -> bytes:
        doc = {
            "format-version": metadata.format_version,
            "table-uuid": metadata.table_uuid,
            "location": metadata.location,
            "last-updated-ms": metadata.last_updated_ms,
            "last-column-id": metadata.last_column_id,
            "current-schema-id": metadata.current_schema_id,
            "schemas": [_schema_to_dict(s) for s in metadata.schemas],
            "properties": dict(metadata.properties),
            "metadata-log": [
                {"metadata-file": e.metadata_file, "timestamp-ms": e.timestamp_ms}
                for e in metadata.metadata_log
            ],
        }
        return json.dumps(doc, indent=2).encode("utf-8")

    def decode(self, data: bytes) -> TableMetadata:
        try:
            doc = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MetadataDecodeError(f"Metadata is not valid JSON: {exc}") from exc
        if not isinstance(doc, dict):
            raise MetadataDecodeError("Metadata document must be a JSON object.")

        try:
            metadata = TableMetadata(
                format_version=int(doc["format-version"]),
                table_uuid=str(doc["table-uuid"]),
                location=str(doc["location"]),
                last_updated_ms=int(doc["last-updated-ms"]),
                last_column_id=int(doc["last-column-id"]),
                current_schema_id=int(doc.get("current-schema-id", 0)),
                schemas=tuple(schema_from_dict(s) for s in doc["schemas"]),
                properties={str(k): str(v) for k, v in doc.get("properties", {}).items()},
                metadata_log=tuple(
                    MetadataLogEntry(
                        metadata_file=str(e["metadata-file"]),
                        timestamp_ms=int(e["timestamp-ms"]),
                    )
                    for e in doc.get("metadata-log", [])
                ),
            )
        except KeyError as exc:
            raise MetadataDecodeError(f"Metadata is missing required key {exc}") from exc
        except (TypeError, ValueError, AttributeError) as exc:
            raise MetadataDecodeError(f"Metadata has an invalid value: {exc}") from exc

        schema_ids = {s.schema_id for s in metadata.schemas}
        if metadata.current_schema_id not in schema_ids:
            raise MetadataDecodeError(
                f"Current schema id {metadata.current_schema_id} is not among the "
                f"table schemas {sorted(schema_ids)}"
            )
        return metadata


def new_metadata_location(table_location: str, version: int) -> str:
    """Return a fresh metadata file path for `version` under the table location."""
    return (
        f"{table_location.rstrip('/')}/{METADATA_DIR}/"
        f"{version:05d}-{uuid.uuid4()}.metadata.json"
    )


def parse_metadata_version(metadata_location: str) -> int:
    """
    Return the version encoded in a metadata file name.

    `.../metadata/00003-<uuid>.metadata.json` yields 3. Locations that do not
    follow the naming scheme (e.g. registered from elsewhere) yield -1, so the
    next commit writes version 0.
    """
    file_name = metadata_location.rsplit("/", 1)[-1]
    match = _METADATA_FILE_RE.fullmatch(file_name)
    if not match:
        return -1
    try:
        uuid.UUID(match.group(2))
    except ValueError:
        return -1
    return int(match.group(1))
