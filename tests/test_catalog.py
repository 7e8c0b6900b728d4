import json

import pytest

from metacat.core.adapters.memory import InMemoryObjectStore, InMemoryRegistryStore
from metacat.core.catalog import RegistryCatalog
from metacat.core.codec import JsonMetadataCodec
from metacat.core.errors import (
    AlreadyExistsError,
    BackendError,
    CatalogError,
    CommitConflictError,
    MetadataDecodeError,
    NotFoundError,
    RegistryIntegrityError,
)
from metacat.core.identifiers import Namespace, TableIdentifier
from metacat.core.models import CatalogEntry
from metacat.core.table import new_table_metadata


def _entry(catalog, identifier: str) -> CatalogEntry:
    ident = TableIdentifier.parse(identifier)
    (row,) = catalog.registry.select("test", ident.namespace.render(), ident.name)
    return row


def test_unknown_table_is_not_found(catalog):
    assert catalog.table_exists("sales.orders") is False
    with pytest.raises(NotFoundError):
        catalog.load_table("sales.orders")
    with pytest.raises(NotFoundError):
        catalog.drop_table("sales.orders")


def test_register_then_load_returns_registered_pointer(catalog, put_metadata):
    loc = put_metadata("v1")

    table = catalog.register_table("sales.orders", loc)

    assert catalog.table_exists("sales.orders") is True
    assert table.metadata_location == loc
    assert catalog.load_table("sales.orders").metadata_location == loc
    assert table.catalog is catalog
    assert _entry(catalog, "sales.orders").previous_metadata_location is None


def test_register_twice_keeps_first_pointer(catalog, put_metadata):
    first = put_metadata("v1")
    second = put_metadata("v2")
    catalog.register_table("sales.orders", first)

    with pytest.raises(AlreadyExistsError):
        catalog.register_table("sales.orders", second)

    assert catalog.load_table("sales.orders").metadata_location == first


def test_update_swaps_pointer_and_records_previous(catalog, put_metadata):
    v1, v2 = put_metadata("v1"), put_metadata("v2")
    catalog.register_table("sales.orders", v1)

    table = catalog.update_table("sales.orders", v2, v1)

    assert table.metadata_location == v2
    assert table.metadata.properties["origin"] == "v2"
    entry = _entry(catalog, "sales.orders")
    assert entry.metadata_location == v2
    assert entry.previous_metadata_location == v1


def test_update_of_missing_table_is_a_conflict(catalog, put_metadata):
    with pytest.raises(CommitConflictError):
        catalog.update_table("sales.orders", put_metadata("v2"), put_metadata("v1"))
    assert catalog.table_exists("sales.orders") is False


def test_commit_sequence_with_stale_writer(catalog, put_metadata):
    v1, v2, v3 = put_metadata("v1"), put_metadata("v2"), put_metadata("v3")
    catalog.register_table("ns.t1", v1)

    catalog.update_table("ns.t1", v2, v1)
    with pytest.raises(CommitConflictError):
        catalog.update_table("ns.t1", v3, v1)
    assert _entry(catalog, "ns.t1").metadata_location == v2

    catalog.update_table("ns.t1", v3, v2)
    assert _entry(catalog, "ns.t1").metadata_location == v3

    catalog.drop_table("ns.t1")
    with pytest.raises(NotFoundError):
        catalog.load_table("ns.t1")
    with pytest.raises(NotFoundError):
        catalog.drop_table("ns.t1")


def test_drop_removes_entry_but_not_metadata(catalog, put_metadata):
    loc = put_metadata("v1")
    catalog.register_table("sales.orders", loc)

    catalog.drop_table("sales.orders")

    assert catalog.table_exists("sales.orders") is False
    with pytest.raises(NotFoundError):
        catalog.load_table("sales.orders")
    assert catalog.io.get(loc)


def test_drop_with_expected_pointer_is_conditional(catalog, put_metadata):
    v1, v2 = put_metadata("v1"), put_metadata("v2")
    catalog.register_table("sales.orders", v1)
    catalog.update_table("sales.orders", v2, v1)

    with pytest.raises(CommitConflictError):
        catalog.drop_table("sales.orders", expected_metadata_location=v1)
    assert catalog.table_exists("sales.orders") is True

    catalog.drop_table("sales.orders", expected_metadata_location=v2)
    assert catalog.table_exists("sales.orders") is False


def test_list_tables_matches_namespace_exactly(catalog, put_metadata):
    loc = put_metadata("v1")
    catalog.register_table("sales.eu.orders", loc)
    catalog.register_table("sales.customers", loc)
    catalog.register_table("hr.people", loc)

    assert catalog.list_tables("sales") == [TableIdentifier.parse("sales.customers")]
    assert catalog.list_tables(("sales", "eu")) == [TableIdentifier.parse("sales.eu.orders")]
    assert catalog.list_tables("finance") == []
    assert set(catalog.list_namespaces()) == {
        Namespace.of("sales"),
        Namespace.of("sales", "eu"),
        Namespace.of("hr"),
    }


def test_catalogs_sharing_a_registry_are_isolated(put_metadata):
    registry, io = InMemoryRegistryStore(), InMemoryObjectStore()
    first = RegistryCatalog(registry, io)
    first.initialize("first")
    second = RegistryCatalog(registry, io)
    second.initialize("second")
    first.registry.insert(
        CatalogEntry("first", "sales", "orders", metadata_location="loc")
    )

    assert first.table_exists("sales.orders") is True
    assert second.table_exists("sales.orders") is False
    assert second.list_tables("sales") == []


def test_load_surfaces_missing_object_as_backend_error(catalog):
    missing = f"{catalog.properties['warehouse']}/missing.metadata.json"
    catalog.registry.insert(
        CatalogEntry("test", "sales", "orders", metadata_location=missing)
    )

    with pytest.raises(BackendError):
        catalog.load_table("sales.orders")
    assert catalog.table_exists("sales.orders") is True


def test_load_surfaces_garbage_as_decode_error(catalog):
    path = f"{catalog.properties['warehouse']}/garbage.metadata.json"
    catalog.io.put(path, b"not json at all")

    with pytest.raises(MetadataDecodeError):
        catalog.register_table("sales.orders", path)
    # the entry was recorded; only materializing the handle failed
    assert catalog.table_exists("sales.orders") is True


def test_invalidate_table_checks_existence(catalog, put_metadata):
    with pytest.raises(NotFoundError):
        catalog.invalidate_table("sales.orders")
    catalog.register_table("sales.orders", put_metadata("v1"))
    assert catalog.invalidate_table("sales.orders") is None


def test_operations_require_initialize():
    catalog = RegistryCatalog(InMemoryRegistryStore(), InMemoryObjectStore())

    with pytest.raises(CatalogError, match="not initialized"):
        catalog.table_exists("sales.orders")
    with pytest.raises(ValueError):
        catalog.initialize("")


class _DuplicateRowsRegistry(InMemoryRegistryStore):
    """Registry that pretends the primary key was violated."""

    def select(self, catalog_name, namespace, table_name):
        row = CatalogEntry(catalog_name, namespace, table_name, metadata_location="loc")
        return [row, row]

    def compare_and_swap(self, *args, **kwargs):
        return 2

    def delete(self, *args, **kwargs):
        return 2


def test_duplicate_rows_are_integrity_errors():
    catalog = RegistryCatalog(_DuplicateRowsRegistry(), InMemoryObjectStore())
    catalog.initialize("test")

    with pytest.raises(RegistryIntegrityError):
        catalog.load_table("sales.orders")
    with pytest.raises(RegistryIntegrityError):
        catalog.update_table("sales.orders", "new", "loc")
    with pytest.raises(RegistryIntegrityError):
        catalog.drop_table("sales.orders")
    assert catalog.table_exists("sales.orders") is False


def test_unknown_rowcount_is_a_backend_error():
    class _Registry(InMemoryRegistryStore):
        def compare_and_swap(self, *args, **kwargs):
            return -1

    catalog = RegistryCatalog(_Registry(), InMemoryObjectStore())
    catalog.initialize("test")

    with pytest.raises(BackendError):
        catalog.update_table("sales.orders", "new", "old")


def test_build_table_derives_location_and_wires_catalog(catalog, schema):
    builder = catalog.build_table("sales.eu.orders", schema, {"owner": "etl"})

    assert builder.location == f"{catalog.properties['warehouse']}/sales/eu/orders"
    assert builder.catalog is catalog
    assert builder.identifier == TableIdentifier.parse("sales.eu.orders")
    assert builder.schema == schema
    assert builder.properties == {"owner": "etl"}


def test_build_table_requires_warehouse(schema):
    catalog = RegistryCatalog(InMemoryRegistryStore(), InMemoryObjectStore())
    catalog.initialize("test")

    with pytest.raises(ValueError, match="warehouse"):
        catalog.build_table("sales.orders", schema)


def test_create_then_load_round_trips_schema(catalog, schema):
    created = catalog.create_table("sales.orders", schema, {"owner": "etl"})
    loaded = catalog.load_table("sales.orders")

    assert loaded.metadata_location == created.metadata_location
    assert loaded.metadata_location.startswith(f"{loaded.location}/metadata/00000-")
    assert catalog.io.get(loaded.metadata_location)
    assert loaded.schema().field_names() == ["order_id", "customer", "amount"]
    assert [f.type for f in loaded.schema().fields] == ["long", "string", "double"]
    assert [f.id for f in loaded.schema().fields] == [1, 2, 3]
    assert loaded.metadata.last_column_id == 3
    assert loaded.properties == {"owner": "etl"}


def test_create_existing_table_fails(catalog, schema):
    catalog.create_table("sales.orders", schema)

    with pytest.raises(AlreadyExistsError):
        catalog.create_table("sales.orders", schema)


def test_load_rejects_metadata_without_current_schema(catalog, schema):
    codec = JsonMetadataCodec()
    path = f"{catalog.properties['warehouse']}/dangling.metadata.json"
    doc = json.loads(codec.encode(new_table_metadata(catalog.properties["warehouse"], schema)))
    doc["current-schema-id"] = 7
    catalog.io.put(path, json.dumps(doc).encode("utf-8"))
    catalog.registry.insert(CatalogEntry("test", "sales", "orders", metadata_location=path))

    with pytest.raises(MetadataDecodeError):
        catalog.load_table("sales.orders")


def test_entry_without_pointer_exists_but_does_not_load(catalog):
    catalog.registry.insert(CatalogEntry("test", "sales", "orders", metadata_location=None))

    assert catalog.table_exists("sales.orders") is True
    with pytest.raises(NotFoundError, match="no committed metadata"):
        catalog.load_table("sales.orders")
