from __future__ import annotations

import sys
from pathlib import Path

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

import pytest  # noqa: E402

from metacat.core.adapters.localfs import LocalObjectStore  # noqa: E402
from metacat.core.adapters.memory import (  # noqa: E402
    InMemoryObjectStore,
    InMemoryRegistryStore,
)
from metacat.core.adapters.sqlregistry import SqlRegistryStore  # noqa: E402
from metacat.core.catalog import RegistryCatalog  # noqa: E402
from metacat.core.codec import JsonMetadataCodec  # noqa: E402
from metacat.core.models import Schema, SchemaField  # noqa: E402
from metacat.core.table import new_table_metadata  # noqa: E402


@pytest.fixture
def schema() -> Schema:
    return Schema.of(
        SchemaField(id=0, name="order_id", type="long", required=True),
        SchemaField(id=0, name="customer", type="string"),
        SchemaField(id=0, name="amount", type="double", doc="gross amount"),
    )


def _memory_catalog(tmp_path: Path) -> RegistryCatalog:
    catalog = RegistryCatalog(InMemoryRegistryStore(), InMemoryObjectStore())
    catalog.initialize("test", {"warehouse": "memory://warehouse"})
    return catalog


def _sqlite_catalog(tmp_path: Path) -> RegistryCatalog:
    registry = SqlRegistryStore.from_uri(f"sqlite:///{tmp_path / 'catalog.db'}")
    catalog = RegistryCatalog(registry, LocalObjectStore())
    catalog.initialize("test", {"warehouse": str(tmp_path / "warehouse")})
    return catalog


@pytest.fixture(params=["memory", "sqlite"])
def catalog(request, tmp_path: Path):
    """A catalog on each registry backend."""
    factory = _memory_catalog if request.param == "memory" else _sqlite_catalog
    cat = factory(tmp_path)
    yield cat
    cat.close()


@pytest.fixture
def put_metadata(catalog: RegistryCatalog, schema: Schema):
    """Write a valid metadata file at a location of the catalog's object store."""

    def _put(name: str) -> str:
        base = catalog.properties["warehouse"]
        path = f"{base}/files/{name}.metadata.json"
        metadata = new_table_metadata(f"{base}/files", schema, {"origin": name})
        catalog.io.put(path, JsonMetadataCodec().encode(metadata))
        return path

    return _put
