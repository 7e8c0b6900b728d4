"""In-memory registry and object store.

Both are process-local and are meant for tests and throwaway catalogs. The
registry keeps a lock only to make each primitive behave like a single
atomic statement of a relational engine.
"""

from __future__ import annotations

import logging
import threading

from metacat.core.errors import AlreadyExistsError, BackendError
from metacat.core.models import CatalogEntry

logger = logging.getLogger(__name__)

_Key = tuple[str, str, str]


class InMemoryRegistryStore:
    """Registry store keyed by (catalog_name, namespace, table_name)."""

    def __init__(self) -> None:
        self._rows: dict[_Key, CatalogEntry] = {}
        self._lock = threading.Lock()

    def create_tables(self) -> None:
        return None

    def insert(self, entry: CatalogEntry) -> None:
        key = (entry.catalog_name, entry.namespace, entry.table_name)
        with self._lock:
            if key in self._rows:
                raise AlreadyExistsError(
                    f"Table {entry.namespace}.{entry.table_name} already exists "
                    f"in catalog {entry.catalog_name}"
                )
            self._rows[key] = entry

    def select(self, catalog_name: str, namespace: str, table_name: str) -> list[CatalogEntry]:
        with self._lock:
            row = self._rows.get((catalog_name, namespace, table_name))
        return [row] if row is not None else []

    def select_namespace(self, catalog_name: str, namespace: str) -> list[CatalogEntry]:
        with self._lock:
            return [
                row
                for (cat, ns, _), row in self._rows.items()
                if cat == catalog_name and ns == namespace
            ]

    def select_namespaces(self, catalog_name: str) -> list[str]:
        with self._lock:
            # dict preserves first-seen order
            return list(dict.fromkeys(ns for cat, ns, _ in self._rows if cat == catalog_name))

    def compare_and_swap(
        self,
        catalog_name: str,
        namespace: str,
        table_name: str,
        new_location: str,
        expected_location: str,
    ) -> int:
        key = (catalog_name, namespace, table_name)
        with self._lock:
            row = self._rows.get(key)
            if row is None or row.metadata_location != expected_location:
                return 0
            self._rows[key] = CatalogEntry(
                catalog_name=catalog_name,
                namespace=namespace,
                table_name=table_name,
                metadata_location=new_location,
                previous_metadata_location=expected_location,
            )
            return 1

    def delete(
        self,
        catalog_name: str,
        namespace: str,
        table_name: str,
        expected_location: str | None = None,
    ) -> int:
        key = (catalog_name, namespace, table_name)
        with self._lock:
            row = self._rows.get(key)
            if row is None:
                return 0
            if expected_location is not None and row.metadata_location != expected_location:
                return 0
            del self._rows[key]
            return 1

    def close(self) -> None:
        return None


class InMemoryObjectStore:
    """Object store backed by a dict of location -> bytes."""

    def __init__(self) -> None:
        self._objects: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, path: str) -> bytes:
        with self._lock:
            try:
                return self._objects[path]
            except KeyError:
                raise BackendError(f"No object at {path}") from None

    def put(self, path: str, data: bytes) -> None:
        with self._lock:
            self._objects[path] = bytes(data)
        logger.debug("Stored %d bytes at %s", len(data), path)

    def copy(self, src: str, dst: str) -> None:
        self.put(dst, self.get(src))

    def exists(self, path: str) -> bool:
        with self._lock:
            return path in self._objects
