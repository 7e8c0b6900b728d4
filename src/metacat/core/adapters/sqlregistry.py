from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

import sqlalchemy as sql
import sqlalchemy.exc as sql_exc

from metacat.core.errors import AlreadyExistsError, BackendError
from metacat.core.models import CatalogEntry
from metacat.core.registry import (
    MAX_LOCATION_LENGTH,
    MAX_NAME_LENGTH,
    REGISTRY_TABLE,
)

logger = logging.getLogger(__name__)

_metadata = sql.MetaData()

iceberg_tables = sql.Table(
    REGISTRY_TABLE,
    _metadata,
    sql.Column("catalog_name", sql.String(MAX_NAME_LENGTH), nullable=False),
    sql.Column("table_namespace", sql.String(MAX_NAME_LENGTH), nullable=False),
    sql.Column("table_name", sql.String(MAX_NAME_LENGTH), nullable=False),
    sql.Column("metadata_location", sql.String(MAX_LOCATION_LENGTH), nullable=True),
    sql.Column(
        "previous_metadata_location", sql.String(MAX_LOCATION_LENGTH), nullable=True
    ),
    sql.PrimaryKeyConstraint("catalog_name", "table_namespace", "table_name"),
)


def _row_to_entry(row: sql.Row) -> CatalogEntry:
    return CatalogEntry(
        catalog_name=row.catalog_name,
        namespace=row.table_namespace,
        table_name=row.table_name,
        metadata_location=row.metadata_location,
        previous_metadata_location=row.previous_metadata_location,
    )


def _key_clause(catalog_name: str, namespace: str, table_name: str) -> sql.ColumnElement[bool]:
    return sql.and_(
        iceberg_tables.c.catalog_name == catalog_name,
        iceberg_tables.c.table_namespace == namespace,
        iceberg_tables.c.table_name == table_name,
    )


class SqlRegistryStore:
    """
    Registry store on a relational database through SQLAlchemy Core.

    Works against PostgreSQL (`postgresql+psycopg://...`) and SQLite files
    (`sqlite:///path/to/catalog.db`). Every statement is built from bound
    parameters, never from string concatenation of identifier parts.
    """

    def __init__(self, engine: sql.Engine) -> None:
        self.engine = engine

    @classmethod
    def from_uri(cls, uri: str, *, echo: bool = False) -> SqlRegistryStore:
        """Create a store with its own engine for `uri`."""
        try:
            engine = sql.create_engine(uri, echo=echo, pool_pre_ping=True)
        except (sql_exc.SQLAlchemyError, ImportError) as exc:
            raise BackendError(f"Could not create registry engine: {exc}") from exc
        return cls(engine)

    @contextmanager
    def _connect(self, action: str) -> Iterator[sql.Connection]:
        """Open a transaction and convert driver failures into BackendError."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except sql_exc.SQLAlchemyError as exc:
            raise BackendError(f"Registry {action} failed: {exc}") from exc

    def create_tables(self) -> None:
        try:
            _metadata.create_all(self.engine, checkfirst=True)
        except sql_exc.SQLAlchemyError as exc:
            raise BackendError(f"Registry table creation failed: {exc}") from exc
        logger.info("Ensured registry table %s exists", REGISTRY_TABLE)

    def insert(self, entry: CatalogEntry) -> None:
        stmt = sql.insert(iceberg_tables).values(
            catalog_name=entry.catalog_name,
            table_namespace=entry.namespace,
            table_name=entry.table_name,
            metadata_location=entry.metadata_location,
            previous_metadata_location=entry.previous_metadata_location,
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except sql_exc.IntegrityError as exc:
            raise AlreadyExistsError(
                f"Table {entry.namespace}.{entry.table_name} already exists "
                f"in catalog {entry.catalog_name}"
            ) from exc
        except sql_exc.SQLAlchemyError as exc:
            raise BackendError(f"Registry insert failed: {exc}") from exc
        logger.debug("Inserted %s.%s", entry.namespace, entry.table_name)

    def select(self, catalog_name: str, namespace: str, table_name: str) -> list[CatalogEntry]:
        stmt = sql.select(iceberg_tables).where(
            _key_clause(catalog_name, namespace, table_name)
        )
        with self._connect("select") as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_entry(r) for r in rows]

    def select_namespace(self, catalog_name: str, namespace: str) -> list[CatalogEntry]:
        stmt = sql.select(iceberg_tables).where(
            iceberg_tables.c.catalog_name == catalog_name,
            iceberg_tables.c.table_namespace == namespace,
        )
        with self._connect("list") as conn:
            rows = conn.execute(stmt).all()
        return [_row_to_entry(r) for r in rows]

    def select_namespaces(self, catalog_name: str) -> list[str]:
        stmt = (
            sql.select(iceberg_tables.c.table_namespace)
            .where(iceberg_tables.c.catalog_name == catalog_name)
            .distinct()
        )
        with self._connect("namespace list") as conn:
            return list(conn.execute(stmt).scalars())

    def compare_and_swap(
        self,
        catalog_name: str,
        namespace: str,
        table_name: str,
        new_location: str,
        expected_location: str,
    ) -> int:
        stmt = (
            sql.update(iceberg_tables)
            .where(
                _key_clause(catalog_name, namespace, table_name),
                iceberg_tables.c.metadata_location == expected_location,
            )
            .values(
                metadata_location=new_location,
                previous_metadata_location=expected_location,
            )
        )
        with self._connect("update") as conn:
            result = conn.execute(stmt)
        logger.debug(
            "Conditional update of %s.%s affected %d row(s)",
            namespace,
            table_name,
            result.rowcount,
        )
        return result.rowcount

    def delete(
        self,
        catalog_name: str,
        namespace: str,
        table_name: str,
        expected_location: str | None = None,
    ) -> int:
        stmt = sql.delete(iceberg_tables).where(
            _key_clause(catalog_name, namespace, table_name)
        )
        if expected_location is not None:
            stmt = stmt.where(iceberg_tables.c.metadata_location == expected_location)
        with self._connect("delete") as conn:
            result = conn.execute(stmt)
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()
