from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from metacat.core.catalog import Catalog
from metacat.core.errors import CatalogError
from metacat.core.identifiers import TableIdentifier


@dataclass(frozen=True)
class TableDropResult:
    """Result for a single table drop."""

    table: str
    dropped: bool
    error: str | None = None


def filter_identifiers(
    identifiers: Iterable[TableIdentifier], name_regex: str | None
) -> list[TableIdentifier]:
    """Keep identifiers whose dotted form matches the regex (all if None)."""
    identifiers = list(identifiers)
    if not name_regex:
        return identifiers
    try:
        rx = re.compile(name_regex)
    except re.error as exc:
        raise ValueError(f"Invalid regex expression: {exc}") from exc
    return [i for i in identifiers if rx.search(i.render())]


def drop_tables(
    catalog: Catalog,
    identifiers: Iterable[TableIdentifier],
    *,
    expected_metadata_location: str | None = None,
    dry_run: bool = False,
) -> list[TableDropResult]:
    """
    Drop each table with its own registry delete.

    A failure on one table is recorded in its result and does not stop the
    others. Dropping never deletes metadata or data files.
    """
    results: list[TableDropResult] = []
    for ident in identifiers:
        name = ident.render()
        if dry_run:
            results.append(TableDropResult(table=name, dropped=False))
            continue
        try:
            catalog.drop_table(ident, expected_metadata_location)
            results.append(TableDropResult(table=name, dropped=True))
        except CatalogError as e:
            results.append(TableDropResult(table=name, dropped=False, error=str(e)))
    return results
