import pytest

from metacat.core.bulk import drop_tables, filter_identifiers
from metacat.core.errors import CommitConflictError, NotFoundError
from metacat.core.identifiers import TableIdentifier


def _idents(*names: str) -> list[TableIdentifier]:
    return [TableIdentifier.parse(n) for n in names]


def test_drop_tables_dry_run_does_not_call_catalog():
    class _Catalog:
        def __init__(self):
            self.calls: list[str] = []

        def drop_table(self, identifier, expected_metadata_location=None) -> None:
            self.calls.append(f"drop_table:{identifier}")

    catalog = _Catalog()
    results = drop_tables(catalog, _idents("sales.t1"), dry_run=True)

    assert catalog.calls == []
    assert len(results) == 1
    assert results[0].table == "sales.t1"
    assert results[0].dropped is False
    assert results[0].error is None


def test_drop_tables_collects_per_table_errors():
    class _Catalog:
        def drop_table(self, identifier, expected_metadata_location=None) -> None:
            if identifier.name == "gone":
                raise NotFoundError(f"Table does not exist: {identifier}")
            if identifier.name == "moved":
                raise CommitConflictError("pointer moved")

    results = drop_tables(_Catalog(), _idents("sales.good", "sales.gone", "sales.moved"))

    by_table = {r.table: r for r in results}
    assert by_table["sales.good"].dropped is True
    assert by_table["sales.good"].error is None
    assert by_table["sales.gone"].dropped is False
    assert "does not exist" in (by_table["sales.gone"].error or "")
    assert "pointer moved" in (by_table["sales.moved"].error or "")


def test_drop_tables_passes_expected_location():
    seen = []

    class _Catalog:
        def drop_table(self, identifier, expected_metadata_location=None) -> None:
            seen.append((identifier.render(), expected_metadata_location))

    drop_tables(_Catalog(), _idents("sales.t1"), expected_metadata_location="loc")

    assert seen == [("sales.t1", "loc")]


def test_drop_tables_against_catalog(catalog, put_metadata):
    loc = put_metadata("v1")
    catalog.register_table("sales.a", loc)
    catalog.register_table("sales.b", loc)

    results = drop_tables(catalog, catalog.list_tables("sales") + _idents("sales.c"))

    assert sorted(r.table for r in results if r.dropped) == ["sales.a", "sales.b"]
    assert catalog.list_tables("sales") == []


def test_filter_identifiers_by_regex():
    idents = _idents("sales.tmp_1", "sales.orders", "sales.tmp_2")

    assert [i.name for i in filter_identifiers(idents, r"\.tmp_")] == ["tmp_1", "tmp_2"]
    assert filter_identifiers(idents, None) == idents


def test_filter_identifiers_rejects_invalid_regex():
    with pytest.raises(ValueError, match="Invalid regex"):
        filter_identifiers(_idents("sales.t"), "(")
