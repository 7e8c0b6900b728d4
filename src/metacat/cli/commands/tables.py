from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import typer

from metacat.cli.common.context import CatalogAppContext, build_catalog_context
from metacat.cli.common.exits import NOT_FOUND, USAGE_ERROR, die, exit_from_exc
from metacat.cli.common.options import (
    CatalogOpt,
    DryRunOpt,
    NameOpt,
    ProfileOpt,
    UriOpt,
    WarehouseOpt,
    YesOpt,
)
from metacat.cli.common.output import out
from metacat.core.bulk import drop_tables, filter_identifiers
from metacat.core.codec import schema_from_dict
from metacat.core.errors import CatalogError, CommitConflictError
from metacat.core.identifiers import Namespace, TableIdentifier
from metacat.core.models import Schema

tables_app = typer.Typer(
    help="Table registration, lookup, commits and drops.",
    no_args_is_help=False,
    invoke_without_command=True,
)


@tables_app.callback()
def _init(
    ctx: typer.Context,
    uri: str | None = UriOpt,
    catalog: str | None = CatalogOpt,
    warehouse: str | None = WarehouseOpt,
    profile: str | None = ProfileOpt,
):
    """Open the catalog for table commands."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)
    ctx.obj = build_catalog_context(
        uri=uri, catalog=catalog, warehouse=warehouse, profile=profile
    )
    ctx.call_on_close(ctx.obj.catalog.close)


def _parse_identifier_or_exit(value: str) -> TableIdentifier:
    try:
        return TableIdentifier.parse(value)
    except ValueError as exc:
        out.error(str(exc))
        raise typer.Exit(USAGE_ERROR) from exc


def _parse_namespace_or_exit(value: str) -> Namespace:
    try:
        return Namespace.parse(value.strip())
    except ValueError as exc:
        out.error(str(exc))
        raise typer.Exit(USAGE_ERROR) from exc


def _parse_properties_or_exit(values: list[str]) -> dict[str, str]:
    """Parse repeated `key=value` options."""
    props: dict[str, str] = {}
    for raw in values:
        key, sep, value = raw.partition("=")
        if not sep or not key.strip():
            die(f"Invalid property '{raw}', expected key=value.", code=USAGE_ERROR)
        props[key.strip()] = value.strip()
    return props


def _load_schema_or_exit(path: Path) -> Schema:
    try:
        raw = json.loads(path.read_text())
        return schema_from_dict(raw)
    except OSError as exc:
        out.error(f"Could not read schema file {path}: {exc}")
        raise typer.Exit(USAGE_ERROR) from exc
    except ValueError as exc:
        out.error(f"Invalid schema file {path}: {exc}")
        raise typer.Exit(USAGE_ERROR) from exc


def _format_ms(value: int) -> str:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat(timespec="seconds")


@tables_app.command("list")
def list_tables(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Namespace, e.g. sales or sales.eu"),
    name: str | None = NameOpt,
):
    """List the tables of a namespace."""
    appctx: CatalogAppContext = ctx.obj
    ns = _parse_namespace_or_exit(namespace)

    try:
        with out.status("Loading tables..."):
            idents = appctx.catalog.list_tables(ns)
    except CatalogError as exc:
        exit_from_exc(exc, message=f"Could not list tables in '{ns}': {exc}")

    try:
        idents = filter_identifiers(idents, name)
    except ValueError as exc:
        die(str(exc), code=USAGE_ERROR)

    if not idents:
        out.warn("No tables found.")
        raise typer.Exit(0)

    out.header("Tables")
    out.info(f"Catalog: {appctx.config.name} | Namespace: {ns} | Tables: {len(idents)}")
    out.tables_table(sorted(idents, key=lambda i: i.render()))


@tables_app.command("show")
def show_table(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Table in the form namespace.table"),
):
    """Load a table and print its current metadata."""
    appctx: CatalogAppContext = ctx.obj
    ident = _parse_identifier_or_exit(identifier)

    try:
        with out.status("Loading table..."):
            table = appctx.catalog.load_table(ident)
    except CatalogError as exc:
        exit_from_exc(exc, message=f"Could not load '{ident}': {exc}")

    meta = table.metadata
    out.header(str(ident))
    out.kv(
        {
            "Metadata location": table.metadata_location,
            "Location": meta.location,
            "Table UUID": meta.table_uuid,
            "Format version": meta.format_version,
            "Last updated": _format_ms(meta.last_updated_ms),
            "Previous versions": len(meta.metadata_log),
            "Properties": ", ".join(f"{k}={v}" for k, v in meta.properties.items()) or "-",
        }
    )
    out.schema_table(table.schema())


@tables_app.command("exists")
def table_exists(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Table in the form namespace.table"),
):
    """Print whether a table is registered (exit 0 if so, 3 otherwise)."""
    appctx: CatalogAppContext = ctx.obj
    ident = _parse_identifier_or_exit(identifier)

    try:
        exists = appctx.catalog.table_exists(ident)
    except CatalogError as exc:
        exit_from_exc(exc)

    typer.echo("yes" if exists else "no")
    raise typer.Exit(0 if exists else NOT_FOUND)


@tables_app.command("register")
def register_table(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Table in the form namespace.table"),
    metadata_location: str = typer.Argument(..., help="Location of an existing metadata file"),
):
    """Register an existing metadata file as a new table."""
    appctx: CatalogAppContext = ctx.obj
    ident = _parse_identifier_or_exit(identifier)

    try:
        with out.status("Registering table..."):
            table = appctx.catalog.register_table(ident, metadata_location)
    except CatalogError as exc:
        exit_from_exc(exc, message=f"Could not register '{ident}': {exc}")

    out.success(f"Registered {ident} -> {table.metadata_location}")


@tables_app.command("create")
def create_table(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Table in the form namespace.table"),
    schema_file: Path = typer.Option(
        ..., "--schema-file", "-s", help="JSON schema: list of {name, type, required?, doc?}"
    ),
    prop: list[str] = typer.Option(
        [], "--property", help="Table property (key=value). This is reusable.", show_default=False
    ),
):
    """Create a table: write initial metadata under the warehouse, then register it."""
    appctx: CatalogAppContext = ctx.obj
    ident = _parse_identifier_or_exit(identifier)
    schema = _load_schema_or_exit(schema_file)
    properties = _parse_properties_or_exit(prop)

    try:
        with out.status("Creating table..."):
            table = appctx.catalog.create_table(ident, schema, properties)
    except ValueError as exc:
        die(str(exc), code=USAGE_ERROR)
    except CatalogError as exc:
        exit_from_exc(exc, message=f"Could not create '{ident}': {exc}")

    out.success(f"Created {ident} at {table.location}")
    out.kv({"Metadata location": table.metadata_location})


@tables_app.command("update")
def update_table(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Table in the form namespace.table"),
    new_location: str = typer.Argument(..., help="Location of the new metadata file"),
    previous: str = typer.Option(
        ..., "--previous", help="Metadata location the new version was based on"
    ),
):
    """Swap a table's metadata pointer if it still equals --previous."""
    appctx: CatalogAppContext = ctx.obj
    ident = _parse_identifier_or_exit(identifier)

    try:
        with out.status("Committing..."):
            table = appctx.catalog.update_table(ident, new_location, previous)
    except CommitConflictError as exc:
        exit_from_exc(exc, message=f"{exc}. Reload the table and retry.")
    except CatalogError as exc:
        exit_from_exc(exc, message=f"Could not update '{ident}': {exc}")

    out.success(f"Committed {ident} -> {table.metadata_location}")


@tables_app.command("drop")
def drop(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Namespace, e.g. sales or sales.eu"),
    name: str | None = NameOpt,
    all_: bool = typer.Option(
        False, "--all", help="Drop all matched tables without selection UI"
    ),
    expect: str | None = typer.Option(
        None,
        "--expect",
        help="Only drop if the current metadata location equals this (single table)",
    ),
    dry_run: bool = DryRunOpt,
    yes: bool = YesOpt,
):
    """Drop one or more tables from the catalog (metadata files are kept)."""
    appctx: CatalogAppContext = ctx.obj
    ns = _parse_namespace_or_exit(namespace)

    try:
        with out.status("Loading tables..."):
            idents = appctx.catalog.list_tables(ns)
        idents = filter_identifiers(idents, name)
    except ValueError as exc:
        die(str(exc), code=USAGE_ERROR)
    except CatalogError as exc:
        exit_from_exc(exc, message=f"Could not list tables in '{ns}': {exc}")

    if not idents:
        out.warn("No tables found.")
        raise typer.Exit(0)

    by_name = {i.render(): i for i in idents}
    full_names = sorted(by_name)
    out.header("Matched tables")
    out.tables_table(full_names, title="Matched tables")

    selected = (
        full_names if all_ else out.select_many("Select tables to drop:", full_names)
    )
    if not selected:
        out.warn("No tables selected.")
        raise typer.Exit(0)
    if expect is not None and len(selected) != 1:
        die(
            f"--expect guards a single table; {len(selected)} were selected. "
            "Narrow the selection with --name.",
            code=USAGE_ERROR,
        )

    out.info(f"Matched: {len(full_names)} | Selected: {len(selected)}")
    if dry_run:
        out.warn("DRY RUN: no changes will be made.")

    if not yes and not dry_run:
        if not out.confirm("Proceed with dropping the selected tables?"):
            out.warn("Cancelled.")
            raise typer.Exit(0)

    status_msg = "Planning table drops..." if dry_run else "Dropping tables..."
    with out.status(status_msg):
        results = drop_tables(
            appctx.catalog,
            [by_name[n] for n in selected],
            expected_metadata_location=expect,
            dry_run=dry_run,
        )

    out.drop_results_table(results)

    failed = [r for r in results if r.error]
    if failed:
        out.error(f"Failed to drop {len(failed)} table(s).")
        raise typer.Exit(1)

    if dry_run:
        out.success(f"Dry-run complete: {len(results)} table(s) would be dropped.")
    else:
        out.success(f"Dropped {len(results)} table(s).")
