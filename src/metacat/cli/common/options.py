"""Common CLI options for the CLI."""

import typer

UriOpt = typer.Option(
    None,
    "--uri",
    help="Registry URI, e.g. sqlite:///catalog.db or postgresql://host/db (env METACAT_URI)",
)

CatalogOpt = typer.Option(
    None,
    "--catalog",
    "-c",
    help="Catalog name (env METACAT_CATALOG)",
)

WarehouseOpt = typer.Option(
    None,
    "--warehouse",
    "-w",
    help="Root location for new tables (env METACAT_WAREHOUSE)",
)

ProfileOpt = typer.Option(
    None,
    "--profile",
    "-p",
    help="Databricks CLI profile for volume warehouses (from ~/.databrickscfg)",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Show debug logging",
)

NameOpt = typer.Option(
    None,
    "--name",
    help="Regex filter on table full names",
)

DryRunOpt = typer.Option(
    False,
    "--dry-run",
    help="Show what would change, but do nothing",
)

YesOpt = typer.Option(
    False,
    "--yes",
    help="Skip confirmation prompt",
)
