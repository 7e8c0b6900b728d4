"""Commands for managing the catalog registry itself."""

import typer

from metacat.cli.common.context import CatalogAppContext, build_catalog_context
from metacat.cli.common.exits import exit_from_exc
from metacat.cli.common.options import CatalogOpt, ProfileOpt, UriOpt, WarehouseOpt
from metacat.cli.common.output import out
from metacat.core.config import RegistryType
from metacat.core.errors import CatalogError

catalog_app = typer.Typer(
    help="Catalog registry operations.",
    no_args_is_help=False,
    invoke_without_command=True,
)


@catalog_app.callback()
def _init(
    ctx: typer.Context,
    uri: str | None = UriOpt,
    catalog: str | None = CatalogOpt,
    warehouse: str | None = WarehouseOpt,
    profile: str | None = ProfileOpt,
):
    """Open the catalog for registry commands."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)
    ctx.obj = build_catalog_context(
        uri=uri, catalog=catalog, warehouse=warehouse, profile=profile
    )
    ctx.call_on_close(ctx.obj.catalog.close)


@catalog_app.command("init")
def init(ctx: typer.Context):
    """Create the registry table if it does not exist."""
    appctx: CatalogAppContext = ctx.obj
    config = appctx.config

    # Opening the context already ran initialize(); report what it ensured.
    if config.registry_type is RegistryType.MEMORY:
        out.warn("In-memory registry: nothing is persisted after this command exits.")

    out.header("Catalog")
    out.kv(
        {
            "Name": config.name,
            "Registry": f"{config.registry_type.value} ({config.uri})",
            "Warehouse": config.warehouse or "-",
            "Object store": config.io_type.value,
        }
    )
    out.success("Registry table is ready.")


@catalog_app.command("namespaces")
def namespaces(ctx: typer.Context):
    """List namespaces that contain at least one table."""
    appctx: CatalogAppContext = ctx.obj

    try:
        with out.status("Loading namespaces..."):
            found = appctx.catalog.list_namespaces()
    except CatalogError as exc:
        exit_from_exc(exc, message=f"Could not list namespaces: {exc}")

    if not found:
        out.warn("No namespaces found.")
        raise typer.Exit(0)

    out.header("Namespaces")
    out.info(f"Catalog: {appctx.config.name} | Namespaces: {len(found)}")
    out.namespaces_table(sorted(found, key=lambda ns: ns.levels))
