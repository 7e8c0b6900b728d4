"""CLI application for the metacat table catalog."""

import typer

from metacat.cli.commands.catalog import catalog_app
from metacat.cli.commands.tables import tables_app
from metacat.cli.common.options import VerboseOpt
from metacat.cli.common.output import configure_logging

app = typer.Typer(
    help="metacat - table metadata catalog",
    no_args_is_help=True,
)


@app.callback()
def _main(verbose: bool = VerboseOpt):
    """Configure logging for every command."""
    configure_logging(verbose)


app.add_typer(catalog_app, name="catalog", help="Initialize the registry / list namespaces.")
app.add_typer(tables_app, name="tables", help="List / load / register / commit / drop tables.")


if __name__ == "__main__":
    app()
