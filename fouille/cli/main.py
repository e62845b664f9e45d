"""Main CLI entry point for fouille."""

import typer
from typing_extensions import Annotated

from fouille import __version__
from fouille.cli import commands
from fouille.log import configure_logging
from fouille.search import OPERATORS

app = typer.Typer(
    name="fouille",
    help="Hybrid full-text and semantic search for your local mail",
    no_args_is_help=True,
)

# Register commands
app.add_typer(commands.search.app, name="search")
app.add_typer(commands.suggest.app, name="suggest")
app.add_typer(commands.history.app, name="history")
app.add_typer(commands.reindex.app, name="reindex")
app.add_typer(commands.config.app, name="config")


@app.callback()
def setup(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logging")
    ] = False,
    log_format: Annotated[
        str, typer.Option("--log-format", help="Log format: console, json")
    ] = "console",
):
    """Configure logging before any command runs."""
    configure_logging("DEBUG" if verbose else "WARNING", log_format)


@app.command()
def version():
    """Show version information."""
    typer.echo(f"fouille version {__version__}")


@app.command()
def operators():
    """List the operators understood in search queries."""
    width = max(len(op.example) for op in OPERATORS)
    for op in OPERATORS:
        typer.echo(f"  {op.example.ljust(width)}  {op.description}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
