"""Suggest command implementation."""

import typer
from typing_extensions import Annotated

from fouille.cli.runtime import run_with_service

app = typer.Typer(help="Suggest queries from your search history")


@app.callback(invoke_without_command=True)
def suggest(
    ctx: typer.Context,
    prefix: Annotated[str, typer.Argument(help="Beginning of a query")] = "",
    limit: Annotated[
        int, typer.Option("--limit", "-n", help="Maximum number of suggestions")
    ] = 10,
):
    """Suggest past queries starting with PREFIX (case-insensitive)."""
    suggestions = run_with_service(lambda service: service.suggest(prefix, limit))

    for suggestion in suggestions:
        typer.echo(suggestion)
