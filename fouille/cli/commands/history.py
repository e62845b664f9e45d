"""History command implementation."""

import typer
from typing_extensions import Annotated

from fouille.cli.runtime import run_with_service

app = typer.Typer(help="Show or clear recent searches")


@app.callback(invoke_without_command=True)
def history(
    ctx: typer.Context,
    limit: Annotated[
        int, typer.Option("--limit", "-n", help="Number of queries to show")
    ] = 20,
    clear: Annotated[
        bool, typer.Option("--clear", help="Forget all recent searches")
    ] = False,
):
    """Show recent searches, most recent first."""
    if clear:
        run_with_service(lambda service: service.history.clear(), save_history=True)
        typer.echo("Search history cleared.")
        return

    queries = run_with_service(lambda service: service.recent_queries(limit))

    if not queries:
        typer.echo("No recent searches.")
        return

    for query in queries:
        typer.echo(query)
