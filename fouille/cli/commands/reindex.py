"""Reindex command implementation."""

import typer
from typing_extensions import Annotated

from fouille.cli.runtime import run_with_service
from fouille.config import get_account_names, load_config

app = typer.Typer(help="Rebuild the full-text index")


@app.callback(invoke_without_command=True)
def reindex(
    ctx: typer.Context,
    account: Annotated[
        str | None, typer.Option("--account", "-a", help="Account to reindex")
    ] = None,
):
    """Rebuild the full-text index for an account (default: first account)."""
    names = get_account_names(load_config())
    if not names:
        typer.echo("No account configured.", err=True)
        typer.echo()
        typer.echo("Run 'fouille config init' and add an account to config.toml")
        raise typer.Exit(1)

    account = account or names[0]
    if account not in names:
        typer.echo(f"Account '{account}' not found.", err=True)
        raise typer.Exit(1)

    typer.echo(f"Rebuilding index for {account}...")
    run_with_service(lambda service: service.rebuild_index(account))
    typer.echo("Index rebuilt.")
