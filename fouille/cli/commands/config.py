"""Config command implementation.

Manages fouille configuration: accounts and search tuning.
"""

import typer
from typing_extensions import Annotated

from fouille.config import (
    CONFIG_FILE,
    get_search_settings,
    init_config,
    load_config,
    set_config_value,
)
from fouille.config.paths import CONFIG_DIR
from fouille.config.schema import AccountConfig

app = typer.Typer(help="Manage configuration")


@app.command()
def init(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite existing config")
    ] = False,
):
    """Initialize configuration directory and template config file."""
    created = init_config(overwrite=force)

    if created:
        typer.echo(f"Created config directory: {CONFIG_DIR}")
        typer.echo(f"Created config file: {CONFIG_FILE}")
        typer.echo()
        typer.echo("Edit the config file to add your Maildir accounts.")
    else:
        typer.echo(f"Config already exists at {CONFIG_FILE}")
        typer.echo("Use --force to overwrite.")


@app.command()
def show(
    account: Annotated[
        str | None, typer.Option("--account", "-a", help="Show specific account")
    ] = None,
):
    """Display current configuration.

    Search settings are shown with defaults filled in.
    """
    config = load_config()

    if not config:
        typer.echo("No configuration found.")
        typer.echo(f"Run 'fouille config init' to create {CONFIG_FILE}")
        return

    # Display effective search settings
    typer.echo("[search]")
    for key, value in get_search_settings(config).to_dict().items():
        typer.echo(f"  {key} = {value}")
    typer.echo()

    # Display accounts
    accounts = config.get("accounts", {})

    if not accounts:
        typer.echo("No accounts configured.")
        return

    if account:
        # Show specific account
        if account in accounts:
            _display_account(account, accounts[account])
        else:
            typer.echo(f"Account '{account}' not found.", err=True)
            raise typer.Exit(1)
    else:
        # Show all accounts
        for name, acct in accounts.items():
            _display_account(name, acct)


def _display_account(name: str, account: AccountConfig) -> None:
    """Display a single account configuration."""
    typer.echo(f"[accounts.{name}]")
    for key, value in account.items():
        typer.echo(f"  {key} = {value}")
    typer.echo()


@app.command("set")
def set_value(
    key: Annotated[
        str,
        typer.Argument(
            help="Configuration key (dot notation, e.g., 'search.min_score')"
        ),
    ],
    value: Annotated[str, typer.Argument(help="Configuration value")],
):
    """Set a configuration value using dot notation.

    Examples:
        fouille config set search.min_score 0.25
        fouille config set accounts.work.mail_dir ~/Mail/Work
    """
    try:
        set_config_value(key, value)
        typer.echo(f"Set {key} = {value}")
    except ValueError as e:
        typer.echo(f"Invalid value: {e}", err=True)
        raise typer.Exit(1)
