"""Search command implementation."""

import json
from datetime import datetime, timedelta, timezone

import typer
from typing_extensions import Annotated

from fouille.cli.runtime import run_with_service
from fouille.config import get_search_settings, load_config
from fouille.search import SearchMode, SearchResults, parse_query
from fouille.search.operators import parse_date, parse_folder

app = typer.Typer(help="Search emails by keyword and meaning")


@app.callback(invoke_without_command=True)
def search(
    ctx: typer.Context,
    query: Annotated[
        str,
        typer.Argument(help="Search query; supports operators like from: and is:unread"),
    ] = "",
    mode: Annotated[
        SearchMode, typer.Option("--mode", "-m", help="Search mode")
    ] = SearchMode.HYBRID,
    account: Annotated[
        list[str] | None,
        typer.Option("--account", "-a", help="Limit to account (repeatable)"),
    ] = None,
    folder: Annotated[
        str | None, typer.Option("--folder", help="Limit to folder or label")
    ] = None,
    from_: Annotated[
        str | None, typer.Option("--from", help="Filter by sender")
    ] = None,
    to: Annotated[str | None, typer.Option("--to", help="Filter by recipient")] = None,
    since: Annotated[
        str | None, typer.Option("--since", help="Start date (YYYY-MM-DD)")
    ] = None,
    until: Annotated[
        str | None, typer.Option("--until", help="End date, inclusive (YYYY-MM-DD)")
    ] = None,
    attachment: Annotated[
        bool | None,
        typer.Option("--attachment/--no-attachment", help="Filter by attachments"),
    ] = None,
    unread: Annotated[
        bool, typer.Option("--unread", help="Only unread messages")
    ] = False,
    starred: Annotated[
        bool, typer.Option("--starred", help="Only starred messages")
    ] = False,
    limit: Annotated[
        int | None, typer.Option("--limit", "-n", help="Results per page")
    ] = None,
    offset: Annotated[
        int, typer.Option("--offset", help="Results to skip")
    ] = 0,
    format: Annotated[
        str, typer.Option("--format", help="Output format: summary, json, ids")
    ] = "summary",
):
    """Search emails across the full-text index and semantic backend."""
    if format not in ("summary", "json", "ids"):
        typer.echo(f"Unknown format: {format}", err=True)
        raise typer.Exit(1)

    search_query = parse_query(query)

    # Explicit options win over operators in the query text
    if account:
        search_query = search_query.with_accounts(account)
    if folder:
        search_query = search_query.with_folder(parse_folder(folder))
    if from_:
        search_query = search_query.with_from(from_)
    if to:
        search_query = search_query.with_to(to)
    if attachment is not None:
        search_query = search_query.with_attachment(attachment)
    if unread:
        search_query = search_query.with_unread(True)
    if starred:
        search_query = search_query.with_starred(True)

    if since or until:
        try:
            start = parse_date(since) if since else datetime(1970, 1, 1, tzinfo=timezone.utc)
            end = (
                parse_date(until) + timedelta(days=1, microseconds=-1)
                if until
                else datetime.now(timezone.utc)
            )
        except ValueError as e:
            typer.echo(f"Invalid date: {e}", err=True)
            raise typer.Exit(1)
        search_query = search_query.with_date_range(start, end)

    if limit is None:
        limit = get_search_settings(load_config()).default_limit

    search_query = (
        search_query.with_limit(limit).with_offset(offset).with_mode(mode)
    )

    results = run_with_service(
        lambda service: service.search(search_query), save_history=True
    )
    _print_results(results, format)


def _print_results(results: SearchResults, format: str) -> None:
    """Print results in the requested format."""
    if format == "json":
        typer.echo(json.dumps(results.to_dict(), indent=2))
        return

    if format == "ids":
        for hit in results.hits:
            typer.echo(hit.email_id)
        return

    if not results.hits:
        typer.echo("No messages found.")
        return

    for hit in results.hits:
        marker = " " if hit.is_read else "*"
        date = hit.date.strftime("%Y-%m-%d %H:%M")
        typer.echo(f"{marker} {date}  {hit.from_addr}")
        typer.echo(f"  {hit.subject or '(no subject)'}")
        if hit.snippet:
            typer.echo(f"  {hit.snippet}")
        typer.echo(f"  [{hit.source.value} {hit.score:.2f}] {hit.email_id}")
        typer.echo()

    typer.echo(
        f"{len(results.hits)} of {results.total} results ({results.took_ms} ms)"
    )
