"""Wiring shared by the CLI commands.

Builds a SearchService from the config file and keeps the query history
file in sync around each command.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer

from fouille.config import get_account_paths, get_search_settings, load_config
from fouille.search import (
    MAX_HISTORY,
    BackendError,
    NotmuchBackend,
    QueryHistory,
    SearchService,
)
from fouille.search.history_file import HistoryFile

T = TypeVar("T")


def build_service(history_file: HistoryFile) -> SearchService:
    """Create a SearchService for the configured accounts.

    No semantic backend is wired in from the CLI, so hybrid searches run
    full-text only.
    """
    config = load_config()

    return SearchService(
        NotmuchBackend(get_account_paths(config)),
        settings=get_search_settings(config),
        history=QueryHistory(history_file.load()),
    )


def run_with_service(
    action: Callable[[SearchService], Awaitable[T]],
    *,
    save_history: bool = False,
) -> T:
    """Run an async action against a fresh service.

    Backend errors are reported on stderr and exit with status 1.

    Args:
        action: Coroutine function receiving the service.
        save_history: Write the (possibly updated) history back to disk,
                      even if the action fails.
    """
    history_file = HistoryFile()
    service = build_service(history_file)

    async def _run() -> T:
        try:
            return await action(service)
        finally:
            if save_history:
                history_file.save(await service.recent_queries(MAX_HISTORY))

    try:
        return asyncio.run(_run())
    except BackendError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
