"""Search service combining full-text and semantic search.

The SearchService decides which backends to query for a SearchQuery, runs
them concurrently in hybrid mode, merges their hits into one ranking and
returns a page of results. It also owns the shared search settings and the
recent-query history used for suggestions.
"""

import asyncio
import time

import structlog

from .backends import LexicalBackend, SemanticBackend
from .history import MAX_HISTORY, QueryHistory
from .merge import merge_results
from .models import LexicalHit, SearchMode, SearchQuery, SearchResults, SemanticHit
from .settings import SearchSettings, SettingsStore

logger = structlog.get_logger("fouille.search.service")


class SearchService:
    """Unified search over a lexical and an optional semantic backend.

    Failure policy:
    - Lexical backend errors propagate unchanged (no retry).
    - Semantic backend errors are logged and treated as "no semantic hits",
      so the search still returns full-text results.
    - Metadata lookup errors propagate.

    Example:
        service = SearchService(NotmuchBackend(accounts))
        results = await service.search(SearchQuery("quarterly report"))
        for hit in results.hits:
            print(hit.score, hit.subject)
    """

    def __init__(
        self,
        lexical: LexicalBackend,
        semantic: SemanticBackend | None = None,
        settings: SearchSettings | None = None,
        history: QueryHistory | None = None,
    ):
        """Initialize the search service.

        Args:
            lexical: Full-text backend, also used for metadata and reindexing.
            semantic: Optional embedding backend. When None, semantic search
                      is disabled regardless of settings.
            settings: Initial settings (defaults if omitted).
            history: Query history to record into (empty if omitted).
        """
        self._lexical = lexical
        self._semantic = semantic
        self._settings = SettingsStore(settings)
        self._history = history if history is not None else QueryHistory()

    @property
    def history(self) -> QueryHistory:
        """The query history this service records into."""
        return self._history

    async def settings(self) -> SearchSettings:
        """Return the current settings snapshot."""
        return await self._settings.get()

    async def update_settings(self, settings: SearchSettings) -> None:
        """Replace the search settings."""
        await self._settings.replace(settings)

    async def search(self, query: SearchQuery) -> SearchResults:
        """Execute a search query.

        Args:
            query: The query to run.

        Returns:
            One page of results, plus the total number of matches.

        Raises:
            Any error from the lexical backend or the metadata lookup.
        """
        start = time.monotonic()
        settings = await self._settings.get()

        # Track the query for suggestions, even if it finds nothing
        await self._history.record(query.text)

        semantic_available = settings.semantic_enabled and self._semantic is not None

        lexical_hits: list[LexicalHit] = []
        semantic_hits: list[SemanticHit] = []

        if query.mode == SearchMode.FULL_TEXT or not semantic_available:
            # Semantic mode falls back to full-text when semantic is off
            lexical_hits = await self._lexical.lexical_search(query)
        elif query.mode == SearchMode.SEMANTIC:
            semantic_hits = await self._safe_semantic_search(query)
        else:
            lexical_hits, semantic_hits = await self._hybrid_search(query)

        used_semantic = bool(semantic_hits)

        merged = await merge_results(lexical_hits, semantic_hits, settings, self._lexical)

        total = len(merged)
        offset = max(query.offset, 0)
        hits = merged[offset : offset + max(query.limit, 0)]

        took_ms = int((time.monotonic() - start) * 1000)

        logger.debug(
            "search_completed",
            mode=query.mode.value,
            lexical_hits=len(lexical_hits),
            semantic_hits=len(semantic_hits),
            total=total,
            took_ms=took_ms,
        )

        return SearchResults(
            hits=hits,
            total=total,
            query=query.text,
            took_ms=took_ms,
            used_semantic=used_semantic,
        )

    async def _hybrid_search(
        self, query: SearchQuery
    ) -> tuple[list[LexicalHit], list[SemanticHit]]:
        """Run full-text and semantic search concurrently.

        Both calls run as separate tasks and are awaited together. A
        full-text failure is re-raised; a semantic failure degrades to no
        semantic hits. Cancelling the caller cancels both tasks.
        """
        lexical_result, semantic_result = await asyncio.gather(
            self._lexical.lexical_search(query),
            self._semantic.semantic_search(query.text, query.account_ids),
            return_exceptions=True,
        )

        if isinstance(lexical_result, BaseException):
            raise lexical_result

        if isinstance(semantic_result, BaseException):
            self._log_semantic_failure(query, semantic_result)
            semantic_result = []

        return lexical_result, semantic_result

    async def _safe_semantic_search(self, query: SearchQuery) -> list[SemanticHit]:
        """Call the semantic backend, treating failures as no hits."""
        try:
            return await self._semantic.semantic_search(query.text, query.account_ids)
        except Exception as e:
            self._log_semantic_failure(query, e)
            return []

    def _log_semantic_failure(self, query: SearchQuery, error: BaseException) -> None:
        logger.warning(
            "semantic_search_failed",
            mode=query.mode.value,
            error=str(error),
            error_type=type(error).__name__,
        )

    async def recent_queries(self, limit: int = MAX_HISTORY) -> list[str]:
        """Return recent distinct queries, most recent first."""
        return await self._history.recent(limit)

    async def suggest(self, prefix: str, limit: int = 10) -> list[str]:
        """Return recent queries starting with `prefix` (case-insensitive)."""
        return await self._history.suggest(prefix, limit)

    async def rebuild_index(self, account: str) -> None:
        """Rebuild the full-text index for an account.

        Raises:
            Any error from the lexical backend, unchanged.
        """
        logger.info("index_rebuild_started", account=account)
        await self._lexical.rebuild_index(account)
        logger.info("index_rebuild_finished", account=account)
