"""Tests for SearchService dispatch, degradation, paging and history."""

import asyncio

import pytest

from fouille.search import (
    QueryHistory,
    SearchMode,
    SearchQuery,
    SearchService,
    SearchSettings,
    SearchSource,
)


@pytest.fixture
def settings() -> SearchSettings:
    return SearchSettings(lexical_weight=0.6, semantic_weight=0.4, min_score=0.3)


@pytest.fixture
def service(lexical, semantic, settings) -> SearchService:
    """Service wired to both fake backends."""
    return SearchService(lexical, semantic, settings=settings)


class TestModeDispatch:
    """Which backends run for each mode."""

    @pytest.mark.asyncio
    async def test_full_text_mode_skips_semantic(self, service, lexical, semantic):
        """FULL_TEXT calls only the lexical backend."""
        lexical.add_hit("E1", 0.8)

        results = await service.search(SearchQuery("report").with_mode(SearchMode.FULL_TEXT))

        assert len(lexical.search_calls) == 1
        assert semantic.calls == []
        assert results.used_semantic is False
        assert results.hits[0].score == pytest.approx(0.48)
        assert results.hits[0].source == SearchSource.FULL_TEXT

    @pytest.mark.asyncio
    async def test_semantic_mode_skips_lexical(self, service, lexical, semantic):
        """SEMANTIC calls only the semantic backend when it's enabled."""
        lexical.add_metadata("E1")
        semantic.add_hit("E1", 0.9)

        results = await service.search(SearchQuery("report").with_mode(SearchMode.SEMANTIC))

        assert lexical.search_calls == []
        assert len(semantic.calls) == 1
        assert results.used_semantic is True
        assert results.hits[0].source == SearchSource.SEMANTIC

    @pytest.mark.asyncio
    async def test_semantic_mode_falls_back_when_disabled(
        self, service, lexical, semantic
    ):
        """SEMANTIC with semantic disabled runs full-text only."""
        await service.update_settings(
            SearchSettings(semantic_enabled=False, min_score=0.3)
        )
        lexical.add_hit("E1", 0.8)
        semantic.add_hit("E1", 0.9)

        results = await service.search(SearchQuery("report").with_mode(SearchMode.SEMANTIC))

        assert len(lexical.search_calls) == 1
        assert semantic.calls == []
        assert results.used_semantic is False
        assert [hit.email_id for hit in results.hits] == ["E1"]

    @pytest.mark.asyncio
    async def test_semantic_mode_falls_back_without_backend(self, lexical, settings):
        """SEMANTIC without a semantic backend runs full-text only."""
        service = SearchService(lexical, settings=settings)
        lexical.add_hit("E1", 0.8)

        results = await service.search(SearchQuery("report").with_mode(SearchMode.SEMANTIC))

        assert len(lexical.search_calls) == 1
        assert results.used_semantic is False

    @pytest.mark.asyncio
    async def test_hybrid_mode_uses_both(self, service, lexical, semantic):
        """HYBRID blends both backends."""
        lexical.add_hit("E2", 0.9)
        semantic.add_hit("E2", 0.5)

        results = await service.search(SearchQuery("report"))

        assert results.used_semantic is True
        assert results.hits[0].score == pytest.approx(0.74)
        assert results.hits[0].source == SearchSource.BOTH

    @pytest.mark.asyncio
    async def test_hybrid_mode_without_semantic_backend(self, lexical, settings):
        """HYBRID without a semantic backend is full-text only."""
        service = SearchService(lexical, settings=settings)
        lexical.add_hit("E1", 0.8)

        results = await service.search(SearchQuery("report"))

        assert results.used_semantic is False
        assert results.total == 1

    @pytest.mark.asyncio
    async def test_hybrid_mode_with_semantic_disabled(self, lexical, semantic):
        """HYBRID with semantic disabled never calls the semantic backend."""
        service = SearchService(
            lexical, semantic, settings=SearchSettings(semantic_enabled=False)
        )
        lexical.add_hit("E1", 0.8)

        await service.search(SearchQuery("report"))

        assert semantic.calls == []

    @pytest.mark.asyncio
    async def test_semantic_backend_receives_text_and_accounts(self, service, semantic):
        """The semantic backend is scoped to the query's accounts."""
        await service.search(SearchQuery("budget").with_accounts(["work", "home"]))

        assert semantic.calls == [("budget", ("work", "home"))]

    @pytest.mark.asyncio
    async def test_hybrid_calls_run_concurrently(self, lexical, semantic, settings):
        """Both backends are in flight at the same time in hybrid mode."""
        lexical_started = asyncio.Event()
        semantic_started = asyncio.Event()

        async def lexical_search(query):
            lexical_started.set()
            # Would time out if the semantic call only started afterwards
            await asyncio.wait_for(semantic_started.wait(), timeout=1)
            return []

        async def semantic_search(text, account_ids):
            semantic_started.set()
            await asyncio.wait_for(lexical_started.wait(), timeout=1)
            return []

        lexical.lexical_search = lexical_search
        semantic.semantic_search = semantic_search
        service = SearchService(lexical, semantic, settings=settings)

        results = await service.search(SearchQuery("report"))

        assert results.total == 0


class TestFailurePolicy:
    """Lexical failures are fatal, semantic failures degrade."""

    @pytest.mark.asyncio
    async def test_semantic_failure_degrades_to_lexical(
        self, service, lexical, semantic
    ):
        """A semantic error in hybrid mode still returns full-text hits."""
        lexical.add_hit("E1", 0.8)
        semantic.error = ConnectionError("embedding service down")

        results = await service.search(SearchQuery("report"))

        assert [hit.email_id for hit in results.hits] == ["E1"]
        assert results.used_semantic is False

    @pytest.mark.asyncio
    async def test_semantic_failure_in_semantic_mode(self, service, semantic):
        """A semantic error in semantic mode yields an empty page, not an error."""
        semantic.error = ConnectionError("embedding service down")

        results = await service.search(SearchQuery("report").with_mode(SearchMode.SEMANTIC))

        assert results.hits == []
        assert results.used_semantic is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", list(SearchMode))
    async def test_lexical_failure_propagates(self, lexical, semantic, mode):
        """The lexical backend's own exception reaches the caller."""
        service = SearchService(
            lexical, semantic, settings=SearchSettings(semantic_enabled=False)
        )
        error = RuntimeError("index unavailable")
        lexical.search_error = error

        with pytest.raises(RuntimeError) as exc_info:
            await service.search(SearchQuery("report").with_mode(mode))

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_lexical_failure_propagates_in_hybrid(self, service, lexical, semantic):
        """Hybrid mode fails on a lexical error even if semantic succeeds."""
        semantic.add_hit("E1", 0.9)
        lexical.search_error = RuntimeError("index unavailable")

        with pytest.raises(RuntimeError, match="index unavailable"):
            await service.search(SearchQuery("report"))

    @pytest.mark.asyncio
    async def test_metadata_failure_propagates(self, service, lexical):
        """Without metadata the search fails."""
        lexical.add_hit("E1", 0.8)
        lexical.metadata_error = RuntimeError("metadata store offline")

        with pytest.raises(RuntimeError, match="metadata store offline"):
            await service.search(SearchQuery("report"))

    @pytest.mark.asyncio
    async def test_cancellation_cancels_backend_calls(self, lexical, semantic, settings):
        """Cancelling a hybrid search cancels both in-flight calls."""
        cancelled = []

        async def slow(name):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(name)
                raise
            return []

        lexical.lexical_search = lambda query: slow("lexical")
        semantic.semantic_search = lambda text, accounts: slow("semantic")
        service = SearchService(lexical, semantic, settings=settings)

        task = asyncio.create_task(service.search(SearchQuery("report")))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert sorted(cancelled) == ["lexical", "semantic"]


class TestPagination:
    """Offset/limit paging over the thresholded ranking."""

    @pytest.fixture
    def populated(self, lexical, semantic) -> SearchService:
        """Service with 120 full-text hits, all above the threshold."""
        for i in range(120):
            lexical.add_hit(f"E{i:03d}", 1.0 - i / 1000)
        return SearchService(lexical, semantic, settings=SearchSettings(min_score=0.0))

    @pytest.mark.asyncio
    async def test_pages_cover_everything_once(self, populated):
        """Concatenated pages reproduce the full ranking without gaps."""
        full = await populated.search(SearchQuery("x").with_limit(1000))
        pages = []
        for offset in (0, 50, 100, 150):
            page = await populated.search(SearchQuery("x").with_offset(offset))
            assert len(page.hits) <= 50
            assert page.total == 120
            pages.extend(page.hits)

        assert [hit.email_id for hit in pages] == [hit.email_id for hit in full.hits]

    @pytest.mark.asyncio
    async def test_total_counts_before_paging(self, populated):
        """total is the thresholded count, not the page size."""
        page = await populated.search(SearchQuery("x").with_limit(10).with_offset(5))

        assert len(page.hits) == 10
        assert page.total == 120
        assert page.hits[0].email_id == "E005"

    @pytest.mark.asyncio
    async def test_offset_past_end(self, populated):
        """An offset past the end gives an empty page."""
        page = await populated.search(SearchQuery("x").with_offset(500))

        assert page.hits == []
        assert page.total == 120

    @pytest.mark.asyncio
    async def test_negative_limit_gives_empty_page(self, populated):
        """A negative limit is accepted and yields no hits."""
        page = await populated.search(SearchQuery("x").with_limit(-5))

        assert page.hits == []

    @pytest.mark.asyncio
    async def test_threshold_excluded_from_total(self, service, lexical, semantic):
        """Hits below min_score count neither in hits nor total."""
        lexical.add_hit("E1", 0.8)
        lexical.add_metadata("E3")
        semantic.add_hit("E3", 0.2)

        results = await service.search(SearchQuery("report"))

        assert [hit.email_id for hit in results.hits] == ["E1"]
        assert results.total == 1

    @pytest.mark.asyncio
    async def test_results_metadata(self, service, lexical):
        """Results echo the query text and report timing."""
        lexical.add_hit("E1", 0.8)

        results = await service.search(SearchQuery("quarterly report"))

        assert results.query == "quarterly report"
        assert results.took_ms >= 0


class TestHistory:
    """Query tracking, recent queries and suggestions."""

    @pytest.mark.asyncio
    async def test_empty_query_not_recorded(self, service, lexical):
        """Blank text isn't recorded, but the search still runs."""
        lexical.add_hit("E1", 0.8)

        results = await service.search(SearchQuery("").with_unread(True))
        await service.search(SearchQuery("   "))

        assert await service.recent_queries(10) == []
        assert len(lexical.search_calls) == 2
        assert [hit.email_id for hit in results.hits] == ["E1"]

    @pytest.mark.asyncio
    async def test_repeated_query_recorded_once(self, service):
        """Resubmitting a query moves it to the front."""
        await service.search(SearchQuery("invoice"))
        await service.search(SearchQuery("budget"))
        await service.search(SearchQuery("invoice"))

        assert await service.recent_queries(10) == ["invoice", "budget"]

    @pytest.mark.asyncio
    async def test_query_recorded_even_when_search_fails(self, service, lexical):
        """The query is recorded before the backends run."""
        lexical.search_error = RuntimeError("index unavailable")

        with pytest.raises(RuntimeError):
            await service.search(SearchQuery("invoice"))

        assert await service.recent_queries(10) == ["invoice"]

    @pytest.mark.asyncio
    async def test_recent_queries_limit(self, service):
        """recent_queries() returns at most `limit` entries."""
        for text in ("one", "two", "three"):
            await service.search(SearchQuery(text))

        assert await service.recent_queries(2) == ["three", "two"]

    @pytest.mark.asyncio
    async def test_suggest_is_case_insensitive(self, service):
        """suggest() matches prefixes regardless of case."""
        for text in ("Invoice March", "budget", "invoice april"):
            await service.search(SearchQuery(text))

        assert await service.suggest("INV", 10) == ["invoice april", "Invoice March"]
        assert await service.suggest("inv", 1) == ["invoice april"]

    @pytest.mark.asyncio
    async def test_uses_injected_history(self, lexical):
        """A service can start from saved history."""
        service = SearchService(lexical, history=QueryHistory(["older", "oldest"]))

        await service.search(SearchQuery("newest"))

        assert await service.recent_queries(10) == ["newest", "older", "oldest"]


class TestSettingsAndIndex:
    """Settings access and index maintenance."""

    @pytest.mark.asyncio
    async def test_default_settings(self, lexical):
        """A service without settings uses the defaults."""
        service = SearchService(lexical)

        assert await service.settings() == SearchSettings()

    @pytest.mark.asyncio
    async def test_update_settings_applies_to_next_search(self, service, lexical):
        """New weights are used by the following search."""
        lexical.add_hit("E1", 0.8)
        await service.update_settings(
            SearchSettings(lexical_weight=1.0, semantic_weight=0.0, min_score=0.0)
        )

        results = await service.search(SearchQuery("report"))

        assert await service.settings() == SearchSettings(
            lexical_weight=1.0, semantic_weight=0.0, min_score=0.0
        )
        assert results.hits[0].score == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_rebuild_index_delegates(self, service, lexical):
        """rebuild_index() calls through to the lexical backend."""
        await service.rebuild_index("work")

        assert lexical.rebuilt == ["work"]

    @pytest.mark.asyncio
    async def test_rebuild_index_error_propagates(self, service, lexical):
        """Index rebuild errors reach the caller unchanged."""
        lexical.rebuild_error = RuntimeError("disk full")

        with pytest.raises(RuntimeError, match="disk full"):
            await service.rebuild_index("work")
