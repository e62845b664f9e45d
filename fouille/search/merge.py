"""Merging of full-text and semantic hits into one ranking.

Each email found by either backend is scored as

    combined = lexical_rank * lexical_weight + semantic_relevance * semantic_weight

where a missing side counts as 0. Emails below the minimum score are
dropped, the rest are sorted best first.
"""

from collections.abc import Sequence
from functools import cmp_to_key

import structlog

from .backends import LexicalBackend
from .models import LexicalHit, SearchHit, SearchSource, SemanticHit
from .settings import SearchSettings

logger = structlog.get_logger("fouille.search.merge")


async def merge_results(
    lexical_hits: Sequence[LexicalHit],
    semantic_hits: Sequence[SemanticHit],
    settings: SearchSettings,
    backend: LexicalBackend,
) -> list[SearchHit]:
    """Deduplicate, score, filter and sort hits from both backends.

    Metadata for every distinct email is fetched in a single batch from the
    lexical backend. Emails without metadata are dropped.

    Ties keep first-appearance order: lexical hits in backend order, then
    semantic-only hits in backend order. When an email appears twice in the
    same list, the first occurrence wins.

    Snippets come from the lexical hit when it has one, else from the
    stored metadata.

    Args:
        lexical_hits: Hits from the full-text index, best first.
        semantic_hits: Hits from the semantic backend, best first.
        settings: Settings snapshot providing weights and threshold.
        backend: Lexical backend used for the metadata lookup.

    Returns:
        Hits sorted by blended score, highest first.

    Raises:
        Whatever the backend raises if the metadata lookup fails.
    """
    lexical_by_id: dict[str, LexicalHit] = {}
    for hit in lexical_hits:
        lexical_by_id.setdefault(hit.email_id, hit)

    semantic_by_id: dict[str, SemanticHit] = {}
    for hit in semantic_hits:
        semantic_by_id.setdefault(hit.email_id, hit)

    # Dict keys double as an insertion-ordered set
    email_ids = list(dict.fromkeys([*lexical_by_id, *semantic_by_id]))
    if not email_ids:
        return []

    metadata = await backend.fetch_metadata(email_ids)
    metadata_by_id = {meta.email_id: meta for meta in metadata}

    missing = [email_id for email_id in email_ids if email_id not in metadata_by_id]
    if missing:
        logger.warning(
            "metadata_missing",
            missing=len(missing),
            requested=len(email_ids),
        )

    results: list[SearchHit] = []
    for email_id in email_ids:
        meta = metadata_by_id.get(email_id)
        if meta is None:
            continue

        lexical = lexical_by_id.get(email_id)
        semantic = semantic_by_id.get(email_id)
        lexical_score = lexical.rank if lexical else 0.0
        semantic_score = semantic.relevance if semantic else 0.0

        source = _source_for(lexical_score, semantic_score)
        if source is None:
            continue

        combined = (
            lexical_score * settings.lexical_weight
            + semantic_score * settings.semantic_weight
        )
        if combined < settings.min_score:
            continue

        results.append(
            SearchHit(
                email_id=email_id,
                thread_id=meta.thread_id,
                subject=meta.subject,
                snippet=lexical.snippet if lexical and lexical.snippet else meta.snippet,
                from_addr=meta.from_addr,
                date=meta.date,
                is_read=meta.is_read,
                score=combined,
                source=source,
                highlights=list(semantic.highlights) if semantic else [],
            )
        )

    # list.sort is stable, so equal scores keep their order
    results.sort(key=cmp_to_key(_by_score_desc))
    return results


def _source_for(lexical_score: float, semantic_score: float) -> SearchSource | None:
    """Work out which backend(s) matched. None means neither did."""
    if lexical_score > 0 and semantic_score > 0:
        return SearchSource.BOTH
    if lexical_score > 0:
        return SearchSource.FULL_TEXT
    if semantic_score > 0:
        return SearchSource.SEMANTIC
    return None


def _by_score_desc(a: SearchHit, b: SearchHit) -> int:
    """Order hits by score, highest first. Incomparable scores tie."""
    if a.score > b.score:
        return -1
    if a.score < b.score:
        return 1
    return 0
