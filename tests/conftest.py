"""Shared fixtures: in-memory search backends.

The fakes record every call so tests can check what the service asked for
(which backends ran, how many metadata lookups happened).
"""

from collections.abc import Sequence
from datetime import datetime, timezone

import pytest

from fouille.search import (
    EmailMetadata,
    LexicalHit,
    SearchQuery,
    SemanticHit,
)


class FakeLexicalBackend:
    """In-memory LexicalBackend."""

    def __init__(self) -> None:
        self.hits: list[LexicalHit] = []
        self.metadata: dict[str, EmailMetadata] = {}
        self.search_error: Exception | None = None
        self.metadata_error: Exception | None = None
        self.rebuild_error: Exception | None = None
        self.search_calls: list[SearchQuery] = []
        self.metadata_calls: list[list[str]] = []
        self.rebuilt: list[str] = []

    def add_hit(self, email_id: str, rank: float, snippet: str = "") -> None:
        """Add a hit and matching metadata."""
        self.hits.append(
            LexicalHit(
                email_id=email_id,
                thread_id=f"thread-{email_id}",
                rank=rank,
                snippet=snippet or f"match in {email_id}",
            )
        )
        self.add_metadata(email_id)

    def add_metadata(self, email_id: str) -> None:
        self.metadata[email_id] = EmailMetadata(
            email_id=email_id,
            thread_id=f"thread-{email_id}",
            subject=f"Subject {email_id}",
            snippet=f"stored snippet {email_id}",
            from_addr="Alice <alice@example.com>",
            date=datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
            is_read=False,
        )

    async def lexical_search(self, query: SearchQuery) -> list[LexicalHit]:
        self.search_calls.append(query)
        if self.search_error:
            raise self.search_error
        return list(self.hits)

    async def fetch_metadata(self, email_ids: Sequence[str]) -> list[EmailMetadata]:
        self.metadata_calls.append(list(email_ids))
        if self.metadata_error:
            raise self.metadata_error
        return [self.metadata[i] for i in email_ids if i in self.metadata]

    async def rebuild_index(self, account: str) -> None:
        if self.rebuild_error:
            raise self.rebuild_error
        self.rebuilt.append(account)


class FakeSemanticBackend:
    """In-memory SemanticBackend."""

    def __init__(self) -> None:
        self.hits: list[SemanticHit] = []
        self.error: Exception | None = None
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def add_hit(
        self, email_id: str, relevance: float, highlights: list[str] | None = None
    ) -> None:
        self.hits.append(SemanticHit(email_id, relevance, highlights or []))

    async def semantic_search(
        self, text: str, account_ids: Sequence[str]
    ) -> list[SemanticHit]:
        self.calls.append((text, tuple(account_ids)))
        if self.error:
            raise self.error
        return list(self.hits)


@pytest.fixture
def lexical() -> FakeLexicalBackend:
    """Empty fake full-text backend."""
    return FakeLexicalBackend()


@pytest.fixture
def semantic() -> FakeSemanticBackend:
    """Empty fake semantic backend."""
    return FakeSemanticBackend()
