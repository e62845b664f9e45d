"""Backend contracts consumed by the search service.

The service talks to two kinds of backend:

- a lexical backend: keyword search over the full-text index, plus the
  metadata store used to materialize hits and the index maintenance hook
- a semantic backend: embedding similarity search (optional)

Both are plain protocols, so any object with matching async methods can be
injected (notmuch, a database, or a fake in tests).
"""

from collections.abc import Sequence
from typing import Protocol

from .models import EmailMetadata, LexicalHit, SearchQuery, SemanticHit


class BackendError(Exception):
    """Base error for search backend failures."""

    pass


class LexicalBackend(Protocol):
    """Full-text search and metadata capability."""

    async def lexical_search(self, query: SearchQuery) -> list[LexicalHit]:
        """Search the full-text index.

        Must honor every filter on the query (accounts, folder, date range,
        sender, recipient, attachment/unread/starred flags). Hits are
        returned best first, ranked on the backend's own scale.
        """
        ...

    async def fetch_metadata(self, email_ids: Sequence[str]) -> list[EmailMetadata]:
        """Look up metadata for a batch of emails.

        May return fewer records than requested. Missing ids are not an
        error.
        """
        ...

    async def rebuild_index(self, account: str) -> None:
        """Rebuild the full-text index for one account."""
        ...


class SemanticBackend(Protocol):
    """Embedding similarity search capability."""

    async def semantic_search(
        self, text: str, account_ids: Sequence[str]
    ) -> list[SemanticHit]:
        """Search by meaning. Relevance scores are normalized to [0, 1]."""
        ...
