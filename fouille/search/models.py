"""Data models for search queries and results."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import ClassVar


class SearchMode(str, Enum):
    """Which backends a search runs against."""

    FULL_TEXT = "fulltext"  # Lexical index only (fast, exact matches)
    SEMANTIC = "semantic"  # Embedding similarity only
    HYBRID = "hybrid"  # Both, blended into one ranking


class SearchSource(str, Enum):
    """Provenance of a search hit."""

    FULL_TEXT = "fulltext"
    SEMANTIC = "semantic"
    BOTH = "both"


@dataclass(frozen=True)
class SearchFolder:
    """Folder filter for a search.

    Standard folders are available as class attributes (SearchFolder.INBOX,
    SearchFolder.SENT, ...). Custom labels are built with SearchFolder.label().
    """

    kind: str
    name: str | None = None  # Label name, only set when kind == "label"

    ALL: ClassVar["SearchFolder"]
    INBOX: ClassVar["SearchFolder"]
    SENT: ClassVar["SearchFolder"]
    DRAFTS: ClassVar["SearchFolder"]
    ARCHIVE: ClassVar["SearchFolder"]
    TRASH: ClassVar["SearchFolder"]

    @classmethod
    def label(cls, name: str) -> "SearchFolder":
        """Folder filter for a custom label."""
        return cls("label", name)

    @property
    def is_label(self) -> bool:
        return self.kind == "label"

    def __str__(self) -> str:
        if self.is_label:
            return f"label:{self.name}"
        return self.kind


SearchFolder.ALL = SearchFolder("all")
SearchFolder.INBOX = SearchFolder("inbox")
SearchFolder.SENT = SearchFolder("sent")
SearchFolder.DRAFTS = SearchFolder("drafts")
SearchFolder.ARCHIVE = SearchFolder("archive")
SearchFolder.TRASH = SearchFolder("trash")


@dataclass(frozen=True)
class DateRange:
    """Date range filter. Both ends are inclusive."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class SearchQuery:
    """A search request with filters and paging options.

    Queries are immutable. Each with_* method returns a new query with one
    field set, so a base query can be shared and refined freely:

        base = SearchQuery("invoice").with_folder(SearchFolder.INBOX)
        page2 = base.with_offset(50)

    No validation happens here. An empty text or a negative limit is
    accepted and simply produces trivial results downstream.
    """

    text: str
    account_ids: tuple[str, ...] = ()  # Empty means every configured account
    folder: SearchFolder | None = None
    date_range: DateRange | None = None
    from_addr: str | None = None  # Sender substring
    to_addr: str | None = None  # Recipient substring
    has_attachment: bool | None = None
    is_unread: bool | None = None
    is_starred: bool | None = None
    limit: int = 50
    offset: int = 0
    mode: SearchMode = SearchMode.HYBRID

    def with_accounts(self, accounts: list[str] | tuple[str, ...]) -> "SearchQuery":
        return replace(self, account_ids=tuple(accounts))

    def with_folder(self, folder: SearchFolder) -> "SearchQuery":
        return replace(self, folder=folder)

    def with_date_range(self, start: datetime, end: datetime) -> "SearchQuery":
        return replace(self, date_range=DateRange(start, end))

    def with_from(self, from_addr: str) -> "SearchQuery":
        return replace(self, from_addr=from_addr)

    def with_to(self, to_addr: str) -> "SearchQuery":
        return replace(self, to_addr=to_addr)

    def with_attachment(self, has_attachment: bool) -> "SearchQuery":
        return replace(self, has_attachment=has_attachment)

    def with_unread(self, is_unread: bool) -> "SearchQuery":
        return replace(self, is_unread=is_unread)

    def with_starred(self, is_starred: bool) -> "SearchQuery":
        return replace(self, is_starred=is_starred)

    def with_limit(self, limit: int) -> "SearchQuery":
        return replace(self, limit=limit)

    def with_offset(self, offset: int) -> "SearchQuery":
        return replace(self, offset=offset)

    def with_mode(self, mode: SearchMode) -> "SearchQuery":
        return replace(self, mode=mode)


@dataclass(frozen=True)
class LexicalHit:
    """Raw hit from the full-text index.

    The rank is on the backend's own scale and is not necessarily in [0, 1].
    """

    email_id: str
    thread_id: str
    rank: float
    snippet: str


@dataclass(frozen=True)
class SemanticHit:
    """Raw hit from the embedding search backend."""

    email_id: str
    relevance: float  # Normalized to [0, 1]
    highlights: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class EmailMetadata:
    """Stored metadata for a single email, used to materialize hits."""

    email_id: str
    thread_id: str
    subject: str | None
    snippet: str
    from_addr: str  # Full "Name <email>" format
    date: datetime
    is_read: bool


@dataclass(frozen=True)
class SearchHit:
    """A ranked search result with source tracking."""

    email_id: str
    thread_id: str
    subject: str | None
    snippet: str
    from_addr: str
    date: datetime
    is_read: bool
    score: float  # Blended relevance
    source: SearchSource
    highlights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "email_id": self.email_id,
            "thread_id": self.thread_id,
            "subject": self.subject,
            "snippet": self.snippet,
            "from": self.from_addr,
            "date": self.date.isoformat(),
            "is_read": self.is_read,
            "score": self.score,
            "source": self.source.value,
            "highlights": self.highlights,
        }


@dataclass
class SearchResults:
    """One page of search results."""

    hits: list[SearchHit]
    total: int  # Hits passing the threshold, before pagination
    query: str
    took_ms: int
    used_semantic: bool  # True only if the semantic backend returned hits

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "query": self.query,
            "total": self.total,
            "took_ms": self.took_ms,
            "used_semantic": self.used_semantic,
            "hits": [hit.to_dict() for hit in self.hits],
        }
