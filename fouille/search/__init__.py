"""Hybrid email search.

Combines a full-text backend (notmuch) with an optional semantic backend,
blending both rankings into one page of results.

Usage:
    from fouille.search import NotmuchBackend, SearchQuery, SearchService

    service = SearchService(NotmuchBackend({"personal": Path("~/Mail/Personal")}))
    results = await service.search(SearchQuery("invoice").with_unread(True))
"""

from .backends import BackendError, LexicalBackend, SemanticBackend
from .history import MAX_HISTORY, QueryHistory
from .local import (
    NotmuchBackend,
    NotmuchDatabaseError,
    NotmuchError,
    NotmuchNotFoundError,
)
from .merge import merge_results
from .models import (
    DateRange,
    EmailMetadata,
    LexicalHit,
    SearchFolder,
    SearchHit,
    SearchMode,
    SearchQuery,
    SearchResults,
    SearchSource,
    SemanticHit,
)
from .operators import OPERATORS, parse_query
from .service import SearchService
from .settings import SearchSettings, SettingsStore

__all__ = [
    "SearchService",
    "SearchQuery",
    "SearchFolder",
    "SearchMode",
    "DateRange",
    "SearchResults",
    "SearchHit",
    "SearchSource",
    "LexicalHit",
    "SemanticHit",
    "EmailMetadata",
    "SearchSettings",
    "SettingsStore",
    "QueryHistory",
    "MAX_HISTORY",
    "LexicalBackend",
    "SemanticBackend",
    "BackendError",
    "NotmuchBackend",
    "NotmuchError",
    "NotmuchNotFoundError",
    "NotmuchDatabaseError",
    "merge_results",
    "parse_query",
    "OPERATORS",
]
