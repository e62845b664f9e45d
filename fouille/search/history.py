"""Recent query history used for search suggestions."""

from collections.abc import Iterable

from .locks import ReadWriteLock

# Maximum number of queries remembered
MAX_HISTORY = 100


class QueryHistory:
    """Bounded, deduplicated list of past queries, most recent first.

    Resubmitting a query moves it back to the front instead of adding a
    second entry. Empty and whitespace-only queries are ignored.

    Example:
        history = QueryHistory()
        await history.record("invoice")
        await history.record("from:alice")
        await history.suggest("INV")  # ["invoice"]
    """

    def __init__(self, entries: Iterable[str] = (), max_size: int = MAX_HISTORY):
        """Initialize history.

        Args:
            entries: Previously saved queries, most recent first.
            max_size: Maximum number of queries to keep.
        """
        self._max_size = max_size
        self._entries: list[str] = []
        for entry in entries:
            entry = entry.strip()
            if entry and entry not in self._entries:
                self._entries.append(entry)
        del self._entries[max_size:]
        self._lock = ReadWriteLock()

    async def record(self, query: str) -> bool:
        """Record a submitted query, trimmed of surrounding whitespace.

        Returns:
            True if the query was recorded, False if it was blank.
        """
        query = query.strip()
        if not query:
            return False

        async with self._lock.write():
            if query in self._entries:
                self._entries.remove(query)
            self._entries.insert(0, query)
            del self._entries[self._max_size :]

        return True

    async def recent(self, limit: int) -> list[str]:
        """Return up to `limit` most recent queries."""
        async with self._lock.read():
            return self._entries[: max(limit, 0)]

    async def suggest(self, prefix: str, limit: int) -> list[str]:
        """Return recent queries starting with `prefix` (case-insensitive)."""
        prefix_lower = prefix.lower()
        async with self._lock.read():
            matches = [q for q in self._entries if q.lower().startswith(prefix_lower)]
        return matches[: max(limit, 0)]

    async def clear(self) -> None:
        """Forget all recorded queries."""
        async with self._lock.write():
            self._entries.clear()
