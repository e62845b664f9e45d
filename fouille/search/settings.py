"""Search settings and the store that guards them.

Settings are read on every search and written rarely (from `fouille config
set` or a settings screen). They are replaced as a whole, never patched in
place, so a search always works from one consistent snapshot.
"""

from dataclasses import asdict, dataclass

from .locks import ReadWriteLock


@dataclass(frozen=True)
class SearchSettings:
    """Tunable search parameters.

    The two weights are independent multipliers; they don't need to sum
    to 1.

    Attributes:
        semantic_enabled: Whether semantic search may be used at all.
        lexical_weight: Multiplier for full-text rank scores.
        semantic_weight: Multiplier for semantic relevance scores.
        min_score: Hits with a blended score below this are dropped.
        default_limit: Page size used when the caller doesn't pick one.
    """

    semantic_enabled: bool = True
    lexical_weight: float = 0.6
    semantic_weight: float = 0.4
    min_score: float = 0.3
    default_limit: int = 50

    def to_dict(self) -> dict:
        """Convert to dictionary (matches the [search] config table)."""
        return asdict(self)


class SettingsStore:
    """Shared, lock-guarded holder for the current SearchSettings."""

    def __init__(self, settings: SearchSettings | None = None):
        self._settings = settings or SearchSettings()
        self._lock = ReadWriteLock()

    async def get(self) -> SearchSettings:
        """Return the current settings snapshot."""
        async with self._lock.read():
            return self._settings

    async def replace(self, settings: SearchSettings) -> None:
        """Atomically swap in a new settings snapshot."""
        async with self._lock.write():
            self._settings = settings
