"""On-disk persistence for the query history.

The CLI runs one search per process, so suggestions only work if the
history survives between invocations. It is stored as JSON in
~/.config/fouille/history.json
"""

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from fouille.config.paths import HISTORY_FILE


class HistoryFile:
    """Loads and saves the recent-query list.

    File format:
    {
        "queries": ["most recent", "older", ...],
        "updated": "2024-01-15T10:30:00+00:00"
    }

    Example:
        history_file = HistoryFile()
        history = QueryHistory(history_file.load())
        # ... run searches ...
        history_file.save(await history.recent(MAX_HISTORY))
    """

    def __init__(self, path: Path | None = None):
        """Initialize history storage.

        Args:
            path: File to use. Defaults to HISTORY_FILE.
        """
        self._path = path or HISTORY_FILE

    @property
    def path(self) -> Path:
        """Get the path to the history file."""
        return self._path

    def load(self) -> list[str]:
        """Load saved queries, most recent first.

        Returns:
            The saved queries, or an empty list if there is no usable file.
        """
        if not self._path.exists():
            return []

        try:
            data = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError):
            # Corrupted or unreadable file - start fresh
            return []

        queries = data.get("queries", []) if isinstance(data, dict) else []
        if not isinstance(queries, list):
            return []
        return [q for q in queries if isinstance(q, str)]

    def save(self, queries: list[str]) -> None:
        """Write queries to disk, replacing the previous contents.

        The file is owner-only (0600) from the moment it is created, since
        search history can be sensitive.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "queries": queries,
            "updated": datetime.now(timezone.utc).isoformat(),
        }
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        # O_CREAT's mode only applies to new files
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
