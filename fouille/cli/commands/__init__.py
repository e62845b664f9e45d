"""CLI commands module."""

from . import config, history, reindex, search, suggest

__all__ = ["search", "suggest", "history", "reindex", "config"]
