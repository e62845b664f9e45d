"""Hybrid full-text and semantic email search."""

__version__ = "0.1.0"
