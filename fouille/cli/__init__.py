"""Command-line interface for fouille."""
