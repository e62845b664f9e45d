"""Configuration schema definitions.

Uses TypedDict for type safety without runtime overhead.
These types match the structure of config.toml.
"""

from typing import TypedDict


class SearchConfig(TypedDict, total=False):
    """Search tuning, mirrors fouille.search.SearchSettings.

    Attributes:
        semantic_enabled: Allow semantic search when a backend is available.
        lexical_weight: Multiplier for full-text scores.
        semantic_weight: Multiplier for semantic scores.
        min_score: Minimum blended score for a hit to be shown.
        default_limit: Results per page.
    """

    semantic_enabled: bool
    lexical_weight: float
    semantic_weight: float
    min_score: float
    default_limit: int


class AccountConfig(TypedDict, total=False):
    """Single email account configuration.

    Attributes:
        mail_dir: Local Maildir path for this account (e.g., "~/Mail/Work").
                  Must live under the notmuch mail root.
    """

    mail_dir: str


class FouilleConfig(TypedDict, total=False):
    """Root configuration structure.

    Attributes:
        search: Search settings.
        accounts: Dict mapping account names to their configurations.
    """

    search: SearchConfig
    accounts: dict[str, AccountConfig]
