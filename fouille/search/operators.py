"""Gmail-style search operators.

Turns a search-box string such as

    from:alice has:attachment after:2024-01-01 budget review

into a SearchQuery with the matching filters set. Anything that isn't a
recognized operator (or has a malformed value) stays in the free text.
"""

import re
import shlex
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from .models import SearchFolder, SearchQuery


@dataclass(frozen=True)
class SearchOperator:
    """A supported operator, for help output."""

    name: str
    example: str
    description: str


OPERATORS = [
    SearchOperator("from", "from:alice@example.com", "Emails from a specific sender"),
    SearchOperator("to", "to:bob@example.com", "Emails sent to a specific recipient"),
    SearchOperator("subject", "subject:meeting", "Emails with subject containing text"),
    SearchOperator("has", "has:attachment", "Emails with attachments"),
    SearchOperator("is", "is:unread", "Filter by status (unread, read, starred)"),
    SearchOperator("in", "in:inbox", "Search in a specific folder or label"),
    SearchOperator("before", "before:2024-01-01", "Emails before a date"),
    SearchOperator("after", "after:2024-01-01", "Emails after a date"),
    SearchOperator("older_than", "older_than:7d", "Emails older than a duration (h/d/w/m/y)"),
    SearchOperator("newer_than", "newer_than:24h", "Emails newer than a duration (h/d/w/m/y)"),
]

FOLDER_NAMES = {
    "all": SearchFolder.ALL,
    "inbox": SearchFolder.INBOX,
    "sent": SearchFolder.SENT,
    "drafts": SearchFolder.DRAFTS,
    "archive": SearchFolder.ARCHIVE,
    "trash": SearchFolder.TRASH,
}

# Approximate lengths; months and years don't need calendar precision here
DURATION_UNITS = {
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "m": timedelta(days=30),
    "y": timedelta(days=365),
}

_OPERATOR_RE = re.compile(r"^(?P<name>[a-z_]+):(?P<value>.+)$", re.IGNORECASE)
_DURATION_RE = re.compile(r"^(?P<count>\d+)(?P<unit>[hdwmy])$", re.IGNORECASE)

# Earliest date used when only an upper bound is given
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_query(text: str, now: datetime | None = None) -> SearchQuery:
    """Parse a search string with operators into a SearchQuery.

    Args:
        text: Raw search-box input.
        now: Reference time for relative durations (defaults to now, UTC).

    Returns:
        A query whose text holds the remaining free-text terms.
    """
    now = now or datetime.now(timezone.utc)
    query = SearchQuery(text="")
    start: datetime | None = None
    end: datetime | None = None
    free_text: list[str] = []

    for token in _tokenize(text):
        match = _OPERATOR_RE.match(token)
        if not match:
            free_text.append(token)
            continue

        name = match.group("name").lower()
        value = match.group("value")

        if name == "from":
            query = query.with_from(value)
        elif name == "to":
            query = query.with_to(value)
        elif name == "subject":
            # The full-text index understands subject: itself
            free_text.append(f'subject:"{value}"' if " " in value else token)
        elif name == "has" and value.lower() == "attachment":
            query = query.with_attachment(True)
        elif name == "is" and value.lower() == "unread":
            query = query.with_unread(True)
        elif name == "is" and value.lower() == "read":
            query = query.with_unread(False)
        elif name == "is" and value.lower() == "starred":
            query = query.with_starred(True)
        elif name == "in":
            query = query.with_folder(parse_folder(value))
        elif name in ("before", "after", "older_than", "newer_than"):
            bound = _parse_bound(name, value, now)
            if bound is None:
                free_text.append(token)
            elif name in ("before", "older_than"):
                end = bound if end is None else min(end, bound)
            else:
                start = bound if start is None else max(start, bound)
        else:
            free_text.append(token)

    if start is not None or end is not None:
        query = query.with_date_range(start or _EPOCH, end or now)

    return replace(query, text=" ".join(free_text))


def parse_folder(name: str) -> SearchFolder:
    """Map a folder name to a SearchFolder. Unknown names are labels."""
    return FOLDER_NAMES.get(name.lower(), SearchFolder.label(name))


def parse_date(value: str) -> datetime:
    """Parse a YYYY-MM-DD date as midnight UTC.

    Raises:
        ValueError: If the value isn't a valid date.
    """
    return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as "7d", "24h" or "2w".

    Raises:
        ValueError: If the value isn't a valid duration.
    """
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    return int(match.group("count")) * DURATION_UNITS[match.group("unit").lower()]


def _parse_bound(name: str, value: str, now: datetime) -> datetime | None:
    """Convert a date operator into a datetime bound, or None if malformed."""
    try:
        if name == "before":
            # Inclusive range: "before" a day means up to the end of the
            # previous day
            return parse_date(value) - timedelta(microseconds=1)
        if name == "after":
            return parse_date(value)
        return now - parse_duration(value)
    except ValueError:
        return None


def _tokenize(text: str) -> list[str]:
    """Split on whitespace, honoring quotes (from:"Alice Smith")."""
    try:
        return shlex.split(text)
    except ValueError:
        # Unbalanced quotes: fall back to plain splitting
        return text.split()

