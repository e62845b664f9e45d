"""Local full-text search via the notmuch CLI.

NotmuchBackend implements the LexicalBackend protocol on top of a notmuch
database indexing the configured Maildir accounts. We drive the notmuch
command-line tool instead of its Python bindings for easier installation
and maintenance; commands run as asyncio subprocesses so a search can await
notmuch and the semantic backend at the same time.

One search costs two notmuch calls:
1. `notmuch search --output=summary` gives every matching thread (newest
   first) and the ids of the matched messages in each thread.
2. `notmuch show` on the ids of the requested page gives bodies for the
   highlighted snippets.
"""

import asyncio
import json
import re
import shutil
from collections.abc import Sequence
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path

import structlog

from .backends import BackendError
from .models import EmailMetadata, LexicalHit, SearchFolder, SearchQuery

logger = structlog.get_logger("fouille.search.local")


class NotmuchError(BackendError):
    """Error from notmuch command."""

    pass


class NotmuchNotFoundError(NotmuchError):
    """notmuch binary not found."""

    pass


class NotmuchDatabaseError(NotmuchError):
    """notmuch database not initialized."""

    pass


# Maildir folder for each standard search folder. User labels live under
# Labels/<name>.
FOLDER_PATHS = {
    "inbox": "INBOX",
    "sent": "Sent",
    "drafts": "Drafts",
    "archive": "Archive",
    "trash": "Trash",
}

# notmuch tags backing the boolean filters
ATTACHMENT_TAG = "tag:attachment"
UNREAD_TAG = "tag:unread"
STARRED_TAG = "tag:flagged"

SNIPPET_LENGTH = 200

# Matches id:foo@bar and id:"foo bar" in notmuch summary queries
_ID_TERM_RE = re.compile(r'id:(?:"((?:[^"]|"")*)"|(\S+))')

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class NotmuchBackend:
    """Full-text search, metadata and reindexing backed by notmuch.

    Example:
        backend = NotmuchBackend({"personal": Path("~/Mail/Personal")})
        hits = await backend.lexical_search(SearchQuery("invoice"))
        metadata = await backend.fetch_metadata([h.email_id for h in hits])
    """

    def __init__(self, accounts: dict[str, Path]):
        """Initialize the backend.

        Args:
            accounts: Account name -> Maildir path. Searches without an
                      explicit account list cover all of them.
        """
        self._accounts = {name: Path(path).expanduser() for name, path in accounts.items()}

    async def lexical_search(self, query: SearchQuery) -> list[LexicalHit]:
        """Search the notmuch index.

        Every match is returned, so callers can count them all. notmuch
        matches are yes/no without a relevance score, so each hit ranks 1.0
        and the list keeps notmuch's order (newest first).

        Only hits inside the query's offset/limit window get a highlighted
        snippet; the rest have an empty snippet.

        Raises:
            NotmuchNotFoundError: If notmuch is not installed.
            NotmuchDatabaseError: If notmuch database is not initialized.
            NotmuchError: For other notmuch errors (invalid query, unknown
                          account, etc).
        """
        notmuch_query = build_notmuch_query(query, self._accounts)
        summaries = await self._summary(notmuch_query)

        thread_by_id = _thread_map(summaries)
        message_ids = list(thread_by_id)
        if not message_ids:
            return []

        start = max(query.offset, 0)
        page_ids = message_ids[start : start + max(query.limit, 0)]
        messages = await self._show(page_ids) if page_ids else {}
        terms = _highlight_terms(query.text)

        snippets = {}
        for message_id in page_ids:
            message = messages.get(message_id)
            if message is not None:
                body = _extract_body_text(message.get("body", []))
                snippets[message_id] = _highlight_snippet(body, terms)

        hits = [
            LexicalHit(
                email_id=message_id,
                thread_id=thread_by_id[message_id],
                rank=1.0,
                snippet=snippets.get(message_id, ""),
            )
            for message_id in message_ids
        ]

        logger.debug("notmuch_search", query=notmuch_query, hits=len(hits))
        return hits

    async def fetch_metadata(self, email_ids: Sequence[str]) -> list[EmailMetadata]:
        """Fetch metadata for a batch of message ids.

        Ids notmuch doesn't know about are left out of the result.
        """
        if not email_ids:
            return []

        id_query = _id_query(email_ids)
        summaries, messages = await asyncio.gather(
            self._summary(id_query),
            self._show(email_ids),
        )
        thread_by_id = _thread_map(summaries)

        results = []
        for email_id in email_ids:
            message = messages.get(email_id)
            if message is None:
                continue
            results.append(_parse_metadata(message, thread_by_id.get(email_id, "")))
        return results

    async def rebuild_index(self, account: str) -> None:
        """Re-index mail for an account.

        notmuch keeps a single database for the whole mail root, so this
        runs `notmuch new`, which picks up changes in every account.

        Raises:
            NotmuchError: If the account is unknown or notmuch fails.
        """
        if account not in self._accounts:
            raise NotmuchError(f"Unknown account: {account}")
        await self._run(["new", "--quiet"])

    async def _summary(self, notmuch_query: str) -> list[dict]:
        """Run notmuch search --output=summary and parse its JSON."""
        output = await self._run(
            ["search", "--format=json", "--output=summary", notmuch_query]
        )
        return _parse_json(output) or []

    async def _show(self, email_ids: Sequence[str]) -> dict[str, dict]:
        """Run notmuch show on a batch of ids, keyed by message id."""
        output = await self._run(
            [
                "show",
                "--format=json",
                "--body=true",
                "--entire-thread=false",
                "--include-html",
                _id_query(email_ids),
            ]
        )
        data = _parse_json(output) or []
        return {message["id"]: message for message in _walk_messages(data)}

    async def _run(self, args: list[str]) -> str:
        """Run a notmuch command and return its stdout.

        Uses: notmuch <args...>
        """
        if not shutil.which("notmuch"):
            raise NotmuchNotFoundError(
                "notmuch not found. Install with: apt install notmuch"
            )

        process = await asyncio.create_subprocess_exec(
            "notmuch",
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # Don't leave notmuch running behind a cancelled search
            process.kill()
            raise

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            if "database" in message.lower() or "no mail" in message.lower():
                raise NotmuchDatabaseError("Run 'notmuch new' to index your mail")
            raise NotmuchError(message or f"notmuch {args[0]} failed")

        return stdout.decode(errors="replace")


def build_notmuch_query(query: SearchQuery, accounts: dict[str, Path]) -> str:
    """Translate a SearchQuery into a notmuch query string.

    Examples:
        SearchQuery("invoice").with_unread(True)
            -> '(invoice) AND (tag:unread)'
        SearchQuery("").with_accounts(["work"]).with_folder(SearchFolder.SENT)
            -> '(*) AND (path:"Work/Sent/**")'

    Raises:
        NotmuchError: If the query names an account that isn't configured.
    """
    terms = [f"({query.text.strip() or '*'})"]

    scope = _scope_term(query, accounts)
    if scope:
        terms.append(f"({scope})")

    if query.date_range is not None:
        start = int(query.date_range.start.timestamp())
        end = int(query.date_range.end.timestamp())
        terms.append(f"(date:@{start}..@{end})")

    if query.from_addr:
        terms.append(f"(from:{_quote(query.from_addr)})")
    if query.to_addr:
        terms.append(f"(to:{_quote(query.to_addr)})")

    for tag, wanted in (
        (ATTACHMENT_TAG, query.has_attachment),
        (UNREAD_TAG, query.is_unread),
        (STARRED_TAG, query.is_starred),
    ):
        if wanted is True:
            terms.append(f"({tag})")
        elif wanted is False:
            terms.append(f"(NOT {tag})")

    return " AND ".join(terms)


def _scope_term(query: SearchQuery, accounts: dict[str, Path]) -> str | None:
    """Build the path: restriction for accounts and folder."""
    folder = _folder_path(query.folder)

    names = list(query.account_ids) or list(accounts)
    unknown = [name for name in names if name not in accounts]
    if unknown:
        raise NotmuchError(f"Unknown account: {', '.join(unknown)}")

    if not names:
        # No accounts configured: the whole database is in scope
        return f"path:{_quote(folder + '/**')}" if folder else None

    # The path: prefix matches messages under that directory tree, relative
    # to the notmuch mail root (e.g. ~/Mail/Personal -> path:"Personal/**")
    paths = []
    for name in names:
        base = accounts[name].name
        prefix = f"{base}/{folder}" if folder else base
        paths.append(f"path:{_quote(prefix + '/**')}")
    return " OR ".join(paths)


def _folder_path(folder: SearchFolder | None) -> str | None:
    """Maildir folder for a SearchFolder, or None for all mail."""
    if folder is None or folder == SearchFolder.ALL:
        return None
    if folder.is_label:
        return f"Labels/{folder.name}"
    return FOLDER_PATHS[folder.kind]


def _quote(value: str) -> str:
    """Quote a term for notmuch (embedded quotes are doubled)."""
    return '"' + value.replace('"', '""') + '"'


def _id_query(email_ids: Sequence[str]) -> str:
    """Build `id:a or id:b ...` for a batch of message ids."""
    return " or ".join(f"id:{_quote(email_id)}" for email_id in email_ids)


def _parse_json(output: str):
    """Parse notmuch JSON output. Empty output means no results."""
    if not output.strip():
        return None
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise NotmuchError(f"Failed to parse notmuch output: {e}")


def _thread_map(summaries: list[dict]) -> dict[str, str]:
    """Map matched message ids to thread ids, in result order.

    Each summary carries a "query" pair: the first entry is a notmuch query
    selecting the thread's matched messages ("id:a or id:b"), the second
    selects the unmatched ones. Only the first is used.
    """
    thread_by_id: dict[str, str] = {}
    for summary in summaries:
        matched = (summary.get("query") or [None])[0]
        if not matched:
            continue
        for quoted, bare in _ID_TERM_RE.findall(matched):
            message_id = quoted.replace('""', '"') if quoted else bare
            thread_by_id.setdefault(message_id, summary.get("thread", ""))
    return thread_by_id


def _walk_messages(node):
    """Yield every message dict in notmuch show's nested thread structure.

    notmuch show returns a list of threads; each thread is a list of
    [message, replies] pairs, where replies nests the same way. Messages
    skipped by --entire-thread=false show up as null.
    """
    if isinstance(node, dict):
        if "id" in node and "headers" in node:
            yield node
    elif isinstance(node, list):
        for item in node:
            yield from _walk_messages(item)


def _parse_metadata(message: dict, thread_id: str) -> EmailMetadata:
    """Build EmailMetadata from a notmuch show message."""
    headers = message.get("headers", {})
    tags = message.get("tags", [])

    return EmailMetadata(
        email_id=message["id"],
        thread_id=thread_id,
        subject=headers.get("Subject") or None,
        snippet=_create_snippet(_extract_body_text(message.get("body", []))),
        from_addr=headers.get("From", ""),
        date=_message_date(message),
        is_read="unread" not in tags,
    )


def _message_date(message: dict) -> datetime:
    """Message date from notmuch's timestamp, else the Date header, else epoch."""
    timestamp = message.get("timestamp")
    if isinstance(timestamp, (int, float)):
        return datetime.fromtimestamp(timestamp, timezone.utc)

    date_str = message.get("headers", {}).get("Date", "")
    try:
        # notmuch provides RFC 2822 format dates
        return parsedate_to_datetime(date_str)
    except (ValueError, TypeError):
        return _EPOCH


def _extract_body_text(body_parts: list) -> str:
    """Extract plain text from message body parts.

    Walks through MIME parts looking for text content. HTML is used only
    when a message has no plain text part.
    """
    text_content = []
    html_content = []

    def walk_parts(parts: list) -> None:
        for part in parts:
            content = part.get("content")

            # Handle nested multipart
            if isinstance(content, list):
                walk_parts(content)
                continue

            # Skip attachments
            if part.get("filename") or not isinstance(content, str):
                continue

            content_type = part.get("content-type", "")
            if content_type.startswith("text/plain"):
                text_content.append(content)
            elif content_type.startswith("text/html"):
                html_content.append(_strip_html(content))

    walk_parts(body_parts)

    return " ".join(text_content or html_content)


def _strip_html(html: str) -> str:
    """Remove HTML tags from a string."""
    # Remove script and style content entirely
    html = re.sub(r"<script[^>]*>.*?</script>", "", html, flags=re.DOTALL | re.I)
    html = re.sub(r"<style[^>]*>.*?</style>", "", html, flags=re.DOTALL | re.I)
    # Remove all remaining tags
    html = re.sub(r"<[^>]+>", " ", html)
    # Decode common HTML entities
    html = html.replace("&nbsp;", " ")
    html = html.replace("&amp;", "&")
    html = html.replace("&lt;", "<")
    html = html.replace("&gt;", ">")
    html = html.replace("&quot;", '"')
    return html


def _create_snippet(text: str, max_length: int = SNIPPET_LENGTH) -> str:
    """Create a text snippet, truncating at word boundary."""
    # Normalize whitespace
    text = " ".join(text.split())

    if len(text) <= max_length:
        return text

    # Truncate at word boundary
    truncated = text[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length // 2:
        truncated = truncated[:last_space]

    return truncated + "..."


def _highlight_terms(text: str) -> list[str]:
    """Words worth highlighting from a free-text query.

    Boolean keywords and wildcards are dropped; prefixed terms such as
    subject:budget contribute their value.
    """
    terms = []
    for word in re.findall(r'[^\s()"]+', text):
        if word.upper() in ("AND", "OR", "NOT") or word == "*":
            continue
        if ":" in word:
            word = word.split(":", 1)[1]
        word = word.strip("*")
        if len(word) > 1:
            terms.append(word)
    return terms


def _highlight_snippet(text: str, terms: list[str], max_length: int = SNIPPET_LENGTH) -> str:
    """Snippet centered on the first matching term, with **term** marks.

    Falls back to the start of the text when no term occurs in it.
    """
    text = " ".join(text.split())
    if not terms:
        return _create_snippet(text, max_length)

    pattern = re.compile("|".join(re.escape(term) for term in terms), re.IGNORECASE)
    match = pattern.search(text)
    if match is None:
        return _create_snippet(text, max_length)

    # Start a little before the match, on a word boundary
    start = max(match.start() - max_length // 4, 0)
    if start > 0:
        space = text.find(" ", start)
        start = space + 1 if 0 <= space < match.start() else start

    window = _create_snippet(text[start:], max_length)
    if start > 0:
        window = "..." + window

    return pattern.sub(lambda m: f"**{m.group(0)}**", window)
