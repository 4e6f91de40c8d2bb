"""Query engine over the published search cache."""

from __future__ import annotations

import logging
from urllib.parse import quote_plus

from pastpath.errors import QueryError, StorageError
from pastpath.models import SearchResult
from pastpath.store import HistoryStore

logger = logging.getLogger(__name__)

DEFAULT_RESULT_LIMIT = 20
DEFAULT_SUGGESTION_LIMIT = 5
DEFAULT_FALLBACK_SEARCH_URL = "https://www.google.com/search?q={query}"

SUGGESTION_OPEN = " ("
SUGGESTION_CLOSE = ")"
QUERY_PLACEHOLDER = "{query}"


def tokenize(phrase: str) -> list[str]:
    """Split a phrase on whitespace into lower-cased tokens."""
    return [token.lower() for token in phrase.split()]


def parse_suggestion(text: str) -> str | None:
    """Extract the URL from a '{title} ({url})' suggestion, None if malformed."""
    start = text.rfind(SUGGESTION_OPEN)
    if start == -1 or not text.endswith(SUGGESTION_CLOSE):
        return None
    url = text[start + len(SUGGESTION_OPEN) : -len(SUGGESTION_CLOSE)]
    return url or None


class QueryEngine:
    """Multi-token, case-insensitive search over canonical URLs and titles.

    Every token must appear in the title or the URL of an entry. Results are
    ranked by URL length so top-level pages come before deep links.
    """

    def __init__(
        self,
        store: HistoryStore,
        result_limit: int = DEFAULT_RESULT_LIMIT,
        suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT,
        fallback_search_url: str = DEFAULT_FALLBACK_SEARCH_URL,
    ) -> None:
        self._store = store
        self._result_limit = result_limit
        self._suggestion_limit = suggestion_limit
        self._fallback_search_url = fallback_search_url

    def search(self, phrase: str) -> list[SearchResult]:
        if not isinstance(phrase, str):
            logger.warning("Ignoring malformed search phrase: %r", phrase)
            return []

        tokens = tokenize(phrase)
        try:
            rows = self._store.search_cache(tokens, self._result_limit)
        except StorageError as exc:
            raise QueryError(f"Search for {phrase!r} failed: {exc}") from exc

        return [
            SearchResult(
                title=row["title"] or "",
                url=row["url"],
                last_visit_time=row["last_visit_time"],
                visit_count=row["visit_count"],
            )
            for row in rows
        ]

    def suggest(self, phrase: str) -> tuple[str, list[str]]:
        """Autocomplete pair: the echoed phrase and '{title} ({url})' strings."""
        if not isinstance(phrase, str) or not phrase.strip():
            return phrase, []
        results = self.search(phrase)
        return phrase, [result.as_suggestion() for result in results[: self._suggestion_limit]]

    def resolve_suggestion(self, text: str) -> str:
        """Map a suggestion back to its URL, or to a web search for the raw text."""
        url = parse_suggestion(text)
        if url is not None:
            return url
        logger.debug("No URL in suggestion %r, falling back to web search", text)
        return self.fallback_url(text)

    def fallback_url(self, text: str) -> str:
        # Only {query} is substituted; any other braces are kept literally
        return self._fallback_search_url.replace(QUERY_PLACEHOLDER, quote_plus(text))
