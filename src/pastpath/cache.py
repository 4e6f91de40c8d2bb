"""Search cache materialization: one row per page, scheme duplicates collapsed."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from pastpath.models import CacheEntry, HistoryRecord
from pastpath.store import HistoryStore

logger = logging.getLogger(__name__)

HTTP_PREFIX = "http://"
HTTPS_PREFIX = "https://"


def is_web_url(url: str) -> bool:
    """True for http:// and https:// URLs, the only ones the search cache keeps."""
    head = url[: len(HTTPS_PREFIX)].lower()
    return head.startswith(HTTP_PREFIX) or head.startswith(HTTPS_PREFIX)


def https_counterpart(url: str) -> str | None:
    """The https:// form of an http:// URL, None for any other scheme."""
    if url[: len(HTTP_PREFIX)].lower() == HTTP_PREFIX:
        return HTTPS_PREFIX + url[len(HTTP_PREFIX) :]
    return None


def canonical_url(
    url: str, known_urls: set[str] | frozenset[str], replace_http: bool = True
) -> str:
    """Pick the URL that represents `url` in the search cache.

    An http:// URL is replaced by its https:// twin only if that twin was
    itself recorded somewhere. Every other URL is its own canonical form.
    """
    if not replace_http:
        return url
    candidate = https_counterpart(url)
    if candidate is not None and candidate in known_urls:
        return candidate
    return url


def latest_titles(records: Iterable[HistoryRecord]) -> dict[str, tuple[int, str]]:
    """Map each raw URL to (last_visit_time, title) of its most recent row.

    Titles change over time and differ between browsers; the most recently
    visited row wins, with non-empty titles preferred on equal times.
    """
    latest: dict[str, tuple[int, bool, str]] = {}
    for record in records:
        key = (record.last_visit_time, record.title != "", record.title)
        current = latest.get(record.url)
        if current is None or key > current:
            latest[record.url] = key
    return {url: (visit_time, title) for url, (visit_time, _, title) in latest.items()}


@dataclass
class _Group:
    members: set[str] = field(default_factory=set)
    visit_count: int = 0
    last_visit_time: int = 0


def materialize(
    records: list[HistoryRecord], replace_http_with_https: bool = True
) -> list[CacheEntry]:
    """Build the full cache contents from every durable http(s) record."""
    records = [record for record in records if is_web_url(record.url)]
    known_urls = frozenset(record.url for record in records)
    titles = latest_titles(records)

    groups: dict[str, _Group] = {}
    for record in records:
        canonical = canonical_url(record.url, known_urls, replace_http_with_https)
        group = groups.get(canonical)
        if group is None:
            group = groups[canonical] = _Group(last_visit_time=record.last_visit_time)
        group.members.add(record.url)
        group.visit_count += record.visit_count
        group.last_visit_time = max(group.last_visit_time, record.last_visit_time)

    entries: list[CacheEntry] = []
    for canonical, group in groups.items():
        newest = max(
            group.members,
            key=lambda member: (titles[member][0], member == canonical, member),
        )
        entries.append(
            CacheEntry(
                url=canonical,
                title=titles[newest][1],
                last_visit_time=group.last_visit_time,
                visit_count=group.visit_count,
            )
        )
    entries.sort(key=lambda entry: entry.url)
    return entries


class CacheMaterializer:
    """Rebuilds and publishes the search cache from the history store."""

    def __init__(self, store: HistoryStore, replace_http_with_https: bool = True) -> None:
        self._store = store
        self._replace_http_with_https = replace_http_with_https

    def rebuild(self) -> int:
        records = self._store.get_records()
        entries = materialize(records, self._replace_http_with_https)
        count = self._store.replace_cache(entries)
        logger.info("Rebuilt search cache: %d entries from %d records", count, len(records))
        return count
