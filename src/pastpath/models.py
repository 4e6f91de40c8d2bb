"""Core data models for the history pipeline: raw rows → records → cache."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Self

CHROME_ALIASES = frozenset({"chrome", "chromium", "brave", "edge", "vivaldi", "opera"})
FIREFOX_ALIASES = frozenset({"firefox", "zen", "librewolf", "waterfox"})


class BrowserKind(str, Enum):
    CHROME = "chrome"
    FIREFOX = "firefox"
    UNSUPPORTED = "unsupported"

    @classmethod
    def parse(cls, value: str) -> Self:
        """Map a configured browser type onto a kind.

        Chromium and Gecko derivatives share their parent's history schema.
        Anything unknown is UNSUPPORTED rather than an error.
        """
        normalized = (value or "").strip().lower()
        if normalized in CHROME_ALIASES:
            return cls.CHROME
        if normalized in FIREFOX_ALIASES:
            return cls.FIREFOX
        return cls.UNSUPPORTED


def url_hash(url: str) -> str:
    """Content key for a raw URL string."""
    return hashlib.sha256(url.encode()).hexdigest()


@dataclass(frozen=True)
class BrowserSource:
    """A configured browser history database."""

    name: str
    kind: BrowserKind
    history_path: str
    type_name: str = ""  # type as written in config, for warnings


@dataclass
class RawHistoryEntry:
    """A row as read from a browser store, timestamp in source-native units."""

    url: str
    title: str
    visit_count: int
    last_visit_time: int


@dataclass
class HistoryEntry:
    """A row after timestamp normalization (epoch seconds)."""

    url: str
    title: str
    visit_count: int
    last_visit_time: int


@dataclass
class HistoryRecord:
    """Durable history row, one per (url, browser, instance)."""

    url: str
    title: str
    visit_count: int
    last_visit_time: int
    browser: str
    instance_id: str
    content_key: str = ""
    id: int | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.content_key:
            self.content_key = url_hash(self.url)


@dataclass(frozen=True)
class RunMarker:
    instance_id: str
    browser: str
    timestamp: int


@dataclass
class CacheEntry:
    """Search index row, one per canonical URL."""

    url: str
    title: str
    last_visit_time: int
    visit_count: int
    url_lower: str = ""
    title_lower: str = ""

    def __post_init__(self) -> None:
        if not self.url_lower:
            self.url_lower = self.url.lower()
        if not self.title_lower:
            self.title_lower = self.title.lower()


@dataclass(frozen=True)
class SearchResult:
    title: str
    url: str
    last_visit_time: int
    visit_count: int

    def as_suggestion(self) -> str:
        return f"{self.title} ({self.url})"

    def to_dict(self) -> dict[str, str | int]:
        return {
            "title": self.title,
            "url": self.url,
            "last_visit_time": self.last_visit_time,
            "visit_count": self.visit_count,
        }


@dataclass
class SyncReport:
    """Outcome of one pipeline cycle."""

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    imported: dict[str, int] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    cache_entries: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed
