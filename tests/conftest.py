"""Shared test fixtures."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from pastpath.config import BrowserConfig, PastPathConfig
from pastpath.store import HistoryStore
from pastpath.timestamps import CHROME_EPOCH_OFFSET_US

# (url, title, visit_count, epoch_seconds)
Visit = tuple[str, str | None, int, int]


def chrome_us(epoch_seconds: int) -> int:
    """Epoch seconds → Chrome microseconds since 1601."""
    return epoch_seconds * 1_000_000 + CHROME_EPOCH_OFFSET_US


def firefox_us(epoch_seconds: int) -> int:
    return epoch_seconds * 1_000_000


def ts(year: int, month: int, day: int, hour: int = 12) -> int:
    return int(datetime(year, month, day, hour, tzinfo=UTC).timestamp())


def _write_chrome_db(path: Path, visits: list[Visit]) -> Path:
    """Minimal Chrome `History` database with the columns we read."""
    conn = sqlite3.connect(str(path))
    conn.execute("""
        CREATE TABLE urls (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            url LONGVARCHAR, title LONGVARCHAR,
            visit_count INTEGER DEFAULT 0 NOT NULL,
            typed_count INTEGER DEFAULT 0 NOT NULL,
            last_visit_time INTEGER NOT NULL,
            hidden INTEGER DEFAULT 0 NOT NULL
        )
    """)
    conn.executemany(
        "INSERT INTO urls (url, title, visit_count, last_visit_time) VALUES (?, ?, ?, ?)",
        [(url, title, count, chrome_us(seconds)) for url, title, count, seconds in visits],
    )
    conn.commit()
    conn.close()
    return path


def _write_firefox_db(path: Path, visits: list[Visit]) -> Path:
    """Minimal places.sqlite with moz_places."""
    conn = sqlite3.connect(str(path))
    conn.execute("""
        CREATE TABLE moz_places (
            id INTEGER PRIMARY KEY,
            url LONGVARCHAR, title LONGVARCHAR, rev_host LONGVARCHAR,
            visit_count INTEGER DEFAULT 0, hidden INTEGER DEFAULT 0 NOT NULL,
            typed INTEGER DEFAULT 0 NOT NULL, frecency INTEGER DEFAULT -1 NOT NULL,
            last_visit_date INTEGER, guid TEXT
        )
    """)
    conn.executemany(
        "INSERT INTO moz_places (url, title, visit_count, last_visit_date) VALUES (?, ?, ?, ?)",
        [
            (url, title, count, firefox_us(seconds) if seconds else None)
            for url, title, count, seconds in visits
        ],
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def chrome_db(tmp_path) -> Callable[..., Path]:
    def factory(visits: list[Visit], name: str = "History") -> Path:
        directory = tmp_path / "chrome" / name
        directory.mkdir(parents=True, exist_ok=True)
        return _write_chrome_db(directory / "History", visits)

    return factory


@pytest.fixture
def firefox_db(tmp_path) -> Callable[..., Path]:
    def factory(visits: list[Visit], name: str = "default") -> Path:
        directory = tmp_path / "firefox" / name
        directory.mkdir(parents=True, exist_ok=True)
        return _write_firefox_db(directory / "places.sqlite", visits)

    return factory


@pytest.fixture
def store() -> Iterator[HistoryStore]:
    """In-memory SQLite store."""
    s = HistoryStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def config(tmp_path) -> PastPathConfig:
    """Test config with temp DB and scratch paths, no browsers."""
    return PastPathConfig(
        db_path=tmp_path / "pastpath.db",
        tmp_dir=tmp_path / "scratch",
        instance_id="laptop",
    )


@pytest.fixture
def sample_sources(chrome_db, firefox_db) -> list[BrowserConfig]:
    """A Chrome and a Firefox profile sharing one page over http and https."""
    chrome = chrome_db(
        [
            ("https://docs.python.org/3/", "Python 3 docs", 12, ts(2026, 2, 5)),
            ("https://github.com/pallets/click", "pallets/click", 4, ts(2026, 2, 6)),
            ("http://example.com/a", "Example A (old)", 2, ts(2026, 1, 1)),
        ]
    )
    firefox = firefox_db(
        [
            ("https://example.com/a", "Example A", 3, ts(2026, 2, 1)),
            ("https://news.ycombinator.com/", "Hacker News", 30, ts(2026, 2, 7)),
            ("about:blank", None, 1, 0),
        ]
    )
    return [
        BrowserConfig(name="chrome", type="chrome", history_path=str(chrome)),
        BrowserConfig(name="firefox", type="firefox", history_path=str(firefox)),
    ]
