"""SQLite storage for history records, run markers and the search cache."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from pastpath.errors import StorageError
from pastpath.models import CacheEntry, HistoryEntry, HistoryRecord, RunMarker, url_hash

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS urls (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    visit_count INTEGER NOT NULL DEFAULT 0,
    last_visit_time INTEGER NOT NULL DEFAULT 0,
    browser TEXT NOT NULL,
    instance_id TEXT NOT NULL,
    url_hash TEXT NOT NULL,
    UNIQUE(url_hash, browser, instance_id)
);
CREATE INDEX IF NOT EXISTS idx_urls_url_last_visit_time ON urls(url, last_visit_time);
CREATE INDEX IF NOT EXISTS idx_urls_url ON urls(url);

CREATE TABLE IF NOT EXISTS urls_cache (
    url TEXT PRIMARY KEY,
    url_lower TEXT NOT NULL,
    title TEXT NOT NULL,
    title_lower TEXT NOT NULL,
    visit_count INTEGER NOT NULL,
    last_visit_time INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_cache_title_lower ON urls_cache(title_lower);
CREATE INDEX IF NOT EXISTS idx_cache_url_lower ON urls_cache(url_lower);

CREATE TABLE IF NOT EXISTS last_run (
    instance TEXT NOT NULL,
    browser TEXT NOT NULL,
    timestamp INTEGER NOT NULL
);
"""

UPSERT = (
    "INSERT INTO urls "
    "(url, title, visit_count, last_visit_time, browser, instance_id, url_hash) "
    "VALUES (?, ?, ?, ?, ?, ?, ?) "
    "ON CONFLICT(url_hash, browser, instance_id) DO UPDATE SET "
    "title = excluded.title, "
    "visit_count = excluded.visit_count, "
    "last_visit_time = excluded.last_visit_time"
)

MEMORY = ":memory:"


class HistoryStore:
    """Durable history store.

    One writer connection serializes the pipeline's transactions. File-backed
    stores run in WAL mode and hand each reading thread its own connection,
    so searches see either the previous or the freshly published cache and
    never wait for a sync to finish. In-memory stores share one connection,
    so their reads block until the running write commits.
    """

    def __init__(self, db_path: Path | str = MEMORY) -> None:
        self._db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._write_lock = threading.Lock()
        self._init_lock = threading.Lock()
        self._local = threading.local()
        self._readers: list[sqlite3.Connection] = []

    @property
    def db_path(self) -> str:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        with self._init_lock:
            if self._conn is None:
                if self._db_path != MEMORY:
                    Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
                try:
                    # Transactions are managed explicitly with BEGIN IMMEDIATE
                    conn = sqlite3.connect(
                        self._db_path, isolation_level=None, check_same_thread=False
                    )
                    conn.row_factory = sqlite3.Row
                    if self._db_path != MEMORY:
                        conn.execute("PRAGMA journal_mode=WAL")
                    conn.executescript(SCHEMA)
                except sqlite3.Error as exc:
                    msg = f"Cannot open history database {self._db_path}: {exc}"
                    raise StorageError(msg) from exc
                self._conn = conn
        return self._conn

    def _reader(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            self._connect()  # schema must exist before a read-only peer opens
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA query_only = ON")
            self._local.conn = conn
            with self._init_lock:
                self._readers.append(conn)
        return conn

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        """Connection for a single read.

        An in-memory store has only the writer connection, so reads wait for
        any open transaction instead of seeing its uncommitted rows.
        """
        if self._db_path == MEMORY:
            conn = self._connect()
            with self._write_lock:
                yield conn
        else:
            yield self._reader()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Exclusive write section; everything inside commits or rolls back together."""
        conn = self._connect()
        with self._write_lock:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise StorageError(f"Cannot start transaction: {exc}") from exc
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            else:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as exc:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise StorageError(f"Commit failed: {exc}") from exc

    def close(self) -> None:
        with self._init_lock:
            for reader in self._readers:
                reader.close()
            self._readers.clear()
            if self._conn is not None:
                self._conn.close()
                self._conn = None
        self._local = threading.local()

    # --- History records ---

    def upsert_entries(
        self, entries: Iterable[HistoryEntry], browser: str, instance_id: str
    ) -> int:
        """Insert or overwrite entries for one browser instance as a single batch.

        Returns the number of entries written. Any failure rolls back the batch.
        """
        count = 0
        try:
            with self._transaction() as conn:
                for entry in entries:
                    conn.execute(
                        UPSERT,
                        (
                            entry.url,
                            entry.title,
                            entry.visit_count,
                            entry.last_visit_time,
                            browser,
                            instance_id,
                            url_hash(entry.url),
                        ),
                    )
                    count += 1
        except sqlite3.Error as exc:
            raise StorageError(f"Upsert failed for browser {browser!r}: {exc}") from exc
        return count

    def get_records(self, browser: str | None = None) -> list[HistoryRecord]:
        query = (
            "SELECT id, url, title, visit_count, last_visit_time, browser, instance_id, url_hash "
            "FROM urls"
        )
        params: list[str] = []
        if browser:
            query += " WHERE browser = ?"
            params.append(browser)
        query += " ORDER BY id"
        try:
            with self._read() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot read history records: {exc}") from exc
        return [
            HistoryRecord(
                url=row["url"],
                title=row["title"],
                visit_count=row["visit_count"],
                last_visit_time=row["last_visit_time"],
                browser=row["browser"],
                instance_id=row["instance_id"],
                content_key=row["url_hash"],
                id=row["id"],
            )
            for row in rows
        ]

    def count_records(self) -> int:
        with self._read() as conn:
            row = conn.execute("SELECT COUNT(*) AS cnt FROM urls").fetchone()
        return row["cnt"] if row else 0

    # --- Run markers ---

    def add_run_marker(
        self, browser: str, instance_id: str, timestamp: int | None = None
    ) -> RunMarker:
        marker = RunMarker(
            instance_id=instance_id,
            browser=browser,
            timestamp=timestamp if timestamp is not None else int(datetime.now(UTC).timestamp()),
        )
        try:
            with self._transaction() as conn:
                conn.execute(
                    "INSERT INTO last_run (instance, browser, timestamp) VALUES (?, ?, ?)",
                    (marker.instance_id, marker.browser, marker.timestamp),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot record run for browser {browser!r}: {exc}") from exc
        return marker

    def get_run_markers(self) -> list[RunMarker]:
        with self._read() as conn:
            rows = conn.execute(
                "SELECT instance, browser, timestamp FROM last_run ORDER BY rowid"
            ).fetchall()
        return [
            RunMarker(
                instance_id=row["instance"], browser=row["browser"], timestamp=row["timestamp"]
            )
            for row in rows
        ]

    def last_sync_timestamp(self) -> int | None:
        """Completion time of the most recent per-browser import, if any."""
        try:
            with self._read() as conn:
                row = conn.execute("SELECT MAX(timestamp) AS ts FROM last_run").fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot read last sync time: {exc}") from exc
        return row["ts"] if row else None

    # --- Search cache ---

    def replace_cache(self, entries: Iterable[CacheEntry]) -> int:
        """Publish a new cache generation, replacing the previous one wholesale."""
        count = 0
        try:
            with self._transaction() as conn:
                conn.execute("DELETE FROM urls_cache")
                for entry in entries:
                    conn.execute(
                        "INSERT INTO urls_cache "
                        "(url, url_lower, title, title_lower, visit_count, last_visit_time) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        (
                            entry.url,
                            entry.url_lower,
                            entry.title,
                            entry.title_lower,
                            entry.visit_count,
                            entry.last_visit_time,
                        ),
                    )
                    count += 1
            with self._write_lock:
                self._connect().execute("REINDEX urls_cache")
        except sqlite3.Error as exc:
            raise StorageError(f"Cache rebuild failed: {exc}") from exc
        logger.debug("Published %d cache entries", count)
        return count

    def get_cache(self) -> list[CacheEntry]:
        with self._read() as conn:
            rows = conn.execute(
                "SELECT url, url_lower, title, title_lower, visit_count, last_visit_time "
                "FROM urls_cache ORDER BY url"
            ).fetchall()
        return [
            CacheEntry(
                url=row["url"],
                url_lower=row["url_lower"],
                title=row["title"],
                title_lower=row["title_lower"],
                visit_count=row["visit_count"],
                last_visit_time=row["last_visit_time"],
            )
            for row in rows
        ]

    def search_cache(self, tokens: list[str], limit: int) -> list[sqlite3.Row]:
        """Rows whose title or URL contains every token, shortest URL first.

        Tokens must already be lower-cased.
        """
        conditions: list[str] = []
        params: list[str | int] = []
        for token in tokens:
            conditions.append("(instr(title_lower, ?) > 0 OR instr(url_lower, ?) > 0)")
            params.extend([token, token])
        where = f"WHERE {' AND '.join(conditions)} " if conditions else ""
        params.append(limit)
        query = (
            "SELECT MAX(title) AS title, url, "
            "MAX(last_visit_time) AS last_visit_time, SUM(visit_count) AS visit_count "
            f"FROM urls_cache {where}"
            "GROUP BY url "
            "ORDER BY LENGTH(url) ASC, url ASC "
            "LIMIT ?"
        )
        try:
            with self._read() as conn:
                return conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Search failed: {exc}") from exc
