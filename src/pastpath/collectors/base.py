"""Abstract base class for browser history collectors."""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from pastpath.errors import SourceUnavailable
from pastpath.models import BrowserKind, BrowserSource, HistoryEntry, RawHistoryEntry


class HistoryCollector(ABC):
    """Reads one browser family's history schema.

    Subclasses only differ in the query against the source schema and in
    the native timestamp encoding.
    """

    kind: ClassVar[BrowserKind]
    query: ClassVar[str]

    def __init__(self, source: BrowserSource) -> None:
        self._source = source

    @property
    def source(self) -> BrowserSource:
        return self._source

    @abstractmethod
    def to_epoch_seconds(self, native: int) -> int:
        """Convert a source-native visit timestamp to epoch seconds."""
        ...

    def fetch(self, snapshot_path: Path) -> list[RawHistoryEntry]:
        """Read raw rows from a snapshot of the browser database."""
        name = self._source.name
        try:
            # The snapshot is a private copy; opened read-write so a copied
            # -wal sidecar can be replayed.
            conn = sqlite3.connect(str(snapshot_path))
        except sqlite3.Error as exc:
            raise SourceUnavailable(name, f"Cannot open {snapshot_path}: {exc}") from exc

        try:
            rows = conn.execute(self.query).fetchall()
        except sqlite3.Error as exc:
            raise SourceUnavailable(name, f"Failed querying history: {exc}") from exc
        finally:
            conn.close()

        return [
            RawHistoryEntry(
                url=row[0] or "",
                title=row[1] or "",
                visit_count=int(row[2] or 0),
                last_visit_time=int(row[3] or 0),
            )
            for row in rows
        ]

    def collect(self, snapshot_path: Path) -> list[HistoryEntry]:
        """Fetch rows and normalize their timestamps."""
        return [
            HistoryEntry(
                url=raw.url,
                title=raw.title,
                visit_count=max(raw.visit_count, 0),
                last_visit_time=self.to_epoch_seconds(raw.last_visit_time),
            )
            for raw in self.fetch(snapshot_path)
        ]
