"""Pipeline orchestrator: snapshot, collect and upsert each browser, then rebuild the cache."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from pastpath.cache import CacheMaterializer
from pastpath.collectors.base import HistoryCollector
from pastpath.collectors.registry import build_collector
from pastpath.config import PastPathConfig
from pastpath.errors import (
    PastPathError,
    SourceUnavailable,
    StorageError,
    SyncError,
    UnsupportedSource,
)
from pastpath.models import BrowserSource, SyncReport
from pastpath.search import QueryEngine
from pastpath.snapshot import SnapshotArea
from pastpath.store import HistoryStore

logger = logging.getLogger(__name__)


class Pipeline:
    def __init__(self, config: PastPathConfig, store: HistoryStore | None = None) -> None:
        self._config = config
        self._store = store if store is not None else HistoryStore(config.db_path)
        self._materializer = CacheMaterializer(
            self._store, replace_http_with_https=config.search.replace_http_with_https
        )
        self._sources: list[BrowserSource] = config.sources()
        self._last_report: SyncReport | None = None

    @property
    def store(self) -> HistoryStore:
        return self._store

    @property
    def last_report(self) -> SyncReport | None:
        return self._last_report

    def query_engine(self) -> QueryEngine:
        search = self._config.search
        return QueryEngine(
            self._store,
            result_limit=search.result_limit,
            suggestion_limit=search.suggestion_limit,
            fallback_search_url=search.fallback_search_url,
        )

    def run_once(self) -> SyncReport:
        """One full cycle: import every configured browser, then rebuild the cache.

        With `sync.fail_fast` (the default) the first failing browser aborts
        the remaining imports and its error is raised after the cache has been
        rebuilt from what was committed. Otherwise every browser is attempted
        and a SyncError listing all failures is raised at the end.
        """
        report = SyncReport()
        self._last_report = report
        failures: dict[str, PastPathError] = {}

        logger.info("Processing browser history")
        with SnapshotArea(self._config.tmp_dir) as area:
            for source in self._sources:
                try:
                    collector = build_collector(source)
                except UnsupportedSource as exc:
                    logger.warning("Skipping browser: %s", exc)
                    report.skipped.append(source.name)
                    continue

                try:
                    report.imported[source.name] = self._sync_source(area, collector)
                except (SourceUnavailable, StorageError) as exc:
                    failures[source.name] = exc
                    report.failed[source.name] = str(exc)
                    if self._config.sync.fail_fast:
                        logger.error("Aborting cycle, browser %s failed: %s", source.name, exc)
                        break
                    logger.error("Browser %s failed: %s", source.name, exc)

        try:
            report.cache_entries = self._materializer.rebuild()
        except StorageError as exc:
            if not failures:
                raise
            # The browser failure is the one reported
            logger.error("Cache rebuild failed after browser failures: %s", exc)
        report.finished_at = datetime.now(UTC)

        if failures:
            if self._config.sync.fail_fast:
                raise next(iter(failures.values()))
            raise SyncError(failures)

        logger.info("Finished processing browser history")
        return report

    def _sync_source(self, area: SnapshotArea, collector: HistoryCollector) -> int:
        source = collector.source
        snapshot_path = area.snapshot(source.history_path, source.name)
        logger.info("Processing browser %s on path %s", source.name, snapshot_path)

        entries = collector.collect(snapshot_path)
        logger.info("Found %d entries for browser %s", len(entries), source.name)

        count = self._store.upsert_entries(entries, source.name, self._config.instance_id)
        self._store.add_run_marker(source.name, self._config.instance_id)
        logger.info("Done merging for browser: %s", source.name)
        return count

    def close(self) -> None:
        self._store.close()
