"""Tests for the pipeline orchestrator."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import ts

from pastpath.config import BrowserConfig
from pastpath.errors import SourceUnavailable, StorageError, SyncError
from pastpath.pipeline import Pipeline


@pytest.fixture
def pipeline(config, sample_sources):
    config.browsers = sample_sources
    p = Pipeline(config)
    yield p
    p.close()


def _missing(tmp_path, name="broken") -> BrowserConfig:
    return BrowserConfig(name=name, type="chrome", history_path=str(tmp_path / "gone" / "History"))


class TestRunOnce:
    def test_imports_every_browser(self, pipeline):
        report = pipeline.run_once()

        assert report.ok
        assert report.imported == {"chrome": 3, "firefox": 3}
        assert report.finished_at is not None
        assert pipeline.store.count_records() == 6
        assert {r.instance_id for r in pipeline.store.get_records()} == {"laptop"}

    def test_cache_merges_scheme_duplicates(self, pipeline):
        report = pipeline.run_once()

        cache = {entry.url: entry for entry in pipeline.store.get_cache()}
        assert report.cache_entries == len(cache) == 4
        assert "http://example.com/a" not in cache
        assert "about:blank" not in cache

        merged = cache["https://example.com/a"]
        assert merged.visit_count == 5
        assert merged.title == "Example A"
        assert merged.last_visit_time == ts(2026, 2, 1)

    def test_results_searchable_after_cycle(self, pipeline):
        pipeline.run_once()
        results = pipeline.query_engine().search("example")
        assert [r.url for r in results] == ["https://example.com/a"]

    def test_repeated_runs_are_idempotent(self, pipeline):
        pipeline.run_once()
        records = [(r.url, r.browser, r.visit_count) for r in pipeline.store.get_records()]
        cache = pipeline.store.get_cache()

        pipeline.run_once()
        assert [(r.url, r.browser, r.visit_count) for r in pipeline.store.get_records()] == records
        assert pipeline.store.get_cache() == cache

    def test_reimport_overwrites_counts(self, config, chrome_db, pipeline):
        pipeline.run_once()

        newer = chrome_db(
            [("https://docs.python.org/3/", "Python docs", 20, ts(2026, 3, 1))], name="Next"
        )
        config.browsers = [BrowserConfig(name="chrome", type="chrome", history_path=str(newer))]
        Pipeline(config, store=pipeline.store).run_once()

        docs = [
            r for r in pipeline.store.get_records("chrome") if r.url == "https://docs.python.org/3/"
        ]
        assert len(docs) == 1
        assert docs[0].visit_count == 20
        assert docs[0].title == "Python docs"

    def test_run_markers_per_browser(self, pipeline):
        assert pipeline.store.last_sync_timestamp() is None
        pipeline.run_once()

        markers = pipeline.store.get_run_markers()
        assert [(m.instance_id, m.browser) for m in markers] == [
            ("laptop", "chrome"),
            ("laptop", "firefox"),
        ]
        assert pipeline.store.last_sync_timestamp() == max(m.timestamp for m in markers)

    def test_scratch_directory_emptied(self, config, pipeline):
        pipeline.run_once()
        assert list(config.tmp_dir.iterdir()) == []

    def test_unrelated_files_in_tmp_dir_survive(self, config, pipeline):
        config.tmp_dir.mkdir(parents=True)
        keep = config.tmp_dir / "notes.txt"
        keep.write_text("not ours")

        pipeline.run_once()

        assert keep.read_text() == "not ours"
        assert list(config.tmp_dir.iterdir()) == [keep]

    def test_live_database_untouched(self, pipeline, sample_sources):
        live = [Path(b.history_path) for b in sample_sources]
        before = [path.read_bytes() for path in live]
        pipeline.run_once()
        assert [path.read_bytes() for path in live] == before

    def test_no_browsers_configured(self, config):
        p = Pipeline(config)
        report = p.run_once()
        p.close()
        assert report.imported == {}
        assert report.cache_entries == 0


class TestFailures:
    def test_fail_fast_aborts_remaining_browsers(self, config, tmp_path, sample_sources):
        chrome, firefox = sample_sources
        config.browsers = [chrome, _missing(tmp_path), firefox]
        p = Pipeline(config)

        with pytest.raises(SourceUnavailable, match="broken"):
            p.run_once()

        assert {r.browser for r in p.store.get_records()} == {"chrome"}
        assert [m.browser for m in p.store.get_run_markers()] == ["chrome"]
        assert p.last_report.failed.keys() == {"broken"}
        assert "firefox" not in p.last_report.imported
        p.close()

    def test_cache_rebuilt_from_committed_rows_on_abort(self, config, tmp_path, sample_sources):
        config.browsers = [sample_sources[0], _missing(tmp_path)]
        p = Pipeline(config)

        with pytest.raises(SourceUnavailable):
            p.run_once()

        assert len(p.store.get_cache()) == 3
        assert list(config.tmp_dir.iterdir()) == []
        p.close()

    def test_keep_going_collects_all_failures(self, config, tmp_path, sample_sources):
        chrome, firefox = sample_sources
        config.sync.fail_fast = False
        config.browsers = [_missing(tmp_path, "one"), chrome, _missing(tmp_path, "two"), firefox]
        p = Pipeline(config)

        with pytest.raises(SyncError) as excinfo:
            p.run_once()

        assert set(excinfo.value.failures) == {"one", "two"}
        assert "2 source(s) failed" in str(excinfo.value)
        assert {r.browser for r in p.store.get_records()} == {"chrome", "firefox"}
        assert p.last_report.imported == {"chrome": 3, "firefox": 3}
        p.close()

    def test_storage_failure_propagates(self, pipeline):
        with patch.object(pipeline.store, "upsert_entries", side_effect=StorageError("disk full")):
            with pytest.raises(StorageError, match="disk full"):
                pipeline.run_once()
        assert pipeline.store.get_run_markers() == []

    def test_browser_failure_outlives_cache_failure(self, config, tmp_path, caplog):
        config.browsers = [_missing(tmp_path)]
        p = Pipeline(config)
        broken = patch.object(p._materializer, "rebuild", side_effect=StorageError("cache broken"))

        with broken, caplog.at_level(logging.ERROR, logger="pastpath.pipeline"):
            with pytest.raises(SourceUnavailable, match="broken"):
                p.run_once()

        assert "Cache rebuild failed after browser failures: cache broken" in caplog.text
        p.close()

    def test_keep_going_reports_browser_failures_despite_cache_failure(self, config, tmp_path):
        config.sync.fail_fast = False
        config.browsers = [_missing(tmp_path, "one")]
        p = Pipeline(config)

        with patch.object(p._materializer, "rebuild", side_effect=StorageError("cache broken")):
            with pytest.raises(SyncError) as excinfo:
                p.run_once()

        assert set(excinfo.value.failures) == {"one"}
        p.close()

    def test_cache_failure_alone_propagates(self, pipeline):
        with patch.object(pipeline._materializer, "rebuild", side_effect=StorageError("full")):
            with pytest.raises(StorageError, match="full"):
                pipeline.run_once()

    def test_unsupported_browser_skipped_with_warning(self, config, sample_sources, caplog):
        safari = BrowserConfig(name="safari", type="safari", history_path="/nowhere/History.db")
        config.browsers = [safari, *sample_sources]
        p = Pipeline(config)

        with caplog.at_level(logging.WARNING, logger="pastpath.pipeline"):
            report = p.run_once()

        assert report.ok
        assert report.skipped == ["safari"]
        assert report.imported == {"chrome": 3, "firefox": 3}
        assert "Browser type not supported: 'safari'" in caplog.text
        p.close()

    def test_corrupt_database(self, config, tmp_path):
        bogus = tmp_path / "History"
        bogus.write_bytes(b"definitely not sqlite" * 64)
        config.browsers = [BrowserConfig(name="chrome", type="chrome", history_path=str(bogus))]
        p = Pipeline(config)

        with pytest.raises(SourceUnavailable, match=r"\[chrome\]"):
            p.run_once()
        assert p.store.count_records() == 0
        p.close()
