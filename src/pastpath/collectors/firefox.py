"""Collector for Firefox-family places.sqlite databases."""

from __future__ import annotations

from pastpath.collectors.base import HistoryCollector
from pastpath.models import BrowserKind
from pastpath.timestamps import firefox_to_epoch


class FirefoxCollector(HistoryCollector):
    kind = BrowserKind.FIREFOX
    query = (
        "SELECT url, COALESCE(title, '') AS title, visit_count, "
        "COALESCE(last_visit_date, 0) AS last_visit_date "
        "FROM moz_places ORDER BY last_visit_date DESC"
    )

    def to_epoch_seconds(self, native: int) -> int:
        # Firefox stores microseconds since Unix epoch
        return firefox_to_epoch(native)
