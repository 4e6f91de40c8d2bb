"""Collector for Chrome-family `History` databases."""

from __future__ import annotations

from pastpath.collectors.base import HistoryCollector
from pastpath.models import BrowserKind
from pastpath.timestamps import chrome_to_epoch


class ChromeCollector(HistoryCollector):
    kind = BrowserKind.CHROME
    query = (
        "SELECT url, title, visit_count, last_visit_time "
        "FROM urls ORDER BY last_visit_time DESC"
    )

    def to_epoch_seconds(self, native: int) -> int:
        # Chrome stores microseconds since 1601-01-01
        return chrome_to_epoch(native)
