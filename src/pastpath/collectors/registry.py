"""Map browser kinds to collector implementations."""

from __future__ import annotations

from pastpath.collectors.base import HistoryCollector
from pastpath.collectors.chrome import ChromeCollector
from pastpath.collectors.firefox import FirefoxCollector
from pastpath.errors import UnsupportedSource
from pastpath.models import BrowserKind, BrowserSource

COLLECTORS: dict[BrowserKind, type[HistoryCollector]] = {
    BrowserKind.CHROME: ChromeCollector,
    BrowserKind.FIREFOX: FirefoxCollector,
}


def build_collector(source: BrowserSource) -> HistoryCollector:
    collector_cls = COLLECTORS.get(source.kind)
    if collector_cls is None:
        type_name = source.type_name or source.kind.value
        raise UnsupportedSource(source.name, f"Browser type not supported: {type_name!r}")
    return collector_cls(source)
