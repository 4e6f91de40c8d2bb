"""Configuration dataclasses for PastPath."""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from pathlib import Path

from pastpath.models import BrowserKind, BrowserSource
from pastpath.search import (
    DEFAULT_FALLBACK_SEARCH_URL,
    DEFAULT_RESULT_LIMIT,
    DEFAULT_SUGGESTION_LIMIT,
)

DEFAULT_CONFIG_DIR = Path.home() / ".pastpath"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = DEFAULT_CONFIG_DIR / "pastpath.db"
DEFAULT_TMP_DIR = DEFAULT_CONFIG_DIR / "tmp"
DEFAULT_SYNC_INTERVAL_SECONDS = 600


@dataclass
class BrowserConfig:
    """One [[browsers]] table."""

    name: str
    type: str
    history_path: str

    def to_source(self) -> BrowserSource:
        return BrowserSource(
            name=self.name,
            kind=BrowserKind.parse(self.type),
            history_path=str(Path(self.history_path).expanduser()),
            type_name=self.type,
        )


@dataclass
class SyncConfig:
    """Sync schedule and failure policy."""

    interval_seconds: int = DEFAULT_SYNC_INTERVAL_SECONDS
    # Abort the rest of a cycle on the first failing browser
    fail_fast: bool = True


@dataclass
class SearchConfig:
    """Search behaviour."""

    replace_http_with_https: bool = True
    result_limit: int = DEFAULT_RESULT_LIMIT
    suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT
    fallback_search_url: str = DEFAULT_FALLBACK_SEARCH_URL


def _default_instance_id() -> str:
    return socket.gethostname() or "local"


@dataclass
class PastPathConfig:
    """Main PastPath configuration."""

    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    tmp_dir: Path = field(default_factory=lambda: DEFAULT_TMP_DIR)
    instance_id: str = field(default_factory=_default_instance_id)
    log_level: str = "INFO"
    sync: SyncConfig = field(default_factory=SyncConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    browsers: list[BrowserConfig] = field(default_factory=list)

    def sources(self) -> list[BrowserSource]:
        return [browser.to_source() for browser in self.browsers]
