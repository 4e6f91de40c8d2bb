"""Load and validate PastPath configuration from TOML files."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pastpath.config.models import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_DB_PATH,
    DEFAULT_SYNC_INTERVAL_SECONDS,
    DEFAULT_TMP_DIR,
    BrowserConfig,
    PastPathConfig,
    SearchConfig,
    SyncConfig,
    _default_instance_id,
)
from pastpath.config.validation import ConfigValidator
from pastpath.errors import ConfigError
from pastpath.search import (
    DEFAULT_FALLBACK_SEARCH_URL,
    DEFAULT_RESULT_LIMIT,
    DEFAULT_SUGGESTION_LIMIT,
)


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> PastPathConfig:
    """Load config from TOML file, validate, and return."""
    if not path.exists():
        msg = f"Config not found at {path}. Run 'pastpath init' to create one."
        raise FileNotFoundError(msg)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    config = _from_dict(data)

    validator = ConfigValidator()
    errors = validator.validate(config)
    if errors:
        error_msgs = "\n".join(f"  {e.path}: {e.message}" for e in errors)
        msg = f"Config validation failed:\n{error_msgs}"
        raise ConfigError(msg)

    return config


def _as_path(value: Any) -> Any:
    # Non-strings are left as-is for the validator to report
    return Path(value).expanduser() if isinstance(value, str) else value


def _table(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a table ([{key}])")
    return value


def _from_dict(data: dict[str, Any]) -> PastPathConfig:
    """Convert TOML dict to PastPathConfig dataclass.

    Values keep their TOML types; ConfigValidator checks them.
    """
    general = _table(data, "general")
    sync_data = _table(data, "sync")
    search_data = _table(data, "search")
    browsers_data = data.get("browsers", [])

    if not isinstance(browsers_data, list):
        raise ConfigError("'browsers' must be an array of tables ([[browsers]])")

    browsers: list[BrowserConfig] = []
    for i, b in enumerate(browsers_data):
        if not isinstance(b, dict):
            raise ConfigError(f"browsers[{i}] must be a table")
        browsers.append(
            BrowserConfig(
                name=b.get("name", ""),
                type=b.get("type", ""),
                history_path=b.get("history_path", ""),
            )
        )

    return PastPathConfig(
        db_path=_as_path(general.get("db_path", str(DEFAULT_DB_PATH))),
        tmp_dir=_as_path(general.get("tmp_dir", str(DEFAULT_TMP_DIR))),
        instance_id=general.get("instance_id", "") or _default_instance_id(),
        log_level=general.get("log_level", "INFO"),
        sync=SyncConfig(
            interval_seconds=sync_data.get("interval_seconds", DEFAULT_SYNC_INTERVAL_SECONDS),
            fail_fast=sync_data.get("fail_fast", True),
        ),
        search=SearchConfig(
            replace_http_with_https=search_data.get("replace_http_with_https", True),
            result_limit=search_data.get("result_limit", DEFAULT_RESULT_LIMIT),
            suggestion_limit=search_data.get("suggestion_limit", DEFAULT_SUGGESTION_LIMIT),
            fallback_search_url=search_data.get(
                "fallback_search_url", DEFAULT_FALLBACK_SEARCH_URL
            ),
        ),
        browsers=browsers,
    )
