"""TOML serialization for PastPath configuration."""

from __future__ import annotations

from pastpath.config.models import BrowserConfig, PastPathConfig


def _escape(value: object) -> str:
    """Escape backslashes and quotes for a TOML basic string."""
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def _format_browser(browser: BrowserConfig) -> str:
    return (
        "[[browsers]]\n"
        f'name = "{_escape(browser.name)}"\n'
        f'type = "{_escape(browser.type)}"\n'
        f'history_path = "{_escape(browser.history_path)}"\n'
    )


def generate_config_toml(config: PastPathConfig) -> str:
    """Generate TOML string from config for writing to file."""
    browsers_toml = "\n".join(_format_browser(b) for b in config.browsers)

    return f"""[general]
db_path = "{_escape(config.db_path)}"
tmp_dir = "{_escape(config.tmp_dir)}"
instance_id = "{_escape(config.instance_id)}"
log_level = "{config.log_level}"

[sync]
interval_seconds = {config.sync.interval_seconds}
fail_fast = {str(config.sync.fail_fast).lower()}

[search]
replace_http_with_https = {str(config.search.replace_http_with_https).lower()}
result_limit = {config.search.result_limit}
suggestion_limit = {config.search.suggestion_limit}
fallback_search_url = "{_escape(config.search.fallback_search_url)}"

{browsers_toml}"""
