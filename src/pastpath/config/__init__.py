"""Configuration management for PastPath."""

from __future__ import annotations

from pastpath.config.discovery import detect_browsers
from pastpath.config.loader import load_config
from pastpath.config.models import (
    DEFAULT_CONFIG_PATH,
    BrowserConfig,
    PastPathConfig,
    SearchConfig,
    SyncConfig,
)
from pastpath.config.serializer import generate_config_toml

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "PastPathConfig",
    "BrowserConfig",
    "SyncConfig",
    "SearchConfig",
    "load_config",
    "generate_config_toml",
    "detect_browsers",
]
