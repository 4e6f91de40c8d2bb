"""Configuration validation for PastPath."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from pastpath.config.models import PastPathConfig


@dataclass(frozen=True)
class ValidationError:
    """A configuration validation error."""

    path: str
    message: str


def _is_int(value: object) -> bool:
    # TOML booleans are ints in Python
    return isinstance(value, int) and not isinstance(value, bool)


class ConfigValidator:
    """Validate PastPathConfig dataclass against schema.

    Types are checked first; value rules only run on correctly typed fields.
    """

    def validate(self, config: PastPathConfig) -> list[ValidationError]:
        """Validate config, return list of errors (empty if valid)."""
        errors: list[ValidationError] = []
        self._validate_general(config, errors)
        self._validate_sync(config, errors)
        self._validate_search(config, errors)
        self._validate_browsers(config, errors)
        return errors

    def _validate_general(self, config: PastPathConfig, errors: list[ValidationError]) -> None:
        for field_name in ("db_path", "tmp_dir"):
            value = getattr(config, field_name)
            if not isinstance(value, Path):
                errors.append(
                    ValidationError(f"general.{field_name}", f"Must be a string: {value!r}")
                )
            elif not str(value):
                errors.append(ValidationError(f"general.{field_name}", "Path is required"))

        if not isinstance(config.instance_id, str):
            errors.append(
                ValidationError(
                    "general.instance_id", f"Must be a string: {config.instance_id!r}"
                )
            )
        elif not config.instance_id:
            errors.append(ValidationError("general.instance_id", "Instance id is empty"))

        if not isinstance(config.log_level, str):
            errors.append(
                ValidationError("general.log_level", f"Must be a string: {config.log_level!r}")
            )
        elif not isinstance(logging.getLevelName(config.log_level.upper()), int):
            errors.append(
                ValidationError("general.log_level", f"Unknown log level: {config.log_level!r}")
            )

    def _validate_sync(self, config: PastPathConfig, errors: list[ValidationError]) -> None:
        interval = config.sync.interval_seconds
        if not _is_int(interval):
            errors.append(
                ValidationError("sync.interval_seconds", f"Must be an integer: {interval!r}")
            )
        elif interval <= 0:
            errors.append(
                ValidationError(
                    "sync.interval_seconds", f"Interval must be positive, got {interval}"
                )
            )

        if not isinstance(config.sync.fail_fast, bool):
            errors.append(
                ValidationError(
                    "sync.fail_fast", f"Must be true or false: {config.sync.fail_fast!r}"
                )
            )

    def _validate_search(self, config: PastPathConfig, errors: list[ValidationError]) -> None:
        search = config.search
        if not isinstance(search.replace_http_with_https, bool):
            errors.append(
                ValidationError(
                    "search.replace_http_with_https",
                    f"Must be true or false: {search.replace_http_with_https!r}",
                )
            )

        for field_name in ("result_limit", "suggestion_limit"):
            value = getattr(search, field_name)
            if not _is_int(value) or value <= 0:
                errors.append(
                    ValidationError(
                        f"search.{field_name}", f"Must be a positive integer: {value!r}"
                    )
                )

        url = search.fallback_search_url
        if not isinstance(url, str):
            errors.append(
                ValidationError("search.fallback_search_url", f"Must be a string: {url!r}")
            )
        elif "{query}" not in url:
            errors.append(
                ValidationError(
                    "search.fallback_search_url",
                    "Fallback search URL must contain a {query} placeholder",
                )
            )

    def _validate_browsers(self, config: PastPathConfig, errors: list[ValidationError]) -> None:
        # Unsupported browser types are skipped at sync time, not rejected here
        seen: set[str] = set()
        for i, browser in enumerate(config.browsers):
            for field_name in ("name", "type", "history_path"):
                value = getattr(browser, field_name)
                if not isinstance(value, str):
                    errors.append(
                        ValidationError(
                            f"browsers[{i}].{field_name}", f"Must be a string: {value!r}"
                        )
                    )

            if isinstance(browser.name, str):
                if not browser.name:
                    errors.append(
                        ValidationError(f"browsers[{i}].name", "Browser name is required")
                    )
                elif browser.name in seen:
                    errors.append(
                        ValidationError(
                            f"browsers[{i}].name", f"Duplicate browser name: {browser.name!r}"
                        )
                    )
                seen.add(browser.name)

            if isinstance(browser.history_path, str) and not browser.history_path:
                errors.append(
                    ValidationError(f"browsers[{i}].history_path", "History path is required")
                )
