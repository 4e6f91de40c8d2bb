"""Exception hierarchy for pastpath."""

from __future__ import annotations


class PastPathError(Exception):
    """Base exception for all pastpath errors."""


class ConfigError(PastPathError):
    """Configuration file is missing required values or is invalid."""


class SourceError(PastPathError):
    """Base exception for browser history sources."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"[{source}] {message}")
        self.source = source


class SourceUnavailable(SourceError):
    """A browser history database could not be copied, opened or read."""


class UnsupportedSource(SourceError):
    """Configured browser type has no collector."""


class StorageError(PastPathError):
    """A transaction against the local history database failed."""


class QueryError(PastPathError):
    """A search could not be served."""


class SyncError(PastPathError):
    """One or more sources failed during a cycle that kept going."""

    def __init__(self, failures: dict[str, PastPathError]) -> None:
        names = ", ".join(sorted(failures))
        super().__init__(f"{len(failures)} source(s) failed: {names}")
        self.failures = failures
