"""Convert browser-native visit timestamps to Unix epoch seconds."""

from __future__ import annotations

from datetime import UTC, datetime

# Microseconds from 1601-01-01 (Windows/WebKit epoch) to 1970-01-01.
CHROME_EPOCH_OFFSET_US = 11_644_473_600_000_000
MICROSECONDS = 1_000_000


def _whole_seconds(microseconds: int) -> int:
    """Drop the sub-second part, truncating toward zero (pre-1970 values included)."""
    seconds = abs(microseconds) // MICROSECONDS
    return seconds if microseconds >= 0 else -seconds


def chrome_to_epoch(timestamp: int) -> int:
    return _whole_seconds(timestamp - CHROME_EPOCH_OFFSET_US)


def firefox_to_epoch(timestamp: int) -> int:
    return _whole_seconds(timestamp)


def epoch_to_datetime(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=UTC)
