"""Scratch copies of live browser databases.

Browsers keep their history database locked (and partly in a write-ahead
log) while running, so every import reads from a private copy. The scratch
directory only lives for one cycle.
"""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from pastpath.errors import SourceUnavailable

logger = logging.getLogger(__name__)

SIDECAR_SUFFIXES = ("-wal",)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name).strip("._") or "browser"


class SnapshotArea:
    """Context manager owning a private scratch directory for one import cycle.

    The configured directory is only a parent: each cycle works in its own
    `pastpath-*` subdirectory and removes nothing else.
    """

    def __init__(self, scratch_dir: Path | str) -> None:
        self._parent = Path(scratch_dir).expanduser()
        self._dir: Path | None = None

    @property
    def path(self) -> Path | None:
        return self._dir

    def __enter__(self) -> SnapshotArea:
        try:
            self._parent.mkdir(parents=True, exist_ok=True)
            self._dir = Path(tempfile.mkdtemp(dir=self._parent, prefix="pastpath-"))
        except OSError as exc:
            raise SourceUnavailable(
                "snapshot", f"Cannot create scratch directory in {self._parent}: {exc}"
            ) from exc
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self._dir is not None:
            shutil.rmtree(self._dir, ignore_errors=True)
            logger.debug("Removed scratch directory %s", self._dir)
        self._dir = None

    def snapshot(self, source_path: Path | str, name: str) -> Path:
        """Copy `source_path` into the scratch area and return the copy's path."""
        if self._dir is None:
            msg = "snapshot() called outside of the SnapshotArea context"
            raise RuntimeError(msg)

        source = Path(source_path).expanduser()
        target = self._dir / f"{_safe_name(name)}.db"
        if not source.is_file():
            raise SourceUnavailable(name, f"History database not found at {source}")

        try:
            shutil.copyfile(source, target)
            for suffix in SIDECAR_SUFFIXES:
                sidecar = source.with_name(source.name + suffix)
                if sidecar.is_file():
                    shutil.copyfile(sidecar, target.with_name(target.name + suffix))
        except OSError as exc:
            raise SourceUnavailable(name, f"Cannot copy {source}: {exc}") from exc

        logger.debug("Copied %s to %s", source, target)
        return target
