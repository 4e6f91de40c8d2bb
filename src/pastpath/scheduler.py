"""Periodic sync task with at most one pipeline run in flight."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class SupportsRunOnce(Protocol):
    def run_once(self) -> object: ...


class SyncScheduler:
    """Runs the pipeline at startup and then every `interval_seconds`.

    Ticks are not reentrant: a tick that fires while the previous run is
    still going is dropped, not queued. Pipeline errors are logged and never
    stop the loop; the next tick retries from scratch.
    """

    def __init__(
        self,
        pipeline: SupportsRunOnce,
        interval_seconds: float,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._interval = interval_seconds
        self._on_error = on_error
        self._running = threading.Lock()
        self.runs = 0
        self.dropped = 0

    @property
    def busy(self) -> bool:
        return self._running.locked()

    def tick(self) -> bool:
        """Run the pipeline once unless a run is already in flight.

        Returns False when the tick was coalesced into the running one.
        """
        if not self._running.acquire(blocking=False):
            self.dropped += 1
            logger.info("Previous sync still running, skipping this tick")
            return False
        try:
            self._pipeline.run_once()
        except Exception as exc:
            logger.error("History sync failed: %s", exc)
            if self._on_error is not None:
                self._on_error(exc)
        finally:
            self.runs += 1
            self._running.release()
        return True

    async def run(self, stop: asyncio.Event | None = None) -> None:
        """Tick until `stop` is set, then wait for the in-flight run to finish."""
        stop = stop or asyncio.Event()
        pending: set[asyncio.Task[bool]] = set()

        while True:
            task = asyncio.create_task(asyncio.to_thread(self.tick))
            pending.add(task)
            task.add_done_callback(pending.discard)

            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval)
            except TimeoutError:
                continue
            break

        if pending:
            await asyncio.gather(*pending)
