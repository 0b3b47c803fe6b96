"""Periodic auto-sync.

``AutoSyncScheduler`` owns the timer so the sync engine never has to: it
calls a parameterless ``run`` callable (normally ``SyncEngine.run_sync``)
on a background thread every interval.

The engine has no lock of its own, so the scheduler guards against
re-entrancy: a tick (or a manual ``trigger()``) that fires while a
previous run is still in flight is skipped, not queued.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class AutoSyncScheduler:
    """Run *run* every *interval_minutes* on a daemon thread.

    Args:
        run: Callable invoked on each tick.
        interval_minutes: Minutes between ticks (>= 1).
        on_result: Optional callback receiving each run's return value.
    """

    def __init__(
        self,
        run: Callable[[], Any],
        interval_minutes: int,
        on_result: Callable[[Any], None] | None = None,
    ):
        if interval_minutes < 1:
            raise ValueError("Sync interval must be at least 1 minute")
        self._run = run
        self._on_result = on_result
        self.interval_minutes = interval_minutes
        self._stop_event = threading.Event()
        self._in_flight = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60.0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start ticking.  No-op if already started."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop, name="r2-auto-sync", daemon=True
        )
        self._thread.start()
        logger.info(
            "Auto sync started: every %d minute(s)", self.interval_minutes
        )

    def stop(self, timeout: float = 5) -> None:
        """Stop ticking.  An in-flight run is allowed to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("Auto sync stopped")

    def restart(self, interval_minutes: int | None = None) -> None:
        """Stop, optionally change the interval, and start again."""
        self.stop()
        if interval_minutes is not None:
            if interval_minutes < 1:
                raise ValueError("Sync interval must be at least 1 minute")
            self.interval_minutes = interval_minutes
        self.start()

    def trigger(self) -> bool:
        """Run once now unless a run is already in flight.

        Returns:
            ``True`` if the run happened, ``False`` if it was skipped.
        """
        if not self._in_flight.acquire(blocking=False):
            logger.warning("Previous sync still running; skipping this run")
            return False
        try:
            result = self._run()
            if self._on_result is not None:
                self._on_result(result)
        except Exception as exc:
            logger.error("Auto sync run failed: %s", exc)
        finally:
            self._in_flight.release()
        return True

    def run_forever(self) -> None:
        """Block until interrupted, then stop."""
        self.start()
        try:
            while not self._stop_event.is_set():
                self._stop_event.wait(timeout=1)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self._stop_event.wait(timeout=self.interval_seconds)
            if self._stop_event.is_set():
                break
            self.trigger()
