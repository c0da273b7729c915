"""Background refresh loop feeding the snapshot cache.

The loop refreshes once on start and then every ``interval_seconds``. Waits
use the stop event so a shutdown request interrupts both the sleep and an
in-flight fan-out. A failed refresh leaves the previous snapshot published.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from deploywatch.cache.snapshot_cache import SnapshotCache
from deploywatch.config import DEFAULT_UPDATE_EVERY
from deploywatch.errors import DecodeError, FetchError, RefreshCancelled
from deploywatch.fetch.engine import FetchEngine

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Run :meth:`FetchEngine.refresh_all` on a fixed interval."""

    def __init__(
        self,
        engine: FetchEngine,
        cache: SnapshotCache,
        *,
        interval_seconds: float = DEFAULT_UPDATE_EVERY,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        self._engine = engine
        self._cache = cache
        self._interval_seconds = float(interval_seconds)
        self._stop_event = stop_event or threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def run_once(self) -> bool:
        """Refresh and publish; return ``True`` when a snapshot was swapped."""
        try:
            snapshot = self._engine.refresh_all()
        except RefreshCancelled:
            logger.info("Refresh abandoned due to shutdown")
            return False
        except (FetchError, DecodeError) as exc:
            logger.error("Data refresh failed, keeping previous data: %s", exc)
            self._cache.record_failure(exc)
            return False
        self._cache.swap(snapshot)
        return True

    def start(self) -> None:
        """Start the background thread; calling twice is a no-op."""
        with self._start_lock:
            if self.running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name="deploywatch-refresh",
                daemon=True,
            )
            self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal shutdown and wait for the background thread to exit."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(
                    "Refresh thread did not stop within %s s", timeout
                )

    def _run(self) -> None:
        logger.info(
            "Refresh loop started (interval: %.0f seconds)",
            self._interval_seconds,
        )
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                self.run_once()
            except Exception:  # noqa: BLE001 - keep the loop alive
                logger.exception("Unexpected error during data refresh")
            elapsed = time.monotonic() - started
            delay = max(0.0, self._interval_seconds - elapsed)
            if self._stop_event.wait(delay):
                break
        logger.info("Refresh loop stopped")
