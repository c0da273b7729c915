"""
DeployWatch Repository
Introductory remarks: This module is part of the DeployWatch codebase.

Thread-safe holder for the latest published inventory snapshot.

Snapshots are immutable values, so publishing one is a reference swap under
a short lock. Readers get either the previous or the new snapshot and never
a mix of the two. The lock is never held while network I/O is in progress.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from deploywatch.models import Snapshot

logger = logging.getLogger(__name__)


class SnapshotCache:
    """Publish and read :class:`Snapshot` values atomically."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._snapshot = Snapshot.empty()
        self._generation = 0
        self._last_error: Optional[BaseException] = None
        self._last_attempt: Optional[float] = None

    def get(self) -> Snapshot:
        """Return the last complete snapshot or the empty sentinel."""
        with self._lock:
            return self._snapshot

    def swap(self, snapshot: Snapshot) -> Snapshot:
        """Publish ``snapshot`` and return the one it replaced."""
        if not isinstance(snapshot, Snapshot):
            raise TypeError(
                f"Expected a Snapshot, got {type(snapshot).__name__}"
            )
        with self._lock:
            previous = self._snapshot
            self._snapshot = snapshot
            self._generation += 1
            self._last_error = None
            self._last_attempt = self._clock()
            generation = self._generation
        logger.debug(
            "Published snapshot generation %d (%d models, %d deployments)",
            generation,
            len(snapshot.models),
            len(snapshot.deployments),
        )
        return previous

    def record_failure(self, error: BaseException) -> None:
        """Remember a failed refresh without touching the snapshot."""
        with self._lock:
            self._last_error = error
            self._last_attempt = self._clock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def last_error(self) -> Optional[BaseException]:
        with self._lock:
            return self._last_error

    @property
    def last_attempt(self) -> Optional[float]:
        with self._lock:
            return self._last_attempt
