"""
Key snapshot cache.
"""

from __future__ import annotations

import concurrent.futures
import threading
from datetime import datetime, timedelta
from typing import Optional

from shared.logging import get_logger

from ..clock import SYSTEM_CLOCK, Clock
from ..keys.models import FreshnessSource, FreshnessWindow, KeySnapshot


DEFAULT_FRESHNESS = timedelta(days=7)


class KeyCache:
    """Owns the current snapshot and decides whether it is still fresh.

    Every field below is guarded by ``lock``. The lock is reentrant so the
    refresh coordinator can hold it around several cache calls and make
    "is fresh" and "is a refresh in flight" a single atomic check.
    """

    def __init__(self, clock: Clock = SYSTEM_CLOCK, default_freshness: timedelta = DEFAULT_FRESHNESS) -> None:
        self.clock = clock
        self.lock = threading.RLock()
        self.logger = get_logger("payment_keys.cache")

        self._snapshot: Optional[KeySnapshot] = None
        self._last_refreshed_at: Optional[datetime] = None
        self._freshness_window = FreshnessWindow(default_freshness, FreshnessSource.DEFAULT)

        # Set iff a fetch is outstanding; managed by RefreshCoordinator.
        # A thread-safe future so callers on any event loop can await it
        self.in_flight: Optional["concurrent.futures.Future[KeySnapshot]"] = None

    @property
    def freshness_window(self) -> FreshnessWindow:
        with self.lock:
            return self._freshness_window

    @property
    def last_refreshed_at(self) -> Optional[datetime]:
        with self.lock:
            return self._last_refreshed_at

    def is_fresh(self) -> bool:
        """True iff a snapshot exists and its freshness window has not elapsed."""
        with self.lock:
            if self._snapshot is None or self._last_refreshed_at is None:
                return False
            age = self.clock.now() - self._last_refreshed_at
            return age < self._freshness_window.duration

    def read_snapshot(self) -> Optional[KeySnapshot]:
        """Current snapshot, stale or not; None before the first refresh."""
        with self.lock:
            return self._snapshot

    def commit(self, snapshot: KeySnapshot, hint: Optional[timedelta] = None) -> None:
        """Install ``snapshot`` and restart the freshness window."""
        with self.lock:
            self._snapshot = snapshot
            self._last_refreshed_at = self.clock.now()
            if hint is not None:
                self._freshness_window = FreshnessWindow(hint, FreshnessSource.SERVER_HINT)
            window = self._freshness_window

        self.logger.info(
            "Committed key snapshot",
            keys_count=snapshot.key_count,
            freshness_seconds=int(window.duration.total_seconds()),
            freshness_source=window.source.value,
        )
