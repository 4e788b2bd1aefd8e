"""
Single-flight refresh coordination for the key cache.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import functools
import time
from typing import Optional, Set

from shared.errors import KeyDocumentMalformed, PaymentKeysError, TransportFailure
from shared.logging import get_logger, set_refresh_id
from shared.metrics import MetricsCollector

from ..fetch.fetcher import KeyFetcher
from ..keys.models import KeySnapshot
from ..keys.parser import KeyParser
from .cache import KeyCache


class RefreshCoordinator:
    """Keeps at most one key fetch outstanding per cache.

    Callers that find the cache stale either start the refresh or join the
    future already registered in ``cache.in_flight``; all of them observe
    its single outcome. A failed refresh leaves the previous snapshot in
    place and clears the slot so the next caller tries again.
    """

    def __init__(
        self,
        cache: KeyCache,
        fetcher: KeyFetcher,
        parser: KeyParser,
        *,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.cache = cache
        self.fetcher = fetcher
        self.parser = parser
        self.metrics = metrics
        self.logger = get_logger("payment_keys.coordinator")
        self._tasks: Set["asyncio.Task[None]"] = set()

    async def ensure_fresh(self) -> KeySnapshot:
        """Return a fresh snapshot, refreshing (or joining a refresh) if needed.

        Safe to call from several threads, each running its own event loop.
        The refresh runs on the loop of the caller that started it; callers on
        other loops wait on the same thread-safe future.
        """
        loop = asyncio.get_running_loop()
        snapshot: Optional[KeySnapshot] = None
        outcome: Optional["concurrent.futures.Future[KeySnapshot]"] = None
        with self.cache.lock:
            if self.cache.is_fresh():
                snapshot = self.cache.read_snapshot()
                result = "hit"
            elif self.cache.in_flight is not None:
                outcome = self.cache.in_flight
                result = "join"
            else:
                outcome = concurrent.futures.Future()
                self.cache.in_flight = outcome
                result = "refresh"

        self._increment("payment_keys_requests_total", result=result)
        if outcome is None:
            return snapshot

        if result == "refresh":
            task = loop.create_task(self._refresh(outcome))
            self._tasks.add(task)
            task.add_done_callback(functools.partial(self._on_refresh_done, outcome))

        # Shielded so a cancelled caller never cancels the shared fetch
        return await asyncio.shield(asyncio.wrap_future(outcome))

    async def _refresh(self, outcome: "concurrent.futures.Future[KeySnapshot]") -> None:
        set_refresh_id()
        started = time.perf_counter()
        self.logger.info("Refreshing payment signing keys", url=self.fetcher.url)

        try:
            result = await self.fetcher.fetch()
            snapshot = self.parser.parse(result.document)
        except Exception as exc:
            self._release(outcome)
            self._record_failure(exc, time.perf_counter() - started)
            outcome.set_exception(exc)
            return

        with self.cache.lock:
            self.cache.commit(snapshot, result.freshness_hint)
            self.cache.in_flight = None

        duration = time.perf_counter() - started
        self._increment("payment_keys_fetch_total", outcome="success")
        self._observe_duration(duration)
        self._report_cached_keys(snapshot)
        self.logger.info(
            "Key refresh succeeded",
            keys_count=snapshot.key_count,
            duration_ms=round(duration * 1000, 2),
        )
        outcome.set_result(snapshot)

    def _on_refresh_done(
        self,
        outcome: "concurrent.futures.Future[KeySnapshot]",
        task: "asyncio.Task[None]",
    ) -> None:
        self._tasks.discard(task)
        if outcome.done():
            return
        # Cancelled, typically because the starting caller's loop shut down
        self._release(outcome)
        outcome.cancel()
        self.logger.warning("Key refresh was cancelled")

    def _release(self, outcome: "concurrent.futures.Future[KeySnapshot]") -> None:
        with self.cache.lock:
            if self.cache.in_flight is outcome:
                self.cache.in_flight = None

    def _record_failure(self, exc: Exception, duration: float) -> None:
        if isinstance(exc, TransportFailure):
            outcome = "transport_failure"
        elif isinstance(exc, KeyDocumentMalformed):
            outcome = "malformed"
        else:
            outcome = "error"
        self._increment("payment_keys_fetch_total", outcome=outcome)
        self._observe_duration(duration)

        has_snapshot = self.cache.read_snapshot() is not None
        if isinstance(exc, PaymentKeysError):
            self.logger.error(
                "Key refresh failed",
                retained_stale_snapshot=has_snapshot,
                **exc.to_report().model_dump(),
            )
        else:
            self.logger.error(
                "Unexpected error during key refresh",
                retained_stale_snapshot=has_snapshot,
                error=str(exc),
                error_type=type(exc).__name__,
            )

    def _report_cached_keys(self, snapshot: KeySnapshot) -> None:
        if self.metrics is None:
            return
        self.metrics.clear_metric("payment_keys_cached_keys")
        for protocol_version, values in snapshot.by_protocol_version.items():
            self.metrics.set_gauge("payment_keys_cached_keys", len(values), protocol_version=protocol_version)

    def _increment(self, metric_name: str, **labels) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, **labels)

    def _observe_duration(self, duration: float) -> None:
        if self.metrics is not None:
            self.metrics.observe_histogram("payment_keys_fetch_duration_seconds", duration)
