"""
poolbalancer - Recovery Scheduler

Background task that re-admits excluded providers.

Every scan ages each excluded provider by one check; a provider that has
been excluded for more than ``threshold`` scans is included again. Recovery
is counted in scans, not in elapsed seconds.

The scheduler ticks at a fixed rate on one daemon thread. A scan that
raises is logged and counted; the next scan still runs on schedule.
"""

import threading
import time
from typing import Any, Callable, Dict, List, Optional

from ..core.config import (
    DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
    DEFAULT_RECOVERY_THRESHOLD_CHECKS,
)
from ..observability.logging import LogContext, TimedOperation, get_logger
from ..observability.metrics import MetricsCollector
from .registry import ProviderRegistry


logger = get_logger(__name__)


class RecoveryScheduler:
    """
    Periodic recovery scan over a provider registry.

    Owned by a LoadBalancer, which starts it on construction and stops it
    on shutdown.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        interval_seconds: float = DEFAULT_HEARTBEAT_INTERVAL_SECONDS,
        threshold: int = DEFAULT_RECOVERY_THRESHOLD_CHECKS,
        metrics: Optional[MetricsCollector] = None,
        on_recovered: Optional[Callable[[List[str]], None]] = None,
        name: str = "poolbalancer-recovery",
        log_context: Optional[LogContext] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if threshold < 0:
            raise ValueError("threshold cannot be negative")

        self.registry = registry
        self.interval_seconds = interval_seconds
        self.threshold = threshold
        self.metrics = metrics
        self.on_recovered = on_recovered
        self.name = name
        self.log_context = log_context

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()

        self._scan_count = 0
        self._error_count = 0

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def scan_count(self) -> int:
        """Scans completed without error."""
        return self._scan_count

    @property
    def error_count(self) -> int:
        """Scans that raised."""
        return self._error_count

    def run_scan(self) -> List[str]:
        """
        Run one recovery scan now.

        Returns:
            Identifiers re-admitted by this scan.

        Errors propagate; the background loop isolates them.
        """
        with TimedOperation("recovery_scan", logger) as timer:
            recovered = self.registry.age_exclusions(self.threshold)

        with self._state_lock:
            self._scan_count += 1
        if self.metrics:
            self.metrics.record_recovery_scan(timer.duration_seconds)
            for identifier in recovered:
                self.metrics.record_liveness_change(identifier, "include", source="recovery")

        for identifier in recovered:
            logger.info(
                "Provider re-admitted after recovery checks",
                provider=identifier,
                threshold=self.threshold,
                **self._context_fields(),
            )

        if recovered and self.on_recovered:
            self.on_recovered(recovered)

        return recovered

    def _context_fields(self) -> Dict[str, Any]:
        return self.log_context.to_dict() if self.log_context else {}

    def _safe_scan(self):
        try:
            self.run_scan()
        except Exception:
            with self._state_lock:
                self._error_count += 1
                failed_scan = self._scan_count + self._error_count
            if self.metrics:
                self.metrics.record_recovery_error()
            logger.exception(
                "Recovery scan failed",
                scan=failed_scan,
                **self._context_fields(),
            )

    def _run(self):
        if self.log_context is not None:
            LogContext.set_current(self.log_context)
        next_run = time.monotonic() + self.interval_seconds
        while not self._stop_event.wait(max(0.0, next_run - time.monotonic())):
            self._safe_scan()
            next_run += self.interval_seconds
            now = time.monotonic()
            if next_run < now:
                # Missed ticks are dropped, the schedule stays aligned
                missed = int((now - next_run) // self.interval_seconds) + 1
                next_run += missed * self.interval_seconds

    def start(self):
        """Start the background thread. No-op if already running."""
        with self._state_lock:
            if self.is_running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                name=self.name,
                daemon=True,
            )
            self._thread.start()

        logger.debug(
            "Recovery scheduler started",
            interval_seconds=self.interval_seconds,
            threshold=self.threshold,
            **self._context_fields(),
        )

    def stop(self, timeout: Optional[float] = None):
        """
        Stop future scans and wait for the thread to exit.

        A scan already in progress runs to completion. Safe to call twice.
        """
        with self._state_lock:
            thread = self._thread
            self._stop_event.set()
            self._thread = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            logger.debug(
                "Recovery scheduler stopped",
                scans=self._scan_count,
                **self._context_fields(),
            )
