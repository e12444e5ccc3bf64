"""
Overtime monitor

Background sweep that locks deposited rentals once their deadline has passed. It owns no
data: every sweep goes through the same idempotent evaluation the pull API uses, so the
end state of a rental does not depend on how often the sweep runs.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from sqlalchemy.orm import Session

from lockerhub.core.pricing import PricingTable
from lockerhub.core.use_cases.rental_transition import Clock, utcnow
from lockerhub.core.use_cases.sweep_overtime import SweepOvertimeResult
from lockerhub.services.lockerhub_service import sweep_overtime_service

logger = logging.getLogger(__name__)


class OvertimeMonitor:
    """Runs an overtime sweep every `interval_sec` seconds on a daemon thread."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        pricing: PricingTable,
        interval_sec: float = 60.0,
        clock: Clock = utcnow,
    ) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")

        self._session_factory = session_factory
        self._pricing = pricing
        self._interval_sec = interval_sec
        self._clock = clock

        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

        self.stats = {
            'last_sweep': None,
            'sweep_count': 0,
            'locked_count': 0,
            'error_count': 0,
        }

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            logger.warning("[OvertimeMonitor] already running")
            return

        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="OvertimeMonitor")
        self._thread.start()
        logger.info("[OvertimeMonitor] started, interval %.1fs", self._interval_sec)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("[OvertimeMonitor] stopped")

    def sweep_once(self) -> SweepOvertimeResult:
        now = self._clock()
        db = self._session_factory()
        try:
            result = sweep_overtime_service(db, pricing=self._pricing, now=now, clock=self._clock)
        finally:
            db.close()

        self.stats['last_sweep'] = now
        self.stats['sweep_count'] += 1
        self.stats['locked_count'] += result.locked
        if result.locked:
            logger.info("[OvertimeMonitor] sweep locked %d of %d open rental(s)", result.locked, result.evaluated)
        return result

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.sweep_once()
            except Exception:
                # the next sweep re-evaluates the same rentals
                self.stats['error_count'] += 1
                logger.exception("[OvertimeMonitor] sweep failed")
            self._stop.wait(self._interval_sec)
