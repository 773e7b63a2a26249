"""Periodic background refresh of followed shows."""

import asyncio
import logging
import threading
from datetime import datetime, timedelta
from typing import Optional

from ..config import MIN_REFRESH_INTERVAL_MINUTES
from ..dates import utcnow
from .refresh import RefreshOrchestrator, RefreshReport

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Runs `refresh_with_api_data` on a fixed cadence in a background thread.

    Lifecycle:
        start() → running (thread waits for the next slot, then refreshes)
        stop()  → stop event set; an in-flight pass starts no new fetches

    The next run is scheduled before each pass begins, so a slow or failed
    pass never delays or drops later attempts.
    """

    def __init__(self, orchestrator: RefreshOrchestrator, interval_minutes: int = MIN_REFRESH_INTERVAL_MINUTES):
        self.orchestrator = orchestrator
        self.interval = timedelta(minutes=max(MIN_REFRESH_INTERVAL_MINUTES, interval_minutes))
        self.next_run_at: Optional[datetime] = None
        self.last_report: Optional[RefreshReport] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def set_interval(self, minutes: int):
        """Change the cadence; takes effect from the next scheduled slot."""
        self.interval = timedelta(minutes=max(MIN_REFRESH_INTERVAL_MINUTES, minutes))

    def schedule_next(self, now: Optional[datetime] = None) -> datetime:
        self.next_run_at = (now or utcnow()) + self.interval
        return self.next_run_at

    def start(self):
        if self.is_running:
            return
        self._stop.clear()
        self.schedule_next()
        self._thread = threading.Thread(target=self._loop, name="refresh-scheduler", daemon=True)
        self._thread.start()
        logger.info(f"Refresh scheduler started, next run at {self.next_run_at.isoformat()}")

    def stop(self, timeout: float = 10):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Refresh scheduler stopped")

    def run_once(self) -> Optional[RefreshReport]:
        """Run one pass now, in the calling thread."""
        self.schedule_next()
        try:
            self.last_report = asyncio.run(self._run_pass())
        except Exception as e:
            logger.error(f"Scheduled refresh failed: {e}", exc_info=True)
            return None
        return self.last_report

    async def _run_pass(self) -> RefreshReport:
        try:
            return await self.orchestrator.refresh_with_api_data(cancel_event=self._stop)
        finally:
            # Each pass runs on its own event loop, so its HTTP client closes here
            await self.orchestrator.catalog.close()

    def _loop(self):
        while not self._stop.is_set():
            wait_seconds = (self.next_run_at - utcnow()).total_seconds()
            if wait_seconds > 0 and self._stop.wait(wait_seconds):
                break
            self.run_once()
