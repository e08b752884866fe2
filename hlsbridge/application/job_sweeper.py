"""
Job Sweeper

In-process periodic expiry sweep, used when jobs live in memory and no
Celery beat is running.
"""

import logging
import threading
from typing import Optional

from .job_service import JobService

logger = logging.getLogger(__name__)


class JobSweeper:
    """Background thread calling ``JobService.cleanup_expired_jobs`` on an interval."""

    def __init__(self, job_service: JobService, interval_seconds: float = 3600.0):
        self.job_service = job_service
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="job-sweeper", daemon=True)
        self._thread.start()
        logger.info(f"Job sweeper started, interval {self.interval_seconds:.0f}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> int:
        """Sweep once, returning the number of removed jobs."""
        try:
            return len(self.job_service.cleanup_expired_jobs())
        except Exception as e:
            # Next tick retries
            logger.error(f"Job sweep failed: {e}", exc_info=True)
            return 0

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_once()
