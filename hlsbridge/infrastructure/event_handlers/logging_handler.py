"""
Logging Job Listener

Infrastructure listener that logs job status changes.
The domain layer remains unaware of logging configuration.
"""

import logging
import threading
from typing import Dict, Optional

from hlsbridge.domain.job_management import JobStatus, StreamJob


class LoggingJobListener:
    """
    Process-wide job listener that logs every status change.

    Progress updates within a status are logged at DEBUG only.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize with logger instance.

        Args:
            logger: Python logging.Logger instance, module logger if None
        """
        self.logger = logger or logging.getLogger(__name__)
        self._last_status: Dict[str, JobStatus] = {}
        self._lock = threading.Lock()

    def __call__(self, job: StreamJob) -> None:
        with self._lock:
            previous = self._last_status.get(job.job_id)
            if job.is_terminal():
                self._last_status.pop(job.job_id, None)
            else:
                self._last_status[job.job_id] = job.status

        if previous == job.status:
            self.logger.debug(f"Job {job.job_id} {job.status.value}: {job.progress:.1f}%")
            return

        if job.status == JobStatus.ERROR:
            self.logger.error(
                f"Job {job.job_id} failed: category={job.error_category}, message={job.message}"
            )
        elif job.status == JobStatus.READY:
            self.logger.info(f"Job {job.job_id} ready: {job.stream_url}")
        else:
            self.logger.info(
                f"Job {job.job_id} status: "
                f"{previous.value if previous else 'unknown'} -> {job.status.value} "
                f"({job.progress:.1f}%)"
            )
