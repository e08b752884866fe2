"""
Job Application Service

Coordinates stream job use cases: start, status, cancel and expiry.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from hlsbridge.domain.errors import ApplicationError, ErrorCategory
from hlsbridge.domain.job_management import (
    JobNotFoundError,
    JobStateError,
    JobStatus,
    JobStore,
    QueueSubscriber,
    StreamJob,
)
from hlsbridge.domain.media.value_objects import SourceUrl

from .dispatchers import PipelineDispatcher

logger = logging.getLogger(__name__)


class JobService:
    """
    Application service for stream job operations.

    Validates input, creates jobs, hands them to the dispatcher and maps
    store outcomes to domain errors for the API layer.
    """

    def __init__(
        self,
        job_store: JobStore,
        dispatcher: Optional[PipelineDispatcher] = None,
        output_root: Optional[str] = None,
    ):
        """
        Initialize JobService.

        Args:
            job_store: JobStore domain service
            dispatcher: Starts pipelines, jobs are only created when None
            output_root: Directory holding the job output directories
        """
        self.job_store = job_store
        self.dispatcher = dispatcher
        self.output_root = Path(output_root) if output_root else None

    def start_stream(self, url: str) -> StreamJob:
        """
        Create a job for a remote video and schedule its pipeline.

        Args:
            url: Remote video URL

        Returns:
            Created StreamJob snapshot

        Raises:
            InvalidInputError: If the URL is not an http(s) URL
            ApplicationError: If the pipeline could not be scheduled
        """
        source = SourceUrl((url or "").strip())

        job = self.job_store.create_job(str(source))
        logger.info(f"Created job {job.job_id} for {source}")

        if self.dispatcher is None:
            logger.warning(f"No dispatcher configured, job {job.job_id} will not be processed")
            return job

        try:
            self.dispatcher.dispatch(job.job_id)
        except Exception as e:
            logger.error(f"Failed to dispatch job {job.job_id}: {e}", exc_info=True)
            self.job_store.update_job(
                job.job_id,
                status=JobStatus.ERROR,
                message="Failed to schedule the conversion",
                error_category=ErrorCategory.SYSTEM_ERROR.value,
            )
            raise ApplicationError(ErrorCategory.SYSTEM_ERROR, f"Dispatch failed: {e}") from e

        return job

    def get_job(self, job_id: str) -> StreamJob:
        """
        Get a job snapshot.

        Raises:
            JobNotFoundError: If job doesn't exist
        """
        return self.job_store.require_job(job_id)

    def get_job_status(self, job_id: str) -> Dict[str, Any]:
        """
        Get job status information.

        Args:
            job_id: Job identifier

        Returns:
            Dictionary with the job snapshot

        Raises:
            JobNotFoundError: If job doesn't exist
        """
        try:
            return self.job_store.require_job(job_id).to_dict()
        except JobNotFoundError:
            logger.warning(f"Job not found: {job_id}")
            raise

    def cancel_job(self, job_id: str) -> StreamJob:
        """
        Cancel a job that has not finished yet.

        Args:
            job_id: Job identifier

        Returns:
            Cancelled job snapshot

        Raises:
            JobNotFoundError: If job doesn't exist
            JobStateError: If the job already reached a terminal state
        """
        job = self.job_store.require_job(job_id)

        if not self.job_store.cancel_job(job_id):
            current = self.job_store.get_job(job_id) or job
            raise JobStateError(f"Job {job_id} is already {current.status.value}")

        if self.dispatcher is not None:
            self.dispatcher.cancel(job_id)

        return self.job_store.require_job(job_id)

    def cleanup_expired_jobs(self, now: Optional[datetime] = None) -> List[str]:
        """
        Delete jobs past the retention window together with their output.

        Args:
            now: Reference time, defaults to utcnow

        Returns:
            IDs of the deleted jobs
        """
        removed = self.job_store.sweep_expired(now)

        if self.output_root is not None:
            for job_id in removed:
                shutil.rmtree(self.output_root / job_id, ignore_errors=True)

        if removed:
            logger.info(f"Cleaned up {len(removed)} expired jobs")
        return removed

    def watch_job(self, job_id: str, poll_interval: float = 1.0) -> Iterator[StreamJob]:
        """
        Stream snapshots of a job until it reaches a terminal status.

        Updates published in this process arrive through a subscription;
        the store is polled every ``poll_interval`` seconds as well, so
        updates written by a worker process are picked up too. Snapshots
        are yielded in ``updated_at`` order without duplicates.

        Args:
            job_id: Job identifier
            poll_interval: Seconds to wait for a pushed update before polling

        Returns:
            Iterator of job snapshots, the first being the current state

        Raises:
            JobNotFoundError: If job doesn't exist
        """
        current = self.job_store.require_job(job_id)
        subscriber = QueueSubscriber()
        unsubscribe = self.job_store.subscribe(job_id, subscriber)

        def stream() -> Iterator[StreamJob]:
            job: Optional[StreamJob] = current
            last: Optional[StreamJob] = None
            try:
                while job is not None:
                    if last is None or job.updated_at > last.updated_at or (
                        job.updated_at == last.updated_at and job != last
                    ):
                        last = job
                        yield job
                    if last.is_terminal():
                        return
                    pushed = next(subscriber.updates(timeout=poll_interval), None)
                    job = pushed if pushed is not None else self.job_store.get_job(job_id)
            finally:
                unsubscribe()

        return stream()
