"""
Job Management Services

Job store: the single owner of job records. Enforces state transitions and
progress monotonicity and fans updates out to subscribers.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, List, Optional

from hlsbridge.domain.errors import DomainError, ErrorCategory

from .entities import InvalidTransitionError, StreamJob
from .notifications import JobCallback, SubscriptionRegistry, Unsubscribe
from .repositories import JobRepository
from .value_objects import JobStatus

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(hours=24)

DELIVERY_LOCK_STRIPES = 64


class JobNotFoundError(DomainError):
    """Raised when a job is not found."""

    category = ErrorCategory.JOB_NOT_FOUND


class JobStateError(DomainError):
    """Raised when an invalid state transition is attempted."""

    category = ErrorCategory.JOB_NOT_CANCELLABLE


class JobStore:
    """
    Domain service owning the lifecycle of stream jobs.

    All mutations go through ``update_job`` or ``cancel_job``. Unknown ids
    yield ``None``/``False`` instead of raising, so late writers (an
    orphaned fetch after a cancel, an update after the sweep) are harmless.

    A write and the notification it triggers happen under one per-job lock,
    so subscribers see a job's snapshots in the order they were stored.
    """

    def __init__(
        self,
        job_repository: JobRepository,
        registry: Optional[SubscriptionRegistry] = None,
        retention: timedelta = DEFAULT_RETENTION,
    ):
        """
        Initialize JobStore.

        Args:
            job_repository: Repository for job persistence
            registry: Subscription registry, a private one is created if None
            retention: Age after which jobs are swept
        """
        self.job_repo = job_repository
        self.registry = registry or SubscriptionRegistry()
        self.retention = retention
        self._delivery_locks = [threading.RLock() for _ in range(DELIVERY_LOCK_STRIPES)]

    def _delivery_lock(self, job_id: str) -> threading.RLock:
        return self._delivery_locks[hash(job_id) % DELIVERY_LOCK_STRIPES]

    def create_job(self, source_url: str) -> StreamJob:
        """
        Create a new job in ``created`` status.

        Args:
            source_url: Remote video URL

        Returns:
            Created StreamJob

        Raises:
            RuntimeError: If the repository refuses the write
        """
        job = StreamJob.create(source_url)

        if not self.job_repo.save(job):
            raise RuntimeError("Failed to save job to repository")

        logger.debug(f"Created job {job.job_id} for {source_url}")
        return job.snapshot()

    def get_job(self, job_id: str) -> Optional[StreamJob]:
        """Return a snapshot of the job, or None if it does not exist."""
        return self.job_repo.get(job_id)

    def require_job(self, job_id: str) -> StreamJob:
        """
        Return a snapshot of the job.

        Raises:
            JobNotFoundError: If job doesn't exist
        """
        job = self.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    def update_job(self, job_id: str, **fields: Any) -> Optional[StreamJob]:
        """
        Merge fields into a job and notify its subscribers.

        Progress lower than the stored value is clamped up. Updates to a
        terminal job are dropped and the unchanged snapshot is returned.

        Args:
            job_id: Job identifier
            **fields: Partial job fields (see ``StreamJob.apply_update``)

        Returns:
            Updated snapshot, or None if the job does not exist

        Raises:
            JobStateError: If the update requests a forbidden transition
        """
        with self._delivery_lock(job_id):
            try:
                outcome = self.job_repo.update(job_id, lambda job: job.apply_update(**fields))
            except InvalidTransitionError as e:
                raise JobStateError(str(e)) from e

            if outcome is None:
                logger.debug(f"Ignoring update for unknown job {job_id}")
                return None

            job, changed = outcome
            if not changed:
                logger.debug(f"Ignoring update for terminal job {job_id} ({job.status.value})")
                return job

            self.registry.notify(job.snapshot())
            return job

    def cancel_job(self, job_id: str) -> bool:
        """
        Cancel a job that has not reached a terminal state.

        Args:
            job_id: Job identifier

        Returns:
            True if the job moved to ``cancelled``, False if it is unknown
            or already terminal
        """
        with self._delivery_lock(job_id):
            outcome = self.job_repo.update(
                job_id, lambda job: job.apply_update(status=JobStatus.CANCELLED)
            )
            if outcome is None:
                return False

            job, changed = outcome
            if changed:
                logger.info(f"Job {job_id} cancelled")
                self.registry.notify(job.snapshot())
            return changed

    def is_cancelled(self, job_id: str) -> bool:
        """Cheap check used at pipeline checkpoints."""
        job = self.job_repo.get(job_id)
        return job is not None and job.status == JobStatus.CANCELLED

    def subscribe(self, job_id: str, callback: JobCallback) -> Unsubscribe:
        """
        Subscribe to updates of one job.

        Returns:
            Idempotent unsubscribe callable
        """
        return self.registry.subscribe(job_id, callback)

    def add_listener(self, callback: JobCallback) -> Unsubscribe:
        """Subscribe to updates of every job handled by this process."""
        return self.registry.add_listener(callback)

    def delete_job(self, job_id: str) -> bool:
        """Delete a job and drop its subscriptions."""
        watchers = self.registry.subscriber_count(job_id)
        if watchers:
            logger.info(f"Deleting job {job_id} with {watchers} live subscribers")
        self.registry.drop(job_id)
        return self.job_repo.delete(job_id)

    def sweep_expired(self, now: Optional[datetime] = None) -> List[str]:
        """
        Delete jobs older than the retention window.

        Jobs with live subscribers are deleted too; those subscribers
        simply stop receiving updates.

        Args:
            now: Reference time, defaults to utcnow

        Returns:
            IDs of the deleted jobs
        """
        cutoff = (now or datetime.utcnow()) - self.retention
        removed = []
        for job_id in self.job_repo.list_created_before(cutoff):
            if self.delete_job(job_id):
                removed.append(job_id)

        if removed:
            logger.info(f"Swept {len(removed)} expired jobs")
        return removed
