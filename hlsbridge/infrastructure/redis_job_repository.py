"""
Redis Job Repository Implementation

Redis-based JobRepository shared by the web process and the Celery
workers. Updates use WATCH/MULTI optimistic transactions so a cancel
written by the API can never be overwritten by a worker's progress update.
"""

import json
import logging
import os
from datetime import datetime
from typing import List, Optional, Tuple

from hlsbridge.domain.job_management.entities import StreamJob
from hlsbridge.domain.job_management.repositories import JobMutator, JobRepository

from .redis_repository import RedisRepository

logger = logging.getLogger(__name__)


class RedisJobRepository(JobRepository):
    """
    Redis-based implementation of JobRepository.

    Jobs are stored as JSON under ``job:<id>`` with a TTL longer than the
    sweep retention, so jobs missed by the sweep still disappear.
    """

    def __init__(self, redis_repository: RedisRepository, ttl: Optional[int] = None):
        """
        Initialize with Redis repository.

        Args:
            redis_repository: RedisRepository instance from infrastructure layer
            ttl: Key TTL in seconds, defaults to JOB_TTL_SECONDS or 48 hours
        """
        self.redis_repo = redis_repository
        self.key_prefix = "job"
        self.ttl = ttl or int(os.getenv("JOB_TTL_SECONDS", 48 * 3600))

    def _key(self, job_id: str) -> str:
        return f"{self.key_prefix}:{job_id}"

    def save(self, job: StreamJob) -> bool:
        """Save or replace a job in Redis."""
        return self.redis_repo.set_json(self._key(job.job_id), job.to_dict(), ttl=self.ttl)

    def get(self, job_id: str) -> Optional[StreamJob]:
        """Retrieve a job from Redis."""
        data = self.redis_repo.get_json(self._key(job_id))
        if data is None:
            return None

        try:
            return StreamJob.from_dict(data)
        except (KeyError, ValueError) as e:
            logger.error(f"Error deserializing job {job_id}: {e}")
            return None

    def delete(self, job_id: str) -> bool:
        """Delete a job from Redis."""
        return self.redis_repo.delete(self._key(job_id))

    def exists(self, job_id: str) -> bool:
        """Check if job exists in Redis."""
        return self.redis_repo.exists(self._key(job_id))

    def update(self, job_id: str, mutator: JobMutator) -> Optional[Tuple[StreamJob, bool]]:
        """
        Atomically read, mutate and write back a job.

        The key is WATCHed while the mutator runs; if another client writes
        the job before EXEC, redis-py retries the whole read-mutate-write.

        Args:
            job_id: Job identifier
            mutator: Callable applied to the stored job

        Returns:
            Tuple of (job after mutation, whether it changed), or None if
            the job does not exist
        """
        redis_key = self.redis_repo._make_key(self._key(job_id))
        outcome: Optional[Tuple[StreamJob, bool]] = None

        def apply(pipe) -> None:
            nonlocal outcome
            raw = pipe.get(redis_key)
            if raw is None:
                outcome = None
                return

            job = StreamJob.from_dict(json.loads(raw))
            changed = mutator(job)
            outcome = (job, changed)
            if changed:
                pipe.multi()
                pipe.set(redis_key, json.dumps(job.to_dict()), ex=self.ttl)

        self.redis_repo.redis.transaction(apply, redis_key)
        return outcome

    def list_created_before(self, cutoff: datetime) -> List[str]:
        """
        List jobs created before the cutoff using SCAN.

        Keys that vanish or fail to deserialize during the scan are skipped.
        """
        expired = []
        for key in self.redis_repo.scan_keys(f"{self.key_prefix}:*"):
            job_id = key[len(self.key_prefix) + 1:]
            job = self.get(job_id)
            if job is not None and job.created_at < cutoff:
                expired.append(job_id)
        return expired
