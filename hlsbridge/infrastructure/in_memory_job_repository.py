"""
In-Memory Job Repository

Process-local JobRepository used for single-process deployments and tests.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from hlsbridge.domain.job_management.entities import StreamJob
from hlsbridge.domain.job_management.repositories import JobMutator, JobRepository


class InMemoryJobRepository(JobRepository):
    """
    Dictionary-backed implementation of JobRepository.

    Stores detached copies so callers can never mutate stored state, and
    serializes updates with a lock. The mutator runs on a copy that only
    replaces the stored job when it reports a change, so a mutator that
    raises leaves the job untouched.
    """

    def __init__(self):
        self._jobs: Dict[str, StreamJob] = {}
        self._lock = threading.RLock()

    def save(self, job: StreamJob) -> bool:
        with self._lock:
            self._jobs[job.job_id] = job.snapshot()
        return True

    def get(self, job_id: str) -> Optional[StreamJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.snapshot() if job is not None else None

    def delete(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def exists(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def update(self, job_id: str, mutator: JobMutator) -> Optional[Tuple[StreamJob, bool]]:
        with self._lock:
            stored = self._jobs.get(job_id)
            if stored is None:
                return None
            job = stored.snapshot()
            changed = mutator(job)
            if changed:
                self._jobs[job_id] = job
            return job.snapshot(), changed

    def list_created_before(self, cutoff: datetime) -> List[str]:
        with self._lock:
            return [job_id for job_id, job in self._jobs.items() if job.created_at < cutoff]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
