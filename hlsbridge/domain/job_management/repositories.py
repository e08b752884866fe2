"""
Job Management Repositories

Repository interface for job persistence.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from .entities import StreamJob

# Receives the stored job, mutates it in place, returns True if it changed.
JobMutator = Callable[[StreamJob], bool]


class JobRepository(ABC):
    """Abstract repository interface for job persistence."""

    @abstractmethod
    def save(self, job: StreamJob) -> bool:
        """
        Save or replace a job.

        Args:
            job: StreamJob to save

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    def get(self, job_id: str) -> Optional[StreamJob]:
        """
        Retrieve a job by ID.

        Args:
            job_id: Job identifier

        Returns:
            StreamJob if found, None otherwise
        """
        pass

    @abstractmethod
    def delete(self, job_id: str) -> bool:
        """
        Delete a job.

        Args:
            job_id: Job identifier

        Returns:
            True if deleted, False otherwise
        """
        pass

    @abstractmethod
    def exists(self, job_id: str) -> bool:
        """Check if job exists."""
        pass

    @abstractmethod
    def update(self, job_id: str, mutator: JobMutator) -> Optional[Tuple[StreamJob, bool]]:
        """
        Atomically read, mutate and write back one job.

        The mutator may run more than once if a concurrent writer touched
        the job in between (optimistic implementations retry).

        Args:
            job_id: Job identifier
            mutator: Callable applied to the stored job

        Returns:
            Tuple of (job after mutation, whether it changed), or None if
            the job does not exist
        """
        pass

    @abstractmethod
    def list_created_before(self, cutoff: datetime) -> List[str]:
        """
        List ids of jobs created strictly before ``cutoff``.

        Args:
            cutoff: UTC timestamp

        Returns:
            List of job IDs
        """
        pass
