"""Builders for job stores and services backed by in-memory repositories."""

from typing import List

from hlsbridge.domain.job_management import JobStore, StreamJob
from hlsbridge.infrastructure.in_memory_job_repository import InMemoryJobRepository


def make_store() -> JobStore:
    return JobStore(InMemoryJobRepository())


def record_updates(store: JobStore, job_id: str) -> List[StreamJob]:
    """Subscribe a list collector to a job and return the list."""
    updates: List[StreamJob] = []
    store.subscribe(job_id, updates.append)
    return updates


def status_path(updates: List[StreamJob]) -> List[str]:
    """Distinct consecutive statuses seen by a subscriber."""
    path: List[str] = []
    for job in updates:
        if not path or path[-1] != job.status.value:
            path.append(job.status.value)
    return path


def progress_values(updates: List[StreamJob]) -> List[float]:
    return [job.progress for job in updates]
