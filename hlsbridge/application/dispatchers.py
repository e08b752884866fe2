"""
Pipeline Dispatchers

Decide where a job's pipeline runs: on a Celery worker (Redis-backed job
store) or on a background thread of the current process (in-memory store).
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict

from hlsbridge.domain.cancellation import CancellationToken

from .pipeline_service import StreamPipelineService

logger = logging.getLogger(__name__)

PIPELINE_TASK_NAME = "tasks.run_stream_pipeline"


class PipelineDispatcher(ABC):
    """Starts and stops pipeline runs for jobs."""

    @abstractmethod
    def dispatch(self, job_id: str) -> None:
        """
        Schedule the pipeline for a job.

        Raises:
            Exception: If the job could not be scheduled
        """
        pass  # pragma: no cover

    def cancel(self, job_id: str) -> None:
        """Ask a running pipeline to stop; the job store is already updated."""
        pass


class CeleryDispatcher(PipelineDispatcher):
    """
    Sends the pipeline to a Celery worker.

    The Celery task id is the job id, so a job still waiting in the queue
    can be revoked on cancel. A running task notices the cancel through the
    job store.
    """

    def __init__(self, celery):
        self.celery = celery

    def dispatch(self, job_id: str) -> None:
        self.celery.send_task(PIPELINE_TASK_NAME, args=(job_id,), task_id=job_id)
        logger.info(f"Enqueued Celery task for job {job_id}")

    def cancel(self, job_id: str) -> None:
        try:
            self.celery.control.revoke(job_id)
            logger.info(f"Revoked Celery task for job {job_id}")
        except Exception as e:
            logger.warning(f"Failed to revoke Celery task for job {job_id}: {e}")


class ThreadDispatcher(PipelineDispatcher):
    """
    Runs each pipeline on a daemon thread of the current process.

    Used with the in-memory job store, where a separate worker process
    could not see the jobs. Cancels set the run's token directly.
    """

    def __init__(self, pipeline_service: StreamPipelineService):
        self.pipeline_service = pipeline_service
        self._tokens: Dict[str, CancellationToken] = {}
        self._lock = threading.Lock()

    def dispatch(self, job_id: str) -> None:
        token = self.pipeline_service.create_cancel_token(job_id)
        with self._lock:
            self._tokens[job_id] = token

        thread = threading.Thread(
            target=self._run,
            args=(job_id, token),
            name=f"pipeline-{job_id[:8]}",
            daemon=True,
        )
        thread.start()
        logger.info(f"Started pipeline thread for job {job_id} ({self.active_jobs()} running)")

    def cancel(self, job_id: str) -> None:
        with self._lock:
            token = self._tokens.get(job_id)
        if token is not None:
            token.cancel()

    def active_jobs(self) -> int:
        with self._lock:
            return len(self._tokens)

    def _run(self, job_id: str, token: CancellationToken) -> None:
        try:
            result = self.pipeline_service.execute(job_id, cancel_token=token)
            logger.info(f"Pipeline for job {job_id} finished: {result.status.value}")
        except Exception as e:
            logger.error(f"Pipeline thread for job {job_id} crashed: {e}", exc_info=True)
        finally:
            with self._lock:
                self._tokens.pop(job_id, None)
