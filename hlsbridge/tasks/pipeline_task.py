"""
Stream Pipeline Task

Celery task running one job's pipeline.
Thin wrapper that delegates to StreamPipelineService.
"""

import logging
import time
from typing import Any, Dict

from hlsbridge.application.pipeline_service import StreamPipelineService
from hlsbridge.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="tasks.run_stream_pipeline")
def run_stream_pipeline(self, job_id: str) -> Dict[str, Any]:
    """
    Run the URL-to-HLS pipeline for a job.

    The pipeline records every outcome (ready, error, cancelled) in the job
    store itself, so the task never retries and never raises for a failed
    job.

    Args:
        job_id: Unique job identifier

    Returns:
        dict: PipelineResult as a dictionary
    """
    from hlsbridge.celery_app import flask_app

    start_time = time.time()
    logger.info(f"Task started for job {job_id}")

    pipeline_service = flask_app.container.resolve(StreamPipelineService)
    result = pipeline_service.execute(job_id)

    duration_ms = (time.time() - start_time) * 1000
    logger.info(f"Task finished for job {job_id} in {duration_ms:.2f}ms: {result.status.value}")
    return result.to_dict()
