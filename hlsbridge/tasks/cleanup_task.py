"""
Cleanup Task

Celery beat task for periodic removal of expired jobs and their HLS output.
"""

import logging
from typing import Any, Dict

from hlsbridge.application.job_service import JobService
from hlsbridge.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="tasks.sweep_expired_jobs")
def sweep_expired_jobs(self) -> Dict[str, Any]:
    """
    Remove jobs older than the retention window together with their
    output directories.

    Returns:
        dict: Cleanup statistics
    """
    from hlsbridge.celery_app import flask_app

    logger.info("Starting expired job sweep")
    job_service = flask_app.container.resolve(JobService)

    removed = job_service.cleanup_expired_jobs()

    logger.info(f"Expired job sweep complete: {len(removed)} jobs removed")
    return {"expired_jobs_removed": len(removed), "job_ids": removed}
