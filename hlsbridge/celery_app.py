"""
Celery Application Instance

Creates the Celery app instance for use by workers and beat scheduler.
Uses the app factory so the worker resolves the same services as the web
process.
"""

from hlsbridge.app_factory import AppConfig, create_app

flask_app = create_app(AppConfig(worker=True))

celery_app = flask_app.celery

# Task modules are imported by name when the worker starts, after
# `celery_app` exists, to avoid a circular import at module load.
celery_app.conf.imports = (
    "hlsbridge.tasks.pipeline_task",
    "hlsbridge.tasks.cleanup_task",
)
