"""
Application Factory

Creates and configures Flask application with all dependencies.
This factory pattern improves testability by allowing dependency injection
and configuration overrides.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from hlsbridge.api.websocket_events import register_socketio_events
from hlsbridge.application.dependency_container import DependencyContainer
from hlsbridge.application.dispatchers import (
    CeleryDispatcher,
    PipelineDispatcher,
    ThreadDispatcher,
)
from hlsbridge.application.inspection_service import SourceInspectionService
from hlsbridge.application.job_service import JobService
from hlsbridge.application.job_sweeper import JobSweeper
from hlsbridge.application.pipeline_service import StreamPipelineService
from hlsbridge.application.transcode_coordinator import TranscodeCoordinator
from hlsbridge.config.celery_config import make_celery
from hlsbridge.config.pipeline_config import PipelineConfig
from hlsbridge.config.redis_config import get_redis_repository, init_redis, redis_health_check
from hlsbridge.config.socketio_config import (
    init_socketio,
    init_socketio_emitter,
    is_socketio_enabled,
)
from hlsbridge.domain.job_management import JobRepository, JobStore, SubscriptionRegistry
from hlsbridge.domain.media.interfaces import Fetcher, Prober, Transcoder
from hlsbridge.infrastructure.event_handlers import LoggingJobListener, WebSocketJobListener
from hlsbridge.infrastructure.ffmpeg_transcoder import FFmpegTranscoder
from hlsbridge.infrastructure.ffprobe_prober import FFprobeProber
from hlsbridge.infrastructure.in_memory_job_repository import InMemoryJobRepository
from hlsbridge.infrastructure.redis_job_repository import RedisJobRepository
from hlsbridge.infrastructure.ytdlp_fetcher import YtDlpFetcher

logger = logging.getLogger(__name__)


class AppConfig:
    """Application configuration."""

    def __init__(self, worker: bool = False, pipeline: Optional[PipelineConfig] = None):
        self.api_version = os.getenv("API_VERSION", "v1")
        self.flask_env = os.getenv("FLASK_ENV", "development")
        self.is_production = self.flask_env == "production"
        self.cors_origins = os.getenv("CORS_ORIGINS", "*")

        # Celery worker processes get an emit-only Socket.IO and no sweeper thread
        self.worker = worker
        self.pipeline = pipeline or PipelineConfig()

        self.socketio_enabled = os.getenv("SOCKETIO_ENABLED", "true").lower() == "true"
        self.sweeper_enabled = os.getenv("JOB_SWEEPER_ENABLED", "true").lower() == "true"


def create_app(config: Optional[AppConfig] = None) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Application configuration, uses default if None

    Returns:
        Configured Flask application
    """
    if config is None:
        config = AppConfig()

    app = Flask(__name__)
    app.config["HLS_OUTPUT_ROOT"] = str(Path(config.pipeline.output_root).resolve())

    CORS(
        app,
        resources={
            r"/*": {
                "origins": config.cors_origins,
                "methods": ["GET", "POST", "OPTIONS"],
                "allow_headers": ["Content-Type", "Authorization", "Range"],
                "expose_headers": ["Content-Length", "Content-Range"],
                "max_age": 3600,
            }
        },
    )

    _initialize_infrastructure(app, config)
    _initialize_services(app, config)
    _register_blueprints(app, config)
    _register_health_endpoint(app, config)

    return app


def _initialize_infrastructure(app: Flask, config: AppConfig) -> None:
    """
    Initialize infrastructure components (Redis, Celery, SocketIO).

    Args:
        app: Flask application
        config: Application configuration
    """
    app.celery = None
    app.socketio = None

    Path(config.pipeline.output_root).mkdir(parents=True, exist_ok=True)

    try:
        if config.pipeline.uses_redis:
            init_redis()
            logger.info("Redis initialized successfully")

        app.celery = make_celery(app)
        logger.info("Celery initialized successfully")
    except Exception as e:
        logger.warning(f"Could not initialize infrastructure: {e}", exc_info=True)

    if not config.socketio_enabled:
        logger.info("SocketIO disabled - using polling and event stream fallback")
        return

    try:
        if config.worker:
            app.socketio = init_socketio_emitter()
        else:
            app.socketio = init_socketio(app)
            register_socketio_events(app)
        logger.info("SocketIO initialized successfully")
    except Exception as e:
        logger.warning(f"Could not initialize SocketIO: {e}")
        logger.warning("WebSocket support disabled - using polling and event stream fallback")


def _create_job_repository(config: AppConfig) -> JobRepository:
    if config.pipeline.uses_redis:
        return RedisJobRepository(get_redis_repository())
    return InMemoryJobRepository()


def _initialize_services(app: Flask, config: AppConfig) -> None:
    """
    Initialize application services and attach them to the app using
    DependencyContainer.

    Order: infrastructure adapters (job repository, fetcher, prober,
    transcoder), domain services (job store), application services
    (coordinator, pipeline, dispatcher, job service). API routes and tasks
    resolve services from ``app.container``; ``app.job_service`` is the
    shortcut used by the API layer.

    Args:
        app: Flask application
        config: Application configuration
    """
    pipeline_config = config.pipeline

    try:
        container = DependencyContainer()

        job_repository = _create_job_repository(config)
        container.register_singleton(JobRepository, job_repository)

        fetcher = YtDlpFetcher()
        prober = FFprobeProber(binary=pipeline_config.ffprobe_binary)
        transcoder = FFmpegTranscoder(binary=pipeline_config.ffmpeg_binary)
        container.register_singleton(Fetcher, fetcher)
        container.register_singleton(Prober, prober)
        container.register_singleton(Transcoder, transcoder)

        inspection_service = SourceInspectionService(prober)
        container.register_singleton(SourceInspectionService, inspection_service)

        job_store = JobStore(
            job_repository,
            registry=SubscriptionRegistry(),
            retention=pipeline_config.retention,
        )
        container.register_singleton(JobStore, job_store)

        coordinator = TranscodeCoordinator(transcoder)
        pipeline_service = StreamPipelineService(
            job_store,
            fetcher,
            prober,
            coordinator,
            output_root=pipeline_config.output_root,
            public_base=pipeline_config.public_base,
            cancel_poll_interval=pipeline_config.cancel_poll_interval,
        )
        container.register_singleton(TranscodeCoordinator, coordinator)
        container.register_singleton(StreamPipelineService, pipeline_service)

        dispatcher: PipelineDispatcher
        if pipeline_config.uses_redis and app.celery is not None:
            dispatcher = CeleryDispatcher(app.celery)
        else:
            dispatcher = ThreadDispatcher(pipeline_service)
        container.register_singleton(PipelineDispatcher, dispatcher)

        job_service = JobService(job_store, dispatcher, output_root=pipeline_config.output_root)
        container.register_singleton(JobService, job_service)

        container.setup_job_listeners(
            job_store,
            [
                LoggingJobListener(),
                WebSocketJobListener(close_grace_seconds=pipeline_config.close_grace_seconds),
            ],
        )

        app.container = container
        app.job_service = job_service
        app.inspection_service = inspection_service
        app.job_sweeper = None

        # Celery beat sweeps shared stores; memory stores sweep themselves
        if not pipeline_config.uses_redis and not config.worker and config.sweeper_enabled:
            app.job_sweeper = JobSweeper(job_service, pipeline_config.sweep_interval_seconds)
            app.job_sweeper.start()

        logger.info(
            f"Application services initialized ({pipeline_config.job_store_backend} job store, "
            f"{type(dispatcher).__name__})"
        )

    except Exception as e:
        logger.error(f"Could not initialize services: {e}", exc_info=True)
        app.container = None
        app.job_service = None
        app.inspection_service = None
        app.job_sweeper = None


def _register_blueprints(app: Flask, config: AppConfig) -> None:
    """
    Register API and HLS asset blueprints.

    Args:
        app: Flask application
        config: Application configuration
    """
    from hlsbridge.api.hls_routes import hls_bp
    from hlsbridge.api.v1 import api_v1_bp

    app.register_blueprint(api_v1_bp)
    app.register_blueprint(hls_bp)

    logger.info(
        f"API {config.api_version} registered at /api/{config.api_version} "
        f"with Swagger UI at /api/{config.api_version}/docs"
    )


def _get_health_status(app: Flask, config: AppConfig) -> tuple[dict, int]:
    """
    Get health status of all system components.

    Redis and Celery are only required with the Redis job store.

    Args:
        app: Flask application instance
        config: Application configuration

    Returns:
        Tuple of (health_status_dict, http_status_code)
    """
    uses_redis = config.pipeline.uses_redis
    health_status = {
        "status": "ok",
        "message": "backend ready",
        "job_store": config.pipeline.job_store_backend,
        "redis": "not_used",
        "celery": "not_used",
        "socketio": "unknown",
    }

    if getattr(app, "job_service", None) is None:
        health_status["status"] = "degraded"
        health_status["message"] = "services not initialized"

    if uses_redis:
        try:
            if redis_health_check():
                health_status["redis"] = "connected"
            else:
                health_status["redis"] = "disconnected"
                health_status["status"] = "degraded"
        except Exception as e:
            health_status["redis"] = f"error: {str(e)}"
            health_status["status"] = "degraded"

        if getattr(app, "celery", None) is not None:
            health_status["celery"] = "available"
        else:
            health_status["celery"] = "unavailable"
            health_status["status"] = "degraded"

    if is_socketio_enabled():
        health_status["socketio"] = "available"
    else:
        health_status["socketio"] = "not_configured"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code


def _register_health_endpoint(app: Flask, config: AppConfig) -> None:
    """
    Register health check endpoint.

    Args:
        app: Flask application
        config: Application configuration
    """

    @app.route("/health", methods=["GET"])
    def health():
        """Overall health of the application and its dependencies."""
        health_status, status_code = _get_health_status(app, config)
        return jsonify(health_status), status_code
