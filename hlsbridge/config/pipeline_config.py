"""
Pipeline Configuration

Settings for the stream pipeline: where HLS output is written and served,
which job store backend is used, job retention and the external tools.
"""

import os
import tempfile
from datetime import timedelta

JOB_STORE_MEMORY = "memory"
JOB_STORE_REDIS = "redis"


class PipelineConfig:
    """Stream pipeline configuration settings."""

    def __init__(self):
        self.output_root = os.getenv(
            "HLS_OUTPUT_ROOT", os.path.join(tempfile.gettempdir(), "hlsbridge")
        )
        self.public_base = os.getenv("HLS_PUBLIC_BASE", "/hls")
        self.job_store_backend = os.getenv("JOB_STORE_BACKEND", JOB_STORE_MEMORY).lower()
        self.retention_hours = float(os.getenv("JOB_RETENTION_HOURS", 24))
        self.sweep_interval_seconds = float(os.getenv("JOB_SWEEP_INTERVAL_SECONDS", 3600))
        self.close_grace_seconds = float(os.getenv("STREAM_CLOSE_GRACE_SECONDS", 1.0))
        self.cancel_poll_interval = float(os.getenv("JOB_CANCEL_POLL_SECONDS", 0.5))
        self.ffmpeg_binary = os.getenv("FFMPEG_BINARY", "ffmpeg")
        self.ffprobe_binary = os.getenv("FFPROBE_BINARY", "ffprobe")

        if self.job_store_backend not in (JOB_STORE_MEMORY, JOB_STORE_REDIS):
            raise ValueError(
                f"JOB_STORE_BACKEND must be '{JOB_STORE_MEMORY}' or '{JOB_STORE_REDIS}', "
                f"got '{self.job_store_backend}'"
            )

    @property
    def retention(self) -> timedelta:
        return timedelta(hours=self.retention_hours)

    @property
    def uses_redis(self) -> bool:
        return self.job_store_backend == JOB_STORE_REDIS
