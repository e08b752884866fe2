"""Infrastructure layer for Redis, job storage and external media tools."""

from .ffmpeg_transcoder import FFmpegTranscoder
from .ffprobe_prober import FFprobeProber
from .in_memory_job_repository import InMemoryJobRepository
from .redis_job_repository import RedisJobRepository
from .redis_repository import RedisConnectionManager, RedisRepository
from .ytdlp_fetcher import YtDlpFetcher

__all__ = [
    "FFmpegTranscoder",
    "FFprobeProber",
    "InMemoryJobRepository",
    "RedisJobRepository",
    "RedisRepository",
    "RedisConnectionManager",
    "YtDlpFetcher",
]
