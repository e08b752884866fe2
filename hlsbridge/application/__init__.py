"""
Application Services Layer

Orchestrates domain services and coordinates use cases.
"""

from .dependency_container import DependencyContainer
from .dispatchers import CeleryDispatcher, PipelineDispatcher, ThreadDispatcher
from .job_service import JobService
from .job_sweeper import JobSweeper
from .pipeline_result import PipelineResult
from .pipeline_service import StreamPipelineService
from .transcode_coordinator import TranscodeCoordinator, TranscodeResult

__all__ = [
    'DependencyContainer',
    'CeleryDispatcher',
    'PipelineDispatcher',
    'ThreadDispatcher',
    'JobService',
    'JobSweeper',
    'PipelineResult',
    'StreamPipelineService',
    'TranscodeCoordinator',
    'TranscodeResult',
]
