"""
Pipeline Result Value Object

Encapsulates the outcome of one pipeline run.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from hlsbridge.domain.errors import ErrorCategory
from hlsbridge.domain.job_management.value_objects import JobStatus


@dataclass
class PipelineResult:
    """
    Value object representing the result of a pipeline run.

    Encapsulates the final job status, the published stream URL on
    success and error details on failure.
    """

    job_id: str
    status: JobStatus
    stream_url: Optional[str] = None
    manifest_path: Optional[str] = None
    error_category: Optional[ErrorCategory] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == JobStatus.READY

    @classmethod
    def create_success(cls, job_id: str, stream_url: str, manifest_path: str) -> 'PipelineResult':
        return cls(
            job_id=job_id,
            status=JobStatus.READY,
            stream_url=stream_url,
            manifest_path=manifest_path,
        )

    @classmethod
    def create_failure(
        cls,
        job_id: str,
        error_category: ErrorCategory,
        error_message: str
    ) -> 'PipelineResult':
        """
        Create a failed pipeline result.

        Args:
            job_id: Job identifier
            error_category: Category of error that occurred
            error_message: Human-readable error message

        Returns:
            PipelineResult in ``error`` status
        """
        return cls(
            job_id=job_id,
            status=JobStatus.ERROR,
            error_category=error_category,
            error_message=error_message,
        )

    @classmethod
    def create_cancelled(cls, job_id: str) -> 'PipelineResult':
        return cls(job_id=job_id, status=JobStatus.CANCELLED)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert result to dictionary for serialization.

        Returns:
            Dictionary representation of the result
        """
        return {
            'job_id': self.job_id,
            'status': self.status.value,
            'stream_url': self.stream_url,
            'manifest_path': self.manifest_path,
            'error': self.error_message,
            'error_category': self.error_category.value if self.error_category else None,
        }
