"""
Job Management Entities

Domain entity for HLS stream jobs.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

from .value_objects import FileInfo, JobStatus

# Fields a caller may pass to ``StreamJob.apply_update``.
UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "progress",
        "file_info",
        "speed",
        "eta",
        "message",
        "error_category",
        "stream_url",
        "manifest_path",
    }
)


class InvalidTransitionError(ValueError):
    """Raised when an update asks for a status change the state machine forbids."""

    pass


@dataclass
class StreamJob:
    """
    Entity representing one URL-to-HLS job.

    Progress is monotonically non-decreasing and a terminal status is
    never left once reached.
    """

    job_id: str
    source_url: str
    status: JobStatus
    progress: float
    created_at: datetime
    updated_at: datetime
    file_info: FileInfo = field(default_factory=FileInfo)
    speed: Optional[str] = None
    eta: Optional[str] = None
    message: Optional[str] = None
    error_category: Optional[str] = None
    stream_url: Optional[str] = None
    manifest_path: Optional[str] = None

    @classmethod
    def create(cls, source_url: str) -> "StreamJob":
        """
        Factory method to create a new job.

        Args:
            source_url: Remote video URL

        Returns:
            New StreamJob in ``created`` status with zero progress
        """
        now = datetime.utcnow()
        return cls(
            job_id=str(uuid.uuid4()),
            source_url=source_url,
            status=JobStatus.CREATED,
            progress=0.0,
            created_at=now,
            updated_at=now,
        )

    def apply_update(self, **changes: Any) -> bool:
        """
        Merge partial fields into the job.

        A terminal job ignores every update. Progress below the current
        value is clamped up, ``file_info`` is merged field by field, and
        the transfer hints are dropped once the job leaves ``downloading``.

        Args:
            **changes: Any of ``UPDATABLE_FIELDS``

        Returns:
            True if the job was mutated, False if it was terminal

        Raises:
            InvalidTransitionError: If the status change is not allowed
            KeyError: If an unknown field is passed
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise KeyError(f"Unknown job fields: {', '.join(sorted(unknown))}")

        if self.is_terminal():
            return False

        status = changes.get("status")
        if status is not None:
            status = JobStatus(status)
            if not self.status.can_transition_to(status):
                raise InvalidTransitionError(
                    f"Cannot move job {self.job_id} from {self.status.value} to {status.value}"
                )
            self.status = status

        if changes.get("progress") is not None:
            requested = min(max(float(changes["progress"]), 0.0), 100.0)
            self.progress = max(self.progress, requested)

        if changes.get("file_info") is not None:
            self.file_info = self.file_info.merge(changes["file_info"])

        for name in ("speed", "eta", "message", "error_category", "stream_url", "manifest_path"):
            if name in changes:
                setattr(self, name, changes[name])

        if self.status != JobStatus.DOWNLOADING:
            self.speed = None
            self.eta = None

        self.updated_at = max(datetime.utcnow(), self.updated_at)
        return True

    def is_terminal(self) -> bool:
        """Check if job is in a terminal state."""
        return self.status.is_terminal()

    def snapshot(self) -> "StreamJob":
        """Return a detached copy safe to hand to observers."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert job to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "source_url": self.source_url,
            "status": self.status.value,
            "progress": self.progress,
            "file_info": self.file_info.to_dict(),
            "speed": self.speed,
            "eta": self.eta,
            "message": self.message,
            "error_category": self.error_category,
            "stream_url": self.stream_url,
            "manifest_path": self.manifest_path,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamJob":
        """Create StreamJob from dictionary."""
        return cls(
            job_id=data["job_id"],
            source_url=data["source_url"],
            status=JobStatus(data["status"]),
            progress=float(data.get("progress", 0.0)),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            file_info=FileInfo.from_dict(data.get("file_info")),
            speed=data.get("speed"),
            eta=data.get("eta"),
            message=data.get("message"),
            error_category=data.get("error_category"),
            stream_url=data.get("stream_url"),
            manifest_path=data.get("manifest_path"),
        )
