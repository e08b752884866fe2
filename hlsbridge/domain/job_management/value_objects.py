"""
Job Management Value Objects

Immutable value objects for job status and incrementally populated file
information.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..media.value_objects import AudioTrack


class JobStatus(Enum):
    """
    Job status enumeration.

    The happy path is created -> analyzing -> analyzed -> downloading ->
    downloaded -> converting -> ready. ``error`` and ``cancelled`` are
    reachable from any non-terminal state.
    """

    CREATED = "created"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    CONVERTING = "converting"
    READY = "ready"
    ERROR = "error"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        """Check if status is terminal (ready, error or cancelled)."""
        return self in (JobStatus.READY, JobStatus.ERROR, JobStatus.CANCELLED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        """
        Check whether moving from this status to ``target`` is allowed.

        Staying in the same non-terminal status is allowed (in-place
        progress updates while downloading or converting).
        """
        if self.is_terminal():
            return False
        if target in (JobStatus.ERROR, JobStatus.CANCELLED):
            return True
        if target == self:
            return True
        return target in _FORWARD_TRANSITIONS.get(self, ())


_FORWARD_TRANSITIONS: Dict[JobStatus, Tuple[JobStatus, ...]] = {
    JobStatus.CREATED: (JobStatus.ANALYZING,),
    JobStatus.ANALYZING: (JobStatus.ANALYZED,),
    JobStatus.ANALYZED: (JobStatus.DOWNLOADING,),
    JobStatus.DOWNLOADING: (JobStatus.DOWNLOADED,),
    JobStatus.DOWNLOADED: (JobStatus.CONVERTING,),
    JobStatus.CONVERTING: (JobStatus.READY,),
}


@dataclass(frozen=True)
class FileInfo:
    """
    Value object describing the source file.

    Populated incrementally as stages complete. Merging never unsets a
    field that already has a value.
    """

    name: Optional[str] = None
    size: Optional[int] = None
    content_type: Optional[str] = None
    duration: Optional[float] = None
    resolution: Optional[str] = None
    audio_tracks: Optional[Tuple[AudioTrack, ...]] = None

    def merge(self, other: Optional["FileInfo"]) -> "FileInfo":
        """Return a copy updated with every non-null field of ``other``."""
        if other is None:
            return self
        changes = {
            f.name: getattr(other, f.name)
            for f in fields(other)
            if getattr(other, f.name) is not None
        }
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "size": self.size,
            "content_type": self.content_type,
            "duration": self.duration,
            "resolution": self.resolution,
            "audio_tracks": (
                [track.to_dict() for track in self.audio_tracks]
                if self.audio_tracks is not None
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FileInfo":
        """Create FileInfo from dictionary."""
        if not data:
            return cls()
        tracks = data.get("audio_tracks")
        return cls(
            name=data.get("name"),
            size=data.get("size"),
            content_type=data.get("content_type"),
            duration=data.get("duration"),
            resolution=data.get("resolution"),
            audio_tracks=(
                tuple(AudioTrack.from_dict(track) for track in tracks)
                if tracks is not None
                else None
            ),
        )
