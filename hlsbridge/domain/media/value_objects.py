"""
Media Value Objects

Immutable descriptors for source media, audio tracks and collaborator
results (fetch metadata, fetch progress, per-task encode progress).
"""

import math
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from hlsbridge.domain.errors import InvalidInputError

_SLUG_PATTERN = re.compile(r"[^A-Za-z0-9]")

UNDETERMINED_LANGUAGE = "und"

_SPEED_UNITS = ("B/s", "KB/s", "MB/s", "GB/s")


@dataclass(frozen=True)
class SourceUrl:
    """
    Value object representing a validated remote source reference.

    Only absolute ``http``/``https`` URLs with a host are accepted.
    """

    value: str

    def __post_init__(self):
        if not self._is_valid():
            raise InvalidInputError(f"Invalid source URL: {self.value!r}")

    def _is_valid(self) -> bool:
        if not self.value or not isinstance(self.value, str):
            return False
        if any(ch.isspace() for ch in self.value):
            return False
        parsed = urlparse(self.value)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    def __str__(self) -> str:
        return self.value


def format_speed(bytes_per_second: Optional[float]) -> str:
    """Human-readable transfer rate (``1.5 MB/s``)."""
    if not bytes_per_second or bytes_per_second <= 0:
        return "0 B/s"
    exponent = min(int(math.log(bytes_per_second, 1024)), len(_SPEED_UNITS) - 1)
    exponent = max(exponent, 0)
    value = round(bytes_per_second / (1024 ** exponent), 1)
    return f"{value:g} {_SPEED_UNITS[exponent]}"


def format_eta(seconds: Optional[float]) -> str:
    """Human-readable remaining time (``42s``, ``3m``, ``1h 5m``)."""
    if not seconds or seconds <= 0 or math.isinf(seconds):
        return "--"
    if seconds < 59.5:
        return f"{round(seconds)}s"
    hours, minutes = divmod(round(seconds / 60), 60)
    if not hours:
        return f"{minutes}m"
    return f"{hours}h {minutes}m"


def language_slug(language: str) -> str:
    """
    Sanitize a language tag into a filename-safe slug.

    Every non-alphanumeric character becomes ``_`` (``pt-BR`` -> ``pt_BR``).
    This is the only sanitization rule used for audio output filenames and
    for the URIs written into the master manifest.
    """
    return _SLUG_PATTERN.sub("_", language or UNDETERMINED_LANGUAGE)


@dataclass(frozen=True)
class AudioTrack:
    """
    Audio track selected for conversion.

    Attributes:
        index: Position within the source's audio streams (0-based)
        language: Language tag, ``und`` when absent
        name: Display title
        is_default: Whether players should select this track by default
        slug: Filename-safe stem shared by the output files and the
            manifest URI; derived from ``language`` when not given
    """

    index: int
    language: str = UNDETERMINED_LANGUAGE
    name: str = ""
    is_default: bool = False
    slug: str = ""

    def __post_init__(self):
        if self.index < 0:
            raise ValueError(f"Audio track index must be >= 0, got {self.index}")
        if not self.language:
            object.__setattr__(self, "language", UNDETERMINED_LANGUAGE)
        if not self.name:
            object.__setattr__(self, "name", f"Audio {self.index + 1}")
        if not self.slug:
            object.__setattr__(self, "slug", language_slug(self.language))
        else:
            object.__setattr__(self, "slug", language_slug(self.slug))

    @property
    def playlist_name(self) -> str:
        return f"audio_{self.slug}.m3u8"

    @property
    def task_name(self) -> str:
        return f"audio_{self.slug}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "language": self.language,
            "name": self.name,
            "is_default": self.is_default,
            "slug": self.slug,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AudioTrack":
        return cls(
            index=int(data["index"]),
            language=data.get("language") or UNDETERMINED_LANGUAGE,
            name=data.get("name") or "",
            is_default=bool(data.get("is_default", False)),
            slug=data.get("slug") or "",
        )


@dataclass(frozen=True)
class VideoStreamInfo:
    """Video stream descriptor reported by the prober."""

    index: int
    codec: str
    width: Optional[int] = None
    height: Optional[int] = None
    pixel_format: Optional[str] = None
    bitrate: Optional[int] = None
    fps: Optional[float] = None

    @property
    def resolution(self) -> Optional[str]:
        if self.width and self.height:
            return f"{self.width}x{self.height}"
        return None


@dataclass(frozen=True)
class AudioStreamInfo:
    """Audio stream descriptor reported by the prober."""

    index: int
    codec: str
    language: str = UNDETERMINED_LANGUAGE
    title: Optional[str] = None
    channels: Optional[int] = None
    bitrate: Optional[int] = None


@dataclass(frozen=True)
class SubtitleStreamInfo:
    """Subtitle stream descriptor reported by the prober."""

    index: int
    codec: str
    language: str = UNDETERMINED_LANGUAGE
    title: Optional[str] = None


@dataclass(frozen=True)
class MediaDescriptor:
    """
    Result of inspecting a local media file.

    Attributes:
        duration_seconds: Container duration, 0 when unknown
        video_streams: Video streams in source order
        audio_streams: Audio streams in source order
        subtitle_streams: Subtitle streams in source order
    """

    duration_seconds: float
    video_streams: Tuple[VideoStreamInfo, ...] = ()
    audio_streams: Tuple[AudioStreamInfo, ...] = ()
    subtitle_streams: Tuple[SubtitleStreamInfo, ...] = ()

    @property
    def primary_video(self) -> Optional[VideoStreamInfo]:
        return self.video_streams[0] if self.video_streams else None

    @property
    def resolution(self) -> Optional[str]:
        video = self.primary_video
        return video.resolution if video else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.duration_seconds,
            "resolution": self.resolution,
            "video_streams": [asdict(stream) for stream in self.video_streams],
            "audio_streams": [asdict(stream) for stream in self.audio_streams],
            "subtitle_streams": [asdict(stream) for stream in self.subtitle_streams],
            "audio_tracks": [track.to_dict() for track in self.audio_tracks()],
        }

    def audio_tracks(self) -> List[AudioTrack]:
        """
        Derive the ordered audio track list to convert.

        The first audio stream is the default track; languages fall back to
        ``und`` and titles to ``Audio {n}``. Two streams with the same
        language would write the same files, so repeated slugs get the
        stream position appended (``und``, ``und_1``), counting up from there
        if that name is taken as well.
        """
        tracks = []
        seen = set()
        for position, stream in enumerate(self.audio_streams):
            language = stream.language or UNDETERMINED_LANGUAGE
            base = language_slug(language)
            slug, suffix = base, position
            while slug in seen:
                slug = f"{base}_{suffix}"
                suffix += 1
            seen.add(slug)
            tracks.append(
                AudioTrack(
                    index=position,
                    language=language,
                    name=stream.title or f"Audio {position + 1}",
                    is_default=position == 0,
                    slug=slug,
                )
            )
        return tracks


@dataclass(frozen=True)
class RemoteFileInfo:
    """Metadata returned by ``Fetcher.analyze`` without downloading."""

    name: str
    size: Optional[int] = None
    content_type: Optional[str] = None


@dataclass(frozen=True)
class FetchProgress:
    """
    One fetch progress sample.

    Attributes:
        fraction_done: 0.0 - 1.0
        bytes_per_second: Instantaneous transfer rate, if known
        eta_seconds: Estimated seconds remaining, if known
    """

    fraction_done: float
    bytes_per_second: Optional[float] = None
    eta_seconds: Optional[float] = None

    @property
    def percent(self) -> float:
        return min(max(self.fraction_done, 0.0), 1.0) * 100

    @property
    def speed_label(self) -> str:
        return format_speed(self.bytes_per_second)

    @property
    def eta_label(self) -> str:
        if self.fraction_done >= 1.0:
            return "Complete"
        return format_eta(self.eta_seconds)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a completed fetch."""

    path: str
    bytes_written: int


@dataclass(frozen=True)
class TaskProgress:
    """
    Progress sample emitted by a single transcode task.

    Attributes:
        task: Task name (``video`` or ``audio_<slug>``)
        percent: Task-local percentage, already capped to [0, 100]
        done: True on the final sample of a successful task
        error: Failure raised by the task, if any
    """

    task: str
    percent: float = 0.0
    done: bool = False
    error: Optional[BaseException] = field(default=None, compare=False)
