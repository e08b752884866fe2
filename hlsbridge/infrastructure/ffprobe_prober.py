"""
FFprobe Prober Infrastructure Service

Prober implementation that runs ``ffprobe`` and translates its JSON report
into a MediaDescriptor.
"""

import json
import logging
import subprocess
from typing import Any, Dict, Optional

from hlsbridge.domain.errors import ProbeError
from hlsbridge.domain.media.interfaces import Prober
from hlsbridge.domain.media.value_objects import (
    UNDETERMINED_LANGUAGE,
    AudioStreamInfo,
    MediaDescriptor,
    SubtitleStreamInfo,
    VideoStreamInfo,
)

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _frame_rate(value: Optional[str]) -> Optional[float]:
    """Parse an ffprobe rational such as ``30000/1001``."""
    if not value:
        return None
    numerator, _, denominator = value.partition("/")
    num = _to_float(numerator)
    den = _to_float(denominator) if denominator else 1.0
    if num is None or not den:
        return None
    return round(num / den, 3)


class FFprobeProber(Prober):
    """
    ffprobe based implementation of media inspection.

    Handles all ffprobe specific logic and error translation to domain
    exceptions.
    """

    def __init__(self, binary: str = "ffprobe", timeout: float = 60.0):
        """
        Args:
            binary: ffprobe executable
            timeout: Seconds before the probe is abandoned
        """
        self.binary = binary
        self.timeout = timeout

    def inspect(self, path: str) -> MediaDescriptor:
        """
        Inspect a media file.

        Args:
            path: Local media file or http(s) URL

        Returns:
            MediaDescriptor with streams in source order

        Raises:
            ProbeError: If ffprobe is missing, fails, times out or the file
                has no video stream
        """
        cmd = [
            self.binary,
            "-v", "error",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            path,
        ]

        try:
            completed = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.timeout, check=False
            )
        except FileNotFoundError as e:
            raise ProbeError(f"ffprobe executable not found: {self.binary}", original_error=e)
        except subprocess.TimeoutExpired as e:
            raise ProbeError(f"ffprobe timed out after {self.timeout:.0f}s", original_error=e)

        if completed.returncode != 0:
            detail = (completed.stderr or "").strip().splitlines()
            raise ProbeError(
                f"ffprobe failed: {detail[-1] if detail else f'exit code {completed.returncode}'}"
            )

        try:
            report = json.loads(completed.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ProbeError("ffprobe returned invalid JSON", original_error=e)

        descriptor = self.parse_report(report)
        if descriptor.primary_video is None:
            raise ProbeError("No video stream found")

        logger.debug(
            f"Probed {path}: {len(descriptor.video_streams)} video, "
            f"{len(descriptor.audio_streams)} audio, "
            f"{len(descriptor.subtitle_streams)} subtitle streams"
        )
        return descriptor

    def parse_report(self, report: Dict[str, Any]) -> MediaDescriptor:
        """
        Translate an ffprobe JSON report into a MediaDescriptor.

        Stream indexes are positions within each stream kind, matching
        ffmpeg's ``0:v:N`` / ``0:a:N`` selectors.
        """
        video, audio, subtitles = [], [], []
        video_position = 0

        for stream in report.get("streams", []):
            kind = stream.get("codec_type")
            codec = stream.get("codec_name") or "unknown"
            tags = stream.get("tags") or {}
            language = tags.get("language") or UNDETERMINED_LANGUAGE
            title = tags.get("title")

            if kind == "video":
                position = video_position
                video_position += 1
                disposition = stream.get("disposition") or {}
                if disposition.get("attached_pic"):
                    # Cover art, not a playable video stream
                    continue
                video.append(
                    VideoStreamInfo(
                        index=position,
                        codec=codec,
                        width=_to_int(stream.get("width")),
                        height=_to_int(stream.get("height")),
                        pixel_format=stream.get("pix_fmt"),
                        bitrate=_to_int(stream.get("bit_rate")),
                        fps=_frame_rate(stream.get("r_frame_rate")),
                    )
                )
            elif kind == "audio":
                audio.append(
                    AudioStreamInfo(
                        index=len(audio),
                        codec=codec,
                        language=language,
                        title=title,
                        channels=_to_int(stream.get("channels")),
                        bitrate=_to_int(stream.get("bit_rate")),
                    )
                )
            elif kind == "subtitle":
                subtitles.append(
                    SubtitleStreamInfo(
                        index=len(subtitles), codec=codec, language=language, title=title
                    )
                )

        duration = _to_float((report.get("format") or {}).get("duration")) or 0.0
        return MediaDescriptor(
            duration_seconds=duration,
            video_streams=tuple(video),
            audio_streams=tuple(audio),
            subtitle_streams=tuple(subtitles),
        )
