"""
Encode Policy

Fixed compatibility profile for the HLS video variant: when the source can
be stream-copied, and the target bitrate when it must be re-encoded.
"""

from typing import Optional

from .value_objects import VideoStreamInfo

COPY_SAFE_CODECS = frozenset({"h264", "avc1", "avc"})
TARGET_PIXEL_FORMAT = "yuv420p"

GOP_SIZE = 48
SEGMENT_SECONDS = 6

AUDIO_BITRATE = "128k"
AUDIO_CHANNELS = 2
AUDIO_SAMPLE_RATE = 48000

# (minimum width, bitrate) from highest to lowest
BITRATE_LADDER = (
    (3840, "15M"),
    (2560, "8M"),
    (1920, "5M"),
    (1280, "3M"),
)
FALLBACK_BITRATE = "1.5M"


def can_stream_copy(video: Optional[VideoStreamInfo]) -> bool:
    """
    Decide whether the video stream can be repackaged without re-encoding.

    Only H.264 family codecs with an 8-bit 4:2:0 pixel format qualify.
    """
    if video is None or not video.codec:
        return False
    if video.codec.lower() not in COPY_SAFE_CODECS:
        return False
    pixel_format = (video.pixel_format or "").lower()
    return "10" not in pixel_format and TARGET_PIXEL_FORMAT in pixel_format


def target_bitrate(width: Optional[int]) -> str:
    """Bitrate for a re-encode, picked from the ladder by source width."""
    for min_width, bitrate in BITRATE_LADDER:
        if (width or 0) >= min_width:
            return bitrate
    return FALLBACK_BITRATE


def bitrate_to_bps(bitrate: str) -> int:
    """Convert an ffmpeg bitrate string (``5M``, ``128k``) to bits per second."""
    multipliers = {"k": 1_000, "m": 1_000_000}
    suffix = bitrate[-1].lower()
    if suffix in multipliers:
        return int(float(bitrate[:-1]) * multipliers[suffix])
    return int(float(bitrate))
