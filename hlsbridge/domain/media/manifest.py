"""
HLS Master Manifest

Deterministic rendering of the master playlist that ties the video variant
to its alternate audio renditions.
"""

import os
import tempfile
from pathlib import Path
from typing import List, Sequence, Union

from .value_objects import AudioTrack

MASTER_PLAYLIST = "master.m3u8"
VIDEO_PLAYLIST = "video.m3u8"
AUDIO_GROUP_ID = "audio"
HLS_VERSION = 7
DEFAULT_CODECS = "avc1.640028,mp4a.40.2"
DEFAULT_RESOLUTION = "1920x1080"
DEFAULT_BANDWIDTH = 4_000_000


def _quoted(value: str) -> str:
    # Attribute values cannot carry double quotes or line breaks
    return '"' + str(value).replace('"', "'").replace("\n", " ").replace("\r", " ") + '"'


def _default_position(audio_tracks: Sequence[AudioTrack]) -> int:
    for position, track in enumerate(audio_tracks):
        if track.is_default:
            return position
    return 0


def render_master_manifest(
    video_playlist: str,
    audio_tracks: Sequence[AudioTrack],
    resolution: str = DEFAULT_RESOLUTION,
    bandwidth: int = DEFAULT_BANDWIDTH,
    codecs: str = DEFAULT_CODECS,
) -> str:
    """
    Render the master playlist text.

    One ``EXT-X-MEDIA`` entry per audio track in the given order, exactly
    one of them ``DEFAULT=YES`` (the first track flagged default, or the
    first track when none is), then a single ``EXT-X-STREAM-INF`` entry
    for the video playlist bound to the audio group.

    Args:
        video_playlist: URI of the video variant playlist
        audio_tracks: Ordered audio tracks
        resolution: ``WxH`` of the video variant
        bandwidth: Peak bitrate in bits per second
        codecs: RFC 6381 codecs tag

    Returns:
        Manifest text, ``\\n``-joined and ending with a blank line
    """
    lines: List[str] = [
        "#EXTM3U",
        f"#EXT-X-VERSION:{HLS_VERSION}",
        "",
    ]

    default_position = _default_position(audio_tracks)
    for position, track in enumerate(audio_tracks):
        is_default = "YES" if position == default_position else "NO"
        lines.append(
            f"#EXT-X-MEDIA:TYPE=AUDIO,GROUP-ID={_quoted(AUDIO_GROUP_ID)},NAME={_quoted(track.name)},"
            f"LANGUAGE={_quoted(track.language)},DEFAULT={is_default},AUTOSELECT=YES,"
            f"URI={_quoted(track.playlist_name)}"
        )

    lines.append("")

    stream_inf = (
        f"#EXT-X-STREAM-INF:BANDWIDTH={int(bandwidth)},RESOLUTION={resolution},"
        f"CODECS={_quoted(codecs)}"
    )
    if audio_tracks:
        stream_inf += f",AUDIO={_quoted(AUDIO_GROUP_ID)}"
    lines.append(stream_inf)
    lines.append(video_playlist)
    lines.append("")

    return "\n".join(lines)


def write_master_manifest(output_dir: Union[str, Path], text: str) -> Path:
    """
    Write the master playlist atomically.

    The text goes to a temporary file in the same directory first and is
    then renamed into place, so readers never observe a partial manifest.

    Args:
        output_dir: Job output directory
        text: Rendered manifest

    Returns:
        Path of ``master.m3u8``
    """
    directory = Path(output_dir)
    target = directory / MASTER_PLAYLIST
    fd, temp_path = tempfile.mkstemp(prefix=".master-", suffix=".m3u8", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)
        os.replace(temp_path, target)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise
    return target
