"""
FFmpeg Transcoder Infrastructure Service

Transcoder implementation that runs one ffmpeg process per output variant
and turns ffmpeg's machine readable ``-progress`` output into task
percentages.
"""

import logging
import os
import subprocess
import tempfile
from typing import List, Optional, Tuple

from hlsbridge.domain.cancellation import CancellationToken
from hlsbridge.domain.errors import EncodeError, JobCancelledError
from hlsbridge.domain.media.encode_policy import (
    AUDIO_BITRATE,
    AUDIO_CHANNELS,
    AUDIO_SAMPLE_RATE,
    GOP_SIZE,
    SEGMENT_SECONDS,
    TARGET_PIXEL_FORMAT,
    bitrate_to_bps,
    can_stream_copy,
    target_bitrate,
)
from hlsbridge.domain.media.interfaces import PercentCallback, Transcoder
from hlsbridge.domain.media.manifest import VIDEO_PLAYLIST
from hlsbridge.domain.media.progress import VIDEO_TASK
from hlsbridge.domain.media.value_objects import AudioTrack, VideoStreamInfo

logger = logging.getLogger(__name__)

PROBE_OPTIONS = ["-analyzeduration", "100M", "-probesize", "100M"]


def parse_progress_line(line: str, duration_seconds: float) -> Optional[float]:
    """
    Translate one ``key=value`` line of ffmpeg ``-progress`` output.

    Args:
        line: Raw output line
        duration_seconds: Source duration, 0 when unknown

    Returns:
        Task percentage, or None if the line carries no usable position
    """
    key, sep, value = line.strip().partition("=")
    if not sep:
        return None
    if key == "progress" and value == "end":
        return 100.0
    # Both keys are in microseconds despite the name of the first one
    if key in ("out_time_us", "out_time_ms") and duration_seconds > 0:
        try:
            position = int(value) / 1_000_000
        except ValueError:
            return None
        return max(0.0, min(100.0, position / duration_seconds * 100))
    return None


class FFmpegTranscoder(Transcoder):
    """
    ffmpeg based implementation of the HLS encode tasks.

    Every task writes fragmented MP4 segments of ``SEGMENT_SECONDS`` and a
    VOD variant playlist into the job output directory.
    """

    def __init__(self, binary: str = "ffmpeg", kill_timeout: float = 5.0):
        """
        Args:
            binary: ffmpeg executable
            kill_timeout: Seconds to wait after terminate before killing
        """
        self.binary = binary
        self.kill_timeout = kill_timeout

    def build_video_command(
        self, media_file: str, output_dir: str, video: Optional[VideoStreamInfo]
    ) -> Tuple[List[str], bool]:
        """
        Build the ffmpeg command for the video variant.

        Returns:
            Tuple of (command, whether the stream is copied)
        """
        copied = can_stream_copy(video)
        if copied:
            codec_options = ["-c:v", "copy"]
        else:
            bitrate = target_bitrate(video.width if video else None)
            buffer_size = f"{bitrate_to_bps(bitrate) * 2 // 1000}k"
            codec_options = [
                "-c:v", "libx264",
                "-preset", "ultrafast",
                "-tune", "fastdecode",
                "-profile:v", "high",
                "-level", "4.1",
                "-pix_fmt", TARGET_PIXEL_FORMAT,
                "-b:v", bitrate,
                "-maxrate", bitrate,
                "-bufsize", buffer_size,
                "-g", str(GOP_SIZE),
                "-keyint_min", str(GOP_SIZE),
                "-sc_threshold", "0",
                "-bf", "0",
            ]

        cmd = [
            self.binary, "-y",
            *PROBE_OPTIONS,
            "-i", media_file,
            "-map", f"0:v:{video.index if video else 0}",
            "-an", "-sn",
            *codec_options,
            *self._hls_options(output_dir, "init_video.mp4", "video_%03d.m4s"),
            os.path.join(output_dir, VIDEO_PLAYLIST),
        ]
        return cmd, copied

    def build_audio_command(self, media_file: str, output_dir: str, track: AudioTrack) -> List[str]:
        """Build the ffmpeg command for one audio variant."""
        return [
            self.binary, "-y",
            *PROBE_OPTIONS,
            "-i", media_file,
            "-map", f"0:a:{track.index}",
            "-vn", "-sn",
            "-c:a", "aac",
            "-b:a", AUDIO_BITRATE,
            "-ac", str(AUDIO_CHANNELS),
            "-ar", str(AUDIO_SAMPLE_RATE),
            *self._hls_options(
                output_dir, f"init_audio_{track.slug}.mp4", f"audio_{track.slug}_%03d.m4s"
            ),
            os.path.join(output_dir, track.playlist_name),
        ]

    def run_video_task(
        self,
        media_file: str,
        output_dir: str,
        video: Optional[VideoStreamInfo],
        duration_seconds: float,
        on_progress: PercentCallback,
        cancel_token: CancellationToken,
    ) -> bool:
        cmd, copied = self.build_video_command(media_file, output_dir, video)
        logger.info(f"Video task: {'copying' if copied else 're-encoding'} stream into {output_dir}")
        self._run(cmd, VIDEO_TASK, duration_seconds, on_progress, cancel_token)
        return copied

    def run_audio_task(
        self,
        media_file: str,
        output_dir: str,
        track: AudioTrack,
        duration_seconds: float,
        on_progress: PercentCallback,
        cancel_token: CancellationToken,
    ) -> None:
        cmd = self.build_audio_command(media_file, output_dir, track)
        logger.info(f"Audio task {track.task_name}: encoding source audio #{track.index}")
        self._run(cmd, track.task_name, duration_seconds, on_progress, cancel_token)

    @staticmethod
    def _hls_options(output_dir: str, init_name: str, segment_pattern: str) -> List[str]:
        return [
            "-f", "hls",
            "-hls_time", str(SEGMENT_SECONDS),
            "-hls_playlist_type", "vod",
            "-hls_segment_type", "fmp4",
            "-hls_fmp4_init_filename", init_name,
            "-hls_segment_filename", os.path.join(output_dir, segment_pattern),
        ]

    def _run(
        self,
        cmd: List[str],
        task_name: str,
        duration_seconds: float,
        on_progress: PercentCallback,
        cancel_token: CancellationToken,
    ) -> None:
        """
        Run one ffmpeg process to completion.

        stderr goes to a temporary file so a chatty encoder cannot fill a
        pipe and stall; its tail is used in the error message.

        Raises:
            EncodeError: If ffmpeg is missing or exits non-zero
            JobCancelledError: If the token was set while ffmpeg ran
        """
        cancel_token.raise_if_cancelled(f"Job cancelled before {task_name}")
        full_cmd = [cmd[0], "-progress", "pipe:1", "-nostats", *cmd[1:]]

        with tempfile.TemporaryFile(mode="w+") as stderr_file:
            try:
                process = subprocess.Popen(
                    full_cmd,
                    stdout=subprocess.PIPE,
                    stderr=stderr_file,
                    stdin=subprocess.DEVNULL,
                    text=True,
                )
            except FileNotFoundError as e:
                raise EncodeError(
                    f"ffmpeg executable not found: {self.binary}", task_name=task_name, original_error=e
                )

            try:
                for line in process.stdout:
                    if cancel_token.is_cancelled():
                        raise JobCancelledError(f"Job cancelled during {task_name}")
                    percent = parse_progress_line(line, duration_seconds)
                    if percent is not None:
                        on_progress(percent)
                returncode = process.wait()
            except BaseException:
                self._stop(process)
                raise

            if cancel_token.is_cancelled():
                raise JobCancelledError(f"Job cancelled during {task_name}")

            if returncode != 0:
                stderr_file.seek(0)
                tail = stderr_file.read().strip().splitlines()[-3:]
                detail = " | ".join(tail) if tail else f"exit code {returncode}"
                logger.error(f"ffmpeg {task_name} failed with exit code {returncode}: {detail}")
                raise EncodeError(f"ffmpeg {task_name} failed: {detail}", task_name=task_name)

        on_progress(100.0)

    def _stop(self, process: subprocess.Popen) -> None:
        """Terminate ffmpeg, escalating to kill if it does not exit in time."""
        if process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=self.kill_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"ffmpeg pid {process.pid} ignored terminate, killing")
            try:
                process.kill()
            except ProcessLookupError:
                pass
            process.wait()
