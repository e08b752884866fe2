"""
Fake Collaborators

In-memory implementations of the Fetcher, Prober and Transcoder interfaces.
They record their calls and can be scripted to fail, block until cancelled
or emit a fixed progress sequence.
"""

import threading
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from hlsbridge.domain.cancellation import CancellationToken
from hlsbridge.domain.errors import EncodeError, FetchError, JobCancelledError, ProbeError
from hlsbridge.domain.media.interfaces import Fetcher, Prober, Transcoder
from hlsbridge.domain.media.progress import VIDEO_TASK
from hlsbridge.domain.media.value_objects import (
    AudioStreamInfo,
    AudioTrack,
    FetchProgress,
    FetchResult,
    MediaDescriptor,
    RemoteFileInfo,
    VideoStreamInfo,
)


def block_until_cancelled(token: CancellationToken, timeout: float = 5.0) -> None:
    """Spin on the token; raises JobCancelledError once it is set."""
    waited = 0.0
    while not token.wait(0.01):
        waited += 0.01
        if waited >= timeout:
            raise AssertionError("token was never cancelled")
    raise JobCancelledError("cancelled")


def make_descriptor(
    languages: Sequence[Optional[str]] = ("en",),
    duration: float = 120.0,
    codec: str = "h264",
    pixel_format: str = "yuv420p",
    width: int = 1920,
    height: int = 1080,
) -> MediaDescriptor:
    """Descriptor with one video stream and one audio stream per language."""
    return MediaDescriptor(
        duration_seconds=duration,
        video_streams=(
            VideoStreamInfo(
                index=0,
                codec=codec,
                width=width,
                height=height,
                pixel_format=pixel_format,
                bitrate=4_500_000,
            ),
        ),
        audio_streams=tuple(
            AudioStreamInfo(index=i, codec="aac", language=language or "und")
            for i, language in enumerate(languages)
        ),
    )


class FakeFetcher(Fetcher):
    """Writes a few bytes to the destination and reports scripted samples."""

    def __init__(
        self,
        name: str = "movie.mkv",
        size: int = 1024,
        fractions: Iterable[float] = (0.25, 0.5, 1.0),
        analyze_error: Optional[Exception] = None,
        fetch_error: Optional[Exception] = None,
        block: bool = False,
    ):
        self.name = name
        self.size = size
        self.fractions = list(fractions)
        self.analyze_error = analyze_error
        self.fetch_error = fetch_error
        self.block = block
        self.started = threading.Event()
        self.calls: List[str] = []

    def analyze(self, url: str) -> RemoteFileInfo:
        self.calls.append(f"analyze:{url}")
        if self.analyze_error is not None:
            raise self.analyze_error
        return RemoteFileInfo(name=self.name, size=self.size, content_type="video/x-matroska")

    def fetch(self, url, destination, on_progress, cancel_token) -> FetchResult:
        self.calls.append(f"fetch:{destination}")
        Path(destination).write_bytes(b"\x00" * 16)
        self.started.set()

        if self.block:
            block_until_cancelled(cancel_token)
        if self.fetch_error is not None:
            raise self.fetch_error

        for fraction in self.fractions:
            cancel_token.raise_if_cancelled()
            on_progress(FetchProgress(fraction_done=fraction, bytes_per_second=2048, eta_seconds=3))
        return FetchResult(path=destination, bytes_written=16)


class FakeProber(Prober):
    def __init__(self, descriptor: Optional[MediaDescriptor] = None, error: Optional[Exception] = None):
        self.descriptor = descriptor or make_descriptor()
        self.error = error
        self.calls: List[str] = []

    def inspect(self, path: str) -> MediaDescriptor:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return self.descriptor


class FakeTranscoder(Transcoder):
    """
    Scripted transcoder.

    Tasks in ``fail_tasks`` raise EncodeError after their progress steps,
    tasks in ``block_tasks`` wait for cancellation, every other task writes
    its playlist file and succeeds.
    """

    def __init__(
        self,
        steps: Iterable[float] = (25.0, 50.0, 75.0),
        fail_tasks: Iterable[str] = (),
        block_tasks: Iterable[str] = (),
        crash_tasks: Iterable[str] = (),
        copied: bool = True,
    ):
        self.steps = list(steps)
        self.fail_tasks = set(fail_tasks)
        self.block_tasks = set(block_tasks)
        self.crash_tasks = set(crash_tasks)
        self.copied = copied
        self.calls: List[str] = []
        self.cancelled: List[str] = []
        self.blocking = threading.Event()
        self._lock = threading.Lock()

    def run_video_task(self, media_file, output_dir, video, duration_seconds, on_progress, cancel_token):
        self._run(VIDEO_TASK, output_dir, "video.m3u8", on_progress, cancel_token)
        return self.copied

    def run_audio_task(self, media_file, output_dir, track: AudioTrack, duration_seconds, on_progress, cancel_token):
        self._run(track.task_name, output_dir, track.playlist_name, on_progress, cancel_token)

    def _run(self, name, output_dir, playlist, on_progress, cancel_token):
        with self._lock:
            self.calls.append(name)

        if name in self.block_tasks:
            self.blocking.set()
            try:
                block_until_cancelled(cancel_token)
            except JobCancelledError:
                with self._lock:
                    self.cancelled.append(name)
                raise

        for step in self.steps:
            cancel_token.raise_if_cancelled()
            on_progress(step)

        if name in self.fail_tasks:
            raise EncodeError(f"{name} exploded", task_name=name)
        if name in self.crash_tasks:
            raise RuntimeError(f"{name} crashed")

        Path(output_dir, playlist).write_text("#EXTM3U\n")


def fetch_error(message: str = "HTTP Error 404: Not Found") -> FetchError:
    return FetchError(message)


def probe_error(message: str = "Invalid data found when processing input") -> ProbeError:
    return ProbeError(message)
