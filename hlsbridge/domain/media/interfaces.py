"""
Media Collaborator Interfaces

Abstract contracts for the external tools the pipeline drives.
Concrete implementations are in the infrastructure layer.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from hlsbridge.domain.cancellation import CancellationToken

from .value_objects import (
    AudioTrack,
    FetchProgress,
    FetchResult,
    MediaDescriptor,
    RemoteFileInfo,
    VideoStreamInfo,
)

FetchProgressCallback = Callable[[FetchProgress], None]
PercentCallback = Callable[[float], None]


class Fetcher(ABC):
    """
    Abstract interface for retrieving a remote source file.

    Implementations must follow redirects, stop when the cancellation
    token is set and remove partial output on failure.
    """

    @abstractmethod
    def analyze(self, url: str) -> RemoteFileInfo:
        """
        Inspect the remote file without downloading it.

        Args:
            url: Validated http(s) URL

        Returns:
            RemoteFileInfo with the file name and, when known, size and type

        Raises:
            FetchError: If the remote server cannot be reached or refuses
        """
        pass  # pragma: no cover

    @abstractmethod
    def fetch(
        self,
        url: str,
        destination: str,
        on_progress: FetchProgressCallback,
        cancel_token: CancellationToken,
    ) -> FetchResult:
        """
        Download the remote file to ``destination``.

        Args:
            url: Validated http(s) URL
            destination: Local path to write
            on_progress: Called with transfer samples, in order
            cancel_token: Aborts the transfer when set

        Returns:
            FetchResult with the written path and byte count

        Raises:
            FetchError: On network/transfer errors or non-2xx responses
            JobCancelledError: If the token was set during the transfer
        """
        pass  # pragma: no cover


class Prober(ABC):
    """Abstract interface for inspecting a local media file."""

    @abstractmethod
    def inspect(self, path: str) -> MediaDescriptor:
        """
        Read duration and stream descriptors from a media file.

        Args:
            path: Local media file

        Returns:
            MediaDescriptor

        Raises:
            ProbeError: If the file is unreadable or not media
        """
        pass  # pragma: no cover


class Transcoder(ABC):
    """
    Abstract interface for the per-stream HLS encode tasks.

    Each task writes its segments and one variant playlist under
    ``output_dir`` using fixed names: ``video.m3u8`` for the video task and
    ``audio_<slug>.m3u8`` for an audio task.
    """

    @abstractmethod
    def run_video_task(
        self,
        media_file: str,
        output_dir: str,
        video: Optional[VideoStreamInfo],
        duration_seconds: float,
        on_progress: PercentCallback,
        cancel_token: CancellationToken,
    ) -> bool:
        """
        Produce the video variant.

        Args:
            media_file: Local source file
            output_dir: Job output directory
            video: Primary video stream, decides copy vs. re-encode
            duration_seconds: Source duration used to derive progress
            on_progress: Called with task percentages (0-100)
            cancel_token: Stops the encode when set

        Returns:
            True if the video stream was copied, False if re-encoded

        Raises:
            EncodeError: If the encode fails
            JobCancelledError: If the token was set during the encode
        """
        pass  # pragma: no cover

    @abstractmethod
    def run_audio_task(
        self,
        media_file: str,
        output_dir: str,
        track: AudioTrack,
        duration_seconds: float,
        on_progress: PercentCallback,
        cancel_token: CancellationToken,
    ) -> None:
        """
        Produce one audio variant.

        Args:
            media_file: Local source file
            output_dir: Job output directory
            track: Audio track to encode, ``track.slug`` names the output
            duration_seconds: Source duration used to derive progress
            on_progress: Called with task percentages (0-100)
            cancel_token: Stops the encode when set

        Raises:
            EncodeError: If the encode fails
            JobCancelledError: If the token was set during the encode
        """
        pass  # pragma: no cover
