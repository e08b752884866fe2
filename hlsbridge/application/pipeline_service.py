"""
Stream Pipeline Service

Application service that drives one job from the remote URL to a published
HLS asset: analyze, download, inspect, convert, publish. Updates the job
store at every checkpoint and honours cancellation between stages.
"""

import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from hlsbridge.domain.cancellation import CancellationToken
from hlsbridge.domain.errors import (
    DomainError,
    ErrorCategory,
    JobCancelledError,
    user_message_for,
)
from hlsbridge.domain.job_management.services import JobStore
from hlsbridge.domain.job_management.value_objects import FileInfo, JobStatus
from hlsbridge.domain.media.encode_policy import (
    AUDIO_BITRATE,
    bitrate_to_bps,
    target_bitrate,
)
from hlsbridge.domain.media.interfaces import Fetcher, Prober
from hlsbridge.domain.media.manifest import (
    DEFAULT_BANDWIDTH,
    DEFAULT_RESOLUTION,
    MASTER_PLAYLIST,
    render_master_manifest,
    write_master_manifest,
)
from hlsbridge.domain.media.value_objects import (
    AudioTrack,
    FetchProgress,
    MediaDescriptor,
    RemoteFileInfo,
    SourceUrl,
)

from .pipeline_result import PipelineResult
from .transcode_coordinator import TranscodeCoordinator, TranscodeResult

logger = logging.getLogger(__name__)

DEFAULT_INPUT_EXTENSION = ".mkv"
INPUT_FILE_STEM = "input"


class StreamPipelineService:
    """
    Application service orchestrating the URL-to-HLS workflow for one job.

    The job's progress is split into two bands: the download fills the
    first ``FETCH_SHARE`` percent, the conversion aggregate is scaled into
    the rest, and publishing the manifest completes it.
    """

    FETCH_SHARE = 30.0

    def __init__(
        self,
        job_store: JobStore,
        fetcher: Fetcher,
        prober: Prober,
        coordinator: TranscodeCoordinator,
        output_root: str,
        public_base: str = "/hls",
        cancel_poll_interval: float = 0.5,
    ):
        """
        Initialize StreamPipelineService with dependencies.

        Args:
            job_store: Domain service owning the job records
            fetcher: Remote file collaborator
            prober: Media inspection collaborator
            coordinator: Transcode coordinator
            output_root: Directory holding one output directory per job
            public_base: URL prefix under which output directories are served
            cancel_poll_interval: Seconds between two job store cancellation polls
        """
        self.job_store = job_store
        self.fetcher = fetcher
        self.prober = prober
        self.coordinator = coordinator
        self.output_root = Path(output_root)
        self.public_base = public_base.rstrip("/")
        self.cancel_poll_interval = cancel_poll_interval

    def output_dir_for(self, job_id: str) -> Path:
        return self.output_root / job_id

    def stream_url_for(self, job_id: str) -> str:
        return f"{self.public_base}/{job_id}/{MASTER_PLAYLIST}"

    def create_cancel_token(self, job_id: str) -> CancellationToken:
        """Token that also observes cancels recorded in the job store."""
        return CancellationToken(
            poll=lambda: self.job_store.is_cancelled(job_id),
            poll_interval=self.cancel_poll_interval,
        )

    def execute(
        self, job_id: str, cancel_token: Optional[CancellationToken] = None
    ) -> PipelineResult:
        """
        Run the complete pipeline for a job.

        Workflow:
        1. analyzing -> analyzed with name, size and content type
        2. checkpoint, downloading with progress/speed/eta, downloaded
        3. inspect streams, file info completed with duration/resolution/tracks
        4. checkpoint, converting with the aggregate progress
        5. checkpoint, manifest written, ready with the stream URL
        On error or cancel the job's output directory is removed.

        Args:
            job_id: Job identifier
            cancel_token: Token to observe, one polling the job store is
                created when omitted

        Returns:
            PipelineResult describing the final state
        """
        job = self.job_store.get_job(job_id)
        if job is None:
            logger.warning(f"Pipeline started for unknown job {job_id}")
            return PipelineResult.create_failure(
                job_id, ErrorCategory.JOB_NOT_FOUND, user_message_for(ErrorCategory.JOB_NOT_FOUND)
            )
        if job.is_terminal():
            logger.info(f"Job {job_id} is already {job.status.value}, skipping pipeline")
            return PipelineResult(job_id=job_id, status=job.status)

        token = cancel_token or self.create_cancel_token(job_id)
        output_dir = self.output_dir_for(job_id)

        try:
            source = SourceUrl(job.source_url)

            remote = self._analyze(job_id, source)
            token.raise_if_cancelled()

            media_file = self._download(job_id, source, remote, output_dir, token)
            token.raise_if_cancelled()

            descriptor, audio_tracks = self._inspect(job_id, media_file)
            token.raise_if_cancelled()

            transcode = self._convert(job_id, media_file, output_dir, descriptor, audio_tracks, token)
            token.raise_if_cancelled()

            return self._publish(job_id, output_dir, media_file, descriptor, audio_tracks, transcode)

        except JobCancelledError:
            return self._handle_cancel(job_id, output_dir)
        except Exception as e:
            if token.is_cancelled():
                # Failures caused by tearing down a cancelled transfer or encode
                return self._handle_cancel(job_id, output_dir)
            return self._handle_error(job_id, e, output_dir)

    def _analyze(self, job_id: str, source: SourceUrl) -> RemoteFileInfo:
        logger.info(f"Job {job_id}: analyzing {source}")
        self.job_store.update_job(job_id, status=JobStatus.ANALYZING)

        remote = self.fetcher.analyze(str(source))

        self.job_store.update_job(
            job_id,
            status=JobStatus.ANALYZED,
            file_info=FileInfo(
                name=remote.name, size=remote.size, content_type=remote.content_type
            ),
        )
        return remote

    def _download(
        self,
        job_id: str,
        source: SourceUrl,
        remote: RemoteFileInfo,
        output_dir: Path,
        token: CancellationToken,
    ) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        media_file = output_dir / f"{INPUT_FILE_STEM}{self._input_extension(remote, source)}"

        logger.info(f"Job {job_id}: downloading to {media_file}")
        self.job_store.update_job(job_id, status=JobStatus.DOWNLOADING, progress=0)

        def on_progress(sample: FetchProgress) -> None:
            if token.is_cancelled():
                return
            self.job_store.update_job(
                job_id,
                status=JobStatus.DOWNLOADING,
                progress=sample.percent * self.FETCH_SHARE / 100,
                speed=sample.speed_label,
                eta=sample.eta_label,
            )

        result = self.fetcher.fetch(str(source), str(media_file), on_progress, token)
        token.raise_if_cancelled()

        logger.info(f"Job {job_id}: downloaded {result.bytes_written} bytes")
        self.job_store.update_job(
            job_id, status=JobStatus.DOWNLOADED, progress=self.FETCH_SHARE
        )
        return Path(result.path)

    def _inspect(
        self, job_id: str, media_file: Path
    ) -> Tuple[MediaDescriptor, List[AudioTrack]]:
        descriptor = self.prober.inspect(str(media_file))
        audio_tracks = descriptor.audio_tracks()

        logger.info(
            f"Job {job_id}: {descriptor.duration_seconds:.1f}s, "
            f"{descriptor.resolution or 'unknown resolution'}, {len(audio_tracks)} audio tracks"
        )
        self.job_store.update_job(
            job_id,
            file_info=FileInfo(
                duration=descriptor.duration_seconds,
                resolution=descriptor.resolution,
                audio_tracks=tuple(audio_tracks),
            ),
        )
        return descriptor, audio_tracks

    def _convert(
        self,
        job_id: str,
        media_file: Path,
        output_dir: Path,
        descriptor: MediaDescriptor,
        audio_tracks: Sequence[AudioTrack],
        token: CancellationToken,
    ) -> TranscodeResult:
        self.job_store.update_job(job_id, status=JobStatus.CONVERTING)
        convert_share = 100.0 - self.FETCH_SHARE

        def on_progress(percent: float) -> None:
            if token.is_cancelled():
                return
            self.job_store.update_job(
                job_id,
                status=JobStatus.CONVERTING,
                progress=self.FETCH_SHARE + percent * convert_share / 100,
            )

        return self.coordinator.run(
            str(media_file), str(output_dir), descriptor, audio_tracks, on_progress, token
        )

    def _publish(
        self,
        job_id: str,
        output_dir: Path,
        media_file: Path,
        descriptor: MediaDescriptor,
        audio_tracks: Sequence[AudioTrack],
        transcode: TranscodeResult,
    ) -> PipelineResult:
        text = render_master_manifest(
            transcode.video_playlist,
            audio_tracks,
            resolution=descriptor.resolution or DEFAULT_RESOLUTION,
            bandwidth=self._bandwidth(descriptor, audio_tracks, transcode.copied_video),
        )
        manifest_path = write_master_manifest(output_dir, text)

        # The source is not part of the published asset
        media_file.unlink(missing_ok=True)

        stream_url = self.stream_url_for(job_id)
        job = self.job_store.update_job(
            job_id,
            status=JobStatus.READY,
            progress=100,
            stream_url=stream_url,
            manifest_path=str(manifest_path),
        )
        if job is None or job.status != JobStatus.READY:
            raise JobCancelledError(f"Job {job_id} was cancelled before it was published")

        logger.info(f"Job {job_id} ready at {stream_url}")
        return PipelineResult.create_success(job_id, stream_url, str(manifest_path))

    def _bandwidth(
        self,
        descriptor: MediaDescriptor,
        audio_tracks: Sequence[AudioTrack],
        copied_video: bool,
    ) -> int:
        video = descriptor.primary_video
        if video is None:
            return DEFAULT_BANDWIDTH
        if copied_video and video.bitrate:
            video_bps = video.bitrate
        else:
            video_bps = bitrate_to_bps(target_bitrate(video.width))
        audio_bps = bitrate_to_bps(AUDIO_BITRATE) if audio_tracks else 0
        return video_bps + audio_bps

    def _input_extension(self, remote: RemoteFileInfo, source: SourceUrl) -> str:
        for candidate in (remote.name, urlparse(str(source)).path):
            suffix = PurePosixPath(candidate or "").suffix
            if suffix and suffix[1:].isalnum():
                return suffix.lower()
        return DEFAULT_INPUT_EXTENSION

    def _cleanup(self, job_id: str, output_dir: Path) -> None:
        """Remove the job's output directory, ignoring failures."""
        shutil.rmtree(output_dir, ignore_errors=True)
        logger.debug(f"Job {job_id}: removed {output_dir}")

    def _handle_cancel(self, job_id: str, output_dir: Path) -> PipelineResult:
        logger.info(f"Job {job_id} cancelled, cleaning up")
        self._cleanup(job_id, output_dir)
        # Local cancels only set the token, make sure the store agrees
        self.job_store.cancel_job(job_id)
        return PipelineResult.create_cancelled(job_id)

    def _handle_error(self, job_id: str, exception: Exception, output_dir: Path) -> PipelineResult:
        """
        Categorize the failure, clean up and move the job to ``error``.

        Args:
            job_id: Job identifier
            exception: Exception that ended the run
            output_dir: Job output directory

        Returns:
            PipelineResult indicating failure
        """
        if isinstance(exception, DomainError):
            error_category = exception.category
            message = str(exception) or user_message_for(error_category)
            technical_message = f"{type(exception).__name__}: {exception}"
            if exception.original_error is not None:
                technical_message += f" (caused by {exception.original_error!r})"
            logger.error(f"Job {job_id} failed with {error_category.value}: {technical_message}")
        else:
            error_category = ErrorCategory.SYSTEM_ERROR
            message = user_message_for(error_category)
            logger.error(
                f"Job {job_id} failed with unexpected error: "
                f"{type(exception).__name__}: {exception}",
                exc_info=exception,
            )

        self._cleanup(job_id, output_dir)

        job = self.job_store.update_job(
            job_id,
            status=JobStatus.ERROR,
            message=message,
            error_category=error_category.value,
        )
        if job is not None and job.status == JobStatus.CANCELLED:
            return PipelineResult.create_cancelled(job_id)

        return PipelineResult.create_failure(job_id, error_category, message)
