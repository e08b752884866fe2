"""
Transcode Coordinator

Runs the video task and one task per audio track concurrently, merges
their progress into the job percentage and resolves when every task has
finished or the first one fails.
"""

import logging
import queue
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Sequence, Tuple

from hlsbridge.domain.cancellation import CancellationToken
from hlsbridge.domain.errors import EncodeError, JobCancelledError
from hlsbridge.domain.media.interfaces import Transcoder
from hlsbridge.domain.media.manifest import VIDEO_PLAYLIST
from hlsbridge.domain.media.progress import (
    DEFAULT_WEIGHTS,
    VIDEO_TASK,
    ProgressAggregator,
    StageWeights,
)
from hlsbridge.domain.media.value_objects import AudioTrack, MediaDescriptor, TaskProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class TranscodeResult:
    """
    Outcome of a successful conversion.

    Attributes:
        video_playlist: Video variant playlist filename
        audio_playlists: Audio variant playlist filenames, in track order
        copied_video: Whether the video stream was copied instead of re-encoded
    """

    video_playlist: str
    audio_playlists: Tuple[str, ...]
    copied_video: bool


class TranscodeCoordinator:
    """
    Fan-out/fan-in over the transcode tasks of one job.

    Every task runs on its own pool thread and publishes ``TaskProgress``
    samples into a single bounded queue. The thread calling ``run`` is the
    only consumer of that queue and the only writer of the aggregate.
    """

    def __init__(
        self,
        transcoder: Transcoder,
        weights: StageWeights = DEFAULT_WEIGHTS,
        tick_seconds: float = 0.25,
        min_step: float = 0.5,
        queue_size: int = 256,
    ):
        """
        Initialize TranscodeCoordinator.

        Args:
            transcoder: Transcoder collaborator
            weights: Stage weights for the aggregate
            tick_seconds: Longest wait on the progress queue between
                cancellation checks
            min_step: Aggregate increase required before a new value is
                forwarded to the caller
            queue_size: Capacity of the progress queue
        """
        self.transcoder = transcoder
        self.weights = weights
        self.tick_seconds = tick_seconds
        self.min_step = min_step
        self.queue_size = queue_size

    def run(
        self,
        media_file: str,
        output_dir: str,
        descriptor: MediaDescriptor,
        audio_tracks: Sequence[AudioTrack],
        on_progress: ProgressCallback,
        cancel_token: CancellationToken,
    ) -> TranscodeResult:
        """
        Convert the media file into HLS variants.

        Args:
            media_file: Local source file
            output_dir: Job output directory (must exist)
            descriptor: Probed source descriptor
            audio_tracks: Ordered audio tracks to encode
            on_progress: Receives the monotonic job-level percentage
            cancel_token: Job cancellation token

        Returns:
            TranscodeResult

        Raises:
            JobCancelledError: If the job was cancelled before or during the run
            EncodeError: If any task failed; sibling tasks are stopped and
                joined before it is raised
        """
        cancel_token.raise_if_cancelled()

        audio_tracks = list(audio_tracks)
        duration = descriptor.duration_seconds
        task_token = cancel_token.child()
        channel: "queue.Queue[TaskProgress]" = queue.Queue(maxsize=self.queue_size)
        aggregator = ProgressAggregator([t.task_name for t in audio_tracks], self.weights)

        tasks: Dict[str, Callable[[ProgressCallback, CancellationToken], object]] = {
            VIDEO_TASK: lambda report, token: self.transcoder.run_video_task(
                media_file, output_dir, descriptor.primary_video, duration, report, token
            ),
        }
        for track in audio_tracks:
            tasks[track.task_name] = (
                lambda report, token, track=track: self.transcoder.run_audio_task(
                    media_file, output_dir, track, duration, report, token
                )
            )

        logger.info(
            f"Starting {len(tasks)} transcode tasks for {Path(media_file).name}: "
            f"{', '.join(tasks)}"
        )

        executor = ThreadPoolExecutor(
            max_workers=len(tasks), thread_name_prefix="transcode"
        )
        futures = {
            name: executor.submit(self._run_task, name, task, channel, task_token)
            for name, task in tasks.items()
        }

        pending = set(tasks)
        forwarded = 0.0
        try:
            while pending:
                if task_token.is_cancelled():
                    raise JobCancelledError("Job cancelled during conversion")

                try:
                    sample = channel.get(timeout=self.tick_seconds)
                except queue.Empty:
                    continue

                if sample.error is not None:
                    task_token.cancel()
                    raise self._task_failure(sample, cancel_token)

                value = aggregator.update(sample.task, sample.percent)
                if sample.done:
                    pending.discard(sample.task)
                    logger.debug(f"Transcode task {sample.task} finished")

                if value > forwarded + self.min_step:
                    forwarded = value
                    on_progress(value)
        finally:
            if pending:
                task_token.cancel()
            # Every task has exited before the caller may remove output_dir
            executor.shutdown(wait=True, cancel_futures=True)

        on_progress(aggregator.begin_finalize())

        copied_video = bool(futures[VIDEO_TASK].result())
        logger.info(
            f"Transcode finished ({'copied' if copied_video else 're-encoded'} video, "
            f"{len(audio_tracks)} audio tracks)"
        )
        return TranscodeResult(
            video_playlist=VIDEO_PLAYLIST,
            audio_playlists=tuple(track.playlist_name for track in audio_tracks),
            copied_video=copied_video,
        )

    def _run_task(
        self,
        name: str,
        task: Callable[[ProgressCallback, CancellationToken], object],
        channel: "queue.Queue[TaskProgress]",
        task_token: CancellationToken,
    ) -> object:
        latest = 0.0

        def report(percent: float) -> None:
            nonlocal latest
            value = min(max(float(percent), 0.0), 100.0)
            if value <= latest:
                return
            latest = value
            try:
                channel.put_nowait(TaskProgress(task=name, percent=value))
            except queue.Full:
                # A later sample carries a value at least as high
                pass

        try:
            outcome = task(report, task_token)
        except Exception as e:
            self._deliver(channel, TaskProgress(task=name, percent=latest, error=e), task_token)
            return None

        self._deliver(channel, TaskProgress(task=name, percent=100.0, done=True), task_token)
        return outcome

    def _deliver(
        self,
        channel: "queue.Queue[TaskProgress]",
        sample: TaskProgress,
        task_token: CancellationToken,
    ) -> None:
        # Completion samples must not be dropped, but nobody drains the
        # queue once the run has been abandoned
        while not task_token.is_cancelled():
            try:
                channel.put(sample, timeout=self.tick_seconds)
                return
            except queue.Full:
                continue

    def _task_failure(self, sample: TaskProgress, cancel_token: CancellationToken) -> Exception:
        error = sample.error
        if isinstance(error, JobCancelledError) or cancel_token.is_cancelled():
            return JobCancelledError("Job cancelled during conversion", original_error=error)
        if isinstance(error, EncodeError):
            if not error.task_name:
                error.task_name = sample.task
            return error

        logger.error(f"Transcode task {sample.task} failed: {error}", exc_info=error)
        return EncodeError(
            f"Transcode task {sample.task} failed: {error}",
            task_name=sample.task,
            original_error=error,
        )
