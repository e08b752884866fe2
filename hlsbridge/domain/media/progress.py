"""
Progress Aggregation

Combines per-task transcode progress into one job-level percentage using
fixed stage weights: video 60%, audio 30% (averaged over all audio tasks),
finalize 10%. The finalize share is only awarded once the manifest is
written.
"""

from dataclasses import dataclass
from threading import Lock
from typing import Dict, Iterable, Sequence

VIDEO_TASK = "video"


@dataclass(frozen=True)
class StageWeights:
    """Fractions of the job percentage owned by each conversion stage."""

    video: float = 0.6
    audio: float = 0.3
    finalize: float = 0.1

    def __post_init__(self):
        if abs(self.video + self.audio + self.finalize - 1.0) > 1e-9:
            raise ValueError("Stage weights must sum to 1.0")

    @property
    def encode_cap(self) -> float:
        """Highest percentage reachable before finalize begins."""
        return (1.0 - self.finalize) * 100


DEFAULT_WEIGHTS = StageWeights()


def _clamp(value: float) -> float:
    return min(max(float(value), 0.0), 100.0)


def aggregate(
    video_progress: float,
    audio_progresses: Sequence[float],
    weights: StageWeights = DEFAULT_WEIGHTS,
) -> float:
    """
    Combine task percentages into the job percentage.

    ``weights.video * video + weights.audio * mean(audio)``, capped at the
    pre-finalize ceiling. An empty audio list has a mean of 0.

    Args:
        video_progress: Video task percentage (0-100)
        audio_progresses: Audio task percentages (0-100), one per track
        weights: Stage weights

    Returns:
        Job percentage in [0, encode_cap]
    """
    audio = [_clamp(p) for p in audio_progresses]
    audio_mean = sum(audio) / len(audio) if audio else 0.0
    total = weights.video * _clamp(video_progress) + weights.audio * audio_mean
    return min(total, weights.encode_cap)


class ProgressAggregator:
    """
    Stateful aggregator for one conversion run.

    Keeps the latest percentage of every task, discards samples lower than
    a task's previous one and never reports a lower aggregate than before.
    Thread-safe, although the coordinator is its only writer.
    """

    def __init__(
        self,
        audio_tasks: Iterable[str],
        weights: StageWeights = DEFAULT_WEIGHTS,
    ):
        self.weights = weights
        self._audio_tasks = list(audio_tasks)
        self._latest: Dict[str, float] = {VIDEO_TASK: 0.0}
        self._latest.update({task: 0.0 for task in self._audio_tasks})
        self._current = 0.0
        self._finalized = False
        self._lock = Lock()

    @property
    def current(self) -> float:
        return self._current

    def update(self, task: str, percent: float) -> float:
        """
        Record a task sample and return the job percentage.

        Args:
            task: Task name (``video`` or an audio task name)
            percent: Task percentage

        Returns:
            Monotonic job percentage

        Raises:
            KeyError: If the task is unknown to this aggregator
        """
        with self._lock:
            if task not in self._latest:
                raise KeyError(f"Unknown task: {task}")
            sample = _clamp(percent)
            if sample > self._latest[task]:
                self._latest[task] = sample
            if not self._finalized:
                total = aggregate(
                    self._latest[VIDEO_TASK],
                    [self._latest[name] for name in self._audio_tasks],
                    self.weights,
                )
                self._current = max(self._current, total)
            return self._current

    def begin_finalize(self) -> float:
        """Mark every encode task resolved; the job sits at the encode cap."""
        with self._lock:
            self._current = max(self._current, self.weights.encode_cap)
            return self._current

    def finalize(self) -> float:
        """Award the finalize share after the manifest is written."""
        with self._lock:
            self._finalized = True
            self._current = 100.0
            return self._current
