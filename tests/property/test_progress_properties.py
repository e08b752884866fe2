"""
Property-based tests for progress aggregation and job progress.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from hlsbridge.domain.job_management import JobStatus, StreamJob
from hlsbridge.domain.media.progress import VIDEO_TASK, ProgressAggregator, aggregate

percent = st.floats(min_value=-50, max_value=150, allow_nan=False)

pytestmark = pytest.mark.property


@given(video=percent, audio=st.lists(percent, max_size=6))
def test_aggregate_stays_within_encode_range(video, audio):
    value = aggregate(video, audio)

    assert 0.0 <= value <= 90.0


@given(video=percent, audio=st.lists(percent, min_size=1, max_size=6), bump=st.floats(0, 100))
def test_aggregate_never_drops_when_a_task_advances(video, audio, bump):
    before = aggregate(video, audio)

    assert aggregate(min(max(video, 0) + bump, 100), audio) >= before - 1e-9


@given(
    tracks=st.integers(min_value=0, max_value=4),
    samples=st.lists(st.tuples(st.integers(min_value=0, max_value=4), percent), max_size=60),
)
def test_aggregator_output_is_monotonic(tracks, samples):
    names = [f"audio_{i}" for i in range(tracks)]
    aggregator = ProgressAggregator(names)
    tasks = [VIDEO_TASK, *names]

    seen = []
    for position, value in samples:
        seen.append(aggregator.update(tasks[position % len(tasks)], value))

    assert seen == sorted(seen)
    assert aggregator.begin_finalize() >= (seen[-1] if seen else 0)
    assert aggregator.finalize() == 100.0


@given(st.lists(st.floats(min_value=-10, max_value=110, allow_nan=False), max_size=40))
def test_job_progress_never_decreases(values):
    job = StreamJob.create("https://cdn.example.com/movie.mkv")
    job.apply_update(status=JobStatus.ANALYZING)

    previous = job.progress
    for value in values:
        job.apply_update(progress=value)
        assert previous <= job.progress <= 100
        previous = job.progress
