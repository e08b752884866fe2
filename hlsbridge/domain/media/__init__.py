"""
Media Domain

Source descriptors, the HLS encode policy, progress aggregation and the
master manifest.
"""

from .interfaces import Fetcher, Prober, Transcoder
from .manifest import render_master_manifest, write_master_manifest
from .progress import ProgressAggregator, StageWeights, aggregate
from .value_objects import (
    AudioTrack,
    MediaDescriptor,
    SourceUrl,
    language_slug,
)

__all__ = [
    'Fetcher',
    'Prober',
    'Transcoder',
    'render_master_manifest',
    'write_master_manifest',
    'ProgressAggregator',
    'StageWeights',
    'aggregate',
    'AudioTrack',
    'MediaDescriptor',
    'SourceUrl',
    'language_slug',
]
