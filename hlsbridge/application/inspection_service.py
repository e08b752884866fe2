"""
Source Inspection Service

Inspects a remote video without creating a job, so clients can preview its
duration, resolution and audio tracks before converting it.
"""

import logging
from typing import Any, Dict

from hlsbridge.domain.media.interfaces import Prober
from hlsbridge.domain.media.value_objects import SourceUrl

logger = logging.getLogger(__name__)


class SourceInspectionService:
    """Application service wrapping the Prober for remote sources."""

    def __init__(self, prober: Prober):
        self.prober = prober

    def inspect(self, url: str) -> Dict[str, Any]:
        """
        Probe a remote video.

        ffprobe reads http(s) inputs directly, only the headers and the
        first packets are transferred.

        Args:
            url: Remote video URL

        Returns:
            Media descriptor dict with the audio tracks a job would convert

        Raises:
            InvalidInputError: If the URL is not a valid http(s) URL
            ProbeError: If the source cannot be inspected
        """
        source = SourceUrl(url)
        descriptor = self.prober.inspect(str(source))

        logger.info(
            f"Inspected {source}: {descriptor.duration_seconds:.1f}s, "
            f"{len(descriptor.audio_streams)} audio streams"
        )
        return descriptor.to_dict()
