"""HLS bridge: remote video to multi-audio HLS streams."""

__version__ = "1.0.0"
