"""Input validation module for the video transcoding pipeline.

This module handles pre-transcode validation:
- Media info extraction (FFprobe)
- Container allow-list and video stream checks
"""

from .mediainfo import (
    SUPPORTED_CONTAINER_FORMATS,
    MediaInfo,
    extract_media_info,
    probe_source,
    validate_media_info,
)

__all__ = [
    "SUPPORTED_CONTAINER_FORMATS",
    "MediaInfo",
    "extract_media_info",
    "probe_source",
    "validate_media_info",
]
