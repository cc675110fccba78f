"""Trigger endpoint module for the video transcoding pipeline.

This module handles:
- Trigger payload normalization (direct and push envelope shapes)
- Lambda handler for API Gateway
"""

from .events import normalize_event

__all__ = [
    "normalize_event",
]
