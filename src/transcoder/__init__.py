"""Transcoder module: runs the codec pass for a single profile."""

from .ffmpeg import FFmpegTranscoder

__all__ = ["FFmpegTranscoder"]
