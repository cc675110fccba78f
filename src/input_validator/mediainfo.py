"""Media info extraction using FFprobe.

Provides container and stream analysis for downloaded sources.
Used for pre-transcode validation to catch unusable inputs early.
"""

import json
import subprocess
from dataclasses import dataclass
from typing import Any

from aws_lambda_powertools import Logger

from ..shared.exceptions import ProbeTimeoutError, ToolchainError, ValidationError
from ..shared.models import SourceMetadata

logger = Logger(service="input-validator")

# Containers we accept, as they appear in the pipeline's records
SUPPORTED_CONTAINER_FORMATS = ("mp4", "mov", "avi", "mkv")

# FFprobe demuxer names that map onto an allowed container
CONTAINER_ALIASES = {
    "mp4": "mp4",
    "m4a": "mp4",
    "mov": "mov",
    "avi": "avi",
    "matroska": "mkv",
    "mkv": "mkv",
}

DEFAULT_PROBE_TIMEOUT = 60.0


@dataclass
class VideoStream:
    """Video stream information."""

    codec_name: str
    width: int | None
    height: int | None
    frame_rate: float
    duration_seconds: float | None

    @property
    def resolution(self) -> str | None:
        if self.width and self.height:
            return f"{self.width}x{self.height}"
        return None


@dataclass
class MediaInfo:
    """Complete media file information."""

    format_name: str
    format_long_name: str
    duration_seconds: float | None
    size_bytes: int
    video_streams: list[VideoStream]
    audio_stream_count: int

    @property
    def primary_video(self) -> VideoStream | None:
        """Get the first video stream."""
        return self.video_streams[0] if self.video_streams else None


def extract_media_info(
    file_path: str,
    ffprobe_path: str = "ffprobe",
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> MediaInfo:
    """Extract media information using FFprobe.

    Args:
        file_path: Path to the local media file
        ffprobe_path: FFprobe executable
        timeout: Seconds before the probe is abandoned

    Returns:
        MediaInfo object with stream details

    Raises:
        ValidationError: If FFprobe rejects the file or its output is unusable
        ProbeTimeoutError: If FFprobe exceeds the timeout (retryable)
        ToolchainError: If FFprobe cannot be executed

    Example:
        >>> info = extract_media_info("/tmp/my-vacation_x/my-vacation_input.mp4")
        >>> print(f"Resolution: {info.primary_video.resolution}")
    """
    try:
        result = subprocess.run(
            [
                ffprobe_path,
                "-v", "quiet",
                "-print_format", "json",
                "-show_format",
                "-show_streams",
                file_path,
            ],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ProbeTimeoutError(file_path, timeout) from e
    except OSError as e:
        raise ToolchainError(
            f"Could not start FFprobe: {e}",
            {"file_path": file_path, "ffprobe_path": ffprobe_path},
        ) from e

    if result.returncode != 0:
        raise ValidationError(
            f"Failed to probe video file: {result.stderr.strip() or 'ffprobe exited with ' + str(result.returncode)}",
            {"file_path": file_path, "stderr": result.stderr},
        )

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Invalid FFprobe output: {e}",
            {"file_path": file_path},
        )

    return _parse_ffprobe_output(data, file_path)


def _parse_ffprobe_output(data: dict[str, Any], file_path: str) -> MediaInfo:
    """Parse FFprobe JSON output into MediaInfo object."""
    if "format" not in data:
        raise ValidationError(
            "No format information in FFprobe output",
            {"file_path": file_path},
        )

    fmt = data["format"]
    video_streams = []
    audio_count = 0

    for stream in data.get("streams", []):
        codec_type = stream.get("codec_type")

        if codec_type == "video":
            # Cover art is reported as a single-frame video stream
            if stream.get("disposition", {}).get("attached_pic"):
                continue
            video_streams.append(_parse_video_stream(stream))
        elif codec_type == "audio":
            audio_count += 1

    return MediaInfo(
        format_name=fmt.get("format_name", ""),
        format_long_name=fmt.get("format_long_name", "unknown"),
        duration_seconds=_parse_float(fmt.get("duration")),
        size_bytes=_parse_int(fmt.get("size")) or 0,
        video_streams=video_streams,
        audio_stream_count=audio_count,
    )


def _parse_video_stream(stream: dict[str, Any]) -> VideoStream:
    """Parse video stream data."""
    return VideoStream(
        codec_name=stream.get("codec_name", "unknown"),
        width=_parse_int(stream.get("width")),
        height=_parse_int(stream.get("height")),
        frame_rate=_parse_frame_rate(stream.get("r_frame_rate", "0/1")),
        duration_seconds=_parse_float(stream.get("duration")),
    )


def _parse_frame_rate(rate_str: str) -> float:
    """Parse frame rate from ratio string (e.g., '24000/1001')."""
    try:
        if "/" in rate_str:
            num, den = rate_str.split("/")
            return float(num) / float(den)
        return float(rate_str)
    except (ValueError, ZeroDivisionError):
        return 0.0


def _parse_int(value: Any) -> int | None:
    """Safely parse integer value."""
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def _parse_float(value: Any) -> float | None:
    """Safely parse float value."""
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def normalize_container_format(format_name: str) -> str | None:
    """Map an FFprobe format_name onto the allow-list.

    FFprobe reports demuxer families as comma lists, e.g.
    ``mov,mp4,m4a,3gp,3g2,mj2`` or ``matroska,webm``.

    Returns:
        The allowed container name (first match in allow-list order),
        or None if unsupported
    """
    candidates = {
        CONTAINER_ALIASES.get(token.strip())
        for token in format_name.lower().split(",")
    }
    for container in SUPPORTED_CONTAINER_FORMATS:
        if container in candidates:
            return container
    return None


def validate_media_info(info: MediaInfo, file_path: str = "unknown") -> SourceMetadata:
    """Validate probed media and reduce it to SourceMetadata.

    Args:
        info: MediaInfo from FFprobe
        file_path: File path for error details

    Returns:
        SourceMetadata for the primary video stream

    Raises:
        ValidationError: If the container is unsupported or no video stream exists
    """
    container = normalize_container_format(info.format_name)
    if container is None:
        raise ValidationError(
            f"Unsupported video format: {info.format_name or 'unknown'}",
            {
                "file_path": file_path,
                "format_name": info.format_name,
                "supported_formats": list(SUPPORTED_CONTAINER_FORMATS),
            },
        )

    video = info.primary_video
    if video is None:
        raise ValidationError(
            "No video stream found",
            {"file_path": file_path, "format_name": info.format_name},
        )

    return SourceMetadata(
        container_format=container,
        duration_seconds=info.duration_seconds if info.duration_seconds is not None else video.duration_seconds,
        width=video.width or None,
        height=video.height or None,
        video_codec=video.codec_name,
    )


def probe_source(
    file_path: str,
    ffprobe_path: str = "ffprobe",
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> SourceMetadata:
    """Probe a downloaded source and validate it for transcoding.

    Raises:
        ValidationError: On probe failure, unsupported container or missing video
        ProbeTimeoutError: If FFprobe exceeds the timeout
        ToolchainError: If FFprobe cannot be executed
    """
    info = extract_media_info(file_path, ffprobe_path=ffprobe_path, timeout=timeout)
    video = info.primary_video
    logger.info(
        "Probed source",
        extra={
            "file_path": file_path,
            "format_name": info.format_name,
            "format_long_name": info.format_long_name,
            "size_bytes": info.size_bytes,
            "resolution": video.resolution if video else None,
            "frame_rate": round(video.frame_rate, 3) if video else None,
            "video_stream_count": len(info.video_streams),
            "audio_stream_count": info.audio_stream_count,
        },
    )
    return validate_media_info(info, file_path=file_path)
