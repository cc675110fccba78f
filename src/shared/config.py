"""Environment-aware configuration with validation.

This module provides centralized configuration management using Pydantic Settings.
All environment variables are validated at startup to fail fast on misconfigurations.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings are cached to avoid repeated parsing.

    Example:
        >>> settings = get_settings()
        >>> print(settings.output_bucket)
        'video-processed-dev'
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Literal["dev", "staging", "prod"] = Field(
        default="dev",
        description="Deployment environment",
    )
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_REGION",
        description="AWS region for all services",
    )

    # S3 Configuration
    output_bucket: str = Field(
        default="",
        alias="OUTPUT_BUCKET",
        description="S3 bucket receiving processed renditions",
    )
    output_prefix: str = Field(
        default="processed",
        alias="OUTPUT_PREFIX",
        description="Key prefix for processed renditions",
    )

    # DynamoDB (job status ledger)
    jobs_table: str = Field(
        default="video-transcode-jobs",
        alias="JOBS_TABLE",
        description="DynamoDB table holding job status records",
    )

    # Local scratch storage
    scratch_dir: str = Field(
        default="/tmp",
        alias="SCRATCH_DIR",
        description="Directory for downloaded sources and rendered outputs",
    )

    # Codec tooling
    ffmpeg_path: str = Field(
        default="ffmpeg",
        alias="FFMPEG_PATH",
        description="FFmpeg executable",
    )
    ffprobe_path: str = Field(
        default="ffprobe",
        alias="FFPROBE_PATH",
        description="FFprobe executable",
    )

    # Timeouts
    transcode_timeout_seconds: float = Field(
        default=900.0,
        gt=0,
        le=3600.0,
        alias="TRANSCODE_TIMEOUT_SECONDS",
        description="Wall-clock budget for a single rendition transcode",
    )
    termination_grace_seconds: float = Field(
        default=5.0,
        ge=0.0,
        le=60.0,
        alias="TERMINATION_GRACE_SECONDS",
        description="Wait between SIGTERM and SIGKILL for a timed out transcode",
    )
    probe_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=600.0,
        alias="PROBE_TIMEOUT_SECONDS",
        description="Timeout for ffprobe",
    )

    # Retry Configuration
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        alias="MAX_RETRIES",
        description="Maximum retry attempts for throttled AWS calls",
    )
    retry_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        alias="RETRY_DELAY_SECONDS",
        description="Initial delay between retries (exponential backoff)",
    )

    @field_validator("output_prefix", mode="before")
    @classmethod
    def strip_output_prefix(cls, v: str) -> str:
        """Normalize prefix so keys never contain doubled slashes."""
        return v.strip("/") if isinstance(v, str) else v

    @field_validator("output_bucket", mode="before")
    @classmethod
    def validate_bucket_name(cls, v: str) -> str:
        """Reject URIs where a bare bucket name is expected."""
        if v and "://" in v:
            raise ValueError("OUTPUT_BUCKET must be a bucket name, not a URI")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are loaded once and cached for the lifetime of the process.
    This is safe for Lambda because each invocation gets a fresh process
    or reuses a warm container with the same settings.

    Returns:
        Validated Settings instance

    Raises:
        ValidationError: If required environment variables are missing or invalid
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when environment variables change.
    """
    get_settings.cache_clear()
