"""Pydantic models for data validation and serialization.

This module defines the core data structures used throughout the pipeline:
- Source reference and probed source metadata
- Encoding profiles
- Job status records and pipeline results

All models use Pydantic v2 for validation and serialization.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    """Status values stored in the job ledger."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class JobStage(str, Enum):
    """Pipeline stages, in execution order."""

    IDENTITY_RESOLVED = "IDENTITY_RESOLVED"
    IDEMPOTENCY_CHECKED = "IDEMPOTENCY_CHECKED"
    DOWNLOADING = "DOWNLOADING"
    VALIDATING = "VALIDATING"
    TRANSCODING = "TRANSCODING"
    UPLOADING = "UPLOADING"
    COMMITTING = "COMMITTING"
    DONE = "DONE"
    FAILED = "FAILED"


class JobOutcome(str, Enum):
    """Terminal successful outcomes of a pipeline run."""

    COMPLETED = "COMPLETED"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"


class SourceRef(BaseModel):
    """Reference to the raw input object."""

    model_config = ConfigDict(frozen=True)

    bucket: str = Field(
        min_length=1,
        description="Bucket holding the raw upload",
    )
    object_key: str = Field(
        min_length=1,
        description="Object key of the raw upload",
    )

    @property
    def uri(self) -> str:
        """Return the s3:// URI of the source object."""
        return f"s3://{self.bucket}/{self.object_key}"


class EncodingProfile(BaseModel):
    """A named target rendition.

    Each profile is one output file produced by a single codec pass.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        min_length=1,
        max_length=20,
        pattern=r"^[a-z0-9]+$",
        description="Profile name used in output keys (e.g., '720p')",
    )
    target_height: Annotated[int, Field(gt=0, le=4320)] = Field(
        description="Output height in pixels; width keeps the aspect ratio",
    )
    quality_factor: Annotated[int, Field(ge=0, le=51)] = Field(
        description="Constant rate factor passed to the encoder",
    )
    video_codec: str = Field(
        default="libx264",
        description="FFmpeg video encoder",
    )
    audio_codec: str = Field(
        default="aac",
        description="FFmpeg audio encoder",
    )
    preset: str = Field(
        default="medium",
        description="Encoder speed/quality preset",
    )
    container: str = Field(
        default="mp4",
        pattern=r"^[a-z0-9]+$",
        description="Output container and file extension",
    )

    @property
    def content_type(self) -> str:
        """MIME type of the rendered file."""
        return f"video/{self.container}"


class SourceMetadata(BaseModel):
    """Result of probing a downloaded source."""

    model_config = ConfigDict(frozen=True)

    container_format: str = Field(
        min_length=1,
        description="Normalized container name from the allow-list (e.g., 'mp4')",
    )
    duration_seconds: float | None = Field(
        default=None,
        ge=0,
        description="Source duration in seconds",
    )
    width: int | None = Field(
        default=None,
        ge=0,
        description="Width of the primary video stream",
    )
    height: int | None = Field(
        default=None,
        ge=0,
        description="Height of the primary video stream",
    )
    video_codec: str | None = Field(
        default=None,
        description="Codec of the primary video stream",
    )

    @property
    def resolution(self) -> str | None:
        """Return resolution string (e.g., '1920x1080') when known."""
        if self.width and self.height:
            return f"{self.width}x{self.height}"
        return None


class JobRecord(BaseModel):
    """Status record kept in the ledger, keyed by job identity."""

    model_config = ConfigDict(extra="ignore")

    job_id: str = Field(
        min_length=1,
        description="Job identity derived from the source object key",
    )
    status: JobStatus = Field(
        default=JobStatus.PENDING,
        description="Current job status",
    )
    processed_outputs: dict[str, str] = Field(
        default_factory=dict,
        description="Profile name to rendition locator",
    )
    metadata: SourceMetadata | None = Field(
        default=None,
        description="Probed source metadata",
    )
    source: SourceRef | None = Field(
        default=None,
        description="Raw input object",
    )
    processing_id: str | None = Field(
        default=None,
        description="Identifier of the invocation that last touched the job",
    )

    # Error information
    error_code: str | None = Field(
        default=None,
        description="Error code if job failed",
    )
    error_message: str | None = Field(
        default=None,
        description="Error message if job failed",
    )
    failed_stage: JobStage | None = Field(
        default=None,
        description="Stage at which the job failed",
    )

    # Timestamps
    started_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        """Check if job completed successfully."""
        return self.status == JobStatus.COMPLETED


class JobResult(BaseModel):
    """Result of a pipeline run that did not raise."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    outcome: JobOutcome
    processed_outputs: dict[str, str] = Field(default_factory=dict)
    skipped_profiles: list[str] = Field(default_factory=list)
    metadata: SourceMetadata | None = None
    processing_id: str | None = None

    @property
    def was_skipped(self) -> bool:
        """True when the idempotency gate short-circuited the run."""
        return self.outcome == JobOutcome.ALREADY_COMPLETED
