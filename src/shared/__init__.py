"""Shared utilities for the video transcoding pipeline."""

from .config import Settings, get_settings
from .exceptions import (
    TranscodingPipelineError,
    MalformedEventError,
    ValidationError,
    TranscodeFailureError,
    LedgerWriteError,
    ToolchainError,
    RetryableError,
    TransportError,
    TranscodeTimeoutError,
    ProbeTimeoutError,
)
from .interfaces import BlobStore, StatusLedger, Transcoder
from .models import (
    JobStatus,
    JobStage,
    JobOutcome,
    SourceRef,
    EncodingProfile,
    SourceMetadata,
    JobRecord,
    JobResult,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "TranscodingPipelineError",
    "MalformedEventError",
    "ValidationError",
    "TranscodeFailureError",
    "LedgerWriteError",
    "ToolchainError",
    "RetryableError",
    "TransportError",
    "TranscodeTimeoutError",
    "ProbeTimeoutError",
    # Interfaces
    "BlobStore",
    "StatusLedger",
    "Transcoder",
    # Models
    "JobStatus",
    "JobStage",
    "JobOutcome",
    "SourceRef",
    "EncodingProfile",
    "SourceMetadata",
    "JobRecord",
    "JobResult",
]
