"""Custom exception hierarchy for the transcoding pipeline.

All pipeline-specific exceptions inherit from TranscodingPipelineError,
enabling consistent error handling and structured error responses.

Exception hierarchy:
    TranscodingPipelineError (base)
    ├── MalformedEventError
    ├── ValidationError
    ├── TranscodeFailureError
    ├── LedgerWriteError
    ├── ToolchainError
    └── RetryableError
        ├── TransportError
        ├── TranscodeTimeoutError
        └── ProbeTimeoutError

The ``retryable`` flag tells the trigger endpoint whether redelivery can
change the outcome.
"""

from typing import Any


class TranscodingPipelineError(Exception):
    """Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for metrics/filtering
        details: Additional context as key-value pairs
    """

    retryable = False

    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize pipeline error.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (e.g., 'VALIDATION_ERROR')
            details: Additional context for debugging
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON serialization.

        Returns:
            Dictionary with error_code, error_message, and details.
            Note: Uses 'error_message' instead of 'message' to avoid conflicts
            with Python's logging module which reserves 'message' internally.
        """
        return {
            "error_code": self.error_code,
            "error_message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.error_code!r}, {self.message!r})"


class MalformedEventError(TranscodingPipelineError):
    """Raised when a trigger payload cannot be turned into a source reference.

    This covers:
    - Body that is not JSON
    - Push envelope whose data is not base64-encoded JSON
    - Missing or empty bucket / name fields
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "MALFORMED_EVENT_ERROR", details)


class ValidationError(TranscodingPipelineError):
    """Raised when the downloaded source cannot be transcoded.

    This covers:
    - Unsupported container format
    - No decodable video stream
    - Probe failures on a corrupt file

    A probe that times out or cannot start is not a source problem and
    raises ProbeTimeoutError or ToolchainError instead.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", details)


class TranscodeFailureError(TranscodingPipelineError):
    """Raised when the codec pass for a profile exits unsuccessfully.

    A single failed rendition fails the whole job.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "TRANSCODE_FAILURE_ERROR", details)


class LedgerWriteError(TranscodingPipelineError):
    """Raised when a status record cannot be written.

    On the failure-commit path this is logged and never returned to the caller.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "LEDGER_WRITE_ERROR", details)


class ToolchainError(TranscodingPipelineError):
    """Raised when a media tool cannot be executed on this host.

    A missing or non-executable ffprobe/ffmpeg binary is a deployment
    fault, not a property of the source.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "TOOLCHAIN_ERROR", details)


class RetryableError(TranscodingPipelineError):
    """Raised for transient errors that should be retried.

    The trigger endpoint maps these to HTTP 429 so the delivery
    mechanism re-attempts the job.
    """

    retryable = True

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize retryable error.

        Args:
            message: Error description
            original_error: The underlying exception that triggered this
            details: Additional context
        """
        error_details = details or {}
        if original_error:
            error_details["original_error"] = str(original_error)
            error_details["original_error_type"] = type(original_error).__name__

        super().__init__(message, "RETRYABLE_ERROR", error_details)
        self.original_error = original_error


class TransportError(RetryableError):
    """Raised when blob store or ledger I/O fails (network, throttling, permissions)."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, original_error, details)
        self.error_code = "TRANSPORT_ERROR"


class TranscodeTimeoutError(RetryableError):
    """Raised when a transcode exceeds its wall-clock budget.

    The child process has already been terminated when this is raised.
    """

    def __init__(
        self,
        profile_name: str,
        timeout_seconds: float,
        forced: bool = False,
    ) -> None:
        """Initialize transcode timeout error.

        Args:
            profile_name: Profile whose transcode timed out
            timeout_seconds: Budget that was exceeded
            forced: True if the process ignored SIGTERM and had to be killed
        """
        details = {
            "profile": profile_name,
            "timeout_seconds": timeout_seconds,
            "forced_kill": forced,
        }
        message = f"Transcode for {profile_name} timed out after {timeout_seconds:g}s"
        super().__init__(message, details=details)
        self.error_code = "TRANSCODE_TIMEOUT_ERROR"


class ProbeTimeoutError(RetryableError):
    """Raised when ffprobe does not finish inside its budget."""

    def __init__(self, file_path: str, timeout_seconds: float) -> None:
        details = {"file_path": file_path, "timeout_seconds": timeout_seconds}
        super().__init__(f"FFprobe timed out after {timeout_seconds:g}s", details=details)
        self.error_code = "PROBE_TIMEOUT_ERROR"
