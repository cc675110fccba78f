"""Collaborator interfaces consumed by the job pipeline.

Implementations (S3, DynamoDB, ffmpeg) live next to the pipeline;
tests substitute in-memory fakes. The pipeline receives all of them
through its constructor.
"""

from typing import Any, Protocol, runtime_checkable

from .models import EncodingProfile, JobRecord


@runtime_checkable
class BlobStore(Protocol):
    """Object storage: download to and upload from local files."""

    def download(self, bucket: str, key: str, destination: str) -> None:
        """Write the object to the local destination path.

        Raises TransportError on network or permission problems.
        """
        ...

    def upload(
        self,
        bucket: str,
        key: str,
        source: str,
        content_type: str | None = None,
    ) -> str:
        """Upload a local file and return its locator (e.g. s3://bucket/key)."""
        ...


@runtime_checkable
class StatusLedger(Protocol):
    """Job status records keyed by job identity."""

    def get(self, job_id: str) -> JobRecord | None:
        """Return the record if it exists, otherwise None."""
        ...

    def upsert(self, job_id: str, **fields: Any) -> None:
        """Create the record or merge the given fields into it."""
        ...


@runtime_checkable
class Transcoder(Protocol):
    """A codec pass producing one rendition."""

    def run(
        self,
        input_path: str,
        output_path: str,
        profile: EncodingProfile,
        timeout_seconds: float,
    ) -> None:
        """Render input_path to output_path for the profile.

        Raises TranscodeTimeoutError once the process has been stopped after
        exceeding timeout_seconds, or TranscodeFailureError on a failed pass.
        """
        ...
