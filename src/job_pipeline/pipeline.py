"""Job execution pipeline.

Takes one source object through:
1. Identity resolution
2. Idempotency gate (COMPLETED jobs are never reprocessed)
3. Download into scratch storage
4. Probe and validate
5. Transcode each catalog profile, in order, skipping upscales
6. Upload each rendition
7. Commit COMPLETED with outputs and metadata

Any failure after the gate marks the job PROCESSING aborts the remaining
stages, records FAILED on a best-effort basis and re-raises the original
error. Scratch files are removed on every exit path.

Renditions uploaded before a later profile fails stay in the bucket; the
FAILED record keeps them from being treated as a delivered set.
"""

import posixpath
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from aws_lambda_powertools import Logger

from ..input_validator.mediainfo import probe_source
from ..shared.interfaces import BlobStore, StatusLedger, Transcoder
from ..shared.models import (
    EncodingProfile,
    JobOutcome,
    JobResult,
    JobStage,
    JobStatus,
    SourceMetadata,
    SourceRef,
)
from .identity import SOURCE_EXTENSION, output_key, resolve_job_id
from .idempotency import record_failure
from .profiles import PROFILE_CATALOG, select_profiles
from .scratch import ScratchSpace

logger = Logger(service="transcode-pipeline")

DEFAULT_TRANSCODE_TIMEOUT = 900.0


class TranscodePipeline:
    """Runs transcoding jobs against injected collaborators.

    Args:
        blob_store: Source download and rendition upload
        ledger: Job status records
        transcoder: Codec pass per profile
        output_bucket: Bucket receiving renditions
        scratch_dir: Root directory for per-job scratch space
        profiles: Ordered profile catalog
        probe: Callable returning validated SourceMetadata for a local file
        transcode_timeout_seconds: Budget for each codec pass
        output_prefix: Key prefix for renditions
    """

    def __init__(
        self,
        blob_store: BlobStore,
        ledger: StatusLedger,
        transcoder: Transcoder,
        *,
        output_bucket: str,
        scratch_dir: str = "/tmp",
        profiles: Sequence[EncodingProfile] = PROFILE_CATALOG,
        probe: Callable[[str], SourceMetadata] = probe_source,
        transcode_timeout_seconds: float = DEFAULT_TRANSCODE_TIMEOUT,
        output_prefix: str = "processed",
    ) -> None:
        self.blob_store = blob_store
        self.ledger = ledger
        self.transcoder = transcoder
        self.output_bucket = output_bucket
        self.scratch_dir = scratch_dir
        self.profiles = tuple(profiles)
        self.probe = probe
        self.transcode_timeout_seconds = transcode_timeout_seconds
        self.output_prefix = output_prefix

    def run(self, source: SourceRef) -> JobResult:
        """Process one source object.

        Returns:
            JobResult with outcome COMPLETED, or ALREADY_COMPLETED when the
            ledger already holds a completed record for the identity

        Raises:
            TransportError: Ledger, download or upload I/O failed (retryable)
            ValidationError: Source is not a supported video (fatal)
            ProbeTimeoutError: FFprobe exceeded its budget (retryable)
            ToolchainError: FFprobe or FFmpeg could not be executed (fatal)
            TranscodeTimeoutError: A codec pass exceeded its budget (retryable)
            TranscodeFailureError: A codec pass failed (fatal)
        """
        job_id = resolve_job_id(source.object_key)
        stage = JobStage.IDENTITY_RESOLVED
        logger.info(
            "Resolved job identity",
            extra={"job_id": job_id, "stage": stage.value, "source": source.uri},
        )

        existing = self.ledger.get(job_id)
        if existing is not None and existing.is_completed:
            logger.info(
                "Job already completed, skipping (idempotent)",
                extra={"job_id": job_id, "stage": JobStage.DONE.value, "processing_id": existing.processing_id},
            )
            return JobResult(
                job_id=job_id,
                outcome=JobOutcome.ALREADY_COMPLETED,
                processed_outputs=existing.processed_outputs,
                metadata=existing.metadata,
                processing_id=existing.processing_id,
            )

        stage = JobStage.IDEMPOTENCY_CHECKED
        processing_id = uuid.uuid4().hex
        self.ledger.upsert(
            job_id,
            status=JobStatus.PROCESSING,
            processing_id=processing_id,
            source=source,
            started_at=_utcnow(),
            completed_at=None,
            error_code=None,
            error_message=None,
            failed_stage=None,
        )
        logger.info(
            "Job marked processing",
            extra={
                "job_id": job_id,
                "stage": stage.value,
                "processing_id": processing_id,
                "previous_status": existing.status.value if existing else None,
            },
        )

        try:
            with ScratchSpace(self.scratch_dir, job_id) as scratch:
                stage = JobStage.DOWNLOADING
                input_path = scratch.path_for(f"input{_source_extension(source.object_key)}")
                self.blob_store.download(source.bucket, source.object_key, input_path)

                stage = JobStage.VALIDATING
                metadata = self.probe(input_path)
                selected, skipped = select_profiles(self.profiles, metadata.height)
                logger.info(
                    "Source validated",
                    extra={
                        "job_id": job_id,
                        "container_format": metadata.container_format,
                        "resolution": metadata.resolution,
                        "duration_seconds": metadata.duration_seconds,
                        "profiles": [p.name for p in selected],
                        "skipped_profiles": [p.name for p in skipped],
                    },
                )

                processed_outputs: dict[str, str] = {}
                for profile in selected:
                    stage = JobStage.TRANSCODING
                    output_path = scratch.path_for(f"{profile.name}.{profile.container}")
                    self.transcoder.run(
                        input_path,
                        output_path,
                        profile,
                        self.transcode_timeout_seconds,
                    )

                    stage = JobStage.UPLOADING
                    destination = output_key(
                        job_id,
                        profile.name,
                        extension=profile.container,
                        prefix=self.output_prefix,
                    )
                    processed_outputs[profile.name] = self.blob_store.upload(
                        self.output_bucket,
                        destination,
                        output_path,
                        content_type=profile.content_type,
                    )

                stage = JobStage.COMMITTING
                self.ledger.upsert(
                    job_id,
                    status=JobStatus.COMPLETED,
                    processed_outputs=processed_outputs,
                    metadata=metadata,
                    completed_at=_utcnow(),
                )

        except Exception as e:
            logger.error(
                "Job failed",
                extra={
                    "job_id": job_id,
                    "processing_id": processing_id,
                    "stage": JobStage.FAILED.value,
                    "failed_stage": stage.value,
                    "error_code": getattr(e, "error_code", type(e).__name__),
                    "error": str(e),
                },
            )
            record_failure(
                self.ledger,
                job_id,
                e,
                failed_stage=stage,
                processing_id=processing_id,
            )
            raise

        stage = JobStage.DONE
        logger.info(
            "Job completed",
            extra={
                "job_id": job_id,
                "stage": stage.value,
                "processing_id": processing_id,
                "outputs": processed_outputs,
            },
        )
        return JobResult(
            job_id=job_id,
            outcome=JobOutcome.COMPLETED,
            processed_outputs=processed_outputs,
            skipped_profiles=[p.name for p in skipped],
            metadata=metadata,
            processing_id=processing_id,
        )


def _source_extension(object_key: str) -> str:
    """Keep the source's extension on the scratch file when it is safe to."""
    ext = posixpath.splitext(object_key)[1].lower()
    return ext if SOURCE_EXTENSION.match(ext) else ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
