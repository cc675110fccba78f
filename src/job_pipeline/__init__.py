"""Job pipeline module for the video transcoding service.

This module handles a single transcoding job end to end:
- Job identity derivation
- Profile catalog
- Idempotency and status ledger (DynamoDB)
- S3 blob store
- Scratch space with guaranteed cleanup
- Pipeline orchestration
"""

from .identity import resolve_job_id, output_key
from .idempotency import DynamoDBStatusLedger, record_failure
from .pipeline import TranscodePipeline
from .profiles import PROFILE_CATALOG, build_ffmpeg_args, select_profiles
from .scratch import ScratchSpace
from .storage import S3BlobStore

__all__ = [
    "resolve_job_id",
    "output_key",
    "DynamoDBStatusLedger",
    "record_failure",
    "TranscodePipeline",
    "PROFILE_CATALOG",
    "build_ffmpeg_args",
    "select_profiles",
    "ScratchSpace",
    "S3BlobStore",
]
