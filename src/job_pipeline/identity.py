"""Job identity derivation.

The job identity keys the status ledger, names the scratch directory and
namespaces the processed output keys, so it must be safe in all three.
"""

import hashlib
import posixpath
import re

MAX_JOB_ID_LENGTH = 64
FALLBACK_PREFIX = "video"

_UNSAFE_RUN = re.compile(r"[^a-z0-9]+")

# Only a short alphanumeric suffix counts as a file extension
SOURCE_EXTENSION = re.compile(r"^\.[a-z0-9]{1,8}$", re.IGNORECASE)


def resolve_job_id(object_key: str, max_length: int = MAX_JOB_ID_LENGTH) -> str:
    """Derive a stable job identity from a source object key.

    Steps: take the basename, strip the extension, lowercase, collapse
    runs of anything outside ``[a-z0-9]`` to a single hyphen, trim
    hyphens, truncate, trim again. Only a suffix matching
    ``SOURCE_EXTENSION`` is stripped, so ``v1.0 final`` keeps its version
    and does not collide with ``v1.5 draft``. Sanitized identities contain
    no dots or slashes, so re-resolving one returns it unchanged.

    Keys that sanitize to nothing (empty, all punctuation, non-ASCII
    names) get a synthesized identity hashed from the raw key, so
    redeliveries of the same degenerate key still map to one record.

    Args:
        object_key: Object key of the raw upload
        max_length: Upper bound on the identity length

    Returns:
        Non-empty lowercase identity of at most max_length characters

    Example:
        >>> resolve_job_id("uploads/My Vacation!!.mp4")
        'my-vacation'
    """
    basename = posixpath.basename(object_key or "")
    stem, ext = posixpath.splitext(basename)
    if not SOURCE_EXTENSION.match(ext):
        stem = basename
    job_id = _UNSAFE_RUN.sub("-", stem.lower()).strip("-")
    job_id = job_id[:max_length].strip("-")

    if job_id:
        return job_id

    return _fallback_job_id(object_key or "", max_length)


def _fallback_job_id(object_key: str, max_length: int) -> str:
    """Synthesize an identity for keys with no usable characters."""
    digest = hashlib.sha256(object_key.encode("utf-8")).hexdigest()[:12]
    return f"{FALLBACK_PREFIX}-{digest}"[:max_length].strip("-") or digest[:max_length]


def output_key(job_id: str, profile_name: str, extension: str = "mp4", prefix: str = "processed") -> str:
    """Destination key for a rendition: ``processed/{job_id}/{profile}.{ext}``."""
    return f"{prefix}/{job_id}/{profile_name}.{extension}"
