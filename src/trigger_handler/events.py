"""Trigger payload normalization.

Two payload shapes are accepted:

- Push envelope: ``{"message": {"data": "<base64 JSON>"}}`` whose decoded
  JSON carries ``{"bucket", "name"}``
- Direct: ``{"bucket", "name"}`` (legacy callers may add ``videoId``,
  which is accepted and ignored; the job identity always comes from the
  object name)

Precedence: a payload with a ``message`` key is an envelope and must
decode as one; anything else is parsed as the direct shape.
"""

import base64
import binascii
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..shared.exceptions import MalformedEventError
from ..shared.models import SourceRef

ENVELOPE_KEY = "message"


class DirectTrigger(BaseModel):
    """Direct trigger body naming the uploaded object."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    bucket: str = Field(min_length=1, description="Bucket holding the upload")
    name: str = Field(min_length=1, description="Object key of the upload")
    video_id: str | None = Field(
        default=None,
        alias="videoId",
        description="Legacy caller-supplied id (ignored)",
    )

    @field_validator("bucket", "name")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        """Whitespace-only names cannot address an object."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class PushMessage(BaseModel):
    """Inner message of a push delivery."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    data: str = Field(min_length=1, description="Base64-encoded JSON payload")
    message_id: str | None = Field(default=None, alias="messageId")
    attributes: dict[str, str] = Field(default_factory=dict)


class PushEnvelope(BaseModel):
    """Push delivery wrapper around an encoded trigger."""

    model_config = ConfigDict(extra="ignore")

    message: PushMessage
    subscription: str | None = None


def normalize_event(raw: Any) -> SourceRef:
    """Turn a trigger payload into a SourceRef.

    Args:
        raw: Parsed JSON dict, or a JSON string/bytes body

    Returns:
        SourceRef for the uploaded object

    Raises:
        MalformedEventError: If the payload matches neither shape

    Example:
        >>> normalize_event({"bucket": "raw", "name": "uploads/clip.mp4"})
        SourceRef(bucket='raw', object_key='uploads/clip.mp4')
    """
    payload = _load_json_object(raw, what="request body")

    if ENVELOPE_KEY in payload:
        trigger = _parse_direct(_decode_envelope(payload), what="message data")
    else:
        trigger = _parse_direct(payload, what="request body")

    return SourceRef(bucket=trigger.bucket, object_key=trigger.name)


def _decode_envelope(payload: dict[str, Any]) -> dict[str, Any]:
    """Validate a push envelope and return its decoded inner payload."""
    try:
        envelope = PushEnvelope.model_validate(payload)
    except PydanticValidationError as e:
        raise MalformedEventError(
            "Invalid push message: expected message.data",
            {"errors": _summarize(e)},
        ) from e

    try:
        decoded = base64.b64decode(envelope.message.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEventError(
            f"Failed to decode message data: {e}",
            {"message_id": envelope.message.message_id},
        ) from e

    return _load_json_object(decoded, what="message data")


def _parse_direct(payload: dict[str, Any], what: str) -> DirectTrigger:
    try:
        return DirectTrigger.model_validate(payload)
    except PydanticValidationError as e:
        missing = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
        raise MalformedEventError(
            f"Missing or invalid {', '.join(missing) or 'fields'} in {what}",
            {"errors": _summarize(e)},
        ) from e


def _load_json_object(raw: Any, what: str) -> dict[str, Any]:
    """Parse raw input into a JSON object (dict)."""
    if isinstance(raw, dict):
        return raw

    if raw is None or raw == b"" or raw == "":
        raise MalformedEventError(f"Empty {what}")

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedEventError(f"Failed to parse {what}: not UTF-8 text") from e

    if not isinstance(raw, str):
        raise MalformedEventError(
            f"Failed to parse {what}: unsupported type {type(raw).__name__}"
        )

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedEventError(f"Failed to parse {what}: {e.msg}") from e

    if not isinstance(parsed, dict):
        raise MalformedEventError(f"Failed to parse {what}: expected a JSON object")

    return parsed


def _summarize(error: PydanticValidationError) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "error": err.get("msg", "")}
        for err in error.errors()
    ]
