"""Job status ledger and idempotency records using DynamoDB.

The ledger is what makes redelivered triggers safe: a job whose record is
COMPLETED is never processed again. Records are keyed by job identity and
updated with merge-style partial writes.

Reads are strongly consistent (ConsistentRead=True) so a duplicate
delivery observes a prior run's COMPLETED write. The window between a
run's gate read and its PROCESSING write is not locked; two deliveries
arriving inside it will both process the job and the later commit wins.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from aws_lambda_powertools import Logger
from pydantic import BaseModel

from ..shared.aws_clients import retry_with_backoff
from ..shared.exceptions import LedgerWriteError
from ..shared.models import JobRecord, JobStatus

logger = Logger(service="idempotency")

KEY_ATTRIBUTE = "job_id"


class DynamoDBStatusLedger:
    """StatusLedger implementation over a DynamoDB table.

    Args:
        table: boto3 DynamoDB Table resource (hash key ``job_id``)
        max_retries: Retry attempts for throttled calls
        retry_delay_seconds: Initial backoff delay
    """

    def __init__(
        self,
        table: Any,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
    ) -> None:
        self.table = table
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

    def get(self, job_id: str) -> JobRecord | None:
        """Fetch the job record with a strongly consistent read.

        Returns:
            Existing record if found, None otherwise

        Raises:
            TransportError: If DynamoDB cannot be reached
        """
        response = retry_with_backoff(
            lambda: self.table.get_item(
                Key={KEY_ATTRIBUTE: job_id},
                ConsistentRead=True,
            ),
            max_retries=self.max_retries,
            base_delay=self.retry_delay_seconds,
            operation=f"Ledger read for {job_id}",
        )

        item = response.get("Item")
        if not item:
            return None

        record = JobRecord.model_validate(_from_dynamo(item))
        logger.debug(
            "Found existing job record",
            extra={"job_id": job_id, "status": record.status.value},
        )
        return record

    def upsert(self, job_id: str, **fields: Any) -> None:
        """Create the record or merge fields into it.

        ``updated_at`` is always refreshed. Fields passed as None are
        removed from the stored item.

        Raises:
            TransportError: If the write fails
        """
        fields["updated_at"] = datetime.now(timezone.utc)

        set_parts: list[str] = []
        remove_parts: list[str] = []
        names: dict[str, str] = {}
        values: dict[str, Any] = {}

        for index, (name, value) in enumerate(sorted(fields.items())):
            if name == KEY_ATTRIBUTE:
                continue
            placeholder = f"#f{index}"
            names[placeholder] = name
            if value is None:
                remove_parts.append(placeholder)
            else:
                values[f":v{index}"] = _to_dynamo(value)
                set_parts.append(f"{placeholder} = :v{index}")

        update_expr = "SET " + ", ".join(set_parts)
        if remove_parts:
            update_expr += " REMOVE " + ", ".join(remove_parts)

        retry_with_backoff(
            lambda: self.table.update_item(
                Key={KEY_ATTRIBUTE: job_id},
                UpdateExpression=update_expr,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            ),
            max_retries=self.max_retries,
            base_delay=self.retry_delay_seconds,
            operation=f"Ledger write for {job_id}",
        )

        logger.info(
            "Updated job record",
            extra={
                "job_id": job_id,
                "status": _to_dynamo(fields["status"]) if "status" in fields else None,
                "fields": sorted(names.values()),
            },
        )


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def _to_dynamo(value: Any) -> Any:
    """Convert a Python value to what the DynamoDB resource API accepts.

    Floats become Decimal, models and enums become plain JSON types.
    """
    return json.loads(json.dumps(value, default=_json_default), parse_float=Decimal)


def _from_dynamo(value: Any) -> Any:
    """Convert DynamoDB Decimals back to int/float recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


def record_failure(
    ledger: Any,
    job_id: str,
    error: Exception,
    **fields: Any,
) -> bool:
    """Best-effort write of a FAILED status.

    Never raises: a failure to record the failure is logged as a
    LedgerWriteError, so the original error keeps its place as the
    job's outcome.

    Returns:
        True if the record was written
    """
    error_code = getattr(error, "error_code", type(error).__name__)
    error_message = getattr(error, "message", None) or str(error)

    try:
        ledger.upsert(
            job_id,
            status=JobStatus.FAILED,
            error_code=error_code,
            error_message=error_message,
            **fields,
        )
        return True
    except Exception as e:
        write_error = LedgerWriteError(
            f"Could not record failure for {job_id}: {e}",
            {"job_id": job_id, "original_error_code": error_code},
        )
        logger.exception("Failed to record job failure", extra=write_error.to_dict())
        return False
