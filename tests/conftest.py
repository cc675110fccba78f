"""Pytest configuration and shared fixtures.

This module provides:
- AWS credential mocking for moto
- Pre-configured AWS service clients (S3, DynamoDB job table)
- In-memory fakes for the pipeline collaborators
- Sample trigger payloads and API Gateway events
- Environment variable setup
"""

import base64
import json
import os
from dataclasses import dataclass
from typing import Any, Generator

import boto3
import pytest
from moto import mock_aws

# Set dummy AWS credentials BEFORE importing any application code
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_REGION"] = "us-east-1"

# Set application environment variables
os.environ["ENVIRONMENT"] = "dev"
os.environ["OUTPUT_BUCKET"] = "test-output-bucket"
os.environ["JOBS_TABLE"] = "test-video-jobs"
os.environ["RETRY_DELAY_SECONDS"] = "0"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["POWERTOOLS_TRACE_DISABLED"] = "1"
os.environ["POWERTOOLS_METRICS_NAMESPACE"] = "VideoProcessing"

from src.shared.exceptions import TransportError  # noqa: E402
from src.shared.models import EncodingProfile, JobRecord, SourceMetadata  # noqa: E402

INPUT_BUCKET = "test-input-bucket"
OUTPUT_BUCKET = "test-output-bucket"
JOBS_TABLE = "test-video-jobs"


# =============================================================================
# AWS Fixtures
# =============================================================================


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def mocked_aws(aws_credentials: None) -> Generator[None, None, None]:
    """Single moto context shared by every AWS fixture in a test."""
    with mock_aws():
        yield


@pytest.fixture
def s3_client(mocked_aws: None) -> Any:
    """Mocked S3 client."""
    return boto3.client("s3", region_name="us-east-1")


@pytest.fixture
def dynamodb_resource(mocked_aws: None) -> Any:
    """Mocked DynamoDB resource."""
    return boto3.resource("dynamodb", region_name="us-east-1")


@pytest.fixture
def s3_buckets(s3_client: Any) -> dict[str, str]:
    """Create test S3 buckets."""
    s3_client.create_bucket(Bucket=INPUT_BUCKET)
    s3_client.create_bucket(Bucket=OUTPUT_BUCKET)
    return {
        "input": INPUT_BUCKET,
        "output": OUTPUT_BUCKET,
    }


@pytest.fixture
def jobs_table(dynamodb_resource: Any) -> Any:
    """Create the DynamoDB job status table."""
    return dynamodb_resource.create_table(
        TableName=JOBS_TABLE,
        AttributeDefinitions=[
            {"AttributeName": "job_id", "AttributeType": "S"},
        ],
        KeySchema=[
            {"AttributeName": "job_id", "KeyType": "HASH"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


# =============================================================================
# Collaborator Fakes
# =============================================================================


class InMemoryLedger:
    """StatusLedger fake with the same merge/remove semantics as DynamoDB."""

    def __init__(self, fail_on_status: str | None = None) -> None:
        self.items: dict[str, dict[str, Any]] = {}
        self.writes: list[tuple[str, dict[str, Any]]] = []
        self.fail_on_status = fail_on_status

    def get(self, job_id: str) -> JobRecord | None:
        item = self.items.get(job_id)
        if item is None:
            return None
        return JobRecord.model_validate({"job_id": job_id, **item})

    def upsert(self, job_id: str, **fields: Any) -> None:
        status = fields.get("status")
        if self.fail_on_status is not None and status is not None and status == self.fail_on_status:
            raise TransportError(f"Ledger write for {job_id} failed")

        self.writes.append((job_id, dict(fields)))
        item = self.items.setdefault(job_id, {})
        for name, value in fields.items():
            if value is None:
                item.pop(name, None)
            else:
                item[name] = value

    def statuses(self, job_id: str) -> list[str]:
        """Statuses written for a job, in order."""
        return [f["status"].value for j, f in self.writes if j == job_id and "status" in f]


class FakeBlobStore:
    """BlobStore fake backed by a dict of (bucket, key) -> bytes."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str | None] = {}
        self.downloads: list[str] = []
        self.fail_uploads_for: set[str] = set()

    def put(self, bucket: str, key: str, body: bytes = b"raw video bytes") -> None:
        self.objects[(bucket, key)] = body

    def download(self, bucket: str, key: str, destination: str) -> None:
        if (bucket, key) not in self.objects:
            raise TransportError(f"Download of s3://{bucket}/{key} failed: Not Found")
        with open(destination, "wb") as f:
            f.write(self.objects[(bucket, key)])
        self.downloads.append(destination)

    def upload(self, bucket: str, key: str, source: str, content_type: str | None = None) -> str:
        if key in self.fail_uploads_for:
            raise TransportError(f"Upload to s3://{bucket}/{key} failed: SlowDown")
        with open(source, "rb") as f:
            self.objects[(bucket, key)] = f.read()
        self.content_types[(bucket, key)] = content_type
        return f"s3://{bucket}/{key}"

    def keys(self, bucket: str) -> list[str]:
        return sorted(k for b, k in self.objects if b == bucket)


class FakeTranscoder:
    """Transcoder fake that writes a small file per profile."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str, float]] = []
        self.errors: dict[str, Exception] = {}

    def run(
        self,
        input_path: str,
        output_path: str,
        profile: EncodingProfile,
        timeout_seconds: float,
    ) -> None:
        self.calls.append((input_path, output_path, profile.name, timeout_seconds))
        with open(output_path, "wb") as f:
            f.write(f"rendition {profile.name}".encode())
        if profile.name in self.errors:
            raise self.errors[profile.name]

    @property
    def output_paths(self) -> list[str]:
        return [call[1] for call in self.calls]


class FakeProbe:
    """Probe fake returning fixed metadata, or raising a fixed error."""

    def __init__(
        self,
        metadata: SourceMetadata | None = None,
        error: Exception | None = None,
    ) -> None:
        self.metadata = metadata
        self.error = error
        self.paths: list[str] = []

    def __call__(self, file_path: str) -> SourceMetadata:
        self.paths.append(file_path)
        if self.error is not None:
            raise self.error
        return self.metadata


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    store = FakeBlobStore()
    store.put(INPUT_BUCKET, "uploads/My Vacation!!.mp4")
    return store


@pytest.fixture
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def hd_metadata() -> SourceMetadata:
    """Metadata of a 1080p H.264 MP4 source."""
    return SourceMetadata(
        container_format="mp4",
        duration_seconds=42.5,
        width=1920,
        height=1080,
        video_codec="h264",
    )


@pytest.fixture
def low_res_metadata() -> SourceMetadata:
    """Metadata of a 240p source, smaller than every catalog profile."""
    return SourceMetadata(
        container_format="avi",
        duration_seconds=12.0,
        width=320,
        height=240,
        video_codec="mpeg4",
    )


# =============================================================================
# Lambda / API Gateway Fixtures
# =============================================================================


@dataclass
class FakeLambdaContext:
    function_name: str = "video-transcode-trigger"
    memory_limit_in_mb: int = 3008
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:video-transcode-trigger"
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"


@pytest.fixture
def lambda_context() -> FakeLambdaContext:
    """Minimal Lambda context accepted by Powertools decorators."""
    return FakeLambdaContext()


def api_gateway_event(
    body: Any = None,
    method: str = "POST",
    path: str = "/transcode",
    base64_encoded: bool = False,
) -> dict[str, Any]:
    """Build an API Gateway REST proxy event."""
    if body is not None and not isinstance(body, str):
        body = json.dumps(body)
    if base64_encoded and body is not None:
        body = base64.b64encode(body.encode()).decode()

    return {
        "resource": path,
        "path": path,
        "httpMethod": method,
        "headers": {"Content-Type": "application/json"},
        "multiValueHeaders": {"Content-Type": ["application/json"]},
        "queryStringParameters": None,
        "multiValueQueryStringParameters": None,
        "pathParameters": None,
        "stageVariables": None,
        "requestContext": {
            "accountId": "123456789012",
            "resourcePath": path,
            "httpMethod": method,
            "requestId": "c6af9ac6-7b61-11e6-9a41-93e8deadbeef",
            "stage": "prod",
            "path": f"/prod{path}",
            "identity": {"sourceIp": "127.0.0.1"},
        },
        "body": body,
        "isBase64Encoded": base64_encoded,
    }


def push_envelope(payload: Any, message_id: str = "1234567890") -> dict[str, Any]:
    """Wrap a payload the way a push subscription delivers it."""
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return {
        "message": {
            "data": base64.b64encode(raw).decode(),
            "messageId": message_id,
            "attributes": {},
        },
        "subscription": "projects/demo/subscriptions/video-uploads",
    }


@pytest.fixture
def direct_trigger() -> dict[str, str]:
    return {"bucket": INPUT_BUCKET, "name": "uploads/My Vacation!!.mp4"}


@pytest.fixture
def ffprobe_output() -> dict[str, Any]:
    """FFprobe JSON for a 1080p MP4 with cover art and stereo audio."""
    return {
        "format": {
            "filename": "input.mp4",
            "format_name": "mov,mp4,m4a,3gp,3g2,mj2",
            "format_long_name": "QuickTime / MOV",
            "duration": "42.500000",
            "size": "10485760",
        },
        "streams": [
            {
                "index": 0,
                "codec_type": "video",
                "codec_name": "h264",
                "width": 1920,
                "height": 1080,
                "r_frame_rate": "24000/1001",
                "duration": "42.458333",
                "disposition": {"attached_pic": 0},
            },
            {
                "index": 1,
                "codec_type": "audio",
                "codec_name": "aac",
                "channels": 2,
            },
            {
                "index": 2,
                "codec_type": "video",
                "codec_name": "mjpeg",
                "width": 600,
                "height": 600,
                "disposition": {"attached_pic": 1},
            },
        ],
    }


@pytest.fixture
def make_api_event() -> Any:
    """Builder for API Gateway REST proxy events."""
    return api_gateway_event


@pytest.fixture
def make_push_envelope() -> Any:
    """Builder for push-subscription envelopes."""
    return push_envelope


@pytest.fixture
def make_probe() -> Any:
    """Builder for probe fakes: make_probe(metadata) or make_probe(error=...)."""
    return FakeProbe
