"""Lambda handler for the transcode trigger endpoint.

API Gateway forwards upload notifications here. Each request names one
source object; the pipeline runs synchronously and the response status
tells the delivery system whether to retry:

- 200: job completed, or was already completed (idempotent no-op)
- 400: payload or source is unusable, redelivery cannot help
- 429: transient failure (transport error, probe or transcode timeout), retry
- 500: any other failure, including a missing ffmpeg/ffprobe binary
"""

import json
from functools import lru_cache, partial
from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, Response, content_types
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from ..input_validator.mediainfo import probe_source
from ..job_pipeline.idempotency import DynamoDBStatusLedger
from ..job_pipeline.pipeline import TranscodePipeline
from ..job_pipeline.storage import S3BlobStore
from ..shared.aws_clients import get_dynamodb_resource, get_s3_client
from ..shared.config import Settings, get_settings
from ..shared.exceptions import (
    MalformedEventError,
    RetryableError,
    TranscodingPipelineError,
    ValidationError,
)
from ..transcoder.ffmpeg import FFmpegTranscoder
from .events import normalize_event

logger = Logger(service="transcode-trigger")
tracer = Tracer(service="transcode-trigger")
metrics = Metrics(service="transcode-trigger", namespace="VideoProcessing")

app = APIGatewayRestResolver()

# Unexpected exception text stays in the logs
INTERNAL_ERROR_MESSAGE = "Internal error while processing the trigger"


def build_pipeline(
    settings: Settings,
    s3_client: Any = None,
    dynamodb_resource: Any = None,
) -> TranscodePipeline:
    """Wire the pipeline to S3, DynamoDB and the ffmpeg toolchain.

    Raises:
        ValueError: If no output bucket is configured
    """
    if not settings.output_bucket:
        raise ValueError("OUTPUT_BUCKET is not configured")

    s3_client = s3_client or get_s3_client()
    dynamodb_resource = dynamodb_resource or get_dynamodb_resource()

    return TranscodePipeline(
        blob_store=S3BlobStore(
            s3_client,
            max_retries=settings.max_retries,
            retry_delay_seconds=settings.retry_delay_seconds,
        ),
        ledger=DynamoDBStatusLedger(
            dynamodb_resource.Table(settings.jobs_table),
            max_retries=settings.max_retries,
            retry_delay_seconds=settings.retry_delay_seconds,
        ),
        transcoder=FFmpegTranscoder(
            ffmpeg_path=settings.ffmpeg_path,
            termination_grace_seconds=settings.termination_grace_seconds,
        ),
        output_bucket=settings.output_bucket,
        scratch_dir=settings.scratch_dir,
        probe=partial(
            probe_source,
            ffprobe_path=settings.ffprobe_path,
            timeout=settings.probe_timeout_seconds,
        ),
        transcode_timeout_seconds=settings.transcode_timeout_seconds,
        output_prefix=settings.output_prefix,
    )


@lru_cache(maxsize=1)
def get_pipeline() -> TranscodePipeline:
    """Pipeline shared across warm invocations."""
    settings = get_settings()
    metrics.set_default_dimensions(environment=settings.environment)
    return build_pipeline(settings)


@app.get("/")
def health() -> dict[str, str]:
    return {"message": "Video processing service is operational"}


@app.post("/transcode")
@tracer.capture_method
def transcode() -> dict[str, Any]:
    source = normalize_event(app.current_event.decoded_body)
    tracer.put_annotation(key="source_bucket", value=source.bucket)

    result = get_pipeline().run(source)
    tracer.put_annotation(key="job_id", value=result.job_id)

    if result.was_skipped:
        metrics.add_metric(name="JobsSkipped", unit=MetricUnit.Count, value=1)
        return {
            "message": "Video already processed",
            "job_id": result.job_id,
            "outputs": result.processed_outputs,
        }

    metrics.add_metric(name="JobsCompleted", unit=MetricUnit.Count, value=1)
    return {
        "message": "Processing completed successfully",
        "job_id": result.job_id,
        "outputs": result.processed_outputs,
        "skipped_profiles": result.skipped_profiles,
    }


@app.not_found
def handle_not_found(error: Exception) -> Response:
    return _error_response(404, f"No route for {app.current_event.path}", "NOT_FOUND")


@app.exception_handler(MalformedEventError)
def handle_malformed_event(error: MalformedEventError) -> Response:
    logger.warning("Rejected malformed trigger", extra=error.to_dict())
    return _error_response(400, error.message, error.error_code)


@app.exception_handler(ValidationError)
def handle_validation_error(error: ValidationError) -> Response:
    metrics.add_metric(name="JobsFailed", unit=MetricUnit.Count, value=1)
    logger.warning("Source failed validation", extra=error.to_dict())
    return _error_response(400, error.message, error.error_code)


@app.exception_handler(RetryableError)
def handle_retryable_error(error: RetryableError) -> Response:
    metrics.add_metric(name="RetryableFailures", unit=MetricUnit.Count, value=1)
    logger.warning("Transient failure, delivery should be retried", extra=error.to_dict())
    return _error_response(429, error.message, error.error_code)


@app.exception_handler(TranscodingPipelineError)
def handle_pipeline_error(error: TranscodingPipelineError) -> Response:
    metrics.add_metric(name="JobsFailed", unit=MetricUnit.Count, value=1)
    logger.error("Processing failed", extra=error.to_dict())
    return _error_response(500, error.message, error.error_code)


@app.exception_handler(Exception)
def handle_unexpected_error(error: Exception) -> Response:
    metrics.add_metric(name="JobsFailed", unit=MetricUnit.Count, value=1)
    logger.exception("Unexpected error while processing trigger")
    return _error_response(500, INTERNAL_ERROR_MESSAGE, "INTERNAL_ERROR")


def _error_response(status_code: int, message: str, error_code: str) -> Response:
    return Response(
        status_code=status_code,
        content_type=content_types.APPLICATION_JSON,
        body=json.dumps({"error": message, "error_code": error_code}),
    )


@logger.inject_lambda_context(log_event=True)
@tracer.capture_lambda_handler
@metrics.log_metrics(capture_cold_start_metric=True)
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """Resolve an API Gateway proxy event against the trigger routes.

    Args:
        event: API Gateway REST proxy event
        context: Lambda context

    Returns:
        API Gateway proxy response
    """
    return app.resolve(event, context)
