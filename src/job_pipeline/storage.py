"""S3-backed blob store.

Downloads raw uploads into scratch files and uploads rendered outputs.
All AWS failures leave this module as TransportError.
"""

from typing import Any

from aws_lambda_powertools import Logger
from boto3.exceptions import S3TransferFailedError, S3UploadFailedError

from ..shared.aws_clients import retry_with_backoff
from ..shared.exceptions import TransportError

logger = Logger(service="blob-store")


class S3BlobStore:
    """BlobStore implementation over a boto3 S3 client."""

    def __init__(
        self,
        s3_client: Any,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
    ) -> None:
        self.s3_client = s3_client
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

    def download(self, bucket: str, key: str, destination: str) -> None:
        """Download s3://bucket/key to a local file.

        Raises:
            TransportError: On any S3 or network failure
        """
        logger.info(
            "Downloading source object",
            extra={"bucket": bucket, "key": key, "destination": destination},
        )
        self._call(
            lambda: self.s3_client.download_file(bucket, key, destination),
            operation=f"Download of s3://{bucket}/{key}",
        )

    def upload(
        self,
        bucket: str,
        key: str,
        source: str,
        content_type: str | None = None,
    ) -> str:
        """Upload a local file to s3://bucket/key.

        Returns:
            The s3:// locator of the uploaded object

        Raises:
            TransportError: On any S3 or network failure
        """
        extra_args = {"ContentType": content_type} if content_type else None

        logger.info(
            "Uploading rendition",
            extra={"bucket": bucket, "key": key, "source": source},
        )
        self._call(
            lambda: self.s3_client.upload_file(source, bucket, key, ExtraArgs=extra_args),
            operation=f"Upload to s3://{bucket}/{key}",
        )
        return f"s3://{bucket}/{key}"

    def _call(self, func: Any, operation: str) -> Any:
        try:
            return retry_with_backoff(
                func,
                max_retries=self.max_retries,
                base_delay=self.retry_delay_seconds,
                operation=operation,
            )
        except (S3TransferFailedError, S3UploadFailedError, OSError) as e:
            raise TransportError(f"{operation} failed: {e}", original_error=e) from e
