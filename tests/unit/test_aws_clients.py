"""Unit tests for AWS client helpers and retry logic."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.shared.aws_clients import (
    clear_client_cache,
    get_dynamodb_resource,
    get_s3_client,
    is_retryable_error,
    retry_with_backoff,
)
from src.shared.exceptions import TransportError


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "GetObject")


class TestClients:
    """Tests for cached client construction."""

    def test_clients_cached_until_cleared(self, mocked_aws):
        """Test one client per process, rebuilt after clearing."""
        clear_client_cache()
        first = get_s3_client()

        assert get_s3_client() is first
        assert get_dynamodb_resource() is get_dynamodb_resource()

        clear_client_cache()
        assert get_s3_client() is not first


class TestRetryWithBackoff:
    """Tests for throttling retries and error wrapping."""

    @pytest.mark.parametrize("code", ["SlowDown", "ThrottlingException", "ProvisionedThroughputExceededException"])
    def test_retryable_codes(self, code):
        """Test throttling codes are classified as retryable."""
        assert is_retryable_error(_client_error(code)) is True

    def test_not_found_not_retryable(self):
        """Test missing objects are not retried in-process."""
        assert is_retryable_error(_client_error("404")) is False

    def test_success_after_throttling(self):
        """Test the call is retried with backoff and then succeeds."""
        func = MagicMock(side_effect=[_client_error("SlowDown"), "ok"])

        with patch("src.shared.aws_clients.time.sleep") as mock_sleep:
            assert retry_with_backoff(func, max_retries=2, base_delay=1.0) == "ok"

        assert func.call_count == 2
        mock_sleep.assert_called_once()
        assert 0.75 <= mock_sleep.call_args[0][0] <= 1.25

    def test_non_retryable_raises_immediately(self):
        """Test access errors become TransportError on the first attempt."""
        func = MagicMock(side_effect=_client_error("AccessDenied"))

        with pytest.raises(TransportError) as exc_info:
            retry_with_backoff(func, max_retries=3, base_delay=0, operation="Download of s3://raw/clip.mp4")

        assert func.call_count == 1
        assert exc_info.value.message.startswith("Download of s3://raw/clip.mp4 failed")
        assert exc_info.value.details["original_error_type"] == "ClientError"

    def test_connection_errors_wrapped(self):
        """Test botocore network errors become TransportError."""
        func = MagicMock(side_effect=EndpointConnectionError(endpoint_url="https://s3.amazonaws.com"))

        with pytest.raises(TransportError):
            retry_with_backoff(func, base_delay=0)

    def test_exhausted(self):
        """Test persistent throttling gives up after max_retries + 1 attempts."""
        func = MagicMock(side_effect=_client_error("Throttling"))

        with pytest.raises(TransportError, match="after 2 attempts"):
            retry_with_backoff(func, max_retries=1, base_delay=0)

        assert func.call_count == 2
