# tests/core/test_error_handling.py

import logging
from unittest import mock

import pytest
from botocore.exceptions import ClientError as BotocoreClientError
from botocore.exceptions import EndpointConnectionError
from PIL import UnidentifiedImageError as PILUnidentifiedImageError

from image_compression.core.error_handling import (
    ErrorType,
    RetryPolicy,
    classify,
    classify_error,
    is_retryable_error,
    retry_operation,
    with_error_handling,
    with_retry,
)
from image_compression.core.exceptions import (
    CompressionPipelineError,
    ImageProcessingError,
    NetworkError,
    S3Error,
    ValidationError,
)
from image_compression.testing.fakes import FakeLogger


FAST_POLICY = RetryPolicy(
    max_retries=3, base_delay_ms=10, max_delay_ms=100, backoff_multiplier=2
)


# --- Tests for error classification ---

@pytest.mark.parametrize(
    "message,expected",
    [
        ("Invalid input validation failed", ErrorType.VALIDATION),
        ("S3 bucket access denied", ErrorType.S3),
        ("AWS credentials expired", ErrorType.S3),
        ("Pillow image format not supported", ErrorType.IMAGE_PROCESSING),
        ("cannot DECODE payload", ErrorType.IMAGE_PROCESSING),
        ("Network timeout connection failed", ErrorType.NETWORK),
        ("Connection reset by peer", ErrorType.NETWORK),
        ("Some random error", ErrorType.UNKNOWN),
    ],
)
def test_classify_error_by_message(message, expected):
    assert classify_error(Exception(message)) == expected


def test_classify_error_priority_order():
    """Validation keywords win over storage keywords, storage over image."""
    assert classify_error(Exception("invalid S3 bucket")) == ErrorType.VALIDATION
    assert classify_error(Exception("s3 image missing")) == ErrorType.S3
    assert classify_error(Exception("image download timeout")) == ErrorType.IMAGE_PROCESSING


def test_classify_error_uses_exception_class():
    assert classify_error(S3Error("something odd")) == ErrorType.S3
    assert classify_error(NetworkError("something odd")) == ErrorType.NETWORK
    assert classify_error(ValidationError("Image key is empty")) == ErrorType.VALIDATION
    assert classify_error(ImageProcessingError("weird")) == ErrorType.IMAGE_PROCESSING


def test_classify_error_explicit_type_wins():
    error = CompressionPipelineError("S3 bucket gone", error_type=ErrorType.NETWORK)
    assert classify_error(error) == ErrorType.NETWORK


@pytest.mark.parametrize(
    "message,retryable",
    [
        ("Invalid input validation failed", False),
        ("S3 bucket access denied", True),
        ("Sharp image format not supported", False),
        ("Network timeout connection failed", True),
        ("Some random error", True),
    ],
)
def test_is_retryable_error_policy_table(message, retryable):
    assert is_retryable_error(Exception(message)) is retryable


def test_explicit_flag_overrides_classification():
    assert is_retryable_error(S3Error("No image data received from S3", retryable=False)) is False
    assert is_retryable_error(CompressionPipelineError("invalid thing", retryable=True)) is True


def test_classify_returns_both_verdicts():
    result = classify(Exception("S3 bucket access denied"))
    assert result.error_type == ErrorType.S3
    assert result.retryable is True


# --- Tests for with_retry ---

def test_with_retry_succeeds_first_attempt():
    operation = mock.Mock(return_value="success")
    sleep = mock.Mock()

    assert with_retry(operation, "test operation", FAST_POLICY, sleep=sleep) == "success"
    operation.assert_called_once()
    sleep.assert_not_called()


def test_with_retry_eventually_succeeds():
    operation = mock.Mock(
        side_effect=[Exception("Temporary failure"), Exception("Another failure"), "success"]
    )

    result = with_retry(operation, "test operation", FAST_POLICY, sleep=mock.Mock())

    assert result == "success"
    assert operation.call_count == 3


def test_with_retry_exhausts_and_reraises_original_error():
    original = Exception("Persistent failure")
    operation = mock.Mock(side_effect=original)
    policy = RetryPolicy(max_retries=2, base_delay_ms=10, max_delay_ms=100, backoff_multiplier=2)

    with pytest.raises(Exception) as excinfo:
        with_retry(operation, "test operation", policy, sleep=mock.Mock())

    assert excinfo.value is original
    assert operation.call_count == 3


def test_with_retry_stops_on_explicit_non_retryable_error():
    operation = mock.Mock(side_effect=CompressionPipelineError("Non-retryable error", retryable=False))
    sleep = mock.Mock()

    with pytest.raises(CompressionPipelineError, match="Non-retryable error"):
        with_retry(operation, "test operation", sleep=sleep)

    operation.assert_called_once()
    sleep.assert_not_called()


@pytest.mark.parametrize("message", ["invalid input", "unsupported image format"])
def test_with_retry_stops_on_classified_non_retryable_error(message):
    operation = mock.Mock(side_effect=Exception(message))
    sleep = mock.Mock()

    with pytest.raises(Exception, match=message):
        with_retry(operation, "test operation", FAST_POLICY, sleep=sleep)

    operation.assert_called_once()
    sleep.assert_not_called()


def test_with_retry_backoff_is_multiplied_and_capped():
    operation = mock.Mock(side_effect=Exception("Persistent failure"))
    sleep = mock.Mock()
    policy = RetryPolicy(max_retries=4, base_delay_ms=1000, max_delay_ms=3000, backoff_multiplier=2)

    with pytest.raises(Exception):
        with_retry(operation, "test operation", policy, sleep=sleep)

    assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0, 3.0, 3.0]


def test_with_retry_gives_up_when_deadline_too_close():
    operation = mock.Mock(side_effect=Exception("Temporary failure"))
    sleep = mock.Mock()
    policy = RetryPolicy(max_retries=3, base_delay_ms=1000, max_delay_ms=5000, backoff_multiplier=2)

    with pytest.raises(Exception, match="Temporary failure"):
        with_retry(operation, "test operation", policy, sleep=sleep, deadline=lambda: 0.5)

    operation.assert_called_once()
    sleep.assert_not_called()


def test_with_retry_logs_attempts():
    logger = FakeLogger()
    operation = mock.Mock(side_effect=[Exception("Temporary failure"), "ok"])

    with_retry(operation, "Download image", FAST_POLICY, sleep=mock.Mock(), log=logger)

    messages = [log["message"] for log in logger.get_logs()]
    assert "Attempting Download image (attempt 1/4)" in messages
    assert "Attempting Download image (attempt 2/4)" in messages
    assert "Download image succeeded on attempt 2" in messages
    assert len(logger.get_logs("WARNING")) == 1


def test_with_retry_logs_terminal_failure():
    logger = FakeLogger()
    operation = mock.Mock(side_effect=Exception("Persistent failure"))
    policy = RetryPolicy(max_retries=1, base_delay_ms=1, max_delay_ms=1, backoff_multiplier=2)

    with pytest.raises(Exception):
        with_retry(operation, "Upload", policy, sleep=mock.Mock(), log=logger)

    errors = logger.get_logs("ERROR")
    assert len(errors) == 1
    assert "failed after 2 attempts" in errors[0]["message"]


def test_retry_operation_decorator():
    calls = []

    @retry_operation(policy=FAST_POLICY, sleep=lambda _: None)
    def flaky():
        calls.append(1)
        if len(calls) < 2:
            raise Exception("Network timeout")
        return "done"

    assert flaky() == "done"
    assert len(calls) == 2


# --- Tests for @with_error_handling decorator ---

@pytest.fixture
def mock_logger():
    """Patch logging.getLogger as used inside the decorator."""
    with mock.patch("logging.getLogger") as mock_get_logger:
        mock_log_instance = mock.Mock()
        mock_get_logger.return_value = mock_log_instance
        yield mock_log_instance


def test_with_error_handling_wraps_botocore_client_error(mock_logger):
    @with_error_handling
    def get_object():
        raise BotocoreClientError(
            error_response={"Error": {"Code": "SlowDown", "Message": "Reduce your request rate"}},
            operation_name="GetObject",
        )

    with pytest.raises(S3Error) as excinfo:
        get_object()

    assert "S3 operation failed" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, BotocoreClientError)
    assert excinfo.value.retryable is None
    mock_logger.error.assert_called_once()


def test_with_error_handling_wraps_connection_error(mock_logger):
    @with_error_handling
    def get_object():
        raise EndpointConnectionError(endpoint_url="https://s3.amazonaws.com")

    with pytest.raises(NetworkError) as excinfo:
        get_object()

    assert is_retryable_error(excinfo.value) is True


def test_with_error_handling_wraps_pil_error(mock_logger):
    @with_error_handling
    def decode():
        raise PILUnidentifiedImageError("cannot identify image file")

    with pytest.raises(ImageProcessingError, match="Failed to identify image"):
        decode()


def test_with_error_handling_passes_pipeline_errors_through(mock_logger):
    original = S3Error("No image data received from S3", retryable=False)

    @with_error_handling
    def get_object():
        raise original

    with pytest.raises(S3Error) as excinfo:
        get_object()

    assert excinfo.value is original
    mock_logger.error.assert_not_called()


def test_with_error_handling_reraises_unmapped_exception(mock_logger):
    class CustomNonMappedError(Exception):
        pass

    @with_error_handling
    def func_raising_unmapped_error():
        raise CustomNonMappedError("This one is not mapped.")

    with pytest.raises(CustomNonMappedError):
        func_raising_unmapped_error()

    args, kwargs = mock_logger.error.call_args
    assert kwargs.get("exc_info") is True
