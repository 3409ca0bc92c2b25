# src/image_compression/core/error_handling.py

import functools
import logging
import time
from enum import Enum
from typing import Any, Callable, NamedTuple, Optional, TypeVar

from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError as BotocoreClientError
from botocore.exceptions import (
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)
from PIL import UnidentifiedImageError as PILUnidentifiedImageError
from pydantic import BaseModel, ConfigDict

from .exceptions import (
    CompressionPipelineError,
    ImageProcessingError,
    NetworkError,
    S3Error,
    ValidationError,
)


T = TypeVar("T")

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Taxonomy used to decide retry and logging policy for a caught error."""

    VALIDATION = "VALIDATION_ERROR"
    S3 = "S3_ERROR"
    IMAGE_PROCESSING = "IMAGE_PROCESSING_ERROR"
    NETWORK = "NETWORK_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"


class ErrorClassification(NamedTuple):
    error_type: ErrorType
    retryable: bool


# Checked in order, first match wins.
_KEYWORD_FAMILIES = (
    (ErrorType.VALIDATION, ("validation", "invalid")),
    (ErrorType.S3, ("s3", "bucket", "aws")),
    (ErrorType.IMAGE_PROCESSING, ("image", "format", "pillow", "decode")),
    (ErrorType.NETWORK, ("network", "timeout", "connection")),
)

_EXCEPTION_TYPES = (
    (ValidationError, ErrorType.VALIDATION),
    (S3Error, ErrorType.S3),
    (ImageProcessingError, ErrorType.IMAGE_PROCESSING),
    (NetworkError, ErrorType.NETWORK),
)

_NETWORK_ERRORS = (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)

RETRY_POLICY_TABLE = {
    ErrorType.VALIDATION: False,
    ErrorType.S3: True,
    ErrorType.IMAGE_PROCESSING: False,
    ErrorType.NETWORK: True,
    ErrorType.UNKNOWN: True,
}


class RetryPolicy(BaseModel):
    """Bounded exponential backoff settings for a single call site."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = 2
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000
    backoff_multiplier: float = 2


DEFAULT_RETRY_POLICY = RetryPolicy()
S3_RETRY_POLICY = RetryPolicy(
    max_retries=3, base_delay_ms=1000, max_delay_ms=5000, backoff_multiplier=2
)


def classify_error(error: BaseException) -> ErrorType:
    """
    Assign a taxonomy bucket to an error.

    An explicit ``error_type`` set by the raiser wins, then the pipeline
    exception class, then keyword families found in the lowercased message.
    """
    explicit = getattr(error, "error_type", None)
    if isinstance(explicit, ErrorType):
        return explicit

    for exc_class, error_type in _EXCEPTION_TYPES:
        if isinstance(error, exc_class):
            return error_type

    message = str(error).lower()
    for error_type, keywords in _KEYWORD_FAMILIES:
        if any(keyword in message for keyword in keywords):
            return error_type

    return ErrorType.UNKNOWN


def is_retryable_error(error: BaseException) -> bool:
    """Return the raiser's explicit verdict if set, else the policy table's."""
    explicit = getattr(error, "retryable", None)
    if explicit is not None:
        return bool(explicit)
    return RETRY_POLICY_TABLE[classify_error(error)]


def classify(error: BaseException) -> ErrorClassification:
    return ErrorClassification(classify_error(error), is_retryable_error(error))


def with_retry(
    operation: Callable[[], T],
    label: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    *,
    sleep: Callable[[float], None] = time.sleep,
    deadline: Optional[Callable[[], float]] = None,
    log: Optional[Any] = None,
) -> T:
    """
    Invoke ``operation`` up to ``policy.max_retries + 1`` times.

    Stops early on any error :func:`is_retryable_error` rejects. That covers
    an explicit ``retryable=False`` and also plain exceptions whose message
    classifies as validation or image processing, e.g. ``"unsupported image
    format"``.

    Args:
        operation: Zero-argument callable performing the fallible work
        label: Name used in log lines
        policy: Backoff settings
        sleep: Function used to wait between attempts, in seconds
        deadline: Optional callable returning the remaining seconds before the
            host aborts the invocation. No sleep is started that would end
            past it.
        log: Logger with info, warning and error methods, defaults to this
            module's logger

    Returns:
        The first successful return value of ``operation``

    Raises:
        The last error raised by ``operation``, unchanged.
    """
    log = log or logger
    total_attempts = policy.max_retries + 1
    delay_ms = float(policy.base_delay_ms)
    attempt = 0

    while True:
        attempt += 1
        try:
            log.info(f"Attempting {label} (attempt {attempt}/{total_attempts})")
            result = operation()
        except Exception as e:
            if attempt >= total_attempts:
                log.error(f"{label} failed after {attempt} attempts: {e}")
                raise

            if not is_retryable_error(e):
                log.error(
                    f"{label} failed with non-retryable error on attempt {attempt}: {e}"
                )
                raise

            if deadline is not None and deadline() <= delay_ms / 1000:
                log.error(
                    f"{label} failed on attempt {attempt} with no time left "
                    f"for another retry: {e}"
                )
                raise

            log.warning(
                f"{label} failed on attempt {attempt}, retrying in {delay_ms:.0f}ms. "
                f"Error: {e}"
            )
            sleep(delay_ms / 1000)
            delay_ms = min(delay_ms * policy.backoff_multiplier, policy.max_delay_ms)
            continue

        if attempt > 1:
            log.info(f"{label} succeeded on attempt {attempt}")
        return result


def retry_operation(
    label: Optional[str] = None,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Decorator form of :func:`with_retry`.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return with_retry(
                lambda: func(*args, **kwargs),
                label or func.__name__,
                policy,
                sleep=sleep,
                log=logging.getLogger(func.__module__ + "." + func.__name__),
            )

        return wrapper

    return decorator


def with_error_handling(func):
    """
    A decorator to wrap functions with standardized error handling.

    Pipeline errors pass through. botocore and Pillow errors are logged and
    translated into the pipeline hierarchy, everything else is re-raised as is.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        log = logging.getLogger(func.__module__ + "." + func.__name__)
        try:
            return func(*args, **kwargs)
        except CompressionPipelineError:
            raise
        except Exception as e:
            log.error(f"Error in '{func.__name__}': {e}", exc_info=True)
            if isinstance(e, _NETWORK_ERRORS):
                raise NetworkError(
                    f"Network connection failed in {func.__name__}: {e}"
                ) from e
            if isinstance(e, BotocoreClientError):
                raise S3Error(f"S3 operation failed in {func.__name__}: {e}") from e
            if isinstance(e, BotoCoreError):
                raise S3Error(f"S3 client error in {func.__name__}: {e}") from e
            if isinstance(e, PILUnidentifiedImageError):
                raise ImageProcessingError(
                    f"Failed to identify image in {func.__name__}: {e}"
                ) from e
            raise

    return wrapper
