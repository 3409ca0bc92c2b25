"""Core utilities and shared components for the image compression pipeline."""

from .error_handling import (
    DEFAULT_RETRY_POLICY,
    S3_RETRY_POLICY,
    ErrorClassification,
    ErrorType,
    RetryPolicy,
    classify,
    classify_error,
    is_retryable_error,
    retry_operation,
    with_error_handling,
    with_retry,
)
from .exceptions import (
    CompressionPipelineError,
    ConfigurationError,
    ImageProcessingError,
    NetworkError,
    S3Error,
    ValidationError,
)
from .image_utils import calculate_dest_key, calculate_target_dimensions
from .logging_config import get_logger, setup_logger
from .models import (
    CompressionConfig,
    Dimensions,
    ImageMetadata,
    InboundNotification,
    ProcessingResult,
)
from .validation import validate_config, validate_key, validate_notification

__all__ = [
    "CompressionConfig",
    "Dimensions",
    "ImageMetadata",
    "InboundNotification",
    "ProcessingResult",
    "RetryPolicy",
    "DEFAULT_RETRY_POLICY",
    "S3_RETRY_POLICY",
    "ErrorType",
    "ErrorClassification",
    "classify",
    "classify_error",
    "is_retryable_error",
    "with_retry",
    "retry_operation",
    "with_error_handling",
    "CompressionPipelineError",
    "ValidationError",
    "ConfigurationError",
    "S3Error",
    "NetworkError",
    "ImageProcessingError",
    "calculate_dest_key",
    "calculate_target_dimensions",
    "setup_logger",
    "get_logger",
    "validate_config",
    "validate_notification",
    "validate_key",
]
