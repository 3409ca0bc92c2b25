"""Custom exceptions for the image compression pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .error_handling import ErrorType


class CompressionPipelineError(Exception):
    """Base exception for all image compression pipeline errors.

    Args:
        message: Human readable error message
        retryable: Explicit retry verdict set by the raiser. ``None`` leaves
            the decision to error classification.
        error_type: Explicit classification, overriding message keywords.
    """

    def __init__(
        self,
        message: str = "",
        retryable: Optional[bool] = None,
        error_type: Optional["ErrorType"] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.error_type = error_type


class ValidationError(CompressionPipelineError):
    """Error raised when an invocation fails its preconditions."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message, retryable=False)


class ConfigurationError(ValidationError):
    """Error raised for missing or invalid environment configuration."""


class S3Error(CompressionPipelineError):
    """Error raised for S3 related failures."""


class NetworkError(CompressionPipelineError):
    """Error raised when the object store cannot be reached."""


class ImageProcessingError(CompressionPipelineError):
    """Error raised when decoding or re-encoding an image fails."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message, retryable=False)
