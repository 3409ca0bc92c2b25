"""Protocol definitions for dependency injection and testability."""

from typing import Any, BinaryIO, Callable, Dict, Optional, Protocol, Union

from .models import ProcessingResult


class S3ClientProtocol(Protocol):
    """Protocol for S3 client operations."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    def put_object(self, Bucket: str, Key: str, Body: bytes, **kwargs: Any) -> Dict[str, Any]:
        """Put object to S3."""
        ...

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Fetch object metadata from S3."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class StorageProtocol(Protocol):
    """Protocol for the object store seen by the handler."""

    def download(
        self, bucket: str, key: str, deadline: Optional[Callable[[], float]] = None
    ) -> BinaryIO:
        ...

    def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
        deadline: Optional[Callable[[], float]] = None,
    ) -> str:
        ...

    def exists(self, bucket: str, key: str) -> bool:
        ...


class ImageProcessorProtocol(Protocol):
    """Protocol for image processing operations."""

    def process(
        self, source: Union[bytes, BinaryIO], original_key: str, destination_bucket: str
    ) -> ProcessingResult:
        """Resize and re-encode an image, reporting failure as a result."""
        ...
