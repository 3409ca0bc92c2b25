"""Service implementations for the image compression pipeline."""

import io
import time
from datetime import datetime, timezone
from typing import BinaryIO, Callable, Optional, Union

from PIL import Image

from .error_handling import RetryPolicy, S3_RETRY_POLICY, with_error_handling, with_retry
from .exceptions import ImageProcessingError, S3Error
from .image_utils import (
    DEFAULT_QUALITY,
    MAX_DIMENSION,
    build_public_url,
    calculate_dest_key,
    calculate_target_dimensions,
    compression_ratio,
    content_type_for,
    extract_image_metadata,
    resize_and_encode,
)
from .models import ImageMetadata, ProcessingResult
from .protocols import LoggerProtocol, S3ClientProtocol


class ImageProcessorService:
    """Pure image processing service with no I/O dependencies."""

    def __init__(
        self,
        logger: LoggerProtocol,
        max_dimension: int = MAX_DIMENSION,
        quality: int = DEFAULT_QUALITY,
        output_format: str = "JPEG",
    ):
        self._logger = logger
        self.max_dimension = max_dimension
        self.quality = quality
        self.output_format = output_format

    def load(self, image_bytes: bytes) -> Image.Image:
        """Decode image bytes, translating Pillow failures."""
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            raise ImageProcessingError(f"Failed to decode image: {e}") from e
        return image

    def extract_metadata(self, image_bytes: bytes) -> ImageMetadata:
        return extract_image_metadata(self.load(image_bytes), len(image_bytes))

    def process(
        self,
        source: Union[bytes, BinaryIO],
        original_key: str,
        destination_bucket: str,
    ) -> ProcessingResult:
        """
        Buffer, decode, resize and re-encode one image.

        Failures are returned as ``ProcessingResult(success=False)`` rather
        than raised, so the caller decides how to report them.
        """
        try:
            self._logger.info(f"Starting image processing for {original_key}")

            image_bytes = source if isinstance(source, bytes) else source.read()
            self._logger.debug(f"Image buffered, {len(image_bytes)} bytes")

            image = self.load(image_bytes)
            metadata = extract_image_metadata(image, len(image_bytes))
            self._logger.info(
                "Image metadata retrieved",
                width=metadata.width,
                height=metadata.height,
                format=metadata.format,
                size=metadata.size,
            )

            new_dimensions = calculate_target_dimensions(
                metadata.width, metadata.height, self.max_dimension
            )
            self._logger.info(
                "Calculated new dimensions",
                original=f"{metadata.width}x{metadata.height}",
                new=f"{new_dimensions.width}x{new_dimensions.height}",
            )

            try:
                processed_buffer = resize_and_encode(
                    image, new_dimensions, self.quality, self.output_format
                )
            except (OSError, ValueError) as e:
                raise ImageProcessingError(f"Failed to encode image: {e}") from e

            ratio = compression_ratio(metadata.size, len(processed_buffer))
            self._logger.info(
                "Image processing completed",
                original_size=metadata.size,
                new_size=len(processed_buffer),
                compression_ratio=f"{ratio * 100:.2f}%",
            )

            return ProcessingResult(
                success=True,
                original_key=original_key,
                new_dimensions=new_dimensions,
                processed_buffer=processed_buffer,
                destination_url=build_public_url(
                    destination_bucket, calculate_dest_key(original_key)
                ),
                content_type=content_type_for(self.output_format),
                original_size=metadata.size,
                processed_size=len(processed_buffer),
                compression_ratio=ratio,
            )

        except Exception as e:
            self._logger.error(
                f"Image processing failed for key: {original_key}", error=str(e)
            )
            return ProcessingResult(
                success=False, original_key=original_key, error=str(e)
            )


class S3StorageService:
    """Retrying download and upload against an injected S3 client."""

    def __init__(
        self,
        s3_client: S3ClientProtocol,
        logger: LoggerProtocol,
        retry_policy: RetryPolicy = S3_RETRY_POLICY,
        sleep: Callable[[float], None] = time.sleep,
        processed_by: str = "image-compression-lambda",
        cache_control: str = "max-age=31536000",
    ):
        self._s3_client = s3_client
        self._logger = logger
        self._retry_policy = retry_policy
        self._sleep = sleep
        self.processed_by = processed_by
        self.cache_control = cache_control

    def download(
        self,
        bucket: str,
        key: str,
        deadline: Optional[Callable[[], float]] = None,
    ) -> BinaryIO:
        """
        Fetch an object's body stream.

        Raises:
            S3Error: Non-retryable if S3 answered without a body, otherwise
                whatever remained after the retry policy was exhausted
            NetworkError: If the endpoint stayed unreachable
        """

        @with_error_handling
        def _get_object() -> BinaryIO:
            self._logger.info(f"Downloading image from bucket: {bucket}, key: {key}")
            response = self._s3_client.get_object(Bucket=bucket, Key=key)
            body = response.get("Body")
            if body is None:
                raise S3Error("No image data received from S3", retryable=False)
            return body

        return with_retry(
            _get_object,
            f"Download image from {bucket}/{key}",
            self._retry_policy,
            sleep=self._sleep,
            deadline=deadline,
            log=self._logger,
        )

    def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str = "image/jpeg",
        deadline: Optional[Callable[[], float]] = None,
    ) -> str:
        """Store ``data`` under ``key`` and return its public URL."""

        @with_error_handling
        def _put_object() -> str:
            self._logger.info(
                f"Uploading compressed image to bucket: {bucket}, key: {key}"
            )
            self._s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=self.cache_control,
                Metadata={
                    "processed-by": self.processed_by,
                    "processed-at": datetime.now(timezone.utc).isoformat(),
                },
            )
            public_url = build_public_url(bucket, key)
            self._logger.info("Compressed image uploaded successfully", url=public_url)
            return public_url

        return with_retry(
            _put_object,
            f"Upload compressed image to {bucket}/{key}",
            self._retry_policy,
            sleep=self._sleep,
            deadline=deadline,
            log=self._logger,
        )

    def exists(self, bucket: str, key: str) -> bool:
        """Best-effort existence probe; any failure reads as absent."""
        try:
            self._s3_client.head_object(Bucket=bucket, Key=key)
            return True
        except Exception as e:
            self._logger.debug(f"Object {bucket}/{key} not found: {e}")
            return False
