"""Shared data models for the image compression pipeline."""

import os
from typing import Mapping, Optional, Tuple
from urllib.parse import unquote_plus

from pydantic import BaseModel, ConfigDict

DEFAULT_ALLOWED_EXTENSIONS: Tuple[str, ...] = (
    ".jpg",
    ".jpeg",
    ".png",
    ".webp",
    ".gif",
    ".bmp",
    ".tiff",
)


class CompressionConfig(BaseModel):
    """Configuration for a compression invocation."""

    destination_bucket: str
    source_prefix: str = "photos/"
    allowed_extensions: Tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS
    max_dimension: int = 4096
    quality: int = 80
    output_format: str = "JPEG"
    cache_control: str = "max-age=31536000"
    processed_by: str = "image-compression-lambda"

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "CompressionConfig":
        """Build a config from ``DESTINATION_BUCKET`` in the environment."""
        env = os.environ if environ is None else environ
        return cls(destination_bucket=env.get("DESTINATION_BUCKET", ""))


class S3BucketEntity(BaseModel):
    name: str = ""


class S3ObjectEntity(BaseModel):
    key: str = ""
    size: Optional[int] = None


class S3Entity(BaseModel):
    bucket: Optional[S3BucketEntity] = None
    object: Optional[S3ObjectEntity] = None


class S3EventRecord(BaseModel):
    """One record of an S3 event notification. Unknown fields are ignored."""

    s3: Optional[S3Entity] = None


class InboundNotification(BaseModel):
    """The single object this invocation processes."""

    model_config = ConfigDict(frozen=True)

    source_bucket: str
    key: str

    @classmethod
    def from_record(cls, record: S3EventRecord) -> "InboundNotification":
        # S3 delivers keys URL-encoded, spaces as '+'
        return cls(
            source_bucket=record.s3.bucket.name,
            key=unquote_plus(record.s3.object.key),
        )


class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int


class ImageMetadata(BaseModel):
    """Header information decoded from the downloaded bytes."""

    width: int
    height: int
    format: str = "unknown"
    size: int = 0
    mode: str = ""


class ProcessingResult(BaseModel):
    """Terminal result of processing a single image."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    original_key: str
    new_dimensions: Dimensions = Dimensions(width=0, height=0)
    processed_buffer: Optional[bytes] = None
    destination_url: Optional[str] = None
    error: Optional[str] = None
    content_type: str = "image/jpeg"
    original_size: int = 0
    processed_size: int = 0
    compression_ratio: float = 0.0
