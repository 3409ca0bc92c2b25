"""Invocation precondition checks, run before any I/O."""

import logging
from collections.abc import Mapping as MappingABC
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError, ValidationError
from .models import (
    DEFAULT_ALLOWED_EXTENSIONS,
    CompressionConfig,
    InboundNotification,
    S3EventRecord,
)

logger = logging.getLogger(__name__)


def validate_config(
    environ: Optional[Mapping[str, str]] = None,
    config: Optional[CompressionConfig] = None,
) -> CompressionConfig:
    """
    Ensure the destination bucket is configured.

    Args:
        environ: Mapping to read from, defaults to ``os.environ``
        config: Config built up front, checked instead of reading ``environ``

    Returns:
        The invocation config

    Raises:
        ConfigurationError: If ``DESTINATION_BUCKET`` is unset or blank
    """
    if config is None:
        config = CompressionConfig.from_env(environ)
    if not config.destination_bucket.strip():
        raise ConfigurationError("DESTINATION_BUCKET environment variable is not set")
    return config


def validate_notification(raw: Any) -> InboundNotification:
    """
    Check the shape of an S3 event and extract its first record.

    Only ``Records[0]`` is parsed; any further records are ignored, even
    malformed ones.

    Raises:
        ValidationError: If the payload or its first record is not a
            well-formed S3 event
    """
    if not isinstance(raw, MappingABC) or not isinstance(raw.get("Records"), list):
        raise ValidationError("Invalid event structure: Records array is missing")

    records = raw["Records"]
    if not records:
        raise ValidationError("No records found in event")

    try:
        record = S3EventRecord.model_validate(records[0])
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid S3 event record: {e}") from e

    if record.s3 is None:
        raise ValidationError("Invalid S3 event record: s3 object is missing")
    if record.s3.bucket is None or not record.s3.bucket.name:
        raise ValidationError("Invalid S3 event record: bucket name is missing")
    if record.s3.object is None or not record.s3.object.key:
        raise ValidationError("Invalid S3 event record: object key is missing")

    if len(records) > 1:
        logger.debug(
            f"Event carries {len(records)} records, only the first is processed"
        )

    return InboundNotification.from_record(record)


def validate_key(
    key: str,
    prefix: str = "photos/",
    allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS,
) -> None:
    """Reject keys outside ``prefix`` or without an image extension."""
    if not key:
        raise ValidationError("Image key is empty")

    if not key.startswith(prefix):
        raise ValidationError(f"Image key '{key}' is not in the {prefix} prefix")

    if not key.lower().endswith(tuple(allowed_extensions)):
        raise ValidationError(
            f"Image key '{key}' does not have a valid image extension"
        )
