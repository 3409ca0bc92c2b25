"""Lambda entry point: one S3 object in, one compressed object out."""

import uuid
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from .core.exceptions import ImageProcessingError, ValidationError
from .core.factories import HandlerFactory
from .core.image_utils import calculate_dest_key
from .core.models import CompressionConfig
from .core.observability import LogContext, Stopwatch
from .core.protocols import ImageProcessorProtocol, LoggerProtocol, StorageProtocol
from .core.validation import validate_config, validate_key, validate_notification


class PipelineStage(str, Enum):
    VALIDATING = "validating"
    DOWNLOADING = "downloading"
    PROCESSING = "processing"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"


def _request_id(context: Any) -> str:
    return getattr(context, "aws_request_id", None) or str(uuid.uuid4())


def _deadline(context: Any) -> Optional[Callable[[], float]]:
    """Remaining invocation time in seconds, if the host exposes it."""
    remaining_ms = getattr(context, "get_remaining_time_in_millis", None)
    if remaining_ms is None:
        return None
    return lambda: remaining_ms() / 1000


class CompressionHandler:
    """
    Runs one invocation through validate, download, process and upload.

    Every outcome is returned as a response envelope: 200 on success, 400 for
    validation and configuration failures, 500 for anything else. Without a
    ``config`` the environment is read on every call.
    """

    def __init__(
        self,
        storage: StorageProtocol,
        processor: ImageProcessorProtocol,
        logger: LoggerProtocol,
        environ: Optional[Mapping[str, str]] = None,
        config: Optional[CompressionConfig] = None,
    ):
        self._storage = storage
        self._processor = processor
        self._logger = logger
        self._environ = environ
        self._config = config

    def handle(self, event: Any, context: Any = None) -> Dict[str, Any]:
        stopwatch = Stopwatch()
        request_id = _request_id(context)
        deadline = _deadline(context)
        log_context = LogContext(
            correlation_id=request_id, component="compression_handler"
        )
        stage = PipelineStage.VALIDATING

        try:
            self._logger.info(
                "Lambda function started",
                log_context.with_operation(stage.value),
                remaining_time_ms=int(deadline() * 1000) if deadline else None,
            )

            config = validate_config(self._environ, self._config)
            notification = validate_notification(event)
            source_bucket = notification.source_bucket
            image_key = notification.key
            log_context = log_context.with_metadata(
                source_bucket=source_bucket, image_key=image_key
            )
            self._logger.info(
                "Processing S3 event", log_context.with_operation(stage.value)
            )
            validate_key(image_key, config.source_prefix, config.allowed_extensions)

            stage = PipelineStage.DOWNLOADING
            self._logger.info(
                "Downloading image from S3", log_context.with_operation(stage.value)
            )
            image_stream = self._storage.download(
                source_bucket, image_key, deadline=deadline
            )

            stage = PipelineStage.PROCESSING
            self._logger.info(
                "Starting image processing", log_context.with_operation(stage.value)
            )
            result = self._processor.process(
                image_stream, image_key, config.destination_bucket
            )
            if not result.success:
                raise ImageProcessingError(result.error or "Image processing failed")
            if not result.processed_buffer:
                raise ImageProcessingError(
                    "No processed image buffer available for upload"
                )

            stage = PipelineStage.UPLOADING
            destination_url = self._storage.upload(
                config.destination_bucket,
                calculate_dest_key(image_key),
                result.processed_buffer,
                result.content_type,
                deadline=deadline,
            )

            stage = PipelineStage.DONE
            new_dimensions = result.new_dimensions.model_dump()
            self._logger.info(
                "Image processing completed successfully",
                log_context.with_operation(stage.value),
                new_dimensions=new_dimensions,
                destination_url=destination_url,
                processing_time_ms=stopwatch.elapsed_ms,
            )

            return {
                "statusCode": 200,
                "body": {
                    "message": "Image processed successfully",
                    "originalKey": image_key,
                    "newDimensions": new_dimensions,
                    "destinationUrl": destination_url,
                },
            }

        except ValidationError as e:
            self._logger.error(
                "Validation error occurred",
                log_context.with_operation(PipelineStage.FAILED.value),
                error=str(e),
            )
            return {
                "statusCode": 400,
                "body": {
                    "message": "Validation error",
                    "error": str(e),
                    "requestId": request_id,
                },
            }

        except Exception as e:
            processing_time_ms = stopwatch.elapsed_ms
            self._logger.error(
                "Unexpected error occurred",
                log_context.with_operation(PipelineStage.FAILED.value),
                failed_stage=stage.value,
                error=str(e),
                error_type=type(e).__name__,
                processing_time_ms=processing_time_ms,
            )
            return {
                "statusCode": 500,
                "body": {
                    "message": "Internal server error",
                    "error": str(e) or "Unknown error",
                    "requestId": request_id,
                    "processingTimeMs": processing_time_ms,
                },
            }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """AWS Lambda entry point. Builds fresh services on every invocation."""
    return HandlerFactory.create_handler().handle(event, context)
