"""Factory classes for creating configured service instances."""

import functools
import time
from typing import Any, Callable, Mapping, Optional

import boto3
from botocore.config import Config

from .models import CompressionConfig
from .observability import StructuredLogger
from .protocols import LoggerProtocol, S3ClientProtocol
from .services import ImageProcessorService, S3StorageService


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(
        label: str = "ImageCompression", level: Optional[str] = None
    ) -> StructuredLogger:
        """Create a structured logger labelled with ``label``."""
        return StructuredLogger(label=label, level=level)


class S3ClientFactory:
    """Factory for creating S3 client instances."""

    @staticmethod
    def create_s3_client(**kwargs: Any) -> S3ClientProtocol:
        """Create S3 client with optional configuration.

        Retries are handled by the pipeline, so botocore's own retry loop is
        reduced to a single attempt unless a config is passed in.
        """
        kwargs.setdefault("config", Config(retries={"max_attempts": 1}))
        session = boto3.Session()
        return session.client("s3", **kwargs)  # type: ignore

    @staticmethod
    @functools.lru_cache(maxsize=1)
    def default_s3_client() -> S3ClientProtocol:
        """One client per process, reused across warm invocations."""
        return S3ClientFactory.create_s3_client()


class HandlerFactory:
    """Factory for creating a fully wired compression handler."""

    @staticmethod
    def create_handler(
        s3_client: Optional[S3ClientProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
        environ: Optional[Mapping[str, str]] = None,
        sleep: Callable[[float], None] = time.sleep,
        config: Optional[CompressionConfig] = None,
    ):
        """
        Create a handler with fresh services around the given client.

        Resize, encoding and upload settings come from ``config``, read from
        ``environ`` when not given.
        """
        # Imported here, handler depends on this module
        from ..handler import CompressionHandler

        if s3_client is None:
            s3_client = S3ClientFactory.default_s3_client()

        if logger is None:
            logger = LoggerFactory.create_logger()

        if config is None:
            config = CompressionConfig.from_env(environ)

        storage = S3StorageService(
            s3_client,
            logger,
            sleep=sleep,
            processed_by=config.processed_by,
            cache_control=config.cache_control,
        )
        processor = ImageProcessorService(
            logger,
            max_dimension=config.max_dimension,
            quality=config.quality,
            output_format=config.output_format,
        )

        return CompressionHandler(storage, processor, logger, environ=environ, config=config)
