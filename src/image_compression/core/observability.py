"""Per-invocation log context and the labelled logger used across the pipeline."""

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from .logging_config import setup_logger


@dataclass(frozen=True)
class LogContext:
    """
    Fields repeated on every line of one invocation.

    ``correlation_id`` is the Lambda request id, ``operation`` the pipeline
    stage currently running.
    """

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, metadata=dict(self.metadata))

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})


class StructuredLogger:
    """Leveled logger that prefixes every line with a label and its context.

    Lines read ``[label] [operation] [correlation_id] message (key=value, ...)``.

    Args:
        label: Contextual label shown on every line, e.g. ``ImageCompression``
        name: Underlying ``logging`` logger name
        level: Optional level override, otherwise ``LOG_LEVEL`` applies
    """

    def __init__(
        self,
        label: str = "ImageCompression",
        name: str = "image-compression",
        level: Optional[str] = None,
    ):
        self.label = label
        self._logger = setup_logger(name, level=level)

    def format_message(
        self, message: str, context: Optional[LogContext] = None, **kwargs: Any
    ) -> str:
        parts = [f"[{self.label}]"]
        fields = dict(kwargs)

        if context:
            if context.operation:
                parts.append(f"[{context.operation}]")
            parts.append(f"[{context.correlation_id}]")
            fields = {**context.metadata, **kwargs}

        parts.append(message)
        if fields:
            parts.append("(" + ", ".join(f"{k}={v}" for k, v in fields.items()) + ")")

        return " ".join(parts)

    def _log(
        self,
        level: int,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: Any = None,
        **kwargs: Any,
    ) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(
                level, self.format_message(message, context, **kwargs), exc_info=exc_info
            )

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.INFO, message, context, **kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.WARNING, message, context, **kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs):
        self._log(logging.ERROR, message, context, **kwargs)


class Stopwatch:
    """Elapsed wall time of one invocation."""

    def __init__(self):
        self.start_time = time.monotonic()

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.start_time) * 1000)
