"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- bucket
- key
- size
- duration_ms

Usage:
    from upload_gateway.utils.logging import configure_logging, log_upload_completed

    configure_logging('upload-gateway', 'INFO')
    log_upload_completed(logger, bucket='media', key='uploads/1-2-a.txt', size=10)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        # Console handler (for docker logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    bucket: Optional[str] = None,
    key: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        bucket: Optional bucket name
        key: Optional object key
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if bucket:
        extra["bucket"] = bucket
    if key:
        extra["key"] = key
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


def log_upload_started(
    logger: logging.Logger,
    bucket: str,
    key: str,
    originalname: Optional[str] = None,
    mimetype: Optional[str] = None,
    **kwargs
):
    """Log the start of an object upload."""
    extra = _build_log_extra(
        event="upload_started",
        bucket=bucket,
        key=key,
        **kwargs
    )
    if originalname:
        extra["originalname"] = originalname
    if mimetype:
        extra["mimetype"] = mimetype

    logger.info(f"Upload started: {key}", extra=extra)


def log_upload_completed(
    logger: logging.Logger,
    bucket: str,
    key: str,
    size: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log upload completion event.

    Args:
        logger: Logger instance
        bucket: Destination bucket (required)
        key: Object key (required)
        size: Stored size in bytes (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_completed",
        bucket=bucket,
        key=key,
        duration_ms=duration_ms,
        size=size,
        **kwargs
    )

    logger.info(f"Upload completed: {key} ({size} bytes)", extra=extra)


def log_upload_failed(
    logger: logging.Logger,
    error_kind: str,
    error: Any,
    bucket: Optional[str] = None,
    key: Optional[str] = None,
    duration_ms: Optional[float] = None,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log upload pipeline failure event.

    Validation failures are client mistakes and logged as warnings;
    everything else is logged as an error.

    Args:
        logger: Logger instance
        error_kind: Failure kind (validation_error, upload_error, handler_error)
        error: Error message or exception
        bucket: Optional bucket name
        key: Optional object key
        duration_ms: Optional duration in milliseconds
        include_traceback: Whether to attach the current exception's stack trace
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upload_failed",
        bucket=bucket,
        key=key,
        duration_ms=duration_ms,
        error_kind=error_kind,
        error=str(error),
        **kwargs
    )

    message = f"Upload failed ({error_kind}): {error}"
    level = logging.WARNING if error_kind == "validation_error" else logging.ERROR

    if include_traceback and sys.exc_info()[0] is not None:
        logger.log(level, message, extra=extra, exc_info=True)
    else:
        logger.log(level, message, extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
