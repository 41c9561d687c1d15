"""
Exception hierarchy for the upload gateway.

Every failure a request can hit maps onto one of four kinds:
configuration, validation, upload (storage side) and handler.
"""
from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base exception for gateway errors."""

    status_code = 500
    kind = "error"

    def __init__(
        self,
        message: str,
        original_exception: Optional[BaseException] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception
        self.metadata = metadata or {}

    def __str__(self) -> str:
        base = self.message
        if self.metadata:
            base += f" | Metadata: {self.metadata}"
        if self.original_exception:
            base += f" | Original: {str(self.original_exception)}"
        return base


class ConfigurationError(GatewayError):
    """Raised at startup when storage credentials or bucket are missing."""

    kind = "configuration_error"


class ValidationError(GatewayError):
    """Raised when the inbound multipart body is unusable."""

    status_code = 400
    kind = "validation_error"


class FileTooLargeError(ValidationError):
    """Raised when the file part exceeds the configured size limit."""

    status_code = 413

    def __init__(self, limit: int):
        super().__init__(
            f"File exceeds maximum size of {limit} bytes",
            metadata={"limit": limit},
        )


class UploadError(GatewayError):
    """Raised when writing the object to storage fails."""

    status_code = 502
    kind = "upload_error"

    def __init__(
        self,
        message: str,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        original_exception: Optional[BaseException] = None,
    ):
        metadata = {}
        if bucket:
            metadata["bucket"] = bucket
        if key:
            metadata["key"] = key
        super().__init__(message, original_exception, metadata)


class UploadAbortedError(UploadError):
    """Raised when the client goes away before the body is complete."""


class HandlerError(GatewayError):
    """Raised when the downstream handler fails after a stored upload."""

    kind = "handler_error"
