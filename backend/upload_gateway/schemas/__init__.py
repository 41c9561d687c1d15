"""
Pydantic schemas for API request/response validation.
"""
from upload_gateway.schemas.upload import (
    ErrorResponse,
    FilePart,
    UploadResponse,
    UploadResult,
)

__all__ = [
    "ErrorResponse",
    "FilePart",
    "UploadResponse",
    "UploadResult",
]
