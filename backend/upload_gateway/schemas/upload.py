"""
Pydantic schemas for upload endpoints.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class FilePart(BaseModel):
    """Headers of the file part found in a multipart body."""
    model_config = ConfigDict(frozen=True)

    fieldname: str
    originalname: str
    mimetype: str = "application/octet-stream"
    encoding: str = "7bit"


class UploadResult(BaseModel):
    """Metadata of a stored object, returned as the `file` field of the response."""
    model_config = ConfigDict(frozen=True)

    fieldname: str = Field("file", description="Form field the file was sent under")
    originalname: str = Field(..., description="Filename declared by the client")
    encoding: str = Field("7bit", description="Part transfer encoding")
    mimetype: str = Field(..., description="Declared content type")
    size: int = Field(..., ge=0, description="Stored size in bytes")
    bucket: str
    key: str = Field(..., description="Object key in storage bucket")
    location: str = Field(..., description="Object URL")
    etag: Optional[str] = Field(None, description="Storage-assigned integrity tag")
    version_id: Optional[str] = None


class UploadResponse(BaseModel):
    """Response schema for a successful upload."""
    file: UploadResult

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "file": {
                    "fieldname": "file",
                    "originalname": "report.pdf",
                    "encoding": "7bit",
                    "mimetype": "application/pdf",
                    "size": 10,
                    "bucket": "media",
                    "key": "uploads/1760868000000-482910337-report.pdf",
                    "location": "https://media.s3.us-east-1.amazonaws.com/uploads/1760868000000-482910337-report.pdf",
                    "etag": "9e107d9d372bb6826bd81d3542a419d6",
                    "version_id": None
                }
            }
        }
    )


class ErrorResponse(BaseModel):
    """Error body for failed uploads."""
    error: str = Field(..., description="Failure kind")
    message: str
    file: Optional[UploadResult] = Field(
        None, description="Present when the upload succeeded but the handler failed"
    )
