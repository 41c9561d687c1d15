"""
Upload services.
"""
from upload_gateway.services.pipeline import (
    ErrorKind,
    Failure,
    PipelineOutcome,
    Success,
    UploadPipeline,
    respond_with_file,
)
from upload_gateway.services.streaming_upload import (
    MultipartFileReader,
    StreamingUploadAdapter,
)

__all__ = [
    "ErrorKind",
    "Failure",
    "PipelineOutcome",
    "Success",
    "UploadPipeline",
    "respond_with_file",
    "MultipartFileReader",
    "StreamingUploadAdapter",
]
