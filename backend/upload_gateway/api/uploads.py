"""
Upload endpoint.

POST /upload takes a multipart/form-data body with exactly one file part
named `file` and streams it into the configured bucket. The body is read
straight from the request stream; FastAPI's form parsing is not used
because it spools the whole file before the route runs.
"""
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from upload_gateway.api.dependencies import get_pipeline, get_upload_handler
from upload_gateway.schemas.upload import ErrorResponse, UploadResponse
from upload_gateway.services.pipeline import Failure, UploadHandler, UploadPipeline

router = APIRouter()


@router.post(
    "/upload",
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"model": UploadResponse, "description": "File stored"},
        400: {"model": ErrorResponse, "description": "Malformed body, missing or extra file"},
        413: {"model": ErrorResponse, "description": "File too large"},
        500: {"model": ErrorResponse, "description": "Upload stored, handler failed"},
        502: {"model": ErrorResponse, "description": "Storage failure"},
    },
)
async def upload_file(
    request: Request,
    pipeline: UploadPipeline = Depends(get_pipeline),
    handler: UploadHandler = Depends(get_upload_handler),
):
    """
    Stream an uploaded file to object storage.

    Returns the stored object's bucket, key, location, size and ETag.
    """
    outcome = await pipeline.run(request, handler)

    if isinstance(outcome, Failure):
        body = ErrorResponse(
            error=outcome.kind.value,
            message=outcome.error.message,
            file=outcome.result,
        )
        return JSONResponse(
            status_code=outcome.status_code,
            content=body.model_dump(exclude_none=True),
        )

    return outcome.response
