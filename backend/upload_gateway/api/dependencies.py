"""
FastAPI dependencies.

The pipeline and handler are built once in create_app() and kept on
app.state; these dependencies hand them to the routes.
"""
from fastapi import Request

from upload_gateway.services.pipeline import UploadHandler, UploadPipeline


def get_pipeline(request: Request) -> UploadPipeline:
    return request.app.state.pipeline


def get_upload_handler(request: Request) -> UploadHandler:
    return request.app.state.upload_handler
