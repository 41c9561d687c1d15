"""
FastAPI application entry point.

Everything the upload pipeline needs is built explicitly in create_app():
settings -> credentials -> S3 client -> adapter -> pipeline. Credential
resolution happens here, so a misconfigured process fails before it
accepts a single request.

Run with:
    python -m upload_gateway.main
or
    uvicorn --factory upload_gateway.main:create_app
"""
import logging
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from upload_gateway import __version__
from upload_gateway.api.router import api_router
from upload_gateway.config import Settings, settings as default_settings
from upload_gateway.exceptions import ConfigurationError
from upload_gateway.middleware.metrics_middleware import MetricsMiddleware
from upload_gateway.services.pipeline import UploadHandler, UploadPipeline, respond_with_file
from upload_gateway.services.streaming_upload import StreamingUploadAdapter
from upload_gateway.storage.credentials import build_s3_client, resolve_credentials
from upload_gateway.utils.logging import configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    s3_client: Optional[Any] = None,
    upload_handler: Optional[UploadHandler] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Application settings (defaults to the environment)
        s3_client: Pre-built S3 client; built from the credentials if omitted
        upload_handler: Downstream handler run after a successful upload

    Returns:
        Configured FastAPI app

    Raises:
        ConfigurationError: If storage credentials or bucket are missing
    """
    settings = settings or default_settings
    configure_logging('upload-gateway', settings.log_level)

    credentials = resolve_credentials(settings)
    if s3_client is None:
        s3_client = build_s3_client(credentials)

    adapter = StreamingUploadAdapter(
        s3_client,
        credentials,
        namespace=settings.upload_key_prefix,
        part_size=settings.upload_part_size,
        queue_depth=settings.upload_queue_depth,
        max_file_size=settings.upload_max_file_size,
    )

    app = FastAPI(
        title="S3 Upload Gateway",
        description="Streams multipart file uploads into S3-compatible storage",
        version=__version__,
    )
    app.state.settings = settings
    app.state.credentials = credentials
    app.state.pipeline = UploadPipeline(adapter)
    app.state.upload_handler = upload_handler or respond_with_file

    app.add_middleware(MetricsMiddleware)
    app.include_router(api_router)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        """Greeting endpoint."""
        return "Hello World!"

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    logger.info(
        f"Upload gateway ready: bucket={credentials.bucket}, "
        f"region={credentials.region}, prefix={settings.upload_key_prefix}"
    )
    return app


def main() -> None:
    try:
        app = create_app()
    except ConfigurationError as e:
        logger.error(f"Refusing to start: {e}")
        raise
    uvicorn.run(app, host=default_settings.host, port=default_settings.port, log_config=None)


if __name__ == "__main__":
    main()
