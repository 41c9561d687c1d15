"""
Upload pipeline controller.

Runs one request through: stream upload -> downstream handler -> outcome.
Exceptions from the three stages (body parsing, storage, handler) are
folded into a single PipelineOutcome so each request reports exactly one
result.

A handler failure does not delete the stored object; the outcome keeps
the UploadResult so the caller can see the upload itself succeeded.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from starlette.requests import Request

from upload_gateway.exceptions import (
    GatewayError,
    HandlerError,
    UploadError,
    ValidationError,
)
from upload_gateway.schemas.upload import UploadResult
from upload_gateway.services.streaming_upload import StreamingUploadAdapter
from upload_gateway.utils.logging import log_upload_completed, log_upload_failed
from upload_gateway.utils.metrics import (
    upload_bytes_total,
    upload_duration_seconds,
    uploads_total,
)

logger = logging.getLogger(__name__)

UploadHandler = Callable[[UploadResult], Awaitable[Any]]


class ErrorKind(str, Enum):
    """Failure kinds a request can end in."""
    VALIDATION = "validation_error"
    UPLOAD = "upload_error"
    HANDLER = "handler_error"


@dataclass(frozen=True)
class Success:
    result: UploadResult
    response: Any

    ok = True


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    error: GatewayError
    result: Optional[UploadResult] = None  # set only when the handler failed

    ok = False

    @property
    def status_code(self) -> int:
        return self.error.status_code


PipelineOutcome = Union[Success, Failure]


async def respond_with_file(result: UploadResult) -> dict:
    """Default downstream handler: echo the stored file's metadata."""
    return {"file": result.model_dump()}


class UploadPipeline:
    """Sequences the streaming adapter and the downstream handler."""

    def __init__(self, adapter: StreamingUploadAdapter):
        self.adapter = adapter

    async def run(self, request: Request, handler: UploadHandler) -> PipelineOutcome:
        """
        Execute the pipeline for one request.

        Args:
            request: Inbound request with an unread multipart body
            handler: Coroutine called with the UploadResult on success

        Returns:
            Success with the handler's response, or Failure
        """
        start_time = time.perf_counter()

        try:
            result = await self.adapter.handle(request)
        except ValidationError as e:
            return self._failed(ErrorKind.VALIDATION, e, start_time)
        except GatewayError as e:
            return self._failed(ErrorKind.UPLOAD, e, start_time)
        except Exception as e:
            error = UploadError(
                f"Unexpected upload failure: {e}",
                bucket=self.adapter.bucket,
                original_exception=e,
            )
            return self._failed(ErrorKind.UPLOAD, error, start_time, include_traceback=True)

        upload_bytes_total.inc(result.size)

        try:
            response = await handler(result)
        except Exception as e:
            error = e if isinstance(e, HandlerError) else HandlerError(
                f"Upload succeeded, handler failed: {e}",
                original_exception=e,
                metadata={"bucket": result.bucket, "key": result.key},
            )
            return self._failed(ErrorKind.HANDLER, error, start_time, result=result, include_traceback=True)

        duration = time.perf_counter() - start_time
        uploads_total.labels(outcome="success").inc()
        upload_duration_seconds.labels(outcome="success").observe(duration)
        log_upload_completed(
            logger,
            bucket=result.bucket,
            key=result.key,
            size=result.size,
            duration_ms=duration * 1000,
        )
        return Success(result=result, response=response)

    def _failed(
        self,
        kind: ErrorKind,
        error: GatewayError,
        start_time: float,
        result: Optional[UploadResult] = None,
        include_traceback: bool = False,
    ) -> Failure:
        duration = time.perf_counter() - start_time
        uploads_total.labels(outcome=kind.value).inc()
        upload_duration_seconds.labels(outcome=kind.value).observe(duration)
        log_upload_failed(
            logger,
            error_kind=kind.value,
            error=error,
            bucket=result.bucket if result else error.metadata.get("bucket"),
            key=result.key if result else error.metadata.get("key"),
            duration_ms=duration * 1000,
            include_traceback=include_traceback,
        )
        return Failure(kind=kind, error=error, result=result)
