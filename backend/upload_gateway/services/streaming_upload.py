"""
Streaming upload adapter.

Bridges an inbound multipart/form-data body to an outbound S3 object write
without holding the whole file in memory.

Flow:
1. A producer task reads the request body chunk by chunk and feeds it to
   python-multipart's incremental parser.
2. File-part events (part headers, then data slices) go into a bounded
   asyncio.Queue.
3. The consumer (the request's own task) generates the object key on the
   part headers and writes each data slice to an ObjectUpload.
4. When the body has been fully parsed and validated, the object is
   completed. Any failure on either side aborts the object write.

The bounded queue is the backpressure: when storage is slow the queue
fills, the producer stops reading, and the body stays in the socket.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, AsyncIterator, List, Optional, Union
from urllib.parse import unquote_to_bytes

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect, Request

from upload_gateway.exceptions import (
    FileTooLargeError,
    GatewayError,
    UploadAbortedError,
    UploadError,
    ValidationError,
)
from upload_gateway.schemas.upload import FilePart, UploadResult
from upload_gateway.storage.credentials import StorageCredentials
from upload_gateway.storage.keys import generate_object_key
from upload_gateway.storage.s3_stream import DEFAULT_PART_SIZE, ObjectUpload, object_location
from upload_gateway.utils.logging import log_upload_started

logger = logging.getLogger(__name__)

FILE_FIELD = "file"
DEFAULT_QUEUE_DEPTH = 8


@dataclass(frozen=True)
class _Failed:
    error: BaseException


_END = object()

_EXTENDED_FILENAME = re.compile(rb"filename\*\s*=\s*([^;]+)", re.IGNORECASE)

_Event = Union[FilePart, bytes]


def _decode(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def _extended_filename(disposition: bytes) -> Optional[str]:
    """
    Read an RFC 5987 `filename*=charset'lang'value` parameter.

    python-multipart drops extended parameters, so a part that only sends
    `filename*` would otherwise look like a plain form field.
    """
    match = _EXTENDED_FILENAME.search(disposition)
    if match is None:
        return None

    value = match.group(1).strip().strip(b'"')
    charset = "utf-8"
    if value.count(b"'") >= 2:
        raw_charset, _, value = value.split(b"'", 2)
        charset = raw_charset.decode("ascii", errors="replace") or charset
    try:
        return unquote_to_bytes(value).decode(charset, errors="replace")
    except LookupError:
        return _decode(unquote_to_bytes(value))


def parse_boundary(content_type: Optional[str]) -> bytes:
    """
    Extract the multipart boundary from a Content-Type header.

    Raises:
        ValidationError: If the body is not multipart/form-data
    """
    if not content_type:
        raise ValidationError("Missing Content-Type header")

    media_type, options = parse_options_header(content_type)
    if media_type.lower() != b"multipart/form-data":
        raise ValidationError(
            "Expected a multipart/form-data body",
            metadata={"content_type": content_type},
        )

    boundary = options.get(b"boundary")
    if not boundary:
        raise ValidationError("Multipart boundary missing from Content-Type")
    return boundary


class MultipartFileReader:
    """
    Incremental multipart parser that extracts exactly one file part.

    Feed it raw body chunks; it returns the file events each chunk
    produced. Non-file fields are skipped. A file part under another field
    name, or a second file part, raises ValidationError as soon as its
    headers are parsed.
    """

    def __init__(
        self,
        boundary: bytes,
        field_name: str = FILE_FIELD,
        max_file_size: Optional[int] = None,
    ):
        self.field_name = field_name
        self.max_file_size = max_file_size

        self._events: List[_Event] = []
        self._header_field = b""
        self._header_value = b""
        self._headers: dict = {}
        self._in_file = False
        self._file_seen = False
        self._file_size = 0
        self._ended = False

        callbacks = {
            "on_part_begin": self._on_part_begin,
            "on_part_data": self._on_part_data,
            "on_part_end": self._on_part_end,
            "on_header_field": self._on_header_field,
            "on_header_value": self._on_header_value,
            "on_header_end": self._on_header_end,
            "on_headers_finished": self._on_headers_finished,
            "on_end": self._on_end,
        }
        self._parser = MultipartParser(boundary, callbacks)

    def feed(self, chunk: bytes) -> List[_Event]:
        """Parse one body chunk and return the file events it produced."""
        if self._ended:
            # Epilogue after the closing boundary
            return []
        self._parser.write(chunk)
        events, self._events = self._events, []
        return events

    def finish(self) -> None:
        """
        Check the body was complete.

        Raises:
            ValidationError: If the closing boundary never arrived
        """
        self._parser.finalize()
        if not self._ended:
            raise ValidationError("Multipart body ended before the closing boundary")

    def _on_part_begin(self) -> None:
        self._headers = {}
        self._in_file = False

    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def _on_headers_finished(self) -> None:
        disposition = self._headers.get(b"content-disposition")
        if disposition is None:
            raise ValidationError("Multipart part is missing Content-Disposition")

        _, options = parse_options_header(disposition)
        if b"filename" in options:
            filename = _decode(options[b"filename"])
        else:
            filename = _extended_filename(disposition)
            if filename is None:
                return  # plain form field

        name = _decode(options.get(b"name", b""))
        if name != self.field_name:
            raise ValidationError(
                f"Unexpected file field '{name}'",
                metadata={"field": name},
            )
        if self._file_seen:
            raise ValidationError(
                f"Only one file may be sent in field '{self.field_name}'",
                metadata={"field": name},
            )

        self._file_seen = True
        self._in_file = True
        self._events.append(FilePart(
            fieldname=name,
            originalname=filename,
            mimetype=_decode(self._headers.get(b"content-type", b"application/octet-stream")),
            encoding=_decode(self._headers.get(b"content-transfer-encoding", b"7bit")),
        ))

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        if not self._in_file or start == end:
            return
        self._file_size += end - start
        if self.max_file_size is not None and self._file_size > self.max_file_size:
            raise FileTooLargeError(self.max_file_size)
        self._events.append(data[start:end])

    def _on_part_end(self) -> None:
        self._in_file = False

    def _on_end(self) -> None:
        self._ended = True


class StreamingUploadAdapter:
    """
    Streams the single `file` part of a request into object storage.

    Built once at startup and shared by all requests; per-request state
    lives in local variables of handle().
    """

    def __init__(
        self,
        client: Any,
        credentials: StorageCredentials,
        namespace: str,
        part_size: int = DEFAULT_PART_SIZE,
        queue_depth: int = DEFAULT_QUEUE_DEPTH,
        max_file_size: Optional[int] = None,
        field_name: str = FILE_FIELD,
    ):
        self._client = client
        self.credentials = credentials
        self.namespace = namespace
        self.part_size = part_size
        self.queue_depth = queue_depth
        self.max_file_size = max_file_size
        self.field_name = field_name

    @property
    def bucket(self) -> str:
        return self.credentials.bucket

    async def handle(self, request: Request) -> UploadResult:
        """
        Parse the request body and store its file.

        Args:
            request: Inbound request with an unread multipart body

        Returns:
            UploadResult of the stored object

        Raises:
            ValidationError: Bad body, missing file or extra file field
            UploadError: Storage failure or client disconnect
        """
        reader = MultipartFileReader(
            parse_boundary(request.headers.get("content-type")),
            field_name=self.field_name,
            max_file_size=self.max_file_size,
        )
        channel: asyncio.Queue = asyncio.Queue(maxsize=self.queue_depth)
        producer = asyncio.create_task(self._produce(request.stream(), reader, channel))

        part: Optional[FilePart] = None
        upload: Optional[ObjectUpload] = None
        try:
            while True:
                item = await channel.get()
                if item is _END:
                    break
                if isinstance(item, _Failed):
                    raise item.error
                if isinstance(item, FilePart):
                    part = item
                    upload = self._open_upload(part)
                else:
                    await upload.write(item)

            if upload is None:
                raise ValidationError(f"No file field named '{self.field_name}' in request")

            stored = await upload.complete()
        except BaseException:
            producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)
            if upload is not None:
                await asyncio.shield(upload.abort())
            raise

        await producer

        return UploadResult(
            fieldname=part.fieldname,
            originalname=part.originalname,
            encoding=part.encoding,
            mimetype=part.mimetype,
            size=stored.size,
            bucket=self.bucket,
            key=upload.key,
            location=object_location(
                self.bucket,
                upload.key,
                self.credentials.region,
                self.credentials.endpoint_url,
            ),
            etag=stored.etag,
            version_id=stored.version_id,
        )

    def _open_upload(self, part: FilePart) -> ObjectUpload:
        key = generate_object_key(self.namespace, part.originalname)
        upload = ObjectUpload(
            self._client,
            self.bucket,
            key.value,
            content_type=part.mimetype,
            part_size=self.part_size,
        )
        log_upload_started(
            logger,
            bucket=self.bucket,
            key=key.value,
            originalname=part.originalname,
            mimetype=part.mimetype,
        )
        return upload

    async def _produce(
        self,
        stream: AsyncIterator[bytes],
        reader: MultipartFileReader,
        channel: asyncio.Queue,
    ) -> None:
        """Read the body into the channel; errors travel through the channel too."""
        try:
            async for chunk in stream:
                for event in reader.feed(chunk):
                    await channel.put(event)
            reader.finish()
        except ClientDisconnect as e:
            await channel.put(_Failed(UploadAbortedError(
                "Client disconnected before the upload completed",
                original_exception=e,
            )))
            return
        except MultipartParseError as e:
            await channel.put(_Failed(ValidationError(
                f"Malformed multipart body: {e}",
                original_exception=e,
            )))
            return
        except GatewayError as e:
            await channel.put(_Failed(e))
            return
        except Exception as e:
            await channel.put(_Failed(UploadError(
                "Failed to read request body",
                original_exception=e,
            )))
            return

        await channel.put(_END)
