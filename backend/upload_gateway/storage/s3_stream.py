"""
Streaming writer for S3 objects of unknown size.

Bytes are pushed in as they arrive and cut into multipart-upload parts.
The multipart upload is only opened once a full part is buffered; smaller
objects are written with a single PutObject when the stream completes.
Memory stays bounded by one part plus the chunk being written.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from botocore.exceptions import BotoCoreError, ClientError

from upload_gateway.exceptions import UploadError

logger = logging.getLogger(__name__)

DEFAULT_PART_SIZE = 5 * 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class StoredObject:
    """What the backend reports once an object is complete."""

    size: int
    etag: Optional[str]
    version_id: Optional[str] = None


def object_location(
    bucket: str,
    key: str,
    region: str,
    endpoint_url: Optional[str] = None,
) -> str:
    """
    Build the URL an object is reachable at (subject to bucket policy).

    Args:
        bucket: Bucket name
        key: Object key
        region: AWS region
        endpoint_url: Custom endpoint for S3-compatible storage (path-style)

    Returns:
        Object URL
    """
    quoted_key = quote(key, safe="/")
    if endpoint_url:
        return f"{endpoint_url.rstrip('/')}/{bucket}/{quoted_key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{quoted_key}"


def _clean_etag(etag: Optional[str]) -> Optional[str]:
    if etag is None:
        return None
    return etag.strip('"')


class ObjectUpload:
    """
    One in-flight object write.

    Usage:
        upload = ObjectUpload(client, bucket, key, content_type)
        await upload.write(chunk)      # repeatedly, in order
        stored = await upload.complete()
        # or, on any failure:
        await upload.abort()

    boto3 is blocking, so every call runs in a worker thread and the event
    loop stays free for other requests.
    """

    def __init__(
        self,
        client: Any,
        bucket: str,
        key: str,
        content_type: Optional[str] = None,
        part_size: int = DEFAULT_PART_SIZE,
    ):
        if part_size <= 0:
            raise ValueError("part_size must be positive")

        self._client = client
        self.bucket = bucket
        self.key = key
        self.content_type = content_type or DEFAULT_CONTENT_TYPE
        self._part_size = part_size

        self._buffer = bytearray()
        self._parts: List[Dict[str, Any]] = []
        self._upload_id: Optional[str] = None
        self._finished = False
        self.size = 0

    @property
    def upload_id(self) -> Optional[str]:
        return self._upload_id

    @property
    def parts_uploaded(self) -> int:
        return len(self._parts)

    async def write(self, data: bytes) -> None:
        """Append bytes to the object, flushing full parts to storage."""
        if self._finished:
            raise UploadError("Write after upload finished", self.bucket, self.key)
        if not data:
            return

        self._buffer += data
        self.size += len(data)

        while len(self._buffer) >= self._part_size:
            part = bytes(self._buffer[:self._part_size])
            del self._buffer[:self._part_size]
            await self._upload_part(part)

    async def complete(self) -> StoredObject:
        """
        Finish the object.

        Returns:
            StoredObject with size, ETag and version (if versioning is on)

        Raises:
            UploadError: If the backend rejects the final write
        """
        if self._finished:
            raise UploadError("Upload already finished", self.bucket, self.key)

        if self._upload_id is None:
            response = await self._call(
                "put_object",
                Bucket=self.bucket,
                Key=self.key,
                Body=bytes(self._buffer),
                ContentType=self.content_type,
            )
        else:
            if self._buffer:
                await self._upload_part(bytes(self._buffer))
            response = await self._call(
                "complete_multipart_upload",
                Bucket=self.bucket,
                Key=self.key,
                UploadId=self._upload_id,
                MultipartUpload={"Parts": self._parts},
            )

        self._buffer.clear()
        self._finished = True
        logger.debug(f"Completed object {self.key} ({self.size} bytes, {len(self._parts)} parts)")

        return StoredObject(
            size=self.size,
            etag=_clean_etag(response.get("ETag")),
            version_id=response.get("VersionId"),
        )

    async def abort(self) -> None:
        """
        Drop everything written so far.

        Releases the storage-side multipart state when one was opened.
        Failures here are logged, not raised: abort only runs while another
        error is already propagating.
        """
        if self._finished:
            return
        self._finished = True
        self._buffer.clear()

        if self._upload_id is None:
            return

        try:
            await self._call(
                "abort_multipart_upload",
                Bucket=self.bucket,
                Key=self.key,
                UploadId=self._upload_id,
            )
            logger.info(f"Aborted multipart upload for {self.key}")
        except UploadError as e:
            logger.error(f"Failed to abort multipart upload for {self.key}: {e}")

    async def _upload_part(self, data: bytes) -> None:
        if self._upload_id is None:
            response = await self._call(
                "create_multipart_upload",
                Bucket=self.bucket,
                Key=self.key,
                ContentType=self.content_type,
            )
            upload_id = response.get("UploadId")
            if not upload_id:
                raise UploadError("Storage returned no UploadId", self.bucket, self.key)
            self._upload_id = upload_id

        part_number = len(self._parts) + 1
        response = await self._call(
            "upload_part",
            Bucket=self.bucket,
            Key=self.key,
            UploadId=self._upload_id,
            PartNumber=part_number,
            Body=data,
        )
        self._parts.append({"ETag": response.get("ETag"), "PartNumber": part_number})

    async def _call(self, operation: str, **params) -> Dict[str, Any]:
        method = getattr(self._client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise UploadError(
                f"S3 {operation} failed: {code}",
                self.bucket,
                self.key,
                original_exception=e,
            ) from e
        except BotoCoreError as e:
            raise UploadError(
                f"S3 {operation} failed: {e}",
                self.bucket,
                self.key,
                original_exception=e,
            ) from e
