"""
Tests for the streaming S3 object writer.
"""
import pytest

from upload_gateway.exceptions import UploadError
from upload_gateway.storage.s3_stream import ObjectUpload, object_location

from tests.fakes import TEST_BUCKET, FakeS3Client


class TestObjectUpload:
    """Tests for ObjectUpload."""

    @pytest.mark.asyncio
    async def test_small_object_uses_single_put(self):
        s3 = FakeS3Client()
        upload = ObjectUpload(s3, TEST_BUCKET, "k", "text/plain", part_size=16)

        await upload.write(b"hello ")
        await upload.write(b"world")
        stored = await upload.complete()

        assert s3.calls == ["put_object"]
        assert s3.get_body("k") == b"hello world"
        assert s3.objects[(TEST_BUCKET, "k")]["content_type"] == "text/plain"
        assert stored.size == 11
        assert stored.etag and '"' not in stored.etag

    @pytest.mark.asyncio
    async def test_nothing_sent_before_complete_for_small_object(self):
        s3 = FakeS3Client()
        upload = ObjectUpload(s3, TEST_BUCKET, "k", part_size=16)

        await upload.write(b"abc")

        assert s3.calls == []

    @pytest.mark.asyncio
    async def test_large_object_uses_multipart_in_order(self):
        s3 = FakeS3Client()
        upload = ObjectUpload(s3, TEST_BUCKET, "k", part_size=4)

        for chunk in (b"0123", b"45", b"6789a"):
            await upload.write(chunk)
        stored = await upload.complete()

        assert s3.calls == [
            "create_multipart_upload",
            "upload_part",
            "upload_part",
            "upload_part",
            "complete_multipart_upload",
        ]
        assert s3.get_body("k") == b"0123456789a"
        assert stored.size == 11
        assert stored.version_id == "v1"
        assert upload.parts_uploaded == 3

    @pytest.mark.asyncio
    async def test_empty_object(self):
        s3 = FakeS3Client()
        upload = ObjectUpload(s3, TEST_BUCKET, "empty", part_size=4)

        stored = await upload.complete()

        assert stored.size == 0
        assert s3.get_body("empty") == b""

    @pytest.mark.asyncio
    async def test_part_failure_raises_upload_error(self):
        s3 = FakeS3Client(fail_on={"upload_part": 2})
        upload = ObjectUpload(s3, TEST_BUCKET, "k", part_size=4)

        await upload.write(b"0123")
        with pytest.raises(UploadError) as exc_info:
            await upload.write(b"4567")

        assert "AccessDenied" in exc_info.value.message
        assert exc_info.value.metadata == {"bucket": TEST_BUCKET, "key": "k"}

    @pytest.mark.asyncio
    async def test_abort_releases_multipart_state(self):
        s3 = FakeS3Client()
        upload = ObjectUpload(s3, TEST_BUCKET, "k", part_size=4)

        await upload.write(b"01234567")
        await upload.abort()

        assert s3.aborted == [upload.upload_id]
        assert s3.multipart == {}
        assert s3.objects == {}

    @pytest.mark.asyncio
    async def test_abort_without_multipart_is_local(self):
        s3 = FakeS3Client()
        upload = ObjectUpload(s3, TEST_BUCKET, "k", part_size=16)

        await upload.write(b"abc")
        await upload.abort()

        assert s3.calls == []

    @pytest.mark.asyncio
    async def test_abort_failure_is_logged_not_raised(self):
        s3 = FakeS3Client(fail_on={"abort_multipart_upload": 1})
        upload = ObjectUpload(s3, TEST_BUCKET, "k", part_size=4)

        await upload.write(b"0123")
        await upload.abort()

        assert "abort_multipart_upload" in s3.calls

    @pytest.mark.asyncio
    async def test_write_after_complete_rejected(self):
        upload = ObjectUpload(FakeS3Client(), TEST_BUCKET, "k", part_size=4)
        await upload.complete()

        with pytest.raises(UploadError):
            await upload.write(b"x")

    def test_invalid_part_size(self):
        with pytest.raises(ValueError):
            ObjectUpload(FakeS3Client(), TEST_BUCKET, "k", part_size=0)


class TestObjectLocation:
    """Tests for object_location."""

    def test_aws_virtual_hosted_url(self):
        url = object_location("media", "uploads/1-2-a b.txt", "eu-west-1")

        assert url == "https://media.s3.eu-west-1.amazonaws.com/uploads/1-2-a%20b.txt"

    def test_custom_endpoint_path_style(self):
        url = object_location("media", "uploads/x.txt", "us-east-1", "http://minio:9000/")

        assert url == "http://minio:9000/media/uploads/x.txt"
