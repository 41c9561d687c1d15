"""
Test configuration and fixtures.
Storage is an in-memory fake of the boto3 S3 client; no network is used.
"""
import os

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"

import pytest
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport

from upload_gateway.config import Settings
from upload_gateway.storage.credentials import StorageCredentials

from tests.fakes import TEST_BUCKET, FakeS3Client


@pytest.fixture
def settings() -> Settings:
    """Settings with test credentials, ignoring any .env file."""
    return Settings(
        _env_file=None,
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="secret",
        aws_region="us-east-1",
        aws_s3_bucket=TEST_BUCKET,
        aws_s3_endpoint=None,
        upload_key_prefix="uploads",
        upload_max_file_size_mb=None,
    )


@pytest.fixture
def credentials() -> StorageCredentials:
    return StorageCredentials(
        access_key_id="AKIATEST",
        secret_access_key="secret",
        bucket=TEST_BUCKET,
    )


@pytest.fixture
def s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def app(settings: Settings, s3: FakeS3Client):
    from upload_gateway.main import create_app

    return create_app(settings, s3_client=s3)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
