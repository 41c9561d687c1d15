"""
Storage credential resolution.

Credentials are resolved once, when the application is built. A process
with missing credentials must refuse to start rather than fail on the
first upload.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config

from upload_gateway.config import Settings
from upload_gateway.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"


@dataclass(frozen=True)
class StorageCredentials:
    """Validated, immutable storage configuration."""

    access_key_id: str
    secret_access_key: str
    bucket: str
    region: str = DEFAULT_REGION
    endpoint_url: Optional[str] = None

    def __post_init__(self):
        if not self.access_key_id or not self.secret_access_key:
            raise ConfigurationError("AWS credentials are required")
        if not self.bucket:
            raise ConfigurationError("AWS_S3_BUCKET is required")

    def __repr__(self) -> str:
        # Never print the secret
        return (
            f"StorageCredentials(access_key_id={self.access_key_id!r}, "
            f"bucket={self.bucket!r}, region={self.region!r}, "
            f"endpoint_url={self.endpoint_url!r})"
        )


def resolve_credentials(settings: Settings) -> StorageCredentials:
    """
    Build StorageCredentials from application settings.

    Args:
        settings: Loaded application settings

    Returns:
        Validated StorageCredentials

    Raises:
        ConfigurationError: If access key, secret key or bucket is missing
    """
    missing = [
        name for name, value in (
            ("AWS_ACCESS_KEY_ID", settings.aws_access_key_id),
            ("AWS_SECRET_ACCESS_KEY", settings.aws_secret_access_key),
            ("AWS_S3_BUCKET", settings.aws_s3_bucket),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"Missing required storage configuration: {', '.join(missing)}",
            metadata={"missing": missing},
        )

    return StorageCredentials(
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
        bucket=settings.aws_s3_bucket,
        region=settings.aws_region or DEFAULT_REGION,
        endpoint_url=settings.aws_s3_endpoint or None,
    )


def build_s3_client(credentials: StorageCredentials):
    """
    Create a boto3 S3 client from resolved credentials.

    The client is shared by every in-flight upload; boto3 clients are
    thread-safe, which matters because calls run in worker threads.
    """
    s3_options = {}
    if credentials.endpoint_url:
        # S3-compatible backends (MinIO, R2) want path-style addressing
        s3_options["addressing_style"] = "path"

    client = boto3.client(
        "s3",
        endpoint_url=credentials.endpoint_url,
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        region_name=credentials.region,
        config=Config(signature_version="s3v4", s3=s3_options or None),
    )
    logger.info(f"S3 client initialized for bucket: {credentials.bucket}")
    return client
