"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

MEGABYTE = 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 3000

    # S3 / S3-compatible storage
    # Access key and secret are required; startup fails without them
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    aws_s3_bucket: Optional[str] = None
    aws_s3_endpoint: Optional[str] = None  # e.g. http://localhost:9000 for MinIO

    # Upload pipeline
    upload_key_prefix: str = "uploads"
    upload_part_size_mb: int = Field(5, ge=5)  # S3 minimum part size is 5 MiB
    upload_queue_depth: int = Field(8, ge=1)
    upload_max_file_size_mb: Optional[int] = Field(None, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def upload_part_size(self) -> int:
        return self.upload_part_size_mb * MEGABYTE

    @property
    def upload_max_file_size(self) -> Optional[int]:
        if self.upload_max_file_size_mb is None:
            return None
        return self.upload_max_file_size_mb * MEGABYTE


# Global settings instance
settings = Settings()
