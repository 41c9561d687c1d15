"""
Tests for credential resolution.
"""
import pytest

from upload_gateway.config import Settings
from upload_gateway.exceptions import ConfigurationError
from upload_gateway.storage.credentials import (
    StorageCredentials,
    build_s3_client,
    resolve_credentials,
)


def make_settings(**overrides) -> Settings:
    values = {
        "aws_access_key_id": "AKIATEST",
        "aws_secret_access_key": "secret",
        "aws_s3_bucket": "bucket",
        "aws_region": "us-east-1",
        "aws_s3_endpoint": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestResolveCredentials:
    """Tests for resolve_credentials."""

    def test_resolves_complete_settings(self):
        creds = resolve_credentials(make_settings(aws_region="eu-west-1"))

        assert creds.access_key_id == "AKIATEST"
        assert creds.secret_access_key == "secret"
        assert creds.bucket == "bucket"
        assert creds.region == "eu-west-1"

    def test_region_defaults(self):
        creds = resolve_credentials(make_settings(aws_region=""))

        assert creds.region == "us-east-1"

    @pytest.mark.parametrize("field", ["aws_access_key_id", "aws_secret_access_key"])
    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_secret_material_fails(self, field, value):
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_credentials(make_settings(**{field: value}))

        assert field.upper() in str(exc_info.value)

    def test_missing_bucket_fails(self):
        with pytest.raises(ConfigurationError):
            resolve_credentials(make_settings(aws_s3_bucket=""))

    def test_endpoint_passed_through(self):
        creds = resolve_credentials(make_settings(aws_s3_endpoint="http://minio:9000"))

        assert creds.endpoint_url == "http://minio:9000"


class TestStorageCredentials:
    """Tests for the StorageCredentials value object."""

    def test_direct_construction_validates(self):
        with pytest.raises(ConfigurationError):
            StorageCredentials(access_key_id="", secret_access_key="s", bucket="b")

    def test_immutable(self):
        creds = StorageCredentials(access_key_id="a", secret_access_key="s", bucket="b")

        with pytest.raises(AttributeError):
            creds.bucket = "other"

    def test_repr_hides_secret(self):
        creds = StorageCredentials(access_key_id="a", secret_access_key="topsecret", bucket="b")

        assert "topsecret" not in repr(creds)


def test_build_s3_client_uses_region():
    creds = StorageCredentials(
        access_key_id="a",
        secret_access_key="s",
        bucket="b",
        region="eu-central-1",
    )

    client = build_s3_client(creds)

    assert client.meta.region_name == "eu-central-1"


def test_build_s3_client_with_custom_endpoint():
    creds = StorageCredentials(
        access_key_id="a",
        secret_access_key="s",
        bucket="b",
        endpoint_url="http://localhost:9000",
    )

    client = build_s3_client(creds)

    assert client.meta.endpoint_url == "http://localhost:9000"
