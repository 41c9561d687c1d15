"""
Storage module for S3-compatible object storage.

Credentials are resolved once at startup; objects are written with a
streaming multipart writer so the gateway never holds a whole file.
"""
from upload_gateway.storage.credentials import (
    StorageCredentials,
    build_s3_client,
    resolve_credentials,
)
from upload_gateway.storage.keys import ObjectKey, generate_object_key, sanitize_filename
from upload_gateway.storage.s3_stream import ObjectUpload, StoredObject, object_location

__all__ = [
    "StorageCredentials",
    "build_s3_client",
    "resolve_credentials",
    "ObjectKey",
    "generate_object_key",
    "sanitize_filename",
    "ObjectUpload",
    "StoredObject",
    "object_location",
]
