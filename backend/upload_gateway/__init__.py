"""
S3 upload gateway.

Streams a single multipart file upload straight into an S3-compatible bucket.
"""
__version__ = "0.1.0"
