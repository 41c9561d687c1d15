#!/usr/bin/env python3
"""
Script to abort stale multipart uploads left in the bucket.

The gateway aborts its multipart upload whenever a request fails, but a
process that is killed mid-upload never gets the chance. Those uploads
keep their parts (and their storage cost) until someone aborts them.

Usage:
    # Abort uploads under the configured prefix started over 24 hours ago:
    python abort_stale_uploads.py

    # Non-interactive mode (skip confirmation):
    python abort_stale_uploads.py --yes --older-than-hours 6

    # Only list what would be aborted:
    python abort_stale_uploads.py --dry-run
"""
import argparse
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from botocore.exceptions import ClientError

from upload_gateway.config import settings
from upload_gateway.exceptions import ConfigurationError
from upload_gateway.storage.credentials import build_s3_client, resolve_credentials
from upload_gateway.storage.keys import normalize_namespace


def list_stale_uploads(
    client,
    bucket: str,
    prefix: str,
    older_than: timedelta,
    now: Optional[datetime] = None,
) -> List[dict]:
    """List in-progress multipart uploads under prefix started before now - older_than."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - older_than
    stale = []
    key_marker = None
    upload_id_marker = None

    print(f"Listing multipart uploads in bucket '{bucket}' under '{prefix}'...")

    while True:
        kwargs = {'Bucket': bucket, 'Prefix': prefix}
        if key_marker:
            kwargs['KeyMarker'] = key_marker
            kwargs['UploadIdMarker'] = upload_id_marker

        response = client.list_multipart_uploads(**kwargs)

        for upload in response.get('Uploads', []):
            if upload['Initiated'] < cutoff:
                stale.append(upload)

        if not response.get('IsTruncated'):
            break

        key_marker = response.get('NextKeyMarker')
        upload_id_marker = response.get('NextUploadIdMarker')

    return stale


def abort_uploads(client, bucket: str, uploads: List[dict]) -> tuple[int, int]:
    """
    Abort the given multipart uploads.

    Returns:
        Tuple of (aborted_count, failed_count)
    """
    aborted = 0
    failed = 0

    for upload in uploads:
        try:
            client.abort_multipart_upload(
                Bucket=bucket,
                Key=upload['Key'],
                UploadId=upload['UploadId'],
            )
            aborted += 1
        except ClientError as e:
            print(f"  ERROR: {upload['Key']}: {e}")
            failed += 1

    print(f"\n{'='*50}")
    print("SUMMARY:")
    print(f"  Stale uploads: {len(uploads)}")
    print(f"  Aborted: {aborted}")
    print(f"  Failed: {failed}")
    print(f"{'='*50}")
    return aborted, failed


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Abort stale multipart uploads')
    parser.add_argument('--yes', '-y', action='store_true',
                        help='Skip confirmation prompt (non-interactive mode)')
    parser.add_argument('--dry-run', action='store_true',
                        help='List stale uploads without aborting them')
    parser.add_argument('--older-than-hours', type=float, default=24.0,
                        help='Minimum age of an upload to count as stale (default: 24)')
    parser.add_argument('--prefix', default=None,
                        help='Key prefix to scan (default: UPLOAD_KEY_PREFIX)')
    args = parser.parse_args(argv)

    try:
        credentials = resolve_credentials(settings)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        return 1

    prefix = normalize_namespace(args.prefix if args.prefix is not None else settings.upload_key_prefix)
    if prefix:
        prefix += "/"

    client = build_s3_client(credentials)
    uploads = list_stale_uploads(
        client,
        credentials.bucket,
        prefix,
        timedelta(hours=args.older_than_hours),
    )

    if not uploads:
        print("\nNo stale uploads found.")
        return 0

    for upload in uploads[:5]:
        print(f"  - {upload['Key']} (initiated {upload['Initiated']:%Y-%m-%d %H:%M})")
    if len(uploads) > 5:
        print(f"  ... and {len(uploads) - 5} more uploads")

    if args.dry_run:
        return 0

    if not args.yes:
        confirm = input(f"Abort {len(uploads)} uploads? (yes/no): ")
        if confirm.lower() != 'yes':
            print("Aborted.")
            return 0

    _, failed = abort_uploads(client, credentials.bucket, uploads)
    return 1 if failed else 0


if __name__ == '__main__':
    sys.exit(main())
