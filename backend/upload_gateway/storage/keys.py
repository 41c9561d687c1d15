"""
Object key generation.

Keys look like ``<namespace>/<timestamp_ms>-<nonce>-<filename>``. They are
built from wall-clock time and a random draw only, so concurrent uploads
need no coordination. Two uploads collide only if they land in the same
millisecond and draw the same nonce out of 10^9 + 1 values.
"""
import random
import re
import time
import unicodedata
from dataclasses import dataclass
from typing import Optional

NONCE_MAX = 10 ** 9
FALLBACK_FILENAME = "file"

_UNSAFE_CHARS = re.compile(r"[/\\\x00-\x1f\x7f]")

_random = random.SystemRandom()


@dataclass(frozen=True)
class ObjectKey:
    """Destination identifier of one uploaded object."""

    namespace: str
    timestamp_ms: int
    nonce: int
    filename: str

    @property
    def value(self) -> str:
        name = f"{self.timestamp_ms}-{self.nonce}-{self.filename}"
        if not self.namespace:
            return name
        return f"{self.namespace}/{name}"

    def __str__(self) -> str:
        return self.value


def sanitize_filename(filename: Optional[str]) -> str:
    """
    Make a client-supplied filename safe to embed in an object key.

    Only the last path component is kept. Remaining separators and control
    characters become underscores and leading dots are dropped, so the
    name can never climb out of the namespace.

    Args:
        filename: Original filename as sent by the client

    Returns:
        Sanitized filename, never empty
    """
    if not filename:
        return FALLBACK_FILENAME

    filename = unicodedata.normalize("NFC", filename)
    basename = re.split(r"[/\\]", filename)[-1]
    cleaned = _UNSAFE_CHARS.sub("_", basename).strip().lstrip(".")

    # Unicode control/format characters outside the ASCII range
    cleaned = "".join(
        "_" if unicodedata.category(ch) in ("Cc", "Cf") else ch
        for ch in cleaned
    )
    return cleaned or FALLBACK_FILENAME


def normalize_namespace(namespace: Optional[str]) -> str:
    """Strip surrounding slashes and collapse empty segments."""
    if not namespace:
        return ""
    return "/".join(part for part in namespace.split("/") if part)


def generate_object_key(
    namespace: str,
    original_filename: Optional[str],
    now_ms: Optional[int] = None,
) -> ObjectKey:
    """
    Generate a collision-resistant object key.

    Args:
        namespace: Key prefix, e.g. "uploads"
        original_filename: Filename declared by the client
        now_ms: Override for the timestamp (milliseconds since epoch)

    Returns:
        ObjectKey for the upload
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000

    return ObjectKey(
        namespace=normalize_namespace(namespace),
        timestamp_ms=now_ms,
        nonce=_random.randint(0, NONCE_MAX),
        filename=sanitize_filename(original_filename),
    )
