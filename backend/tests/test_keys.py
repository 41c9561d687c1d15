"""
Tests for object key generation.
"""
import re

from upload_gateway.storage.keys import (
    NONCE_MAX,
    ObjectKey,
    generate_object_key,
    normalize_namespace,
    sanitize_filename,
)


class TestGenerateObjectKey:
    """Tests for generate_object_key."""

    def test_key_format(self):
        key = generate_object_key("uploads", "report.pdf")

        assert re.fullmatch(r"uploads/\d+-\d+-report\.pdf", key.value)
        assert str(key) == key.value

    def test_key_uses_given_timestamp(self):
        key = generate_object_key("uploads", "a.txt", now_ms=1700000000123)

        assert key.timestamp_ms == 1700000000123
        assert key.value.startswith("uploads/1700000000123-")

    def test_nonce_within_range(self):
        for _ in range(1000):
            key = generate_object_key("uploads", "a.txt")
            assert 0 <= key.nonce <= NONCE_MAX

    def test_no_collisions_over_many_generations(self):
        """Keys are distinct across 10,000 back-to-back generations."""
        keys = [generate_object_key("uploads", "same.bin").value for _ in range(10_000)]

        assert all(k.startswith("uploads/") for k in keys)
        assert len(set(keys)) == len(keys)

    def test_same_millisecond_collision_needs_equal_nonce(self):
        """
        Within one millisecond only the nonce separates two keys, so the
        collision chance for a pair is 1 / (NONCE_MAX + 1), not zero.
        """
        a = ObjectKey("uploads", 1, 42, "f.txt")
        b = ObjectKey("uploads", 1, 43, "f.txt")
        c = ObjectKey("uploads", 1, 42, "f.txt")

        assert a.value != b.value
        assert a.value == c.value
        assert 1 / (NONCE_MAX + 1) < 1e-8

    def test_namespace_slashes_normalized(self):
        key = generate_object_key("/media//incoming/", "x.png", now_ms=5)

        assert key.namespace == "media/incoming"
        assert key.value.startswith("media/incoming/5-")

    def test_empty_namespace(self):
        key = generate_object_key("", "x.png", now_ms=5)

        assert key.value == f"5-{key.nonce}-x.png"


class TestSanitizeFilename:
    """Tests for sanitize_filename."""

    def test_plain_name_unchanged(self):
        assert sanitize_filename("report.pdf") == "report.pdf"

    def test_path_components_dropped(self):
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("C:\\Users\\me\\photo.jpg") == "photo.jpg"

    def test_control_characters_replaced(self):
        assert sanitize_filename("a\x00b\nc.txt") == "a_b_c.txt"

    def test_leading_dots_stripped(self):
        assert sanitize_filename("..hidden") == "hidden"

    def test_empty_falls_back(self):
        assert sanitize_filename("") == "file"
        assert sanitize_filename(None) == "file"
        assert sanitize_filename("dir/") == "file"

    def test_unicode_kept(self):
        assert sanitize_filename("résumé.pdf") == "résumé.pdf"


def test_normalize_namespace():
    assert normalize_namespace("uploads") == "uploads"
    assert normalize_namespace("/a/b/") == "a/b"
    assert normalize_namespace(None) == ""
