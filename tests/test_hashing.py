"""Tests for content hashing and verification."""

import hashlib
import io
from unittest.mock import MagicMock

import pytest

from photo_replicator.errors import HashMismatchError, SizeMismatchError
from photo_replicator.hashing import compute_digest, hash_file, verify_file

DIGITS_MD5 = hashlib.md5(b"0123456789").hexdigest()


class TestComputeDigest:

    def test_md5_and_byte_count(self):
        digest, size = compute_digest(io.BytesIO(b"0123456789"))
        assert digest == DIGITS_MD5
        assert size == 10

    def test_rewinds_before_hashing(self):
        """Hashing twice on the same handle with seeks in between is stable."""
        stream = io.BytesIO(b"0123456789")
        first = compute_digest(stream)
        stream.seek(7)
        second = compute_digest(stream)
        stream.read()
        third = compute_digest(stream)
        assert first == second == third == (DIGITS_MD5, 10)

    def test_small_chunks_give_same_result(self):
        data = bytes(range(256)) * 50
        assert compute_digest(io.BytesIO(data), chunk_size=7) == compute_digest(io.BytesIO(data))

    def test_empty_stream(self):
        assert compute_digest(io.BytesIO(b"")) == (hashlib.md5(b"").hexdigest(), 0)

    def test_other_algorithm(self):
        digest, _ = compute_digest(io.BytesIO(b"abc"), algorithm='sha256')
        assert digest == hashlib.sha256(b"abc").hexdigest()

    def test_seek_failure_propagates(self):
        stream = MagicMock()
        stream.seek.side_effect = OSError("seek failed")
        with pytest.raises(OSError):
            compute_digest(stream)

    def test_read_failure_propagates(self):
        stream = MagicMock()
        stream.read.side_effect = OSError("read failed")
        with pytest.raises(OSError):
            compute_digest(stream)


class TestFileVerification:

    def test_hash_file(self, tmp_path):
        path = tmp_path / 'digits.jpg'
        path.write_bytes(b"0123456789")
        assert hash_file(path) == (DIGITS_MD5, 10)

    def test_verify_file_passes(self, tmp_path):
        path = tmp_path / 'digits.jpg'
        path.write_bytes(b"0123456789")
        verify_file(path, DIGITS_MD5, 10)

    def test_verify_file_size_mismatch(self, tmp_path):
        path = tmp_path / 'digits.jpg'
        path.write_bytes(b"01234")
        with pytest.raises(SizeMismatchError):
            verify_file(path, DIGITS_MD5, 10)

    def test_verify_file_hash_mismatch(self, tmp_path):
        path = tmp_path / 'digits.jpg'
        path.write_bytes(b"9876543210")
        with pytest.raises(HashMismatchError):
            verify_file(path, DIGITS_MD5, 10)

    def test_verify_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            verify_file(tmp_path / 'missing.jpg', DIGITS_MD5, 10)
