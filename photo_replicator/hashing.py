"""Content hashing and post-copy verification."""

import hashlib
import logging
from pathlib import Path
from typing import BinaryIO, Tuple

from .errors import HashMismatchError, SizeMismatchError

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = 'md5'
DEFAULT_CHUNK_SIZE = 64 * 1024


def compute_digest(stream: BinaryIO, algorithm: str = DEFAULT_ALGORITHM,
                   chunk_size: int = DEFAULT_CHUNK_SIZE) -> Tuple[str, int]:
    """
    Hash every byte of a seekable stream.

    The stream is rewound to offset 0 first, so the same handle can be
    hashed again later (for example after it was written to) without
    picking up a stale position.

    Args:
        stream: Readable, seekable binary stream
        algorithm: Any name accepted by ``hashlib.new``
        chunk_size: Size of chunks to read at a time

    Returns:
        Tuple of (hex digest, byte count)

    Raises:
        OSError: If seeking or reading fails
    """
    stream.seek(0)
    hasher = hashlib.new(algorithm)
    byte_count = 0
    while chunk := stream.read(chunk_size):
        hasher.update(chunk)
        byte_count += len(chunk)
    return hasher.hexdigest(), byte_count


def hash_file(file_path: Path, algorithm: str = DEFAULT_ALGORITHM,
              chunk_size: int = DEFAULT_CHUNK_SIZE) -> Tuple[str, int]:
    """Open ``file_path`` and return its (hex digest, byte count)."""
    with open(file_path, 'rb') as f:
        return compute_digest(f, algorithm, chunk_size)


def verify_file(file_path: Path, expected_hash: str, expected_size: int,
                algorithm: str = DEFAULT_ALGORITHM) -> None:
    """
    Check a file on disk against a recorded digest and size.

    Raises:
        OSError: If the file cannot be read
        SizeMismatchError: If the byte count differs
        HashMismatchError: If the digest differs
    """
    actual_hash, actual_size = hash_file(file_path, algorithm)
    if actual_size != expected_size:
        raise SizeMismatchError(
            f"Size mismatch for {file_path}: expected {expected_size}, got {actual_size}",
            dest_path=file_path,
        )
    if actual_hash != expected_hash:
        raise HashMismatchError(
            f"Hash mismatch for {file_path}: expected {expected_hash}, got {actual_hash}",
            dest_path=file_path,
        )
    logger.debug(f"Verified {file_path} ({actual_hash})")
