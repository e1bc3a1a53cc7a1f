"""
Content fingerprints for build artifacts.
"""

from __future__ import annotations

import hashlib
import os

CHUNK_SIZE = 8192


def get_file_hash(file_path: str | os.PathLike[str], algorithm: str = "sha256") -> str:
    """
    Hash a file's contents.

    Args:
        file_path: File to fingerprint
        algorithm: Any algorithm accepted by ``hashlib.new``

    Returns:
        Lower-case hex digest

    Raises:
        OSError: If the file cannot be read
    """
    hasher = hashlib.new(algorithm)
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()
