"""
On-disk cache of a downloaded runtime binary.

A cache directory holds the binary and ``version.txt``, the version the
binary reported right after it was downloaded. Only the record is consulted
when deciding whether the cache is usable; the binary itself is not probed
again or checked for existence.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from .common import vlog
from .host import get_binary_name
from .versions import VersionRange, satisfies

VERSION_FILE = "version.txt"


def get_version_file_path(cache_dir: str | os.PathLike[str]) -> Path:
    return Path(cache_dir) / VERSION_FILE


def read_version_record(cache_dir: str | os.PathLike[str]) -> str | None:
    """Return the recorded version, or None if the record is missing or unreadable."""
    try:
        return get_version_file_path(cache_dir).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def read_cached_binary(
    cache_dir: str | os.PathLike[str],
    version_range: str | VersionRange,
    verbose: bool = False,
) -> Path | None:
    """
    Look up a cached binary whose recorded version satisfies a range.

    Args:
        cache_dir: Cache directory
        version_range: Range the cached version must satisfy
        verbose: Enable verbose logging

    Returns:
        ``cache_dir/<binary name>`` when the record satisfies the range,
        otherwise None
    """
    cached_version = read_version_record(cache_dir)
    if cached_version is None:
        vlog(f"No version record in {cache_dir}", verbose)
        return None

    if not satisfies(cached_version, version_range):
        vlog(f"Cached version {cached_version.strip()} does not satisfy {version_range}", verbose)
        return None

    return Path(cache_dir) / get_binary_name()


def write_version_record(cache_dir: str | os.PathLike[str], version: str) -> Path:
    """
    Replace the version record with ``version``.

    The record is written to a temporary file in the same directory and
    renamed over the old one, so concurrent readers see either the old or the
    new version but never a partial write.

    Returns:
        Path to the version record

    Raises:
        OSError: If the directory is missing or not writable
    """
    path = get_version_file_path(cache_dir)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{VERSION_FILE}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(version)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise
    return path
