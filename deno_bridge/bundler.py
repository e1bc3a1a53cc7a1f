"""
ESZIP bundling through the resolved runtime.

The bundling itself happens in an external Deno script; this module only
describes the job, runs the script and fingerprints the resulting archive.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from .bridge import DenoBridge
from .common import vlog
from .errors import BridgeError
from .hashing import get_file_hash

ESZIP_EXTENSION = ".eszip"
ESZIP_FORMAT = "eszip2"


@dataclass(frozen=True)
class EdgeFunction:
    """A function entry point to bundle."""

    name: str
    path: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "path": self.path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EdgeFunction:
        return cls(name=data["name"], path=str(data["path"]))


@dataclass(frozen=True)
class Bundle:
    """
    Descriptor of a produced bundle.

    Attributes:
        extension: File extension of the artifact
        format: Bundle format identifier
        hash: sha256 hex digest of the artifact
    """
    extension: str
    format: str
    hash: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {"extension": self.extension, "format": self.format, "hash": self.hash}


def get_eszip_bundler() -> Path:
    """Default location of the Deno bundler script shipped next to this package."""
    return Path(__file__).resolve().parent / "deno" / "bundle.ts"


def get_destination_path(dist_directory: str | os.PathLike[str], build_id: str) -> Path:
    return Path(dist_directory) / f"{build_id}{ESZIP_EXTENSION}"


def build_payload(
    base_path: str | os.PathLike[str],
    dest_path: str | os.PathLike[str],
    functions: Sequence[EdgeFunction],
) -> dict[str, Any]:
    """JSON payload handed to the bundler script as its only argument."""
    return {
        "basePath": os.fspath(base_path),
        "destPath": os.fspath(dest_path),
        "functions": [function.to_dict() for function in functions],
    }


def build_flags(debug: bool = False) -> list[str]:
    flags = ["--allow-all"]
    if not debug:
        flags.append("--quiet")
    return flags


def bundle_eszip(
    base_path: str | os.PathLike[str],
    build_id: str,
    deno: DenoBridge,
    dist_directory: str | os.PathLike[str],
    functions: Sequence[EdgeFunction],
    debug: bool = False,
    bundler_path: str | os.PathLike[str] | None = None,
) -> Bundle:
    """
    Bundle ``functions`` into ``<dist_directory>/<build_id>.eszip``.

    Args:
        base_path: Root the function paths are relative to
        build_id: Identifier used as the artifact file name
        deno: Bridge used to resolve and run the runtime
        dist_directory: Output directory
        functions: Functions to include
        debug: Keep the runtime's diagnostic output
        bundler_path: Bundler script (default: get_eszip_bundler())

    Returns:
        Bundle descriptor with the artifact hash

    Raises:
        BridgeError: If the bundler script does not exist
        RunError: If the bundler exits non-zero (no cleanup is attempted)
        DownloadError: If no runtime can be resolved
    """
    dest_path = get_destination_path(dist_directory, build_id)
    bundler = os.fspath(bundler_path or get_eszip_bundler())
    if not os.path.isfile(bundler):
        raise BridgeError(
            f"Bundler script not found: {bundler}",
            remediation="Pass the bundler script with --bundler (or bundler_path=)",
        )
    payload = build_payload(base_path, dest_path, functions)

    vlog(f"Bundling {len(functions)} function(s) into {dest_path}", deno.verbose)
    deno.run(["run", *build_flags(debug), bundler, json.dumps(payload)], wait=True)

    return Bundle(extension=ESZIP_EXTENSION, format=ESZIP_FORMAT, hash=get_file_hash(dest_path))
