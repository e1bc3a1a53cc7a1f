"""
Runtime version probing.

Runs ``<binary> --version`` and reads the version off the first line of its
output (``deno 1.20.3 (release, x86_64-unknown-linux-gnu)``). Any failure to
spawn, a non-zero exit or unexpected output is reported as ``None``.
"""

from __future__ import annotations

import os
import re
import subprocess

from .common import vlog

PRODUCT_NAME = "deno"
VERSION_FLAG = "--version"


def version_pattern(product_name: str = PRODUCT_NAME) -> re.Pattern[str]:
    """Pattern matching ``<product_name> <digits and dots>`` at the start of output."""
    return re.compile(rf"^{re.escape(product_name)} ([\d.]+)")


def extract_version(output: str, product_name: str = PRODUCT_NAME) -> str | None:
    """
    Pull the version token out of ``--version`` output.

    Args:
        output: Captured stdout of the probe
        product_name: Name printed before the version

    Returns:
        Version string (e.g. "1.20.3") or None if the output does not start
        with ``<product_name> <version>``
    """
    m = version_pattern(product_name).match(output or "")
    if not m:
        return None
    return m.group(1)


def get_binary_version(
    binary: str | os.PathLike[str],
    product_name: str = PRODUCT_NAME,
    timeout: float | None = None,
    verbose: bool = False,
) -> str | None:
    """Ask an executable for its version.

    Args:
        binary: Path to the executable, or a command name looked up on PATH
        product_name: Name the executable prints before its version
        timeout: Optional probe timeout in seconds (no limit by default)
        verbose: Enable verbose logging

    Returns:
        Version string, or None when the version cannot be determined
    """
    command = [os.fspath(binary), VERSION_FLAG]
    try:
        proc = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            text=True,
            timeout=timeout,
            check=False,
            env={**os.environ, "TERM": "dumb", "NO_COLOR": "1"},
        )
    except (OSError, subprocess.SubprocessError, ValueError) as e:
        vlog(f"Version probe failed for {command[0]}: {e}", verbose)
        return None

    if proc.returncode != 0:
        vlog(f"Version probe for {command[0]} exited with {proc.returncode}", verbose)
        return None

    version = extract_version(proc.stdout, product_name)
    if version is None:
        vlog(f"Unrecognised version output from {command[0]}", verbose)
    return version
