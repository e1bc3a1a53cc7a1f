"""
Subprocess execution for the resolved runtime.

The child's stdout and stderr are the host process's own streams: output is
neither captured nor buffered here. Callers either get the live process back
or wait for it to finish.
"""

from __future__ import annotations

import os
import subprocess
import time
from dataclasses import dataclass
from typing import Sequence

from .common import vlog
from .errors import RunError


@dataclass(frozen=True)
class RunResult:
    """
    Outcome of a completed runtime invocation.

    Attributes:
        args: Full command line that was executed
        exit_code: Process exit code (always 0; failures raise RunError)
        duration_seconds: Wall time from spawn to exit
    """
    args: tuple[str, ...]
    exit_code: int
    duration_seconds: float

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "args": list(self.args),
            "exit_code": self.exit_code,
            "duration_seconds": self.duration_seconds,
        }


def build_command(binary: str | os.PathLike[str], args: Sequence[str]) -> list[str]:
    return [os.fspath(binary), *args]


def start_process(
    binary: str | os.PathLike[str],
    args: Sequence[str],
    verbose: bool = False,
) -> subprocess.Popen:
    """
    Spawn the runtime with pass-through stdio.

    Raises:
        OSError: If the binary cannot be executed
    """
    command = build_command(binary, args)
    vlog(f"Executing: {' '.join(command)}", verbose)
    # stdout/stderr left as None: the child writes straight to our streams.
    return subprocess.Popen(command)


def wait_process(
    process: subprocess.Popen,
    started_at: float | None = None,
    verbose: bool = False,
) -> RunResult:
    """
    Block until ``process`` exits.

    Args:
        process: Process returned by start_process
        started_at: ``time.monotonic()`` value at spawn, for the duration
        verbose: Enable verbose logging

    Returns:
        RunResult for a zero exit

    Raises:
        RunError: If the process exits with a non-zero status
    """
    exit_code = process.wait()
    duration = time.monotonic() - started_at if started_at is not None else 0.0
    command = [str(arg) for arg in process.args] if isinstance(process.args, (list, tuple)) else [str(process.args)]

    if exit_code != 0:
        vlog(f"Process exited with {exit_code} after {duration:.2f}s", verbose)
        raise RunError(exit_code, command)

    return RunResult(args=tuple(command), exit_code=exit_code, duration_seconds=duration)


def run_process(
    binary: str | os.PathLike[str],
    args: Sequence[str],
    wait: bool = True,
    verbose: bool = False,
) -> subprocess.Popen | RunResult:
    """
    Run the runtime binary.

    Args:
        binary: Resolved binary path or command name
        args: Arguments passed after the binary
        wait: Block until exit (True) or return the live process (False)
        verbose: Enable verbose logging

    Returns:
        The live ``Popen`` when ``wait`` is False, otherwise a RunResult

    Raises:
        RunError: If ``wait`` is True and the process exits non-zero
        OSError: If the binary cannot be executed
    """
    started_at = time.monotonic()
    process = start_process(binary, args, verbose=verbose)
    if not wait:
        return process
    return wait_process(process, started_at=started_at, verbose=verbose)
