"""
Exception hierarchy for deno-bridge.

Probe failures and cache misses never surface as exceptions; everything below
is fatal for the operation that raised it.
"""

from __future__ import annotations

from typing import Sequence


class BridgeError(Exception):
    """
    Base exception for deno-bridge errors.

    Attributes:
        message: Human-readable error message
        remediation: Suggested fix for the error
    """
    def __init__(self, message: str, remediation: str | None = None):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


class DownloadError(BridgeError):
    """The download tier could not produce a usable binary."""


class InvalidRangeError(BridgeError, ValueError):
    """A semantic version range string could not be parsed."""


class ConfigError(BridgeError, ValueError):
    """Configuration is invalid or references something that cannot be loaded."""


class RunError(BridgeError):
    """
    A runtime invocation exited with a non-zero status.

    Attributes:
        exit_code: Process exit code
        command: Full command line that was executed
    """
    def __init__(self, exit_code: int, command: Sequence[str]):
        self.exit_code = exit_code
        self.command = tuple(command)
        super().__init__(f"Command failed with exit code {exit_code}: {' '.join(self.command)}")
