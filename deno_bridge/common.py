"""
Small helpers shared across deno_bridge modules.
"""

from __future__ import annotations

import os


def debug_enabled() -> bool:
    """True when ``DENO_BRIDGE_DEBUG=1`` is set in the environment."""
    return os.environ.get("DENO_BRIDGE_DEBUG", "0") == "1"


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log a trace message through the package logger.

    Args:
        msg: Message to log
        verbose: Whether the caller runs in verbose mode
    """
    if verbose or debug_enabled():
        from .logging_config import get_logger
        get_logger().info(msg)
