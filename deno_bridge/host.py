"""
Host platform helpers: executable naming and the per-user config home.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

BINARY_BASENAME = "deno"
APP_DIRECTORY = "deno-bridge"


def get_binary_extension() -> str:
    """Executable suffix for the host platform."""
    return ".exe" if sys.platform == "win32" else ""


def get_binary_name() -> str:
    """File name of the runtime binary inside a cache directory."""
    return f"{BINARY_BASENAME}{get_binary_extension()}"


def get_config_home() -> Path:
    """Per-user configuration root for deno-bridge.

    Returns:
        ``%APPDATA%/deno-bridge`` on Windows, ``~/Library/Preferences/deno-bridge``
        on macOS, ``$XDG_CONFIG_HOME/deno-bridge`` (default ``~/.config``) elsewhere
    """
    if sys.platform == "win32":
        base = os.environ.get("APPDATA") or os.path.join(os.path.expanduser("~"), "AppData", "Roaming")
        return Path(base) / APP_DIRECTORY / "Config"
    if sys.platform == "darwin":
        return Path(os.path.expanduser("~")) / "Library" / "Preferences" / APP_DIRECTORY
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return Path(base) / APP_DIRECTORY


def get_path_in_home(*parts: str) -> Path:
    """Join ``parts`` onto the per-user configuration root."""
    return get_config_home().joinpath(*parts)
