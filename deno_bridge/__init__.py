"""
deno-bridge - resolve, provision and run a version-pinned deno runtime.

Core Modules:
- Resolution: global install → local cache → download, gated by a semver range
- Execution: pass-through subprocess runs of the resolved binary
- Bundling: ESZIP archives built by a Deno bundler script
"""

__version__ = "1.0.0"

from .versions import Comparator, VersionRange, parse_range, parse_version, satisfies
from .detection import extract_version, get_binary_version
from .cache import VERSION_FILE, read_cached_binary, read_version_record, write_version_record
from .host import get_binary_extension, get_binary_name, get_path_in_home
from .hashing import get_file_hash
from .errors import BridgeError, ConfigError, DownloadError, InvalidRangeError, RunError
from .runner import RunResult, run_process, start_process, wait_process
from .bridge import (
    DEFAULT_VERSION_RANGE,
    CallbackHooks,
    DenoBridge,
    DownloadHooks,
    ResolutionResult,
    ResolutionStage,
)
from .bundler import Bundle, EdgeFunction, bundle_eszip, get_eszip_bundler
from .config import BridgeConfig, apply_env_overrides, load_config, load_config_file, load_downloader
from .logging_config import get_logger, setup_logging

__all__ = [
    "__version__",
    # Versions
    "Comparator",
    "VersionRange",
    "parse_range",
    "parse_version",
    "satisfies",
    # Probing and cache
    "extract_version",
    "get_binary_version",
    "VERSION_FILE",
    "read_cached_binary",
    "read_version_record",
    "write_version_record",
    # Host helpers
    "get_binary_extension",
    "get_binary_name",
    "get_path_in_home",
    "get_file_hash",
    # Errors
    "BridgeError",
    "ConfigError",
    "DownloadError",
    "InvalidRangeError",
    "RunError",
    # Execution
    "RunResult",
    "run_process",
    "start_process",
    "wait_process",
    # Resolution
    "DEFAULT_VERSION_RANGE",
    "CallbackHooks",
    "DenoBridge",
    "DownloadHooks",
    "ResolutionResult",
    "ResolutionStage",
    # Bundling
    "Bundle",
    "EdgeFunction",
    "bundle_eszip",
    "get_eszip_bundler",
    # Configuration and logging
    "BridgeConfig",
    "apply_env_overrides",
    "load_config",
    "load_config_file",
    "load_downloader",
    "get_logger",
    "setup_logging",
]
