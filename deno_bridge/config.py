"""
Configuration file parsing and management.

Reads YAML (or JSON) configuration files and merges them by priority
(explicit path → project → user → defaults), then applies environment
overrides.
"""

from __future__ import annotations

import importlib
import json
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable

import yaml

from .bridge import DEFAULT_VERSION_RANGE
from .common import vlog
from .errors import ConfigError, InvalidRangeError
from .host import get_config_home
from .versions import parse_range

# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".deno-bridge.yml",
    ".deno-bridge.yaml",
    str(get_config_home() / "config.yml"),
    str(get_config_home() / "config.yaml"),
]

ENV_CACHE_DIR = "DENO_BRIDGE_CACHE_DIR"
ENV_USE_GLOBAL = "DENO_BRIDGE_USE_GLOBAL"
ENV_VERSION_RANGE = "DENO_BRIDGE_VERSION_RANGE"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

# Fields that carry settings (as opposed to bookkeeping)
_SETTING_NAMES = frozenset(
    {"cache_directory", "use_global", "version_range", "downloader", "debug", "probe_timeout_seconds"}
)


@dataclass(frozen=True)
class BridgeConfig:
    """
    Settings for resolving and running the runtime.

    Attributes:
        version: Config schema version
        cache_directory: Cache directory for downloaded binaries ("" = default)
        use_global: Whether a ``deno`` on PATH may be used
        version_range: npm-style semver range the runtime must satisfy
        downloader: Import string ``package.module:function`` of the downloader
        debug: Keep the runtime's diagnostic output when bundling
        probe_timeout_seconds: Timeout for version probes (None = no limit)
        source: Path to the configuration file that was loaded
        explicit: Fields set explicitly by a file or the environment; they win
            a merge even when they hold the default value
    """
    version: int = 1
    cache_directory: str = ""
    use_global: bool = True
    version_range: str = DEFAULT_VERSION_RANGE
    downloader: str | None = None
    debug: bool = False
    probe_timeout_seconds: float | None = None
    source: str = ""
    explicit: frozenset[str] = field(default=frozenset(), compare=False, repr=False)

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ConfigError(f"Unsupported config version: {self.version}. Expected version 1")

        try:
            parse_range(self.version_range)
        except InvalidRangeError as e:
            raise ConfigError(f"Invalid version_range {self.version_range!r}: {e.message}") from e

        if self.probe_timeout_seconds is not None and self.probe_timeout_seconds <= 0:
            raise ConfigError(
                f"Invalid probe_timeout_seconds: {self.probe_timeout_seconds}. Must be positive"
            )

        if self.downloader is not None and ":" not in self.downloader:
            raise ConfigError(
                f"Invalid downloader {self.downloader!r}. Expected 'package.module:function'"
            )

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> BridgeConfig:
        """Create BridgeConfig from dictionary."""
        timeout = data.get("probe_timeout_seconds")
        return BridgeConfig(
            version=data.get("version", 1),
            cache_directory=os.path.expanduser(str(data.get("cache_directory", "") or "")),
            use_global=bool(data.get("use_global", True)),
            version_range=str(data.get("version_range", DEFAULT_VERSION_RANGE)),
            downloader=data.get("downloader"),
            debug=bool(data.get("debug", False)),
            probe_timeout_seconds=float(timeout) if timeout is not None else None,
            source=source,
            explicit=_SETTING_NAMES.intersection(data),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "explicit"}

    def merge_with(self, other: BridgeConfig) -> BridgeConfig:
        """
        Merge this config with another, preferring values from this config.

        A field keeps this config's value when it was set explicitly or differs
        from the default; otherwise the other config's value is used.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged BridgeConfig
        """
        defaults = BridgeConfig()
        merged = {}
        for f in fields(self):
            if f.name not in _SETTING_NAMES:
                continue
            mine = getattr(self, f.name)
            keep = f.name in self.explicit or mine != getattr(defaults, f.name)
            merged[f.name] = mine if keep else getattr(other, f.name)

        return BridgeConfig(
            version=self.version,
            source=self.source or other.source,
            explicit=self.explicit | other.explicit,
            **merged,
        )


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> BridgeConfig | None:
    """
    Load configuration from a single file.

    ``.json`` files are parsed as JSON, everything else as YAML.

    Args:
        file_path: Path to configuration file
        verbose: Enable verbose logging

    Returns:
        BridgeConfig, or None if the file is missing, unparsable or invalid
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        return BridgeConfig.from_dict(data, source=file_path)
    except (ValueError, TypeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


def apply_env_overrides(config: BridgeConfig, environ: dict[str, str] | None = None) -> BridgeConfig:
    """
    Apply ``DENO_BRIDGE_*`` environment variables on top of ``config``.

    Raises:
        ConfigError: If a variable holds an invalid value
    """
    env = os.environ if environ is None else environ
    changes: dict[str, Any] = {}

    if env.get(ENV_CACHE_DIR):
        changes["cache_directory"] = os.path.expanduser(env[ENV_CACHE_DIR])
    if env.get(ENV_USE_GLOBAL):
        changes["use_global"] = _parse_bool(ENV_USE_GLOBAL, env[ENV_USE_GLOBAL])
    if env.get(ENV_VERSION_RANGE):
        changes["version_range"] = env[ENV_VERSION_RANGE]

    if not changes:
        return config
    return replace(config, explicit=config.explicit.union(changes), **changes)


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> BridgeConfig:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Environment variables
    2. Custom path (if provided)
    3. Project .deno-bridge.yml
    4. User <config home>/config.yml
    5. Defaults

    Raises:
        ConfigError: If custom_path is provided but cannot be loaded
    """
    configs: list[BridgeConfig] = []

    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ConfigError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        merged = BridgeConfig()
    else:
        merged = configs[0]
        for config in configs[1:]:
            merged = merged.merge_with(config)
        vlog(f"Merged {len(configs)} config file(s)", verbose)

    return apply_env_overrides(merged)


def load_downloader(spec: str) -> Callable[..., Any]:
    """
    Import a downloader from a ``package.module:function`` string.

    Raises:
        ConfigError: If the module or attribute cannot be imported, or is not callable
    """
    module_name, _, attr_path = spec.partition(":")
    if not module_name or not attr_path:
        raise ConfigError(f"Invalid downloader {spec!r}. Expected 'package.module:function'")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import downloader module {module_name!r}: {e}") from e

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as e:
            raise ConfigError(f"Downloader {spec!r} not found") from e

    if not callable(target):
        raise ConfigError(f"Downloader {spec!r} is not callable")
    return target
