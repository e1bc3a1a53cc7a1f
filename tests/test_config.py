"""
Tests for configuration parsing (deno_bridge/config.py).
"""

import json
import os
from unittest.mock import patch

import pytest

from deno_bridge.bridge import DEFAULT_VERSION_RANGE
from deno_bridge.config import (
    ENV_CACHE_DIR,
    ENV_USE_GLOBAL,
    ENV_VERSION_RANGE,
    BridgeConfig,
    _load_json,
    _load_yaml,
    apply_env_overrides,
    load_config,
    load_config_file,
    load_downloader,
)
from deno_bridge.errors import ConfigError


class TestBridgeConfig:
    """Tests for BridgeConfig dataclass."""

    def test_defaults(self):
        """Test default values."""
        config = BridgeConfig()
        assert config.version == 1
        assert config.cache_directory == ""
        assert config.use_global is True
        assert config.version_range == DEFAULT_VERSION_RANGE
        assert config.downloader is None
        assert config.debug is False
        assert config.probe_timeout_seconds is None

    def test_immutable(self):
        """Test that BridgeConfig is frozen."""
        config = BridgeConfig()
        with pytest.raises(AttributeError):
            config.use_global = False

    def test_invalid_version(self):
        """Test that unknown schema versions are rejected."""
        with pytest.raises(ConfigError, match="Unsupported config version"):
            BridgeConfig(version=2)

    def test_invalid_range(self):
        """Test that malformed ranges are rejected."""
        with pytest.raises(ConfigError, match="Invalid version_range"):
            BridgeConfig(version_range="definitely not")

    def test_invalid_timeout(self):
        """Test that non-positive timeouts are rejected."""
        with pytest.raises(ConfigError):
            BridgeConfig(probe_timeout_seconds=0)

    def test_invalid_downloader(self):
        """Test that downloader import strings need a colon."""
        with pytest.raises(ConfigError):
            BridgeConfig(downloader="just_a_module")

    def test_config_error_is_value_error(self):
        """Test that ConfigError can be caught as ValueError."""
        with pytest.raises(ValueError):
            BridgeConfig(version=3)

    def test_from_dict(self):
        """Test creating a config from a dictionary."""
        config = BridgeConfig.from_dict(
            {
                "cache_directory": "/var/cache/deno",
                "use_global": False,
                "version_range": "~1.22.0",
                "downloader": "mypkg.download:fetch_deno",
                "debug": True,
                "probe_timeout_seconds": 5,
            },
            source="cfg.yml",
        )
        assert config.cache_directory == "/var/cache/deno"
        assert config.use_global is False
        assert config.version_range == "~1.22.0"
        assert config.downloader == "mypkg.download:fetch_deno"
        assert config.debug is True
        assert config.probe_timeout_seconds == 5.0
        assert config.source == "cfg.yml"

    def test_from_dict_expands_home(self):
        """Test that ~ in cache_directory is expanded."""
        config = BridgeConfig.from_dict({"cache_directory": "~/deno-cache"})
        assert config.cache_directory == os.path.expanduser("~/deno-cache")

    def test_to_dict(self):
        """Test serialization."""
        data = BridgeConfig(use_global=False).to_dict()
        assert data["use_global"] is False
        assert data["version_range"] == DEFAULT_VERSION_RANGE

    def test_merge_prefers_self(self):
        """Test that non-default values of the higher priority config win."""
        project = BridgeConfig(version_range="^1.30.0", source="project.yml")
        user = BridgeConfig(version_range="^1.25.0", cache_directory="/user/cache", source="user.yml")

        merged = project.merge_with(user)

        assert merged.version_range == "^1.30.0"
        assert merged.cache_directory == "/user/cache"
        assert merged.source == "project.yml"

    def test_merge_takes_other_when_default(self):
        """Test that defaults fall back to the lower priority config."""
        merged = BridgeConfig().merge_with(BridgeConfig(use_global=False, debug=True))
        assert merged.use_global is False
        assert merged.debug is True

    def test_merge_explicit_default_wins(self):
        """Test that an explicitly set default beats a lower priority value."""
        project = BridgeConfig.from_dict({"use_global": True}, source="project.yml")
        user = BridgeConfig.from_dict({"use_global": False, "debug": True}, source="user.yml")

        merged = project.merge_with(user)

        assert merged.use_global is True
        assert merged.debug is True
        assert merged.explicit == {"use_global", "debug"}

    def test_from_dict_records_explicit_keys(self):
        """Test that only known setting keys are recorded as explicit."""
        config = BridgeConfig.from_dict({"version": 1, "version_range": "^1.20.3", "unknown": 1})
        assert config.explicit == {"version_range"}
        assert "explicit" not in config.to_dict()


class TestFileLoading:
    """Tests for YAML/JSON file loading."""

    def test_load_yaml(self, tmp_path):
        """Test loading a YAML mapping."""
        path = tmp_path / "config.yml"
        path.write_text("use_global: false\nversion_range: '^1.21.0'\n")
        assert _load_yaml(str(path)) == {"use_global": False, "version_range": "^1.21.0"}

    def test_load_yaml_invalid(self, tmp_path):
        """Test that invalid YAML returns None."""
        path = tmp_path / "config.yml"
        path.write_text("use_global: [unclosed\n")
        assert _load_yaml(str(path)) is None

    def test_load_yaml_non_mapping(self, tmp_path):
        """Test that a YAML scalar is treated as an empty mapping."""
        path = tmp_path / "config.yml"
        path.write_text("just a string\n")
        assert _load_yaml(str(path)) == {}

    def test_load_json(self, tmp_path):
        """Test loading JSON."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"debug": True}))
        assert _load_json(str(path)) == {"debug": True}

    def test_load_json_invalid(self, tmp_path):
        """Test that invalid JSON returns None."""
        path = tmp_path / "config.json"
        path.write_text("{nope")
        assert _load_json(str(path)) is None

    def test_load_config_file_missing(self, tmp_path):
        """Test that a missing file returns None."""
        assert load_config_file(str(tmp_path / "missing.yml")) is None

    def test_load_config_file_yaml(self, tmp_path):
        """Test loading a BridgeConfig from YAML."""
        path = tmp_path / "config.yml"
        path.write_text("version: 1\ncache_directory: /tmp/deno\nuse_global: no\n")
        config = load_config_file(str(path))
        assert config is not None
        assert config.cache_directory == "/tmp/deno"
        assert config.use_global is False
        assert config.source == str(path)

    def test_load_config_file_json(self, tmp_path):
        """Test loading a BridgeConfig from JSON."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"version_range": "1.x"}))
        config = load_config_file(str(path))
        assert config is not None
        assert config.version_range == "1.x"

    def test_load_config_file_invalid_values(self, tmp_path):
        """Test that a file failing validation returns None."""
        path = tmp_path / "config.yml"
        path.write_text("version: 9\n")
        assert load_config_file(str(path)) is None


class TestLoadConfig:
    """Tests for load_config."""

    @patch("deno_bridge.config.CONFIG_LOCATIONS", [])
    @patch.dict(os.environ, {}, clear=True)
    def test_defaults_when_nothing_found(self):
        """Test that defaults are returned without config files."""
        assert load_config() == BridgeConfig()

    @patch.dict(os.environ, {}, clear=True)
    def test_custom_path_missing(self, tmp_path):
        """Test that an explicit but missing path raises."""
        with pytest.raises(ConfigError):
            load_config(custom_path=str(tmp_path / "missing.yml"))

    @patch.dict(os.environ, {}, clear=True)
    def test_priority_order(self, tmp_path):
        """Test that the custom path beats the standard locations."""
        custom = tmp_path / "custom.yml"
        custom.write_text("version_range: '^1.30.0'\n")
        project = tmp_path / "project.yml"
        project.write_text("version_range: '^1.25.0'\ncache_directory: /project/cache\n")

        with patch("deno_bridge.config.CONFIG_LOCATIONS", [str(project)]):
            config = load_config(custom_path=str(custom))

        assert config.version_range == "^1.30.0"
        assert config.cache_directory == "/project/cache"
        assert config.source == str(custom)

    @patch("deno_bridge.config.CONFIG_LOCATIONS", [])
    def test_env_overrides_applied(self, tmp_path):
        """Test that environment variables win over files."""
        custom = tmp_path / "custom.yml"
        custom.write_text("version_range: '^1.30.0'\n")
        env = {ENV_VERSION_RANGE: "^1.40.0", ENV_USE_GLOBAL: "false", ENV_CACHE_DIR: "/env/cache"}

        with patch.dict(os.environ, env, clear=True):
            config = load_config(custom_path=str(custom))

        assert config.version_range == "^1.40.0"
        assert config.use_global is False
        assert config.cache_directory == "/env/cache"

    @patch.dict(os.environ, {}, clear=True)
    def test_project_file_explicit_default_beats_user_file(self, tmp_path):
        """Test that a project file setting use_global: true overrides a user file."""
        project = tmp_path / "project.yml"
        project.write_text("use_global: true\n")
        user = tmp_path / "user.yml"
        user.write_text("use_global: false\nversion_range: '^1.25.0'\n")

        with patch("deno_bridge.config.CONFIG_LOCATIONS", [str(project), str(user)]):
            config = load_config()

        assert config.use_global is True
        assert config.version_range == "^1.25.0"


class TestEnvOverrides:
    """Tests for apply_env_overrides."""

    def test_no_env(self):
        """Test that an empty environment leaves the config alone."""
        config = BridgeConfig()
        assert apply_env_overrides(config, {}) is config

    @pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("off", False), ("FALSE", False)])
    def test_boolean_values(self, value, expected):
        """Test accepted boolean spellings."""
        assert apply_env_overrides(BridgeConfig(), {ENV_USE_GLOBAL: value}).use_global is expected

    def test_env_values_marked_explicit(self):
        """Test that environment overrides count as explicit settings."""
        config = apply_env_overrides(BridgeConfig(), {ENV_USE_GLOBAL: "true"})
        assert "use_global" in config.explicit

    def test_invalid_boolean(self):
        """Test that an unknown boolean raises."""
        with pytest.raises(ConfigError):
            apply_env_overrides(BridgeConfig(), {ENV_USE_GLOBAL: "maybe"})

    def test_invalid_range(self):
        """Test that a malformed range from the environment raises."""
        with pytest.raises(ConfigError):
            apply_env_overrides(BridgeConfig(), {ENV_VERSION_RANGE: "nope nope"})


class TestLoadDownloader:
    """Tests for load_downloader."""

    def test_resolves_function(self):
        """Test importing a module attribute."""
        assert load_downloader("os.path:join") is os.path.join

    def test_nested_attribute(self):
        """Test dotted attribute paths after the colon."""
        assert load_downloader("os:path.join") is os.path.join

    def test_missing_module(self):
        """Test that an unknown module raises ConfigError."""
        with pytest.raises(ConfigError, match="Cannot import"):
            load_downloader("no_such_module_xyz:fetch")

    def test_missing_attribute(self):
        """Test that an unknown attribute raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_downloader("os.path:no_such_function")

    def test_not_callable(self):
        """Test that non-callables are rejected."""
        with pytest.raises(ConfigError, match="not callable"):
            load_downloader("os:sep")

    def test_malformed_import_string(self):
        """Test that an import string without an attribute is rejected."""
        with pytest.raises(ConfigError):
            load_downloader("os.path")
