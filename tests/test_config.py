"""
Unit tests for configuration loading and validation.

Tests layering of defaults, YAML and environment, and strict validation.
"""

import os
import shutil
import tempfile

import pytest
import yaml

from doubt_resolver.config.loader import (
    ProviderConfig,
    RateLimitConfig,
    ResolverConfig,
    load_resolver_config
)
from doubt_resolver.core.router import TierModels


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_defaults_without_file_or_environment(self):
        config = load_resolver_config(environ={})
        assert config == ResolverConfig()
        assert config.models == TierModels()
        assert config.models.vision == "gpt-4o"
        assert config.rate_limit.limit == 20
        assert config.rate_limit.window_ms == 60_000
        assert config.provider.timeout_seconds == 60.0
        assert config.database_path == "doubt_resolver.db"

    def test_valid_config_loads_correctly(self):
        path = self._write_config({
            "models": {"tier1": "gpt-4.1-mini", "tier3": "claude-sonnet-4"},
            "rate_limit": {"limit": 5, "window_ms": 10_000},
            "provider": {"timeout_seconds": 30},
            "database": {"path": "ledger.db"},
        })

        config = load_resolver_config(path, environ={})

        assert config.models.tier1 == "gpt-4.1-mini"
        assert config.models.tier2 == "gpt-4.1"
        assert config.models.tier3 == "claude-sonnet-4"
        assert config.rate_limit == RateLimitConfig(limit=5, window_ms=10_000)
        assert config.provider == ProviderConfig(timeout_seconds=30.0)
        assert config.database_path == "ledger.db"

    def test_environment_overrides_yaml(self):
        path = self._write_config({
            "models": {"tier2": "gpt-4.1-mini"},
            "database": {"path": "ledger.db"},
        })

        config = load_resolver_config(path, environ={
            "TIER2_MODEL": "gpt-4o",
            "VISION_MODEL": "gpt-4.1",
            "DOUBT_RESOLVER_DB": "/tmp/other.db",
            "PROVIDER_TIMEOUT_SECONDS": "12.5",
        })

        assert config.models.tier2 == "gpt-4o"
        assert config.models.vision == "gpt-4.1"
        assert config.database_path == "/tmp/other.db"
        assert config.provider.timeout_seconds == 12.5

    def test_blank_environment_values_ignored(self):
        config = load_resolver_config(environ={"TIER1_MODEL": "  ", "DOUBT_RESOLVER_DB": ""})
        assert config.models.tier1 == "gpt-4o-mini"
        assert config.database_path == "doubt_resolver.db"

    def test_missing_file_raises(self):
        with pytest.raises(FileNotFoundError, match="Resolver config file not found"):
            load_resolver_config(os.path.join(self.temp_dir, "missing.yaml"), environ={})

    def test_empty_file_raises(self):
        path = os.path.join(self.temp_dir, "empty.yaml")
        open(path, 'w').close()
        with pytest.raises(ValueError, match="Configuration file is empty"):
            load_resolver_config(path, environ={})

    def test_non_mapping_raises(self):
        path = self._write_config(["a", "b"])
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_resolver_config(path, environ={})

    def test_invalid_yaml_raises(self):
        path = os.path.join(self.temp_dir, "bad.yaml")
        with open(path, 'w', encoding='utf-8') as f:
            f.write("models: [unclosed\n")
        with pytest.raises(yaml.YAMLError, match="Invalid YAML"):
            load_resolver_config(path, environ={})

    def test_unknown_top_level_key_raises(self):
        path = self._write_config({"budget": {"daily": 10}})
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_resolver_config(path, environ={})

    def test_unknown_section_key_raises(self):
        path = self._write_config({"models": {"tier4": "x"}})
        with pytest.raises(ValueError, match="Unknown models keys"):
            load_resolver_config(path, environ={})

    def test_section_must_be_mapping(self):
        path = self._write_config({"rate_limit": 5})
        with pytest.raises(ValueError, match="'rate_limit' must be a dictionary"):
            load_resolver_config(path, environ={})

    def test_empty_model_name_raises(self):
        path = self._write_config({"models": {"tier1": ""}})
        with pytest.raises(ValueError, match="non-empty string"):
            load_resolver_config(path, environ={})

    def test_non_integer_limit_raises(self):
        path = self._write_config({"rate_limit": {"limit": "ten"}})
        with pytest.raises(ValueError, match="must be an integer"):
            load_resolver_config(path, environ={})

    def test_non_positive_limit_raises(self):
        path = self._write_config({"rate_limit": {"limit": 0}})
        with pytest.raises(ValueError, match="rate_limit.limit must be > 0"):
            load_resolver_config(path, environ={})

    def test_non_positive_timeout_raises(self):
        path = self._write_config({"provider": {"timeout_seconds": 0}})
        with pytest.raises(ValueError, match="timeout_seconds must be > 0"):
            load_resolver_config(path, environ={})

    def test_bad_timeout_environment_raises(self):
        with pytest.raises(ValueError, match="PROVIDER_TIMEOUT_SECONDS must be a number"):
            load_resolver_config(environ={"PROVIDER_TIMEOUT_SECONDS": "soon"})
