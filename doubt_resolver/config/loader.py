"""
Configuration management and loading.

Settings are assembled in three layers: built-in defaults, an optional
YAML file, then environment variables. Pricing is not configurable here.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from doubt_resolver.core.router import TierModels
from doubt_resolver.storage.db import DEFAULT_DB_PATH

# Environment variable -> TierModels field
MODEL_ENV_VARS = {
    "TIER1_MODEL": "tier1",
    "TIER2_MODEL": "tier2",
    "TIER3_MODEL": "tier3",
    "VISION_MODEL": "vision",
}
DB_PATH_ENV_VAR = "DOUBT_RESOLVER_DB"
TIMEOUT_ENV_VAR = "PROVIDER_TIMEOUT_SECONDS"


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-actor request window for doubt submissions."""
    limit: int = 20
    window_ms: int = 60 * 1000

    def __post_init__(self):
        """Validate window values are positive."""
        if self.limit <= 0:
            raise ValueError("rate_limit.limit must be > 0")
        if self.window_ms <= 0:
            raise ValueError("rate_limit.window_ms must be > 0")


@dataclass(frozen=True)
class ProviderConfig:
    """Provider client settings."""
    timeout_seconds: float = 60.0

    def __post_init__(self):
        """Validate timeout is positive."""
        if self.timeout_seconds <= 0:
            raise ValueError("provider.timeout_seconds must be > 0")


@dataclass(frozen=True)
class ResolverConfig:
    """Complete resolver configuration."""
    models: TierModels = field(default_factory=TierModels)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    database_path: str = DEFAULT_DB_PATH


def load_resolver_config(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None
) -> ResolverConfig:
    """Load resolver configuration from defaults, YAML and environment.

    Strict validation ensures no silent misconfigurations: unknown keys
    and non-positive limits are rejected.

    Args:
        path: Optional path to YAML configuration file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated ResolverConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config = ResolverConfig()
    if path is not None:
        config = _apply_yaml(config, _read_yaml(path))
    return _apply_environment(config, os.environ if environ is None else environ)


def _read_yaml(path: str) -> Dict:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Resolver config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration file must contain a mapping")
    return raw_config


def _apply_yaml(config: ResolverConfig, raw_config: Dict) -> ResolverConfig:
    allowed_top_keys = {'models', 'rate_limit', 'provider', 'database'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    if 'models' in raw_config:
        models_data = _section(raw_config, 'models', {'tier1', 'tier2', 'tier3', 'vision'})
        for key, value in models_data.items():
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"'models.{key}' must be a non-empty string")
        config = replace(config, models=replace(config.models, **models_data))

    if 'rate_limit' in raw_config:
        rate_data = _section(raw_config, 'rate_limit', {'limit', 'window_ms'})
        for key, value in rate_data.items():
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"'rate_limit.{key}' must be an integer")
        config = replace(config, rate_limit=replace(config.rate_limit, **rate_data))

    if 'provider' in raw_config:
        provider_data = _section(raw_config, 'provider', {'timeout_seconds'})
        if 'timeout_seconds' in provider_data:
            timeout = provider_data['timeout_seconds']
            if not isinstance(timeout, (int, float)) or isinstance(timeout, bool):
                raise ValueError("'provider.timeout_seconds' must be a number")
            config = replace(config, provider=ProviderConfig(timeout_seconds=float(timeout)))

    if 'database' in raw_config:
        database_data = _section(raw_config, 'database', {'path'})
        if 'path' in database_data:
            db_path = database_data['path']
            if not isinstance(db_path, str) or not db_path.strip():
                raise ValueError("'database.path' must be a non-empty string")
            config = replace(config, database_path=db_path)

    return config


def _section(raw_config: Dict, name: str, allowed_keys: set) -> Dict:
    """Return a validated config section.

    Raises:
        ValueError: If the section is not a mapping or has unknown keys
    """
    data = raw_config[name]
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown {name} keys: {unknown_keys}")
    return data


def _apply_environment(config: ResolverConfig, environ: Mapping[str, str]) -> ResolverConfig:
    model_overrides = {
        field_name: environ[env_var].strip()
        for env_var, field_name in MODEL_ENV_VARS.items()
        if environ.get(env_var, "").strip()
    }
    if model_overrides:
        config = replace(config, models=replace(config.models, **model_overrides))

    if environ.get(DB_PATH_ENV_VAR, "").strip():
        config = replace(config, database_path=environ[DB_PATH_ENV_VAR].strip())

    if environ.get(TIMEOUT_ENV_VAR, "").strip():
        try:
            timeout = float(environ[TIMEOUT_ENV_VAR])
        except ValueError:
            raise ValueError(f"{TIMEOUT_ENV_VAR} must be a number")
        config = replace(config, provider=ProviderConfig(timeout_seconds=timeout))

    return config
