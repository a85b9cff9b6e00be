"""
Configuration loader with priority: CLI > env > TOML > defaults
"""
import os
import tomllib
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from ...core.constants import ENV_PREFIX
from ...core.exceptions import ConfigError
from ...core.utils import parse_size
from ...domain.transfer.models import TransferConfig
from ...infrastructure.s3.store import StoreConfig

# Keys holding byte sizes ("128M" is accepted)
_SIZE_KEYS = ("chunk_size", "read_size")


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value}")


# Environment suffix -> (section, setting, converter); sizes stay strings until build()
_ENV_SETTINGS: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
    "CHUNK_SIZE": ("transfer", "chunk_size", str),
    "READ_SIZE": ("transfer", "read_size", str),
    "MAX_TRY_COUNT": ("transfer", "max_try_count", int),
    "RETRY_INTERVAL_MS": ("transfer", "retry_interval_ms", int),
    "STORAGE_CLASS": ("transfer", "storage_class", str),
    "ABORT_ON_FAILURE": ("transfer", "abort_on_failure", _parse_bool),
    "CONNECT_TIMEOUT": ("transfer", "connect_timeout", float),
    "READ_TIMEOUT": ("transfer", "read_timeout", float),
    "REGION": ("store", "region", str),
    "ENDPOINT_URL": ("store", "endpoint_url", str),
}


class ConfigLoader:
    """Configuration loader with priority support"""

    def __init__(self, env_prefix: str = ENV_PREFIX):
        self._env_prefix = env_prefix

    def load_toml(self, path: Path) -> Dict[str, Any]:
        """Load TOML configuration file"""
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            return tomllib.loads(path.read_text(encoding='utf-8'))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration: {e}") from e

    def load_env(self) -> Dict[str, Any]:
        """
        Load configuration from S3RELAY_* environment variables.

        Raises:
            ConfigError: If a variable cannot be converted to its setting's type
        """
        config: Dict[str, Any] = {}

        for env_suffix, (section, name, convert) in _ENV_SETTINGS.items():
            env_name = self._env_prefix + env_suffix
            value = os.getenv(env_name)
            if not value:
                continue
            try:
                config.setdefault(section, {})[name] = convert(value.strip())
            except ValueError as e:
                raise ConfigError(f"Invalid value for {env_name}: {value!r}") from e

        return config

    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones.
        """
        result: Dict[str, Any] = {}

        for config in configs:
            result = self._deep_merge(result, config)

        return result

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def load(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> Dict[str, Any]:
        """
        Load configuration with priority: CLI > env > TOML > defaults

        Args:
            toml_path: Path to TOML configuration file
            cli_overrides: CLI parameter overrides ({"transfer": {...}, "store": {...}})
            use_env: Whether to load from environment variables

        Returns:
            Merged configuration dictionary
        """
        configs = []

        # 1. Load TOML if provided
        if toml_path:
            configs.append(self.load_toml(toml_path))

        # 2. Load environment variables
        if use_env:
            env_config = self.load_env()
            if env_config:
                configs.append(env_config)

        # 3. Apply CLI overrides (highest priority), skipping unset options
        if cli_overrides:
            configs.append({
                section: {k: v for k, v in values.items() if v is not None}
                for section, values in cli_overrides.items()
            })

        # Merge all configs
        return self.merge_configs(*configs)

    def build(self, merged: Dict[str, Any]) -> Tuple[TransferConfig, StoreConfig]:
        """
        Turn a merged configuration dictionary into typed configs.

        Raises:
            ConfigError: If a value cannot be converted or is out of range
        """
        transfer_data = dict(merged.get("transfer", {}))
        for key in _SIZE_KEYS:
            if key in transfer_data:
                value = transfer_data[key]
                size = parse_size(value) if isinstance(value, (str, int)) else None
                if size is None:
                    raise ConfigError(f"Invalid size for {key}: {transfer_data[key]}")
                transfer_data[key] = size

        try:
            transfer_config = TransferConfig.from_dict(transfer_data)
            transfer_config.validate()
        except TypeError as e:
            raise ConfigError(f"Invalid transfer configuration: {e}") from e

        store_config = StoreConfig.from_dict(merged.get("store", {}))
        return transfer_config, store_config
