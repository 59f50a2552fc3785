"""
load the config from config.yaml and the environment
"""

import os
from pathlib import Path
from typing import Any, Dict

import yaml


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    def __init__(self, config_path: str = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to config.yaml file. If None, uses the config.yaml
                        shipped next to this module.
        """
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"

        self.config_path = Path(config_path)
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            'GTRANSLATE_ENDPOINT': ('fetcher', 'endpoint'),
            'GTRANSLATE_USER_AGENT': ('fetcher', 'user_agent'),
            'GTRANSLATE_TIMEOUT': ('fetcher', 'timeout'),
            'GTRANSLATE_MAX_RESPONSE_SIZE': ('fetcher', 'max_response_size'),
            'GTRANSLATE_SOURCE_LANG': ('session', 'source_lang'),
            'GTRANSLATE_TARGET_LANG': ('session', 'target_lang'),
            'GTRANSLATE_CACHE_DIR': ('session', 'cache_dir'),
            'GTRANSLATE_COOKIE_DIR': ('session', 'cookie_dir'),
            'LOG_LEVEL': ('logging', 'level'),
        }
        # Values that must stay strings even when they look like numbers.
        raw_keys = {'GTRANSLATE_SOURCE_LANG', 'GTRANSLATE_TARGET_LANG',
                    'GTRANSLATE_CACHE_DIR', 'GTRANSLATE_COOKIE_DIR'}

        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is None:
                continue

            current = config
            for key in config_path[:-1]:
                if not isinstance(current.get(key), dict):
                    current[key] = {}
                current = current[key]

            final_key = config_path[-1]
            if env_var in raw_keys:
                current[final_key] = env_value
            else:
                current[final_key] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, *keys, default=None):
        """Get configuration value by nested keys.

        Args:
            *keys: Configuration keys (e.g., 'fetcher', 'timeout')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def fetcher(self) -> Dict[str, Any]:
        """Get HTTP fetcher configuration."""
        return self.get('fetcher', default={})

    @property
    def buffer(self) -> Dict[str, Any]:
        """Get response buffer configuration."""
        return self.get('buffer', default={})

    @property
    def session(self) -> Dict[str, Any]:
        """Get session defaults."""
        return self.get('session', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={})


# Global configuration instance
config = Config()
