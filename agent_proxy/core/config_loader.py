"""Configuration loader with YAML parsing and environment variable substitution"""

import os
import re
import yaml
from typing import Any, Callable, Dict, Optional
from pathlib import Path
from dotenv import load_dotenv

from ..models.config import (
    AppConfig,
    ServerConfig,
    GatewayConfig,
    ModelConfig,
    StreamingConfig,
)


class ConfigLoader:
    """Load and parse configuration from YAML files with environment variable support"""

    # section -> key -> (env var, converter)
    ENV_OVERRIDES: Dict[str, Dict[str, tuple]] = {
        'server': {
            'host': ('PROXY_BIND', str),
            'port': ('PROXY_PORT', int),
            'max_body_bytes': ('PROXY_MAX_BODY_BYTES', int),
            'log_level': ('PROXY_LOG_LEVEL', str),
        },
        'gateway': {
            'host': ('AGENT_GATEWAY_HOST', str),
            'port': ('AGENT_GATEWAY_PORT', int),
            'token': ('AGENT_GATEWAY_TOKEN', str),
            'timeout_seconds': ('AGENT_GATEWAY_TIMEOUT', int),
        },
        'model': {
            'name': ('PROXY_MODEL_NAME', str),
        },
    }

    def __init__(self, config_path: str = "config/config.yaml"):
        """
        Initialize configuration loader

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        # Load environment variables from .env file if it exists
        load_dotenv()

    def _substitute_env_vars(self, value: Any) -> Any:
        """
        Recursively substitute environment variables in configuration values

        Supports ${VAR_NAME} syntax for environment variable substitution

        Args:
            value: Configuration value (can be string, dict, list, etc.)

        Returns:
            Value with environment variables substituted
        """
        if isinstance(value, str):
            # Pattern to match ${VAR_NAME}
            pattern = r'\$\{([^}]+)\}'

            def replace_env_var(match):
                var_name = match.group(1)
                env_value = os.getenv(var_name)
                if env_value is None:
                    raise ValueError(f"Environment variable '{var_name}' is not set")
                return env_value

            return re.sub(pattern, replace_env_var, value)

        elif isinstance(value, dict):
            return {k: self._substitute_env_vars(v) for k, v in value.items()}

        elif isinstance(value, list):
            return [self._substitute_env_vars(item) for item in value]

        else:
            return value

    def load_yaml(self) -> Dict[str, Any]:
        """
        Load YAML configuration file

        A missing file yields an empty configuration so that defaults
        and environment overrides apply.

        Returns:
            Raw configuration dictionary

        Raises:
            ValueError: If YAML parsing fails or the document is not a mapping
        """
        if not self.config_path.exists():
            return {}

        with open(self.config_path, 'r', encoding='utf-8') as f:
            try:
                config_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Failed to parse YAML configuration: {e}")

        if config_data is None:
            return {}
        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a mapping")

        return self._substitute_env_vars(config_data)

    def _apply_env_overrides(self, section: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Override section values with environment variables if present"""
        data = dict(data)
        for key, (env_name, convert) in self.ENV_OVERRIDES.get(section, {}).items():
            env_value = os.getenv(env_name)
            if env_value is None or env_value == "":
                continue
            try:
                data[key] = convert(env_value)
            except ValueError:
                raise ValueError(f"Environment variable '{env_name}' has invalid value: {env_value!r}")
        return data

    def _section(self, data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Configuration section '{name}' must be a mapping")
        return self._apply_env_overrides(name, section)

    def _parse(self, data: Dict[str, Any], name: str, model: Callable[..., Any]) -> Any:
        """Parse one configuration section into its model"""
        return model(**self._section(data, name))

    def load(self) -> AppConfig:
        """
        Load and parse complete application configuration

        Returns:
            Validated AppConfig object

        Raises:
            ValueError: If configuration is invalid
        """
        raw_config = self.load_yaml()

        return AppConfig(
            server=self._parse(raw_config, 'server', ServerConfig),
            gateway=self._parse(raw_config, 'gateway', GatewayConfig),
            model=self._parse(raw_config, 'model', ModelConfig),
            streaming=self._parse(raw_config, 'streaming', StreamingConfig),
        )


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Convenience function to load configuration

    Args:
        config_path: Path to configuration file (defaults to PROXY_CONFIG_PATH env var or config/config.yaml)

    Returns:
        Loaded AppConfig
    """
    if config_path is None:
        config_path = os.getenv('PROXY_CONFIG_PATH', 'config/config.yaml')

    loader = ConfigLoader(config_path)
    return loader.load()
