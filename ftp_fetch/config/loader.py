"""
Configuration loader for ftp_fetch.

This module handles loading configuration from configuration files and
environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .models import GlobalConfig

ENV_PREFIX = "FTP_FETCH_"


class ConfigLoader:
    """Configuration loader merging a config file with environment variables."""

    def __init__(self, search_paths: Optional[List[Path]] = None) -> None:
        self.config_paths = search_paths if search_paths is not None else [
            Path("ftp_fetch.yaml"),
            Path("ftp_fetch.yml"),
            Path("ftp_fetch.json"),
            Path.home() / ".ftp_fetch" / "config.yaml",
            Path.home() / ".ftp_fetch" / "config.yml",
            Path.home() / ".ftp_fetch" / "config.json",
        ]
        self.env_prefix = ENV_PREFIX

    def load_config(self, config_file: Optional[Union[str, Path]] = None) -> GlobalConfig:
        """
        Load configuration from all available sources.

        Environment variables take precedence over file values.

        Args:
            config_file: Specific config file to load; must exist when given

        Returns:
            GlobalConfig instance with merged configuration

        Raises:
            ValueError: If the file is missing, unparseable, or fails validation
        """
        config_data: Dict[str, Any] = {}

        file_config = self._load_from_file(config_file)
        if file_config:
            config_data.update(file_config)

        env_config = self._load_from_environment()
        if env_config:
            config_data = self._deep_merge(config_data, env_config)

        return GlobalConfig(**config_data)

    def _load_from_file(
        self, config_file: Optional[Union[str, Path]] = None
    ) -> Optional[Dict[str, Any]]:
        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise ValueError(f"Config file not found: {config_path}")
            return self._parse_config_file(config_path)

        for config_path in self.config_paths:
            if config_path.exists():
                return self._parse_config_file(config_path)
        return None

    def _parse_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Parse configuration file based on extension."""
        suffix = config_path.suffix.lower()
        if suffix not in (".yaml", ".yml", ".json"):
            raise ValueError(f"Unsupported config file format: {config_path.suffix}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to parse config file {config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        return data

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        env_mappings = {
            # Logging
            f"{self.env_prefix}LOG_LEVEL": ("logging", "level"),
            f"{self.env_prefix}LOG_FILE": ("logging", "file_path"),
            f"{self.env_prefix}LOG_FORMAT": ("logging", "format"),
            f"{self.env_prefix}STRUCTURED_LOGS": ("logging", "enable_structured"),
            # Fetch defaults
            f"{self.env_prefix}USERNAME": ("fetch", "username"),
            f"{self.env_prefix}PASSWORD": ("fetch", "password"),
            f"{self.env_prefix}TRANSFER_MODE": ("fetch", "transfer_mode"),
            f"{self.env_prefix}PASSIVE_MODE": ("fetch", "passive_mode"),
            f"{self.env_prefix}MAX_RETRIES": ("fetch", "max_retries"),
            f"{self.env_prefix}RETRY_DELAY": ("fetch", "retry_delay"),
            f"{self.env_prefix}CONNECTION_TIMEOUT": ("fetch", "connection_timeout"),
            f"{self.env_prefix}SOCKET_TIMEOUT": ("fetch", "socket_timeout"),
            f"{self.env_prefix}TEXT_SUFFIXES": ("fetch", "text_suffixes"),
        }
        # Free-form string settings skip type conversion
        raw_values = {
            f"{self.env_prefix}USERNAME",
            f"{self.env_prefix}PASSWORD",
            f"{self.env_prefix}LOG_FORMAT",
            f"{self.env_prefix}LOG_FILE",
        }

        for env_var, config_path in env_mappings.items():
            value = os.getenv(env_var)
            if value is None:
                continue
            converted = value if env_var in raw_values else self._convert_env_value(value)

            current = config
            for key in config_path[:-1]:
                current = current.setdefault(key, {})
            current[config_path[-1]] = converted

        if config.get("logging", {}).get("file_path"):
            config["logging"].setdefault("enable_file", True)
        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert environment variable string to appropriate type."""
        lower = value.lower()
        if lower in ("true", "yes", "on"):
            return True
        if lower in ("false", "no", "off"):
            return False

        try:
            if "." in value and not value.startswith("."):
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def save_config(self, config: GlobalConfig, config_file: Union[str, Path]) -> None:
        """Save configuration to file. Passwords are never written."""
        config_path = Path(config_file)
        suffix = config_path.suffix.lower()
        if suffix not in (".yaml", ".yml", ".json"):
            raise ValueError(f"Unsupported config file format: {config_path.suffix}")

        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_data = config.model_dump(mode="json")
        config_data["fetch"].pop("password", None)

        with open(config_path, "w", encoding="utf-8") as f:
            if suffix == ".json":
                json.dump(config_data, f, indent=2)
            else:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
