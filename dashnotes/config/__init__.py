"""Simple YAML configuration loader for DashNotes."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "dashnotes.yaml"

DEFAULTS: Dict[str, Any] = {
    "audio": {
        "chunk_size": 1024,
        "input_device_index": None,
    },
    "speech": {
        "language": "fr-FR",
        "credentials_path": None,
        "enable_automatic_punctuation": True,
        "interim_results": True,
    },
    "storage": {
        "data_directory": "data",
        "projects_key": "projects",
        "write_failure_policy": "warn",
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/dashnotes.log",
        "console_output": True,
    },
}

WRITE_FAILURE_POLICIES = ("ignore", "warn", "raise")


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class DashNotesConfig:
    """DashNotes configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, uses dashnotes.yaml
                        in the current directory when present, else built-in defaults.
        """
        if config_path is None:
            candidate = Path.cwd() / DEFAULT_CONFIG_FILENAME
            self.config_file: Optional[Path] = candidate if candidate.exists() else None
        else:
            self.config_file = Path(config_path)
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        if self.config_file is None:
            logger.info("No configuration file found, using defaults")
            self.config = copy.deepcopy(DEFAULTS)
        else:
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = self._load_config()

        self._validate()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        config = _merge(DEFAULTS, loaded)
        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (("speech", "credentials_path"),
                             ("storage", "data_directory"),
                             ("logging", "file_path")):
            value = config.get(section, {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def _validate(self) -> None:
        policy = self.get('storage.write_failure_policy')
        if policy not in WRITE_FAILURE_POLICIES:
            raise ValueError(
                f"storage.write_failure_policy must be one of {WRITE_FAILURE_POLICIES}, got {policy!r}")
        chunk_size = self.get('audio.chunk_size')
        if not isinstance(chunk_size, int) or chunk_size <= 0:
            raise ValueError(f"audio.chunk_size must be a positive integer, got {chunk_size!r}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'speech.language').

        Args:
            key_path: Dot-separated key path (e.g., 'speech.credentials_path')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config
        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_credentials_path(self) -> Optional[str]:
        """Google credentials path, or None when recognition was never set up."""
        creds_path = self.get('speech.credentials_path')
        return str(Path(creds_path).absolute()) if creds_path else None

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
