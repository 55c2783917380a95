"""
================================================================================
Fixture Tools Common Utilities
================================================================================

This module provides shared configuration management and logging setup for
the MongoDB fixture module and the scaffold generator.

Exports:
    - GlobalConfig: Singleton configuration manager
    - get_config: Convenience function to get configuration values
    - set_config: Convenience function to set configuration values
    - reset_config: Drops the loaded configuration (used by tests)
    - init_logger: Function to initialize loguru logger with standard settings
    - mask_uri: Hides credentials inside a connection URI

Usage:
    from fixture_tools.common import get_config, init_logger

    init_logger()
    dsn = get_config("mongodb.dsn")

================================================================================
"""

import os
import re
import sys
from typing import Any, Dict, Optional

import yaml
from loguru import logger

# ============================================================
# Configuration Management
# ============================================================

# Environment variable -> dotted config key
ENV_MAPPING = {
    "MONGO_DSN": "mongodb.dsn",
    "MONGO_USER": "mongodb.user",
    "MONGO_PASSWORD": "mongodb.password",
    "MONGO_DUMP": "mongodb.dump",
    "MONGO_POPULATE": "mongodb.populate",
    "MONGO_CLEANUP": "mongodb.cleanup",
    "MONGO_SHELL": "mongodb.shell",
    "PROJECT_DIR": "mongodb.project_dir",
    "LOG_LEVEL": "logging.level",
    "LOG_FILE": "logging.file",
}


class GlobalConfig:
    """
    Singleton class to manage global configuration for fixture_tools.

    Loads settings from a YAML configuration file and environment variables.
    Environment variables take precedence over file-based configuration.
    """
    _instance: Optional["GlobalConfig"] = None
    _config: Dict[str, Any] = {}
    _initialized: bool = False

    def __new__(cls) -> "GlobalConfig":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._config = {}
        self._load_configs()
        self._initialized = True

    def _load_configs(self) -> None:
        """
        Loads configuration from YAML files and environment variables.
        """
        config_paths = [
            os.environ.get("FIXTURE_TOOLS_CONFIG", ""),
            "config/tools_config.yaml",
            "fixture_tools/config/tools_config.yaml",
            os.path.join(os.path.dirname(__file__), "..", "config", "tools_config.yaml"),
        ]

        for config_path in config_paths:
            if config_path and os.path.exists(config_path):
                try:
                    with open(config_path, "r", encoding="utf-8") as f:
                        file_config = yaml.safe_load(f) or {}
                        self._config.update(file_config)
                    logger.debug(f"Loaded configuration from {config_path}")
                    break
                except (OSError, yaml.YAMLError) as e:
                    logger.warning(f"Failed to load config from {config_path}: {e}")

        for env_key, config_key in ENV_MAPPING.items():
            if env_key in os.environ:
                self._set_nested(config_key, os.environ[env_key])

    def _set_nested(self, key: str, value: Any) -> None:
        """
        Sets a nested configuration value using dot notation.
        """
        keys = key.split(".")
        current = self._config
        for k in keys[:-1]:
            if not isinstance(current.get(k), dict):
                current[k] = {}
            current = current[k]
        current[keys[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieves a configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "mongodb.dsn")
            default: Default value if key is not found

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self._config
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Sets a configuration value.
        """
        self._set_nested(key, value)

    def get_all(self) -> Dict[str, Any]:
        """
        Returns the entire configuration dictionary.
        """
        return self._config.copy()

    @classmethod
    def reset(cls) -> None:
        """
        Drops the singleton so the next access reloads files and environment.
        """
        cls._instance = None
        cls._config = {}
        cls._initialized = False


def get_config(key: str, default: Any = None) -> Any:
    """
    Convenience function to get a configuration value.

    Args:
        key: Configuration key using dot notation
        default: Default value if not found

    Returns:
        Configuration value or default

    Example:
        dsn = get_config("mongodb.dsn", "mongodb://localhost:27017/test")
    """
    return GlobalConfig().get(key, default)


def set_config(key: str, value: Any) -> None:
    """
    Convenience function to set a configuration value.
    """
    GlobalConfig().set(key, value)


def reset_config() -> None:
    """
    Forgets the loaded configuration.
    """
    GlobalConfig.reset()


# ============================================================
# Logging Setup
# ============================================================

_logger_initialized = False


def init_logger(
    level: str = None,
    format_string: str = None,
    log_file: str = None
) -> None:
    """
    Initializes the loguru logger with standard settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to config value.
        format_string: Log format string. Uses default if not provided.
        log_file: Optional file path to write logs to.

    Example:
        init_logger()  # Use defaults
        init_logger(level="DEBUG", log_file="logs/fixtures.log")
    """
    global _logger_initialized

    if _logger_initialized:
        return

    logger.remove()

    level = (level or get_config("logging.level", "INFO")).upper()
    format_string = format_string or get_config(
        "logging.format",
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        format=format_string,
        level=level,
        colorize=True,
    )

    log_file = log_file or get_config("logging.file")
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        logger.add(
            log_file,
            format=format_string,
            level=level,
            rotation=get_config("logging.rotation", "10 MB"),
            retention=get_config("logging.retention", "7 days"),
        )

    _logger_initialized = True
    logger.debug("Logger initialized successfully")


# ============================================================
# Common Utilities
# ============================================================

def mask_uri(uri: str) -> str:
    """
    Masks the credentials part of a connection URI.
    """
    return re.sub(r"://[^@/]+@", "://****:****@", uri)


def to_bool(value: Any, default: bool = False) -> bool:
    """
    Coerces config values to bool. Environment variables arrive as strings.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    return str(value).strip().lower() in ("true", "1", "yes", "on")


__all__ = [
    "GlobalConfig",
    "get_config",
    "set_config",
    "reset_config",
    "init_logger",
    "mask_uri",
    "to_bool",
]
