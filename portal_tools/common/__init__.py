"""
================================================================================
Portal Tools Common Utilities
================================================================================

This module provides shared utilities, configuration management, environment
loading and logging setup for all portal tools.

Exports:
    - GlobalConfig: Singleton configuration manager
    - get_config: Convenience function to get configuration values
    - load_environment: Load .env.local / .env files into os.environ
    - init_logger: Function to initialize loguru logger with standard settings

Usage:
    from portal_tools.common import get_config, init_logger, load_environment

    load_environment()
    init_logger()
    retries = get_config("gmail.max_retries", 6)

================================================================================
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# ============================================================
# Environment Loading
# ============================================================

# Later entries never override earlier ones: process env > .env.local > .env
ENV_FILES = (".env.local", ".env")

_environment_loaded = False


def load_environment(root: Optional[Path] = None, force: bool = False) -> List[Path]:
    """
    Load dotenv files into the process environment.

    Variables already present in ``os.environ`` (for example CI secrets) are
    never overridden. ``.env.local`` is meant for local development and is
    gitignored; ``.env`` carries shared defaults.

    Args:
        root: Directory holding the dotenv files. Defaults to the project root.
        force: Load again even if a previous call already did.

    Returns:
        The dotenv files that were found and loaded.
    """
    global _environment_loaded

    if _environment_loaded and not force:
        return []

    base = Path(root) if root else PROJECT_ROOT
    loaded = []
    for name in ENV_FILES:
        path = base / name
        if path.is_file():
            load_dotenv(dotenv_path=path, override=False)
            loaded.append(path)
            logger.debug(f"Loaded environment from {path}")

    _environment_loaded = True
    return loaded


# ============================================================
# Configuration Management
# ============================================================

class GlobalConfig:
    """
    Singleton class to manage global configurations for portal_tools.

    Loads settings from the tools YAML file and environment variables.
    Environment variables take precedence over file-based configuration.
    """
    _instance: Optional["GlobalConfig"] = None
    _initialized: bool = False

    CONFIG_PATHS = [
        Path("config/tools_config.yaml"),
        PROJECT_ROOT / "config" / "tools_config.yaml",
    ]

    ENV_MAPPING = {
        "GMAIL_TOKEN_PATH": "gmail.token_path",
        "GMAIL_MAX_RETRIES": "gmail.max_retries",
        "GMAIL_INITIAL_WAIT": "gmail.initial_wait",
        "LOG_LEVEL": "logging.level",
        "LOG_FILE": "logging.file",
    }

    def __new__(cls) -> "GlobalConfig":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._config: Dict[str, Any] = {}
        self._load_configs()
        GlobalConfig._initialized = True

    def _load_configs(self) -> None:
        """
        Loads configurations from YAML files and environment variables.
        """
        for config_path in self.CONFIG_PATHS:
            if config_path.exists():
                try:
                    with open(config_path, "r", encoding="utf-8") as f:
                        file_config = yaml.safe_load(f) or {}
                        self._config.update(file_config)
                    logger.debug(f"Loaded configuration from {config_path}")
                    break
                except yaml.YAMLError as e:
                    logger.warning(f"Failed to load config from {config_path}: {e}")

        for env_key, config_key in self.ENV_MAPPING.items():
            if env_key in os.environ:
                self._set_nested(config_key, os.environ[env_key])

    def _set_nested(self, key: str, value: Any) -> None:
        """
        Sets a nested configuration value using dot notation.
        """
        keys = key.split(".")
        current = self._config
        for k in keys[:-1]:
            if k not in current:
                current[k] = {}
            current = current[k]
        current[keys[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieves a configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "gmail.max_retries")
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

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next access reloads files and env."""
        global _global_config
        cls._instance = None
        cls._initialized = False
        _global_config = None


# Global config instance
_global_config: Optional[GlobalConfig] = None


def get_config(key: str, default: Any = None) -> Any:
    """
    Convenience function to get a configuration value.

    Args:
        key: Configuration key using dot notation
        default: Default value if not found

    Returns:
        Configuration value or default

    Example:
        wait = get_config("gmail.initial_wait", 5)
    """
    global _global_config
    if _global_config is None:
        _global_config = GlobalConfig()
    return _global_config.get(key, default)


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
        init_logger(level="DEBUG", log_file="logs/portal_tests.log")
    """
    global _logger_initialized

    if _logger_initialized:
        return

    # Remove default handler
    logger.remove()

    level = level or get_config("logging.level", "INFO")
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


# Export public API
__all__ = [
    "GlobalConfig",
    "get_config",
    "load_environment",
    "init_logger",
]
