"""
================================================================================
Configuration Loader
================================================================================

YAML-based suite configuration with environment variable override support.

Features:
    - config/config.yaml for non-secret defaults (viewport, timeouts, browser)
    - .env / .env.local loaded into the environment before the first lookup
    - Environment variable override (LOGIN_URL overrides login.url)
    - Dot notation path access with default values

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

from portal_tools.common import load_environment


DEFAULT_CONFIG_PATH = (
    Path(__file__).resolve().parent.parent.parent.parent / "config" / "config.yaml"
)


class ConfigurationError(Exception):
    """Raised when configuration loading or a required setting fails."""
    pass


class ConfigLoader:
    """
    Configuration loader with YAML and environment variable support.

    Configuration hierarchy (highest to lowest priority):
        1. Process environment variables
        2. .env.local, then .env
        3. YAML configuration file
        4. Default values

    Usage:
        >>> config = ConfigLoader()
        >>> config.get("login.url")
        'https://portal.example.com/login'
        >>> config.get("viewport.width", 1500)
        1500

    Environment Variable Mapping:
        - login.url -> LOGIN_URL
        - base.origin -> BASE_ORIGIN
        - sender.email -> SENDER_EMAIL
        - browser.headless -> BROWSER_HEADLESS
    """

    _instance: Optional["ConfigLoader"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[Path] = None) -> "ConfigLoader":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None) -> None:
        if getattr(self, "_initialized", False):
            return

        load_environment()
        self._config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        if not self._config_path.exists():
            logger.warning(
                f"Configuration file not found: {self._config_path}. "
                f"Using defaults and environment variables only."
            )
            self._config = {}
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
            logger.debug(f"Loaded configuration from: {self._config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}"
            ) from e

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key: Dot-notation path (e.g., "timeouts.expect")
            default: Default value if key not found; its type drives the
                conversion of environment values

        Returns:
            Configuration value or default
        """
        env_key = key.upper().replace(".", "_")
        env_value = os.environ.get(env_key)
        if env_value is not None:
            return self._convert_type(env_value, default)

        value = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = None

            if value is None:
                return default

        return value

    def require(self, key: str) -> Any:
        """
        Get a mandatory setting.

        Raises:
            ConfigurationError: Neither the environment nor the YAML sets it
        """
        value = self.get(key)
        if value in (None, ""):
            env_key = key.upper().replace(".", "_")
            raise ConfigurationError(
                f"{env_key} is not set. Add it to .env.local or config/config.yaml ({key})."
            )
        return value

    def reload(self) -> None:
        self._load_config()
        logger.info(f"Configuration reloaded from: {self._config_path}")

    def _convert_type(self, value: str, reference: Any) -> Any:
        """Convert an environment string to the type of ``reference``."""
        if reference is None:
            return value

        if isinstance(reference, bool):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(reference, int):
            try:
                return int(value)
            except ValueError:
                return value
        if isinstance(reference, float):
            try:
                return float(value)
            except ValueError:
                return value

        return value

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next instance re-reads file and env."""
        cls._instance = None
        cls._config = {}


def get_config(key: str, default: Any = None) -> Any:
    """Shortcut for ``ConfigLoader().get``."""
    return ConfigLoader().get(key, default)


__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "get_config",
]
