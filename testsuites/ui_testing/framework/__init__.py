"""
================================================================================
UI Testing Framework
================================================================================

Playwright-based UI automation framework for the portal.

Components:
    - config_loader: YAML configuration with environment overrides
    - smart_locator: Element location with fallback strategies
    - page_base: Base page object for common operations
    - grid_page: Shared behaviour of the ejs-grid screens
    - browser_manager: Browser lifecycle and saved sessions
    - element_actions: Retrying element operations
    - grid_helpers / date_helpers: Pure parsing and ordering checks
    - data_factory: Seeded test data

Author: Automation Team
License: MIT
================================================================================
"""

from .config_loader import ConfigLoader, ConfigurationError
from .smart_locator import SmartLocator, ElementNotFoundError
from .page_base import BasePage
from .browser_manager import BrowserManager
from .data_factory import PortalDataFactory

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "SmartLocator",
    "ElementNotFoundError",
    "BasePage",
    "BrowserManager",
    "PortalDataFactory",
]
