"""
================================================================================
Smart Locator
================================================================================

Element location with ordered fallback strategies for the portal's shared
elements (login form, MFA skip, toasts).

    - Multiple selectors per element, tried in order
    - Fallback use is logged and collected in a health report that is
      attached to Allure when a test fails

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from loguru import logger
from playwright.async_api import Locator, Page


class ElementNotFoundError(Exception):
    """Raised when all locator strategies fail to find element."""
    pass


@dataclass
class LocatorHealth:
    """Which strategy resolved an element."""
    element_name: str
    primary_selector: str
    fallback_name: Optional[str] = None
    fallback_selector: Optional[str] = None


class SmartLocator:
    """
    Element locator with fallback strategies.

    Usage:
        >>> smart = SmartLocator(page)
        >>> await smart.fill("username_input", "therapist01")
        >>> await smart.click("sign_in_button")
        >>> error = await smart.locate("login_error", timeout=10000)

    Locators are defined in the LOCATORS dictionary as
    ``element_name -> {strategy_name: selector}``; dict order is try order.
    """

    LOCATORS: Dict[str, Dict[str, str]] = {
        # Authentication
        "username_input": {
            "primary": "role=textbox[name='Username']",
            "fallback_1": "input[formcontrolname='username']",
            "fallback_2": "input[placeholder*='Username' i]",
        },
        "password_input": {
            "primary": "role=textbox[name='Password']",
            "fallback_1": "input[formcontrolname='password']",
            "fallback_2": "input[type='password']",
        },
        "sign_in_button": {
            "primary": "role=button[name='Sign In']",
            "fallback_1": "button[type='submit']",
        },
        "mfa_skip_button": {
            "primary": "button:has-text('Skip')",
            "fallback_1": "a:has-text('Skip')",
        },
        "login_error": {
            "primary": "#toast-container .toast-error",
            "fallback_1": "[role='alert']",
            "fallback_2": ".alert-danger",
            "fallback_3": ".invalid-feedback",
        },

        # Feedback
        "toast_success": {
            "primary": "#toast-container .toast-success",
            "fallback_1": ".toast-title",
            "fallback_2": "[role='alert']",
        },
    }

    def __init__(self, page: Page):
        self.page = page
        self._fallback_used: Dict[str, LocatorHealth] = {}

    async def locate(self, element_name: str, timeout: int = 5000) -> Locator:
        """
        Locate element using the fallback strategy.

        Args:
            element_name: Key in ``LOCATORS``
            timeout: Timeout in milliseconds for each attempt

        Returns:
            Playwright Locator for the first visible match

        Raises:
            ElementNotFoundError: When all strategies fail
        """
        locators = self.LOCATORS.get(element_name)
        if not locators:
            raise ElementNotFoundError(f"No locators defined for element: {element_name}")

        errors = []
        for strategy_name, selector in locators.items():
            try:
                locator = self.page.locator(selector).first
                await locator.wait_for(state="visible", timeout=timeout)
            except Exception as e:
                errors.append(f"{strategy_name}: {selector} -> {str(e)[:50]}")
                continue

            if strategy_name == "primary":
                logger.debug(f"Element '{element_name}' found: {selector}")
            else:
                logger.warning(f"Element '{element_name}' used fallback: {strategy_name} -> {selector}")
                self._fallback_used[element_name] = LocatorHealth(
                    element_name=element_name,
                    primary_selector=locators.get("primary", selector),
                    fallback_name=strategy_name,
                    fallback_selector=selector,
                )
            return locator

        error_msg = (
            f"All locators failed for '{element_name}':\n"
            + "\n".join(f"  - {err}" for err in errors)
        )
        logger.error(error_msg)
        raise ElementNotFoundError(error_msg)

    async def click(self, element_name: str, timeout: int = 5000, **kwargs: Any) -> None:
        locator = await self.locate(element_name, timeout=timeout)
        await locator.click(**kwargs)

    async def fill(self, element_name: str, value: str, timeout: int = 5000, **kwargs: Any) -> None:
        locator = await self.locate(element_name, timeout=timeout)
        await locator.fill(value, **kwargs)

    async def is_visible(self, element_name: str, timeout: int = 2000) -> bool:
        """Visibility check; never raises for a missing element."""
        try:
            locator = await self.locate(element_name, timeout=timeout)
            return await locator.is_visible()
        except ElementNotFoundError:
            return False

    def get_health_report(self) -> str:
        """Summarize elements that needed a fallback."""
        if not self._fallback_used:
            return "All elements used primary locators. No maintenance needed."

        report_lines = [
            "Locator Health Report - Fallbacks Used:",
            "",
        ]
        for element_name, health in self._fallback_used.items():
            report_lines.extend([
                f"  [{element_name}]",
                f"    Failed primary: {health.primary_selector}",
                f"    Used: {health.fallback_name} -> {health.fallback_selector}",
                "",
            ])
        return "\n".join(report_lines)


__all__ = [
    "SmartLocator",
    "ElementNotFoundError",
    "LocatorHealth",
]
