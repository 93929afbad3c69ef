"""
================================================================================
Base Page Object
================================================================================

Foundation class for the portal page objects.

Provides:
    - Navigation relative to the configured portal origin
    - Smart element location and retrying element actions
    - MFA skip, loader and toast handling shared by every screen
    - Screenshot and debugging utilities
    - API response capture

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import allure
from loguru import logger
from playwright.async_api import Page, Response

from portal_tools.report_tools import attach_json, attach_text

from .config_loader import ConfigLoader
from .element_actions import ElementActions
from .smart_locator import SmartLocator


SCREENSHOT_DIR = Path(__file__).parent.parent / "screenshots"

# Keep the most recent API responses only
MAX_CAPTURED_RESPONSES = 20


def resolve_base_url(config: Optional[ConfigLoader] = None) -> str:
    """
    Portal origin from ``base.origin``, else the origin of ``login.url``.
    """
    config = config or ConfigLoader()
    origin = config.get("base.origin")
    if origin:
        return str(origin).rstrip("/")

    login_url = config.get("login.url")
    if login_url:
        parts = urlsplit(str(login_url))
        return f"{parts.scheme}://{parts.netloc}"
    return ""


class BasePage:
    """
    Base class for all page objects.

    Usage:
        class LoginPage(BasePage):
            URL_PATH = "/login"

            async def login(self, username: str, password: str):
                await self.fill("username_input", username)
                await self.fill("password_input", password)
                await self.click("sign_in_button")
    """

    URL_PATH: str = "/"
    PAGE_TITLE: str = ""

    def __init__(self, page: Page, base_url: str = ""):
        self.page = page
        self.config = ConfigLoader()
        self.base_url = (base_url or resolve_base_url(self.config)).rstrip("/")
        self.navigation_timeout = int(self.config.get("timeouts.navigation", 15000))
        self.smart = SmartLocator(page)
        self.actions = ElementActions(page)

        self._captured_responses: List[Dict[str, Any]] = []
        self._setup_response_capture()

    def _setup_response_capture(self) -> None:
        async def capture_response(response: Response) -> None:
            if "/api/" not in response.url:
                return
            try:
                body = await response.text()
            except Exception:
                body = "<unable to read>"

            self._captured_responses.append({
                "timestamp": datetime.now().isoformat(),
                "url": response.url,
                "status": response.status,
                "body": body[:1000],
            })
            if len(self._captured_responses) > MAX_CAPTURED_RESPONSES:
                self._captured_responses.pop(0)

        self.page.on("response", capture_response)

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.URL_PATH}"

    async def navigate(self, wait_for: str = "domcontentloaded") -> None:
        """
        Navigate to this page.

        Args:
            wait_for: Wait condition - 'load', 'domcontentloaded', 'networkidle'
        """
        with allure.step(f"Navigate to {self.URL_PATH}"):
            await self.page.goto(self.url, wait_until=wait_for)
            logger.debug(f"Navigated to: {self.url}")

    async def navigate_to(self, path: str, wait_for: str = "domcontentloaded") -> None:
        full_url = f"{self.base_url}{path}"
        with allure.step(f"Navigate to {path}"):
            await self.page.goto(full_url, wait_until=wait_for)
            logger.debug(f"Navigated to: {full_url}")

    # =========================================================================
    # Smart Element Interactions
    # =========================================================================

    async def click(self, element_name: str, timeout: int = 5000, **kwargs: Any) -> None:
        with allure.step(f"Click: {element_name}"):
            await self.smart.click(element_name, timeout, **kwargs)

    async def fill(self, element_name: str, value: str, timeout: int = 5000, **kwargs: Any) -> None:
        shown = "*" * len(value) if "password" in element_name.lower() else value
        with allure.step(f"Fill {element_name}: {shown}"):
            await self.smart.fill(element_name, value, timeout, **kwargs)

    # =========================================================================
    # Wait Utilities
    # =========================================================================

    async def wait_for_url(self, url_pattern: str, timeout: Optional[int] = None) -> None:
        """
        Wait for URL to match a glob pattern such as ``**/dashboard``.
        """
        with allure.step(f"Wait for URL: {url_pattern}"):
            await self.page.wait_for_url(url_pattern, timeout=timeout or self.navigation_timeout)

    async def wait_for_loader(self, timeout: int = 30000) -> None:
        """Wait until the full-page loader overlay is gone."""
        loader = self.page.locator(".loader-wrapper")
        try:
            await loader.first.wait_for(state="hidden", timeout=timeout)
        except Exception as e:
            logger.warning(f"Loader still visible after {timeout}ms: {e}")

    async def wait_for_toast(self, text: Optional[str] = None, timeout: int = 5000) -> Optional[str]:
        """
        Wait for a toast, optionally containing ``text``.

        Returns:
            The toast text, or None when no toast appeared
        """
        toast = self.page.locator("#toast-container, .toast-message, [role='alert']")
        if text:
            toast = toast.filter(has_text=text)
        try:
            await toast.first.wait_for(state="visible", timeout=timeout)
        except Exception:
            return None
        message = (await toast.first.text_content() or "").strip()
        logger.info(f"Toast: {message}")
        return message

    async def skip_mfa(self, timeout: int = 5000) -> bool:
        """
        Click the MFA "Skip" button when it is shown.

        Returns:
            True if the button was clicked
        """
        if not await self.smart.is_visible("mfa_skip_button", timeout=timeout):
            logger.debug("MFA skip button not shown")
            return False
        with allure.step("Skip MFA"):
            await self.smart.click("mfa_skip_button")
            logger.info("MFA skipped")
        return True

    async def pause(self, seconds: float) -> None:
        """Fixed settle delay for animations the DOM does not signal."""
        await asyncio.sleep(seconds)

    # =========================================================================
    # Screenshot and Debug Utilities
    # =========================================================================

    async def screenshot(
        self,
        name: str,
        full_page: bool = False,
        attach_to_allure: bool = True,
    ) -> Path:
        """
        Take screenshot and optionally attach to Allure.

        Returns:
            Path to saved screenshot
        """
        SCREENSHOT_DIR.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = SCREENSHOT_DIR / f"{name}_{timestamp}.png"

        await self.page.screenshot(path=str(filepath), full_page=full_page)

        if attach_to_allure:
            allure.attach(
                filepath.read_bytes(),
                name=name,
                attachment_type=allure.attachment_type.PNG,
            )

        logger.debug(f"Screenshot saved: {filepath}")
        return filepath

    async def capture_failure(self, test_name: str) -> None:
        """Attach screenshot, current URL and recent API responses."""
        with allure.step("Capture failure details"):
            await self.screenshot(f"failure_{test_name}", attach_to_allure=True)
            attach_text(self.page.url, name="Current URL")
            if self._captured_responses:
                attach_json(self._captured_responses[-10:], name="Recent API Responses")
            attach_text(self.smart.get_health_report(), name="Locator Health")


__all__ = [
    "BasePage",
    "PageBase",
    "resolve_base_url",
]

PageBase = BasePage
