"""
================================================================================
Browser Manager
================================================================================

Browser lifecycle management for the portal UI suite.

Features:
    - Single browser per session, isolated context per test
    - Launch and viewport settings from config/config.yaml
    - Restore of the signed-in session saved in authState.json

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from loguru import logger
from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
)

from .auth_session import auth_state_path, save_session
from .config_loader import ConfigLoader


class BrowserManager:
    """
    Manages the browser instance and contexts for UI testing.

    Usage:
        async with BrowserManager() as manager:
            page = await manager.new_page()
            await page.goto("https://portal.example.com/login")

        # Start from the saved session
        async with BrowserManager() as manager:
            page = await manager.new_page(restore_auth=True)
    """

    DEFAULT_LAUNCH_OPTIONS: Dict[str, Any] = {
        "args": ["--ignore-certificate-errors"],
    }

    DEFAULT_CONTEXT_OPTIONS: Dict[str, Any] = {
        "ignore_https_errors": True,
    }

    def __init__(
        self,
        headless: Optional[bool] = None,
        browser_type: Optional[str] = None,
        slow_mo: Optional[int] = None,
        auth_state_file: Optional[Path] = None,
    ):
        """
        Initialize browser manager. Unset arguments come from configuration.

        Args:
            headless: Run browser in headless mode (``browser.headless``)
            browser_type: 'chromium', 'firefox' or 'webkit' (``browser.type``)
            slow_mo: Delay between operations in ms (``browser.slow_mo``)
            auth_state_file: Saved session file (``auth.state_file``)
        """
        config = ConfigLoader()
        self.headless = headless if headless is not None else config.get("browser.headless", True)
        self.browser_type = browser_type or config.get("browser.type", "chromium")
        self.slow_mo = slow_mo if slow_mo is not None else config.get("browser.slow_mo", 0)
        self.viewport = {
            "width": config.get("viewport.width", 1500),
            "height": config.get("viewport.height", 720),
        }
        self.auth_state_file = Path(auth_state_file) if auth_state_file else auth_state_path(config)

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._contexts: List[BrowserContext] = []

    async def __aenter__(self) -> "BrowserManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Start Playwright and launch browser."""
        self._playwright = await async_playwright().start()

        if self.browser_type == "firefox":
            browser_launcher = self._playwright.firefox
        elif self.browser_type == "webkit":
            browser_launcher = self._playwright.webkit
        else:
            browser_launcher = self._playwright.chromium

        launch_options = {
            **self.DEFAULT_LAUNCH_OPTIONS,
            "headless": self.headless,
            "slow_mo": self.slow_mo,
        }
        if self.browser_type != "chromium":
            launch_options.pop("args")

        self._browser = await browser_launcher.launch(**launch_options)
        logger.debug(
            f"Browser started: {self.browser_type} "
            f"(headless={self.headless}, viewport={self.viewport})"
        )

    async def close(self) -> None:
        """Close all contexts and browser."""
        for context in self._contexts:
            try:
                await context.close()
            except Exception as e:
                logger.debug(f"Context already closed: {e}")
        self._contexts.clear()

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.debug("Browser closed")

    @property
    def has_auth_state(self) -> bool:
        return self.auth_state_file.exists()

    async def new_context(self, restore_auth: bool = False, **options: Any) -> BrowserContext:
        """
        Create a new isolated browser context.

        Args:
            restore_auth: Load the saved session when the state file exists
            **options: Additional context options

        Returns:
            New BrowserContext
        """
        if not self._browser:
            raise RuntimeError("Browser not started. Call start() first.")

        context_options = {
            **self.DEFAULT_CONTEXT_OPTIONS,
            "viewport": dict(self.viewport),
            **options,
        }

        if restore_auth and self.has_auth_state:
            context_options["storage_state"] = str(self.auth_state_file)
            logger.debug(f"Restored authentication state from {self.auth_state_file}")

        context = await self._browser.new_context(**context_options)
        self._contexts.append(context)
        return context

    async def new_page(
        self,
        context: Optional[BrowserContext] = None,
        restore_auth: bool = False,
        **context_options: Any,
    ) -> Page:
        if context is None:
            context = await self.new_context(restore_auth=restore_auth, **context_options)
        return await context.new_page()

    async def save_auth_state(self, page: Page, origin: str) -> Path:
        """
        Persist cookies plus the page's localStorage under ``origin``.
        """
        return await save_session(page, origin, self.auth_state_file)

    @property
    def browser(self) -> Optional[Browser]:
        return self._browser


# =============================================================================
# Convenience Functions
# =============================================================================

async def create_authenticated_page(
    manager: BrowserManager,
    dashboard_url: str,
    login_func: Callable[[Page], Awaitable[Any]],
) -> Tuple[BrowserContext, Page]:
    """
    Open a page that is signed in to the portal.

    Restores the saved session when there is one. If the portal still
    redirects to the login screen (missing or expired session), runs
    ``login_func`` on a fresh context; ``login_func`` is expected to save
    the new session.

    Args:
        manager: Started BrowserManager
        dashboard_url: A page that requires authentication
        login_func: Async function performing the login (receives page)

    Returns:
        Tuple of (context, authenticated page)
    """
    context = await manager.new_context(restore_auth=True)
    page = await context.new_page()
    await page.goto(dashboard_url, wait_until="domcontentloaded")
    try:
        # The SPA redirects to /login only after its auth check request
        await page.wait_for_load_state("networkidle", timeout=10000)
    except Exception as e:
        logger.debug(f"Network not idle after restore: {e}")

    if "login" not in page.url.lower():
        logger.info("Restored authentication from saved state")
        return context, page

    logger.info("No valid auth state, performing login...")
    await context.close()
    context = await manager.new_context()
    page = await context.new_page()
    await login_func(page)
    return context, page


__all__ = [
    "BrowserManager",
    "create_authenticated_page",
]
