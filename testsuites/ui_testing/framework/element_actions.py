# ================================================================================
# Element Actions Module
# ================================================================================
#
# Async element interaction utilities with built-in retry logic, Allure steps
# and helpers for the Syncfusion widgets used across the portal.
#
# Key Features:
#   - Async retry decorator with exponential backoff
#   - Click / double-click / right-click / fill with waits
#   - Syncfusion e-ddl drop-down selection
#   - First-visible lookup over a list of fallback selectors
#
# ================================================================================

import asyncio
from functools import wraps
from typing import Callable, Iterable, Optional, Tuple, Type, Union

import allure
from loguru import logger
from playwright.async_api import Locator, Page


# Patched in unit tests
_sleep = asyncio.sleep

DROPDOWN_POPUP = "div.e-popup-open, div[id$='_popup'], [role='listbox']"
DROPDOWN_ITEM = "li.e-list-item"


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        delay_seconds: float = 1.0,
        backoff_multiplier: float = 2.0,
        max_delay_seconds: float = 10.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts
            delay_seconds: Initial delay between attempts
            backoff_multiplier: Multiplier for exponential backoff
            max_delay_seconds: Upper bound for the delay
            retry_on: Exception types that trigger another attempt
        """
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self.backoff_multiplier = backoff_multiplier
        self.max_delay_seconds = max_delay_seconds
        self.retry_on = retry_on


def with_retry(config: RetryConfig = None):
    """
    Decorator adding retry logic to async element actions.

    Args:
        config: RetryConfig object for controlling retry behavior
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None
            delay = config.delay_seconds

            for attempt in range(config.max_attempts):
                try:
                    return await func(*args, **kwargs)
                except config.retry_on as e:
                    last_exception = e
                    if attempt < config.max_attempts - 1:
                        logger.warning(
                            f"Attempt {attempt + 1}/{config.max_attempts} failed for "
                            f"{func.__name__}: {e}. Retrying in {delay}s..."
                        )
                        await _sleep(delay)
                        delay = min(
                            delay * config.backoff_multiplier,
                            config.max_delay_seconds,
                        )

            logger.error(
                f"All {config.max_attempts} attempts failed for {func.__name__}: "
                f"{last_exception}"
            )
            raise last_exception

        return wrapper
    return decorator


class ElementActions:
    """
    Retrying wrappers around Playwright element operations.

    Example:
        actions = ElementActions(page)
        await actions.click("button:has-text('Save')", description="Save button")
        await actions.select_dropdown_option(repeat_dropdown, "Daily", "Repeat")
    """

    def __init__(self, page: Page, default_timeout: int = 10000):
        self.page = page
        self.default_timeout = default_timeout

    @with_retry()
    async def click(
        self,
        target: Union[str, Locator],
        description: str = "",
        timeout: int = None,
        force: bool = False,
    ) -> None:
        timeout = timeout or self.default_timeout
        locator = self._get_locator(target)

        with allure.step(f"Click element: {description or target}"):
            logger.info(f"Clicking element: {description or target}")
            await locator.wait_for(state="visible", timeout=timeout)
            await locator.click(timeout=timeout, force=force)

    @with_retry()
    async def double_click(
        self,
        target: Union[str, Locator],
        description: str = "",
        timeout: int = None,
        force: bool = False,
    ) -> None:
        timeout = timeout or self.default_timeout
        locator = self._get_locator(target)

        with allure.step(f"Double-click element: {description or target}"):
            logger.info(f"Double-clicking element: {description or target}")
            await locator.scroll_into_view_if_needed(timeout=timeout)
            await locator.dblclick(timeout=timeout, force=force)

    @with_retry()
    async def right_click(
        self,
        target: Union[str, Locator],
        description: str = "",
        timeout: int = None,
    ) -> None:
        timeout = timeout or self.default_timeout
        locator = self._get_locator(target)

        with allure.step(f"Right-click element: {description or target}"):
            logger.info(f"Right-clicking element: {description or target}")
            await locator.wait_for(state="visible", timeout=timeout)
            await locator.click(button="right", timeout=timeout)

    @with_retry()
    async def fill(
        self,
        target: Union[str, Locator],
        value: str,
        description: str = "",
        clear_first: bool = True,
        timeout: int = None,
    ) -> None:
        """
        Fill an input field with text.

        Args:
            target: CSS selector or Locator object
            value: Text to enter
            description: Human-readable description for reporting
            clear_first: Clear existing content before filling
            timeout: Operation timeout in milliseconds
        """
        timeout = timeout or self.default_timeout
        locator = self._get_locator(target)

        with allure.step(f"Fill input: {description or target}"):
            logger.info(f"Filling input: {description or target} with '{value[:50]}'")
            await locator.wait_for(state="visible", timeout=timeout)
            if clear_first:
                await locator.clear()
            await locator.fill(value, timeout=timeout)

    @with_retry()
    async def select_dropdown_option(
        self,
        trigger: Union[str, Locator],
        option_text: str,
        description: str = "",
        timeout: int = None,
    ) -> None:
        """
        Pick an item from a Syncfusion ``e-ddl`` drop-down.

        Args:
            trigger: The drop-down wrapper or its ``.e-ddl-icon``
            option_text: Visible text of the ``li.e-list-item`` to pick
            description: Human-readable description for reporting
            timeout: Operation timeout in milliseconds
        """
        timeout = timeout or self.default_timeout
        locator = self._get_locator(trigger)

        with allure.step(f"Select '{option_text}' in {description or 'drop-down'}"):
            logger.info(f"Selecting '{option_text}' in {description or trigger}")
            await locator.click(timeout=timeout)

            popup = self.page.locator(DROPDOWN_POPUP).last
            await popup.wait_for(state="visible", timeout=timeout)

            option = popup.locator(DROPDOWN_ITEM).filter(has_text=option_text).first
            await option.click(timeout=timeout)
            await popup.wait_for(state="hidden", timeout=timeout)

    async def first_visible(
        self,
        selectors: Iterable[Union[str, Locator]],
        timeout: int = 2000,
    ) -> Optional[Locator]:
        """
        Return the first of ``selectors`` that becomes visible, or None.

        Each selector gets ``timeout`` milliseconds.
        """
        for selector in selectors:
            locator = self._get_locator(selector).first
            try:
                await locator.wait_for(state="visible", timeout=timeout)
                logger.debug(f"Visible: {selector}")
                return locator
            except Exception:
                continue
        return None

    async def is_visible(self, target: Union[str, Locator], timeout: int = 5000) -> bool:
        try:
            await self._get_locator(target).first.wait_for(state="visible", timeout=timeout)
            return True
        except Exception:
            return False

    def _get_locator(self, target: Union[str, Locator]) -> Locator:
        if isinstance(target, Locator):
            return target
        return self.page.locator(target)


__all__ = [
    "RetryConfig",
    "with_retry",
    "ElementActions",
]
