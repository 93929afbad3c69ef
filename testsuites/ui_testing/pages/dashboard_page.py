"""
================================================================================
Dashboard Page Object (Async / Playwright)
================================================================================

Dashboard of the portal and its "Appointments To Confirm For Today" widget.

The widget is only rendered when the signed-in account has appointments to
confirm; tests use ``is_widget_visible`` to skip otherwise.

================================================================================
"""

from __future__ import annotations

import re
from typing import List

import allure
from loguru import logger
from playwright.async_api import Locator, expect

from testsuites.ui_testing.framework.grid_helpers import parse_item_count
from testsuites.ui_testing.framework.page_base import PageBase


WIDGET_TITLE = re.compile("Appointments To Confirm For Today", re.I)

GRID_COLUMNS = [
    "Patient Name",
    "Phone Number",
    "Provider Name",
    "Appointment Location",
    "Client Location",
    "Date",
    "Appointment Time",
    "Insurance Type",
    "Action",
]

ACTION_ICON_TITLES = ["Edit Appointment", "Send Message", "View & Verify Policy"]


class DashboardPage(PageBase):
    """Dashboard page object (async)."""

    URL_PATH = "/dashboard"
    PAGE_TITLE = "Dashboard"

    @property
    def widget(self) -> Locator:
        return self.page.get_by_text(WIDGET_TITLE).first

    @property
    def section_title(self) -> Locator:
        return self.page.get_by_role("heading", name=WIDGET_TITLE).first

    @property
    def grid(self) -> Locator:
        return self.page.get_by_role("grid").last

    @property
    def reset_button(self) -> Locator:
        return self.page.get_by_role("button", name="Reset")

    @property
    def edit_dialog(self) -> Locator:
        return self.page.locator('[role="dialog"]').first

    def column_header(self, name: str) -> Locator:
        return self.page.get_by_role("columnheader", name=name, exact=True)

    @allure.step("Open dashboard")
    async def open(self) -> "DashboardPage":
        await self.navigate()
        await self.skip_mfa()
        await self.wait_for_url("**/dashboard")
        await self.wait_for_loader(timeout=10000)
        return self

    async def is_widget_visible(self, timeout: int = 5000) -> bool:
        try:
            await self.widget.wait_for(state="visible", timeout=timeout)
            return True
        except Exception:
            logger.info("Appointments To Confirm widget not shown for this account")
            return False

    async def get_widget_count(self) -> int:
        """Count shown in the widget's digits heading."""
        card = self.page.locator("div").filter(has=self.page.get_by_text(WIDGET_TITLE)).last
        heading = card.get_by_role("heading", name=re.compile(r"\d+")).first
        await expect(heading).to_be_visible()
        match = re.search(r"\d+", await heading.text_content() or "")
        count = int(match.group(0)) if match else 0
        logger.info(f"Appointments To Confirm widget count: {count}")
        return count

    @allure.step("Open Appointments To Confirm grid")
    async def open_widget_grid(self) -> None:
        await self.widget.click()
        await expect(self.section_title).to_be_visible(timeout=10000)
        await self.wait_for_loader(timeout=10000)

    @allure.step("Reset filters")
    async def reset_filters(self) -> None:
        await self.reset_button.click()
        await self.wait_for_loader(timeout=10000)

    async def verify_grid_columns(self, columns: List[str] = None) -> None:
        for name in columns or GRID_COLUMNS:
            with allure.step(f"Column visible: {name}"):
                await expect(self.column_header(name)).to_be_visible()

    async def get_grid_item_count(self) -> int:
        pager = self.page.get_by_text(re.compile(r"\(\d+\s+items?\)")).last
        try:
            text = await pager.text_content(timeout=5000)
        except Exception:
            logger.info("No pager shown, grid is empty")
            return 0
        return parse_item_count(text) or 0

    async def check_sort_indicator(self, column: str) -> bool:
        """Click a header and report whether a sort arrow is shown."""
        header = self.column_header(column)
        await header.click()
        await self.wait_for_loader(timeout=5000)
        indicator = header.locator('svg, [class*="sort"], [class*="arrow"]').first
        return await indicator.is_visible()

    @allure.step("Verify action icons")
    async def verify_action_icons(self) -> None:
        for title in ACTION_ICON_TITLES:
            await expect(self.page.get_by_title(title).first).to_be_visible()

    @allure.step("Open Edit Appointment dialog")
    async def open_edit_dialog(self) -> None:
        await self.page.get_by_title("Edit Appointment").first.click()
        await expect(self.edit_dialog).to_be_visible(timeout=10000)
        await expect(
            self.edit_dialog.get_by_role("heading", name=re.compile("Edit Appointment", re.I))
        ).to_be_visible()

    @allure.step("Close Edit Appointment dialog")
    async def close_edit_dialog(self) -> None:
        await self.edit_dialog.locator("button").filter(has_text="Cancel").first.click()
        await expect(self.edit_dialog).to_be_hidden(timeout=5000)


__all__ = [
    "ACTION_ICON_TITLES",
    "DashboardPage",
    "GRID_COLUMNS",
]
