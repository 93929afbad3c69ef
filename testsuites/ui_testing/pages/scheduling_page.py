"""
================================================================================
Scheduling Page Object
================================================================================

Syncfusion scheduler (``/scheduling``): day navigation, free slot lookup and
the Add Event / Edit Event popup.

Work cells carry their start time in ``data-date`` (epoch milliseconds).

================================================================================
"""

from __future__ import annotations

import random
from datetime import date
from typing import Dict, List, Optional, Tuple

import allure
from loguru import logger
from playwright.async_api import Locator, expect

from testsuites.ui_testing.framework.date_helpers import (
    add_days,
    days_to_next_business_day,
    is_business_hour_slot,
)
from testsuites.ui_testing.framework.page_base import PageBase


WORK_CELLS = "td.e-work-cells"
AVAILABLE_CELLS = "td.e-work-cells.available:not(.unavailable-color)"
EVENT_SELECTORS = [
    ".e-event:not(button):not(.e-event-cancel):not(.e-event-save)",
    ".e-appointment:not(button)",
    ".e-schedule-event:not(button)",
]
MODAL = '.modal:visible, [role="dialog"]:visible, .e-popup-open'


def boxes_overlap(a: Optional[Dict[str, float]], b: Optional[Dict[str, float]]) -> bool:
    """True when two ``bounding_box()`` rectangles intersect (touching edges do not)."""
    if not a or not b:
        return False
    return not (
        a["x"] + a["width"] <= b["x"]
        or b["x"] + b["width"] <= a["x"]
        or a["y"] + a["height"] <= b["y"]
        or b["y"] + b["height"] <= a["y"]
    )


class SchedulingPage(PageBase):
    """Page Object for the scheduler."""

    URL_PATH = "/scheduling"
    PAGE_TITLE = "Scheduling"

    def __init__(self, page, base_url: str = "", rng: Optional[random.Random] = None):
        super().__init__(page, base_url)
        self.rng = rng or random.Random()
        self.current_date = date.today()

    # ============================================================
    # Page Elements
    # ============================================================

    @property
    def next_button(self) -> Locator:
        return self.page.locator('button[title="Next"], .e-next button').first

    @property
    def modal(self) -> Locator:
        return self.page.locator(MODAL).first

    @property
    def close_icon(self) -> Locator:
        return self.page.locator("button.e-dlg-closeicon-btn").first

    @property
    def save_button(self) -> Locator:
        return self.page.locator("button.e-event-save").first

    @property
    def cancel_button(self) -> Locator:
        return self.page.locator("button.e-event-cancel").first

    @property
    def delete_button(self) -> Locator:
        return self.modal.locator('button.e-event-delete, button:has-text("Delete")').first

    def label(self, text: str) -> Locator:
        return self.modal.locator(f'label:has-text("{text}")').first

    def dropdown(self, label_text: str) -> Locator:
        """Syncfusion ``e-ddl`` wrapper holding the label ``label_text``."""
        return self.modal.locator("div.e-control-wrapper.e-ddl").filter(
            has=self.page.locator(f'label:has-text("{label_text}")')
        ).first

    def input_by_label(self, label_text: str) -> Locator:
        return self.label(label_text).locator("xpath=../..//input").first

    # ============================================================
    # Navigation
    # ============================================================

    @allure.step("Navigate to Scheduling")
    async def navigate_to_scheduling(self) -> None:
        await self.navigate()
        await self.skip_mfa()
        await self.wait_for_url("**/scheduling**")
        logger.info("Navigated to Scheduling page")

    async def wait_for_scheduler_loaded(self) -> None:
        await self.page.wait_for_load_state("domcontentloaded", timeout=10000)
        await self.page.wait_for_selector(".e-schedule, .e-scheduler", state="visible", timeout=15000)

    async def _wait_for_cells(self) -> None:
        try:
            await self.page.wait_for_selector(WORK_CELLS, state="visible", timeout=10000)
        except Exception:
            logger.debug("Work cells not rendered yet")

    @allure.step("Navigate to next business day")
    async def navigate_to_next_day(self, today: Optional[date] = None) -> int:
        """
        Click Next once, or three times when tomorrow is a Saturday.

        Returns:
            Number of clicks
        """
        clicks = days_to_next_business_day(today or self.current_date)
        await expect(self.next_button).to_be_enabled(timeout=10000)
        for _ in range(clicks):
            await self.next_button.click()
            await self._wait_for_cells()
            await self.pause(1)
        self.current_date = add_days(self.current_date, clicks)
        logger.info(f"Moved {clicks} day(s) ahead")
        return clicks

    async def setup_scheduler_for_next_day(self) -> None:
        await self.navigate_to_scheduling()
        self.current_date = date.today()
        await self.wait_for_scheduler_loaded()
        await self.navigate_to_next_day()

    # ============================================================
    # Add Event Popup
    # ============================================================

    async def _event_boxes(self) -> List[Dict[str, float]]:
        events = self.page.locator(".e-appointment, .e-event")
        boxes = []
        for index in range(await events.count()):
            box = await events.nth(index).bounding_box()
            if box:
                boxes.append(box)
        return boxes

    async def find_free_slots(self) -> List[Tuple[Locator, int]]:
        """
        Available work cells between 08:00 and 17:00 that no event overlaps.

        Returns:
            (cell, data-date) pairs
        """
        await self.page.wait_for_selector(WORK_CELLS, timeout=15000)
        try:
            await self.page.wait_for_selector(".e-appointment", timeout=5000)
        except Exception:
            logger.debug("No appointments rendered on this day")

        event_boxes = await self._event_boxes()
        cells = self.page.locator(AVAILABLE_CELLS)
        free = []
        for index in range(await cells.count()):
            cell = cells.nth(index)
            stamp = await cell.get_attribute("data-date")
            if not stamp or not is_business_hour_slot(int(stamp)):
                continue
            box = await cell.bounding_box()
            if not box or any(boxes_overlap(box, event) for event in event_boxes):
                continue
            free.append((cell, int(stamp)))
        return free

    @allure.step("Open Add Event popup on a free slot")
    async def open_add_event_popup_random_slot(self) -> int:
        """
        Double-click a random free slot.

        Returns:
            The slot's ``data-date``

        Raises:
            AssertionError: No free slot between 8 AM and 5 PM
        """
        free = await self.find_free_slots()
        assert free, "No empty slots available between 8 AM and 5 PM"

        cell, stamp = self.rng.choice(free)
        logger.info(f"Double-clicking free slot {stamp} ({len(free)} free)")
        await cell.scroll_into_view_if_needed()
        try:
            await cell.dblclick(timeout=5000)
        except Exception:
            logger.warning("Double-click intercepted, forcing it")
            await cell.dblclick(force=True)

        await expect(self.modal).to_be_visible(timeout=10000)
        return stamp

    async def _find_radio(self, text: str) -> Optional[Locator]:
        radios = self.modal.locator('input[type="radio"]')
        for index in range(await radios.count()):
            radio = radios.nth(index)
            radio_id = await radio.get_attribute("id")
            label = ""
            if radio_id:
                label_locator = self.page.locator(f'label[for="{radio_id}"]')
                if await label_locator.count():
                    label = (await label_locator.first.text_content() or "").strip()
            value = await radio.get_attribute("value") or ""
            if label.lower() == text.lower() or text.lower() in value.lower():
                return radio
        return None

    @allure.step("Select Appointment radio button")
    async def select_appointment_radio_button(self) -> None:
        await expect(self.modal).to_be_visible(timeout=10000)
        await self.modal.locator('input[type="radio"]').first.wait_for(state="attached", timeout=10000)

        radio = None
        for attempt in range(3):
            radio = await self._find_radio("appointment")
            if radio is not None:
                break
            logger.info(f"Appointment radio not found, retry {attempt + 1}/3")
            await self.pause(1)
        assert radio is not None, "Appointment radio button not found"

        await radio.scroll_into_view_if_needed()
        await radio.click(force=True)

    async def select_dropdown(self, label_text: str, option_text: str) -> None:
        await self.actions.select_dropdown_option(
            self.dropdown(label_text).locator(".e-ddl-icon, .e-input-group-icon").first,
            option_text,
            description=label_text,
        )

    # ============================================================
    # Event Form
    # ============================================================

    @property
    def event_type_label(self) -> Locator:
        return self.label("Event Type")

    def textarea_by_label(self, label_text: str) -> Locator:
        return self.label(label_text).locator("xpath=../..//textarea").first

    async def _click_radio(self, text: str) -> None:
        radio = await self._find_radio(text)
        assert radio is not None, f"'{text}' radio button not found"
        await radio.scroll_into_view_if_needed()
        await radio.click(force=True)
        await expect(radio).to_be_checked(timeout=5000)

    @allure.step("Select Event radio button")
    async def select_event_radio_button(self) -> None:
        await expect(self.modal).to_be_visible(timeout=10000)
        await self._click_radio("event")
        await expect(self.event_type_label).to_be_visible(timeout=10000)

    async def is_event_type_visible(self) -> bool:
        return await self.actions.is_visible(self.event_type_label, timeout=2000)

    @allure.step("Select first Event Type")
    async def select_first_event_type(self) -> str:
        """
        Open the Event Type drop-down and pick its first item.

        Returns:
            The selected event type
        """
        await self.dropdown("Event Type").locator(".e-ddl-icon, .e-input-group-icon").first.click()
        option = self.page.locator('div[id$="_popup"]:visible li[role="option"]').first
        await expect(option).to_be_visible(timeout=5000)
        event_type = (await option.text_content() or "").strip()
        await option.click()
        logger.info(f"Event Type selected: {event_type}")
        return event_type

    async def set_event_title(self, title: str) -> None:
        field = self.input_by_label("Event Title")
        await expect(field).to_be_visible(timeout=10000)
        await field.fill(title)
        await expect(field).to_have_value(title)

    async def set_description(self, text: str) -> None:
        field = self.textarea_by_label("Description")
        await expect(field).to_be_editable(timeout=10000)
        await field.fill(text)
        await expect(field).to_have_value(text)

    @allure.step("Open slot for appointments")
    async def open_slot_for_appointments(self) -> None:
        await self._click_radio("yes")

    @allure.step("Save event")
    async def save_event(self) -> Optional[str]:
        """
        Press Save and wait for the popup to close.

        Returns:
            The "Event created" toast text, or None when no toast was shown
        """
        await expect(self.save_button).to_be_enabled(timeout=5000)
        await self.save_button.click()
        message = await self.wait_for_toast("Event", timeout=10000)
        await expect(self.modal).to_be_hidden(timeout=10000)
        if message is None:
            logger.warning("Save finished without an 'Event created' toast")
        return message

    async def create_event(self, title: str, description: str) -> Dict[str, str]:
        """
        Open the Add Event popup on a free slot and save an open-slot event.

        Returns:
            event_type, title, description and the toast message
        """
        with allure.step(f"Create event '{title}'"):
            await self.open_add_event_popup_random_slot()
            await self.select_event_radio_button()
            event_type = await self.select_first_event_type()
            await self.set_event_title(title)
            await self.set_description(description)
            await self.open_slot_for_appointments()
            message = await self.save_event()
        return {"event_type": event_type, "title": title, "description": description, "message": message or ""}

    async def find_event(self, text: str, timeout: int = 10000) -> Optional[Locator]:
        """First visible scheduler event whose text contains ``text``."""
        await self._wait_for_cells()
        candidates = [self.page.locator(selector).filter(has_text=text) for selector in EVENT_SELECTORS]
        return await self.actions.first_visible(candidates, timeout=timeout // len(candidates))

    # ============================================================
    # Close / Delete
    # ============================================================

    async def close_popup_safely(self) -> None:
        """Close the popup with Cancel, or the close icon, if it is still open."""
        if self.page.is_closed():
            return
        if not await self.actions.is_visible(self.modal, timeout=2000):
            logger.debug("Popup already closed")
            return

        try:
            await self.cancel_button.click(timeout=3000)
            await expect(self.modal).to_be_hidden(timeout=5000)
        except Exception:
            logger.info("Cancel did not close the popup, using the close icon")
            if await self.actions.is_visible(self.modal, timeout=1000):
                await self.close_icon.click(timeout=2000)

    @allure.step("Confirm delete")
    async def confirm_delete_event(self) -> None:
        await self.wait_for_loader(timeout=10000)
        confirm = await self.actions.first_visible(
            [
                '.modal:has-text("delete")',
                '[role="dialog"]:has-text("delete")',
                '.e-popup-open:has-text("delete")',
            ],
            timeout=3000,
        )
        confirm = confirm or self.modal
        button = await self.actions.first_visible(
            [
                confirm.locator('button:has-text("Delete")'),
                confirm.locator('button:has-text("Confirm")'),
                confirm.locator("button.e-confirm"),
            ],
            timeout=2000,
        )
        assert button is not None, "Delete confirmation button not found"
        await button.click()
        await self.wait_for_loader(timeout=10000)

    async def delete_event(self, event: Locator) -> None:
        """Open ``event`` in the editor, press Delete and confirm."""
        with allure.step("Delete appointment"):
            await self.actions.double_click(event, description="appointment")
            await expect(self.modal).to_be_visible(timeout=10000)
            await self.delete_button.click(timeout=5000)
            await self.confirm_delete_event()


__all__ = [
    "EVENT_SELECTORS",
    "SchedulingPage",
    "boxes_overlap",
]
