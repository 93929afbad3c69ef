"""
================================================================================
Recurring Appointments Page Object
================================================================================

Recurring (Group-IOP) appointment series on the scheduler.

Key Features:
- Recurrence editor steps (Repeat, End, Until, frequency)
- Series creation with a patient and success toast
- Occurrence cancellation through the event context menu
- Series checks: individual occurrences, Edit Series, default Until date

================================================================================
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

import allure
from loguru import logger
from playwright.async_api import Locator, expect

from testsuites.ui_testing.framework.date_helpers import (
    DEFAULT_SERIES_DAYS,
    add_days,
    calendar_day_title,
    default_series_end,
    format_short_date,
    months_between,
    parse_short_date,
    within_days,
)
from testsuites.ui_testing.pages.scheduling_page import EVENT_SELECTORS, SchedulingPage


GROUP_IOP = "Group-IOP"
SERIES_END_OFFSET_DAYS = 3

UNTIL_INPUT_SELECTORS = [
    "input.e-until-date",
    'input[title="Until"]',
    'input[id*="datepicker"][id*="until"]',
]
CONTEXT_MENU_SELECTORS = [
    ".e-contextmenu:visible",
    '[role="menu"]:visible',
    "ul.e-contextmenu:visible",
]


class RecurringAppointmentsPage(SchedulingPage):
    """Page Object for recurring appointment series."""

    # ============================================================
    # Page Elements
    # ============================================================

    @property
    def duration_input(self) -> Locator:
        return self.input_by_label("Duration")

    @property
    def frequency_input(self) -> Locator:
        return self.modal.locator(
            'label:has-text("Repeat Every"), label:has-text("Every"), label:has-text("Frequency")'
        ).locator("xpath=../..//input").first

    @property
    def end_dropdown(self) -> Locator:
        return self.modal.locator("div.e-control-wrapper.e-ddl.e-end-on-element").first

    @property
    def add_patient_icon(self) -> Locator:
        return self.modal.locator('i.fa-plus-circle[title*="Add New Patient"], i.fa-plus-circle').first

    @property
    def edit_series_button(self) -> Locator:
        return self.modal.locator('button:has-text("Edit Series"), button:has-text("Edit Recurring")').first

    @property
    def toast(self) -> Locator:
        return self.page.locator("#toast-container, .toast-success, .toast-message").first

    async def until_input(self) -> Locator:
        until = await self.actions.first_visible(
            [self.modal.locator(selector) for selector in UNTIL_INPUT_SELECTORS],
            timeout=3000,
        )
        assert until is not None, "Until date input not found in the recurrence editor"
        return until

    # ============================================================
    # Recurrence Form Steps
    # ============================================================

    async def select_group_iop_appointment_type(self) -> None:
        await expect(self.label("Appointment Type")).to_be_visible(timeout=5000)
        await self.select_dropdown("Appointment Type", GROUP_IOP)

    async def set_duration(self, minutes: int = 30) -> None:
        with allure.step(f"Set duration to {minutes} minutes"):
            if not await self.actions.is_visible(self.duration_input, timeout=3000):
                logger.warning("Duration input not shown")
                return
            await self.actions.fill(self.duration_input, str(minutes), description="Duration")

    @allure.step("Select first Group Therapy option")
    async def select_first_group_therapy_option(self) -> Optional[str]:
        """
        Pick the first Group Therapy entry.

        Returns:
            The selected option text, or None when the drop-down is not shown
        """
        wrapper = self.dropdown("Group Therapy")
        if not await self.actions.is_visible(wrapper, timeout=5000):
            logger.warning("Group Therapy drop-down not shown")
            return None

        await wrapper.locator(".e-ddl-icon, .e-input-group-icon").first.click(force=True)
        option = self.page.locator("div.e-popup-open li.e-list-item, [role='listbox'] li[role='option']").first
        await expect(option).to_be_visible(timeout=5000)
        text = (await option.text_content() or "").strip()
        await option.click()
        logger.info(f"Group Therapy: {text}")
        return text

    async def select_recurring_pattern(self, pattern: str = "Daily") -> None:
        await self.select_dropdown("Repeat", pattern)

    async def select_end_option(self, option: str = "Until") -> None:
        await self.actions.select_dropdown_option(
            self.end_dropdown.locator(".e-ddl-icon, .e-input-group-icon").first,
            option,
            description="End",
        )

    async def set_end_date(self, days_ahead: int = SERIES_END_OFFSET_DAYS, today: Optional[date] = None) -> date:
        """
        Type the Until date ``days_ahead`` days from today.

        Returns:
            The date set
        """
        end = add_days(today or date.today(), days_ahead)
        with allure.step(f"Set Until date to {format_short_date(end)}"):
            until = await self.until_input()
            await until.clear()
            await until.fill(format_short_date(end))
            await until.press("Tab")
        return end

    async def read_until_date(self) -> date:
        until = await self.until_input()
        return parse_short_date(await until.input_value())

    async def set_recurring_frequency(self, frequency: int = 1) -> None:
        with allure.step(f"Set recurring frequency to {frequency}"):
            if not await self.actions.is_visible(self.frequency_input, timeout=3000):
                logger.warning("Recurring frequency input not shown")
                return
            await self.actions.fill(self.frequency_input, str(frequency), description="Frequency")

    @allure.step("Select patient")
    async def select_patient(self, patient_name: Optional[str] = None) -> str:
        """
        Pick a patient in the Patient autocomplete.

        Args:
            patient_name: Text to type; the first suggestion is taken when omitted

        Returns:
            The selected suggestion text
        """
        patient = await self.actions.first_visible(
            [
                self.modal.locator('input[matinput][data-placeholder*="Patient" i]'),
                self.modal.locator('input[matinput][role="combobox"]'),
            ],
            timeout=3000,
        )
        assert patient is not None, "Patient input not found"

        await patient.click()
        if patient_name:
            await patient.fill(patient_name)
        else:
            await patient.press_sequentially("a", delay=100)

        suggestion = self.page.locator("mat-option, .mat-option, .mat-mdc-option").first
        await expect(suggestion).to_be_visible(timeout=10000)
        selected = (await suggestion.text_content() or "").strip()
        await suggestion.click()
        await self.wait_for_loader(timeout=10000)
        logger.info(f"Patient selected: {selected}")
        return selected

    async def create_recurring_appointment_series(
        self,
        pattern: str = "Daily",
        frequency: int = 1,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Fill the open popup as a recurring Group-IOP series and save it.

        Returns:
            pattern, end_date and the success toast text (empty when none showed)
        """
        with allure.step(f"Create recurring series ({pattern}, every {frequency})"):
            await expect(self.modal).to_be_visible(timeout=10000)
            await self.select_group_iop_appointment_type()
            await self.set_duration(30)
            await self.select_first_group_therapy_option()
            await self.select_recurring_pattern(pattern)
            if frequency != 1:
                await self.set_recurring_frequency(frequency)
            await self.select_end_option("Until")
            end_date = await self.set_end_date(SERIES_END_OFFSET_DAYS, today)

            await self.select_patient()
            if await self.actions.is_visible(self.add_patient_icon, timeout=3000):
                await self.actions.click(self.add_patient_icon, description="Add New Patient")

            await self.save_button.click(timeout=5000)
            toast = await self.wait_for_toast(timeout=10000)
            if toast:
                logger.info(f"Series saved: {toast}")
            else:
                logger.warning("No toast after saving the series")

        return {"pattern": pattern, "end_date": end_date, "toast": toast or ""}

    # ============================================================
    # Scheduler Counting / Navigation
    # ============================================================

    async def count_appointments_on_scheduler(self) -> int:
        """Events on the current view (largest count over the event selectors)."""
        counts = [await self.page.locator(selector).count() for selector in EVENT_SELECTORS]
        return max(counts)

    async def first_visible_event(self) -> Optional[Locator]:
        return await self.actions.first_visible(EVENT_SELECTORS, timeout=3000)

    async def navigate_to_date(self, target: date) -> bool:
        """
        Move the scheduler to ``target`` with the header calendar.

        Returns:
            False when the day could not be picked
        """
        if target == self.current_date:
            return True

        with allure.step(f"Navigate scheduler to {target.isoformat()}"):
            await self.page.locator("div.e-toolbar-item.e-date-range button.e-tbar-btn").first.click()
            calendar = self.page.locator("div.e-header-popup.e-popup-open, div.e-header-calendar").first
            await expect(calendar).to_be_visible(timeout=5000)

            steps = months_between(self.current_date, target)
            arrow = calendar.locator("button.e-next" if steps > 0 else "button.e-prev").first
            for _ in range(abs(steps)):
                await arrow.click()
                await self.pause(0.3)

            day = calendar.locator(
                f'td.e-cell:not(.e-other-month) span.e-day[title*="{calendar_day_title(target)}"]'
            ).first
            if not await self.actions.is_visible(day, timeout=2000):
                logger.warning(f"Day {target} not found in the header calendar")
                await self.page.keyboard.press("Escape")
                return False

            await day.click()
            await self._wait_for_cells()
            await self.wait_for_scheduler_loaded()
            self.current_date = target
            return True

    async def count_appointments_between(self, start: date, end: date) -> int:
        """Sum of events per day from ``start`` to ``end`` inclusive."""
        total = 0
        day = start
        while day <= end:
            if await self.navigate_to_date(day):
                count = await self.count_appointments_on_scheduler()
                logger.info(f"{count} appointment(s) on {day}")
                total += count
            day = add_days(day, 1)
        return total

    # ============================================================
    # Cancel Occurrence
    # ============================================================

    async def right_click_and_cancel_schedule(self, event: Locator) -> None:
        with allure.step("Right-click event and choose Cancel Schedule"):
            await self.actions.right_click(event, description="appointment")
            menu = await self.actions.first_visible(CONTEXT_MENU_SELECTORS, timeout=3000)
            assert menu is not None, "Context menu did not appear after right-click"

            option = await self.actions.first_visible(
                [
                    menu.locator('li:has-text("Cancel Schedule")'),
                    menu.locator('[role="menuitem"]:has-text("Cancel")'),
                    menu.locator('li:has-text("Cancel")'),
                ],
                timeout=2000,
            )
            assert option is not None, '"Cancel Schedule" not found in the context menu'
            await option.click()

    async def handle_cancel_appointment_modal(self) -> bool:
        """
        Confirm the cancel appointment modal with OK / Yes.

        Returns:
            False when no modal was shown
        """
        if not await self.actions.is_visible(self.modal, timeout=10000):
            logger.warning("Cancel appointment modal not shown")
            return False

        ok = await self.actions.first_visible(
            [
                self.modal.locator('button:has-text("OK")'),
                self.modal.locator('button:has-text("Yes")'),
                self.modal.locator('.e-dialog-footer button.e-primary'),
            ],
            timeout=2000,
        )
        assert ok is not None, "OK button not found in the cancel appointment modal"
        await ok.click()
        await self.wait_for_loader(timeout=10000)
        return True

    # ============================================================
    # Series Checks
    # ============================================================

    async def check_recurring_pattern_and_cancellation(self, pattern: str = "Daily") -> Dict[str, int]:
        """
        Create a series, cancel its first occurrence and recount.

        Returns:
            initial_count and remaining_count over the series range
        """
        start = self.current_date
        await self.open_add_event_popup_random_slot()
        await self.select_appointment_radio_button()
        series = await self.create_recurring_appointment_series(pattern)
        await self.wait_for_scheduler_loaded()

        initial = await self.count_appointments_between(start, series["end_date"])
        assert initial > 1, f"Expected individual occurrences for the series, found {initial}"

        assert await self.navigate_to_date(start), f"Could not navigate back to {start}"
        event = await self.first_visible_event()
        assert event is not None, "No appointment occurrence on the scheduler"

        await self.right_click_and_cancel_schedule(event)
        await self.handle_cancel_appointment_modal()
        await self.wait_for_scheduler_loaded()

        remaining = await self.count_appointments_between(start, series["end_date"])
        logger.info(f"Occurrences before cancel: {initial}, after: {remaining}")
        assert remaining > 0, "Cancelling one occurrence removed the whole series"
        return {"initial_count": initial, "remaining_count": remaining}

    async def check_modify_pattern_affects_future(self, pattern: str = "Daily", frequency: int = 1) -> bool:
        """
        Create a series, open an occurrence with Edit Series and raise its frequency.

        Returns:
            False when the UI offers no Edit Series option
        """
        await self.open_add_event_popup_random_slot()
        await self.select_appointment_radio_button()
        await self.create_recurring_appointment_series(pattern, frequency)
        await self.wait_for_scheduler_loaded()

        event = await self.first_visible_event()
        assert event is not None, "No appointment occurrence on the scheduler"
        await self.actions.double_click(event, description="appointment")
        await expect(self.modal).to_be_visible(timeout=5000)

        if not await self.actions.is_visible(self.edit_series_button, timeout=3000):
            logger.warning("Edit Series option not offered")
            await self.close_popup_safely()
            return False

        with allure.step("Edit Series: increase frequency"):
            await self.edit_series_button.click()
            await self.set_recurring_frequency(frequency + 1)
            await self.save_button.click(timeout=5000)
            await self.wait_for_loader(timeout=10000)
        return True

    async def check_maximum_occurrences(self, pattern: str = "Daily", today: Optional[date] = None) -> date:
        """
        The default Until date is DEFAULT_SERIES_DAYS days ahead (one day slack).

        Returns:
            The Until date shown
        """
        today = today or date.today()
        await self.open_add_event_popup_random_slot()
        await self.select_appointment_radio_button()
        await self.select_group_iop_appointment_type()
        await self.select_first_group_therapy_option()
        await self.select_recurring_pattern(pattern)
        await self.select_end_option("Until")

        shown = await self.read_until_date()
        expected = default_series_end(today)
        with allure.step(f"Until {shown} is about {DEFAULT_SERIES_DAYS} days after {today}"):
            assert within_days(shown, expected), (
                f"Default Until date {shown} is not {DEFAULT_SERIES_DAYS} days from {today} ({expected})"
            )
        await self.close_popup_safely()
        return shown


__all__ = [
    "GROUP_IOP",
    "RecurringAppointmentsPage",
]
