"""
================================================================================
Followup Referrals Page Object
================================================================================

Followup Referrals screen (``/followup-referrals``), opened from the
dashboard quick-access widget or directly by URL.

Key Features:
- Patient search plus Providers / Locations / Assigned / Status filters
- Grid data checks and the per-row action icons
- Add Followup Referral popup with patient autocomplete

The grid is the same Syncfusion ``ejs-grid`` as the Portal Approval screens,
so search, reset, record count and sorting come from GridPage.

================================================================================
"""

import re
from typing import Any, Dict, List, Optional, Tuple

import allure
from loguru import logger
from playwright.async_api import Locator, expect

from testsuites.ui_testing.framework.data_factory import PortalDataFactory
from testsuites.ui_testing.framework.grid_page import GridPage


ACTION_ICONS = {
    "Add Appointment": "fa-calendar-plus-o",
    "Edit Followup Referral": "fa-pencil",
    "Send Message": "fa-commenting-o",
    "Complete Referral": "fa-check",
}

REFERRAL_STATUSES = {"Open", "Pending", "Completed", "Archive", "Medium", "Accepted", "DELETED"}

_DIGITS_RE = re.compile(r"^\d+$", re.ASCII)
_DUE_DATE_RE = re.compile(r"\d{1,2}/\d{1,2}/\d{4}", re.ASCII)
_PHONE_RE = re.compile(r"^[\d\s\-()]+$", re.ASCII)


def split_patient_name(name: str) -> Tuple[str, str]:
    """``"Jane Q Doe"`` -> ``("Jane", "Doe")``; a single word is both names."""
    parts = name.split()
    if not parts:
        return "", ""
    return parts[0], parts[-1]


def referral_record_problems(record: Dict[str, str]) -> List[str]:
    """
    Describe what is wrong with one grid row.

    Patient Id must be digits, Due Date ``m/d/yyyy``, Status a known
    referral status. Phone Number may be empty.

    Returns:
        One message per problem; empty when the row is valid
    """
    problems = []
    for field in ("patient_id", "patient_name", "description", "due_date", "status", "provider"):
        if not record.get(field):
            problems.append(f"{field} is empty")

    if record.get("patient_id") and not _DIGITS_RE.match(record["patient_id"]):
        problems.append(f"patient_id '{record['patient_id']}' is not numeric")
    if record.get("due_date") and not _DUE_DATE_RE.search(record["due_date"]):
        problems.append(f"due_date '{record['due_date']}' is not a date")
    if record.get("status") and record["status"] not in REFERRAL_STATUSES:
        problems.append(f"status '{record['status']}' is not a referral status")
    if record.get("phone") and not _PHONE_RE.match(record["phone"]):
        problems.append(f"phone '{record['phone']}' is not a phone number")
    return problems


class FollowupReferralsPage(GridPage):
    """Page Object for the Followup Referrals grid."""

    URL_PATH = "/followup-referrals"
    SECTION_NAME = "Followup Referral"
    WIDGET_NAME = "Followup Referrals"
    DEFAULT_STATUS = "Open"
    DEFAULT_ASSIGNED = "All"
    COLUMNS = [
        "Patient Id",
        "Patient Name",
        "Description",
        "Due Date",
        "Status",
        "Phone Number",
        "Provider",
        "Action",
    ]
    RECORD_FIELDS = {
        "patient_id": 0,
        "patient_name": 1,
        "description": 2,
        "due_date": 3,
        "status": 4,
        "phone": 5,
        "provider": 6,
    }

    # ============================================================
    # Page Elements
    # ============================================================

    @property
    def widget_button(self) -> Locator:
        return self.page.locator("#custom-fav-menu li button").filter(has_text=self.WIDGET_NAME).first

    @property
    def widget_badge(self) -> Locator:
        return self.widget_button.locator("span.tpAlert_header")

    @property
    def search_input(self) -> Locator:
        return self.page.get_by_role("textbox", name="Search By Patient")

    @property
    def providers_dropdown(self) -> Locator:
        return self.page.locator("div").filter(has_text=re.compile(r"^Select Providers$")).nth(2)

    @property
    def locations_dropdown(self) -> Locator:
        return self.page.locator("div").filter(has_text=re.compile(r"^Select Locations$")).nth(2)

    @property
    def assigned_dropdown(self) -> Locator:
        return self.page.get_by_role("combobox").filter(has_text=re.compile("Assigned|All", re.I)).first

    @property
    def status_dropdown(self) -> Locator:
        return self.page.get_by_role("combobox").filter(has_text=re.compile("Open|Status", re.I)).first

    @property
    def search_button(self) -> Locator:
        return self.page.get_by_role("button", name=re.compile("search", re.I)).first

    @property
    def new_request_button(self) -> Locator:
        return self.page.get_by_role("button", name="Add Followup Referral")

    @property
    def grid(self) -> Locator:
        return self.page.get_by_role("grid").last

    @property
    def popup(self) -> Locator:
        return self.page.locator(".modal-content")

    @property
    def popup_header(self) -> Locator:
        return self.page.get_by_role("heading", name="Add Followup Referral")

    @property
    def popup_close(self) -> Locator:
        return self.page.locator("i.fa.fa-times.fa-lg").first

    @property
    def cancel_button(self) -> Locator:
        return self.page.get_by_role("button", name="Cancel")

    @property
    def save_button(self) -> Locator:
        return self.page.get_by_role("button", name="Save")

    @property
    def patient_label(self) -> Locator:
        return self.page.get_by_text("Patient *", exact=True)

    @property
    def patient_input(self) -> Locator:
        return self.popup.locator("input[matinput], input.mat-input-element").first

    @property
    def patient_options(self) -> Locator:
        return self.page.locator('mat-option[role="option"]')

    @property
    def description_input(self) -> Locator:
        return self.page.get_by_role("textbox", name="Description *")

    # ============================================================
    # Navigation
    # ============================================================

    @allure.step("Open Followup Referrals")
    async def open_portal_section(self) -> None:
        """Open the screen by URL."""
        await self.navigate()
        await self.skip_mfa()
        await self.wait_for_loader(timeout=10000)
        await expect(self.section_heading).to_be_visible(timeout=self.navigation_timeout)
        await expect(self.grid).to_be_visible(timeout=10000)

    @allure.step("Open Followup Referrals from the dashboard widget")
    async def open_from_dashboard(self) -> None:
        await self.navigate_to("/dashboard")
        await self.skip_mfa()
        await self.wait_for_loader(timeout=10000)
        await expect(self.widget_button).to_be_enabled(timeout=self.navigation_timeout)
        await self.widget_button.click()
        await self.wait_for_url("**/followup-referrals")
        await self.wait_for_loader(timeout=10000)
        await expect(self.section_heading).to_be_visible(timeout=10000)

    async def get_widget_count(self) -> int:
        """Count in the widget's yellow badge."""
        await expect(self.widget_badge).to_be_visible(timeout=10000)
        text = (await self.widget_badge.text_content() or "").strip()
        assert _DIGITS_RE.match(text), f"{self.WIDGET_NAME} badge shows no count ({text!r})"
        return int(text)

    async def verify_widget_badge_style(self) -> Dict[str, str]:
        """The badge is a yellow (#F2C53D) circle."""
        style = await self.widget_badge.evaluate(
            "el => { const s = getComputedStyle(el);"
            " return {borderRadius: s.borderRadius, backgroundColor: s.backgroundColor}; }"
        )
        assert style["borderRadius"] == "50%", f"Badge is not round: {style['borderRadius']}"
        assert re.fullmatch(r"rgb\(242,\s*197,\s*61\)", style["backgroundColor"]), (
            f"Badge is not yellow: {style['backgroundColor']}"
        )
        return style

    # ============================================================
    # Filters
    # ============================================================

    @allure.step("Verify filter controls")
    async def verify_controls(self) -> None:
        for control in (
            self.search_input,
            self.providers_dropdown,
            self.locations_dropdown,
            self.assigned_dropdown,
            self.status_dropdown,
            self.search_button,
            self.reset_button,
            self.new_request_button,
        ):
            await expect(control).to_be_visible()
            await expect(control).to_be_enabled()

    async def get_dropdown_options(self, dropdown: Locator) -> List[str]:
        await dropdown.click()
        options = self.page.get_by_role("option")
        await expect(options.first).to_be_visible(timeout=5000)
        texts = [t.strip() for t in await options.all_text_contents() if t.strip()]
        await self.page.keyboard.press("Escape")
        logger.info(f"Drop-down options: {', '.join(texts)}")
        return texts

    async def _select_many(self, dropdown: Locator, names: List[str]) -> None:
        await dropdown.click()
        for name in names:
            option = self.page.get_by_role("option", name=name)
            await expect(option.first).to_be_visible(timeout=5000)
            await option.first.click()
        await self.page.keyboard.press("Escape")

    async def select_providers(self, names: List[str]) -> None:
        with allure.step(f"Select providers: {', '.join(names)}"):
            await self._select_many(self.providers_dropdown, names)

    async def select_locations(self, names: List[str]) -> None:
        with allure.step(f"Select locations: {', '.join(names)}"):
            await self._select_many(self.locations_dropdown, names)

    async def select_assigned(self, value: str) -> None:
        with allure.step(f"Select assigned: {value}"):
            await self.assigned_dropdown.click()
            await self.page.get_by_role("option", name=value).first.click()
            await expect(self.assigned_dropdown).to_contain_text(value, timeout=5000)

    async def verify_column_matches(self, field: str, expected: List[str], record_count: int = 3) -> int:
        """
        At least one of the first rows shows one of ``expected`` in ``field``.

        Returns:
            Number of matching rows
        """
        rows = await self._visible_data_rows(limit=record_count)
        if not rows:
            logger.info(f"No rows to check {field} against {expected}")
            return 0
        cell_index = self.RECORD_FIELDS[field]
        matches = 0
        for row in rows:
            text = (await row.locator('[role="gridcell"]').nth(cell_index).text_content() or "").strip()
            if any(value in text for value in expected):
                matches += 1
        assert matches > 0, f"None of the first {len(rows)} rows shows {field} in {expected}"
        return matches

    async def _selected_option_count(self, dropdown: Locator) -> int:
        await dropdown.click()
        try:
            await self.page.get_by_role("option").first.wait_for(state="visible", timeout=3000)
        except Exception:
            logger.debug("Drop-down opened without options")
        selected = await self.page.locator('[role="option"][aria-selected="true"]').count()
        await self.page.keyboard.press("Escape")
        return selected

    @allure.step("Verify filters are reset")
    async def verify_filters_reset(self) -> None:
        await expect(self.search_input).to_have_value("")
        assert await self._selected_option_count(self.providers_dropdown) == 0, "Providers still selected"
        assert await self._selected_option_count(self.locations_dropdown) == 0, "Locations still selected"
        await expect(self.assigned_dropdown).to_contain_text(self.DEFAULT_ASSIGNED)
        await self.verify_default_status()

    # ============================================================
    # Grid Content Checks
    # ============================================================

    async def get_first_patient(self) -> Dict[str, str]:
        record = await self.get_record_data_by_index(0)
        first_name, last_name = split_patient_name(record["patient_name"])
        return {**record, "first_name": first_name, "last_name": last_name}

    async def verify_grid_column_data(self, record_count: int = 3) -> int:
        """
        Validate the first rows with ``referral_record_problems``.

        Returns:
            Number of rows checked
        """
        rows = await self._visible_data_rows(limit=record_count)
        assert rows, "No data rows in the Followup Referrals grid"
        for index in range(len(rows)):
            record = await self.get_record_data_by_index(index)
            problems = referral_record_problems(record)
            assert not problems, f"Row {index + 1}: {'; '.join(problems)}"
        return len(rows)

    async def verify_action_column_icons(self, record_count: int = 3) -> None:
        rows = await self._visible_data_rows(limit=record_count)
        assert rows, "No data rows for action icon checks"
        for index, row in enumerate(rows):
            icons = row.locator('[role="gridcell"]').last.locator("i[title]")
            valid = 0
            for i in range(await icons.count()):
                title = await icons.nth(i).get_attribute("title")
                classes = await icons.nth(i).get_attribute("class") or ""
                if title in ACTION_ICONS and ACTION_ICONS[title] in classes.split():
                    valid += 1
            assert valid > 0, f"Row {index + 1}: no known action icon"

    # ============================================================
    # Add Followup Referral Popup
    # ============================================================

    @allure.step("Open Add Followup Referral popup")
    async def open_add_popup(self) -> None:
        await self.new_request_button.click()
        await expect(self.popup).to_be_visible(timeout=10000)
        await expect(self.popup_header).to_be_visible()

    @allure.step("Verify Add Followup Referral popup")
    async def verify_add_popup(self) -> None:
        await expect(self.popup_close).to_be_visible()
        await expect(self.patient_label).to_contain_text("*")
        await expect(self.description_input).to_be_visible()
        await expect(self.cancel_button).to_be_enabled()
        await expect(self.save_button).to_be_visible()

    async def close_popup(self, use_cancel: bool = False) -> None:
        with allure.step("Cancel popup" if use_cancel else "Close popup"):
            if use_cancel:
                await self.page.keyboard.press("Escape")
                await self.cancel_button.click()
            else:
                await self.popup_close.click()
            await expect(self.popup).to_be_hidden(timeout=5000)
            await expect(self.grid).to_be_visible(timeout=5000)
            await expect(self.new_request_button).to_be_visible()

    async def search_patient(self, text: str) -> List[str]:
        """
        Type into the popup's patient box.

        Returns:
            Autocomplete results
        """
        with allure.step(f"Search patient: {text}"):
            await self.wait_for_loader(timeout=10000)
            await self.patient_input.click()
            await self.patient_input.fill(text)
            try:
                await self.patient_options.first.wait_for(state="visible", timeout=5000)
            except Exception:
                logger.info(f"No patients found for '{text}'")
                return []
            results = [t.strip() for t in await self.patient_options.all_text_contents() if t.strip()]
            logger.info(f"{len(results)} patient(s) for '{text}'")
            return results

    async def select_patient(self, name: str) -> None:
        option = self.patient_options.filter(has_text=re.compile(re.escape(name), re.I)).first
        await expect(option).to_be_visible(timeout=5000)
        await option.click()
        value = (await self.patient_input.input_value()).lower()
        assert any(part in value for part in name.lower().split()), (
            f"Patient field shows '{value}', expected '{name}'"
        )

    async def save_referral(self, patient: str, description: str) -> Optional[str]:
        """
        Pick ``patient``, enter ``description`` and press Save.

        Returns:
            The success toast, or None when the portal refused the referral
        """
        await self.select_patient(patient)
        await self.description_input.fill(description)
        await self.save_button.click()
        message = await self.wait_for_toast(timeout=5000)
        if message and "successfully" in message.lower():
            return message
        logger.info(f"Referral for {patient} not saved: {message}")
        return None

    async def add_referral(
        self,
        search_text: str,
        factory: Optional[PortalDataFactory] = None,
        max_attempts: int = 5,
    ) -> Dict[str, Any]:
        """
        Save a referral for the first patient the portal accepts.

        Patients come from the autocomplete for ``search_text``; each refused
        patient is followed by a fresh popup and the next one.

        Returns:
            success, patient, description and the attempt number
        """
        factory = factory or PortalDataFactory()
        candidates = (await self.search_patient(search_text))[:max_attempts]
        for attempt, patient in enumerate(candidates, start=1):
            description = factory.followup_description()
            with allure.step(f"Attempt {attempt}: referral for {patient}"):
                if await self.save_referral(patient, description):
                    return {"success": True, "patient": patient, "description": description, "attempt": attempt}
            if attempt < len(candidates):
                await self.close_popup(use_cancel=True)
                await self.open_add_popup()
                await self.search_patient(search_text)
        return {"success": False, "patient": None, "description": None, "attempt": len(candidates)}

    async def is_referral_listed(self, patient: str, description: str) -> bool:
        await self.wait_for_loader(timeout=10000)
        return await self.is_record_in_grid(patient, description, timeout=5000)


__all__ = [
    "ACTION_ICONS",
    "FollowupReferralsPage",
    "REFERRAL_STATUSES",
    "referral_record_problems",
    "split_patient_name",
]
