"""
================================================================================
Probation Portal Page Object
================================================================================

Probation Portal section of the Portal Approval page.

Key Features:
- Probation Portal Access dialog (officer contact with designation)
- Approve / reject through the note dialog and its preset reasons
- Self-seeding: creates a "New" record when the grid is empty

================================================================================
"""

import re
from typing import Any, Dict, Optional

import allure
from loguru import logger
from playwright.async_api import Locator, expect

from testsuites.ui_testing.framework.data_factory import PortalDataFactory
from testsuites.ui_testing.framework.grid_page import GridPage


# Preset reason radio -> text it writes into the note
NOTE_PRESETS = {
    "Expired Treatment Plan": "Treatment",
    "Patient Balance": "Balance",
}


class ProbationPortalPage(GridPage):
    """Page Object for the Probation Portal grid."""

    SECTION_NAME = "Probation Portal"
    COLUMNS = [
        "First Name",
        "Last Name",
        "Email",
        "Phone Number",
        "Designation",
        "Additional Info",
        "Action By",
        "Action Notes",
        "Action",
    ]
    RECORD_FIELDS = {
        "first_name": 0,
        "last_name": 1,
        "email": 2,
        "phone": 3,
        "designation": 4,
        "additional_info": 5,
        "action_by": 6,
        "action_notes": 7,
    }
    APPROVED_STATUS = "Approved"
    REJECTED_STATUS = "Rejected"

    # ============================================================
    # Page Elements
    # ============================================================

    @property
    def dialog(self) -> Locator:
        return self.page.get_by_role("dialog")

    @property
    def dialog_title(self) -> Locator:
        return self.dialog.locator("h5").filter(has_text="Probation Portal Access")

    @property
    def dialog_close(self) -> Locator:
        return self.page.locator(".fa.fa-times").first

    def dialog_textbox(self, index: int) -> Locator:
        return self.dialog.get_by_role("textbox").nth(index)

    @property
    def save_button(self) -> Locator:
        return self.dialog.locator("button").filter(has_text="Save").first

    @property
    def note_input(self) -> Locator:
        return self.dialog.get_by_role("textbox").first

    @property
    def approve_icons(self) -> Locator:
        return self.page.get_by_title("Approve")

    @property
    def reject_icons(self) -> Locator:
        return self.page.get_by_title("Reject")

    # ============================================================
    # New Request Dialog
    # ============================================================

    @allure.step("Open New Request dialog")
    async def open_new_request_dialog(self) -> None:
        await self.new_request_button.click()
        await expect(self.dialog_title).to_be_visible(timeout=5000)

    @allure.step("Close dialog")
    async def close_dialog(self) -> None:
        await expect(self.dialog_close).to_be_visible()
        await self.dialog_close.click()
        await expect(self.dialog).to_be_hidden(timeout=5000)

    async def fill_request_form(self, request: Dict[str, Any]) -> None:
        """
        Fill the Probation Portal Access form.

        Args:
            request: Payload from PortalDataFactory.probation_request()
        """
        # The dialog lists Additional Info before Designation
        fields = (
            (0, request["first_name"]),
            (1, request["last_name"]),
            (2, request["email"]),
            (3, PortalDataFactory.format_phone(request["phone"])),
            (4, request["additional_info"]),
            (5, request["designation"]),
        )
        with allure.step(f"Fill probation request: {request['first_name']} {request['last_name']}"):
            for index, value in fields:
                field = self.dialog_textbox(index)
                await expect(field).to_be_editable(timeout=5000)
                await field.fill(value)

    @allure.step("Save request")
    async def save(self) -> None:
        await expect(self.save_button).to_be_enabled(timeout=5000)
        await self.save_button.click()
        await self.wait_for_loader(timeout=10000)

    async def create_new_request(self, request: Dict[str, Any]) -> None:
        await self.open_new_request_dialog()
        await self.fill_request_form(request)
        await self.save()
        await expect(self.dialog).to_be_hidden(timeout=5000)
        logger.info(f"Created probation request {request['first_name']} {request['last_name']}")

    async def ensure_record_with_new_status_exists(self, factory: Optional[PortalDataFactory] = None) -> int:
        count = await self.get_grid_record_count()
        if count > 0:
            return count
        logger.info(f"No {self.DEFAULT_STATUS} probation requests, creating one")
        await self.create_new_request((factory or PortalDataFactory()).probation_request())
        await self.pause(1.5)
        return await self.get_grid_record_count()

    # ============================================================
    # Approve / Reject
    # ============================================================

    async def verify_approve_and_reject_icons(self, record_count: int = 5) -> int:
        """
        Every row has an enabled Approve and Reject icon.

        Returns:
            Number of rows carrying the icons
        """
        approve_count = await self.approve_icons.count()
        assert approve_count > 0, "No Approve icons in the Probation Portal grid"
        assert await self.reject_icons.count() == approve_count, "Approve and Reject icon counts differ"

        for index in range(min(approve_count, record_count)):
            await expect(self.approve_icons.nth(index)).to_be_enabled(timeout=5000)
            await expect(self.reject_icons.nth(index)).to_be_enabled(timeout=5000)
        return approve_count

    async def _open_note_dialog(self, icons: Locator, row_index: int) -> None:
        icon = icons.nth(row_index)
        await expect(icon).to_be_visible(timeout=5000)
        await icon.click()
        await expect(self.dialog).to_be_visible(timeout=10000)
        await expect(self.note_input).to_be_visible()

    async def open_approve_dialog(self, row_index: int = 0) -> None:
        with allure.step("Open approve dialog"):
            await self._open_note_dialog(self.approve_icons, row_index)

    async def open_reject_dialog(self, row_index: int = 0) -> None:
        with allure.step("Open reject dialog"):
            await self._open_note_dialog(self.reject_icons, row_index)

    async def has_note_presets(self) -> bool:
        return await self.dialog.locator('[type="radio"]').count() > 0

    async def select_note_preset(self, label: str) -> None:
        radio = self.dialog.locator(
            f'label:has-text("{label}") [type="radio"], [role="radio"][aria-label*="{label}"], label:has-text("{label}")'
        ).first
        await expect(radio).to_be_visible(timeout=5000)
        await radio.click()

    async def verify_note_presets(self) -> None:
        """Each preset reason fills the note with its text."""
        for label, text in NOTE_PRESETS.items():
            with allure.step(f"Preset '{label}' fills the note"):
                await self.select_note_preset(label)
                await expect(self.note_input).to_have_value(re.compile(text, re.I), timeout=5000)
                await self.note_input.clear()
                await expect(self.note_input).to_have_value("")
        await self.select_note_preset("Other")

    async def save_note(self, note: str) -> Optional[str]:
        """
        Write ``note`` and save the dialog.

        Returns:
            The toast text, or None when no toast was shown
        """
        await self.note_input.fill(note)
        await expect(self.note_input).to_have_value(note)
        await expect(self.save_button).to_be_enabled()
        await self.save_button.click()
        await expect(self.dialog).to_be_hidden(timeout=10000)
        await self.wait_for_loader(timeout=10000)
        return await self.wait_for_toast(timeout=5000)

    async def _resolve_first_record(self, dialog_opener, note: str, status: str) -> Dict[str, Any]:
        initial_count = await self.get_grid_record_count()
        record = await self.get_record_data_by_index(0)

        # Closing and reopening must leave the row in place
        await dialog_opener()
        await self.close_dialog()
        await self.wait_for_loader(timeout=5000)
        await dialog_opener()

        if await self.has_note_presets():
            await self.verify_note_presets()
        message = await self.save_note(note)
        final_count = await self.get_grid_record_count()
        return {
            **record,
            "status": status,
            "note": note,
            "message": message,
            "initial_count": initial_count,
            "final_count": final_count,
        }

    async def approve_first_record(self, note: str) -> Dict[str, Any]:
        """
        Approve the first "New" record.

        Returns:
            The record with its new status, the note, the toast and the
            record counts before and after
        """
        with allure.step("Approve first record"):
            return await self._resolve_first_record(self.open_approve_dialog, note, self.APPROVED_STATUS)

    async def reject_first_record(self, note: str) -> Dict[str, Any]:
        with allure.step("Reject first record"):
            return await self._resolve_first_record(self.open_reject_dialog, note, self.REJECTED_STATUS)

    async def verify_record_in_status(self, record: Dict[str, Any]) -> None:
        """Filter by the record's status and find it with its action note."""
        await self.select_status(record["status"])
        await self.search()
        await self.verify_record_in_grid(record["first_name"], record["last_name"], record["note"])


__all__ = [
    "NOTE_PRESETS",
    "ProbationPortalPage",
]
