"""
================================================================================
Patient Referral Page Object
================================================================================

Patient Referral section of the Portal Approval page: referral intake with
client and provider details, approval and rejection through the note
dialog.

================================================================================
"""

import re
from datetime import date
from typing import Any, Dict, Optional

import allure
from loguru import logger
from playwright.async_api import Locator, expect

from testsuites.ui_testing.framework.data_factory import PortalDataFactory
from testsuites.ui_testing.framework.grid_page import GridPage


APPROVE_ICON = "i.fa.fa-check.ng-star-inserted"
REJECT_ICON = "i.fa.fa-times-circle.ml-10.ng-star-inserted"
PHONE_MASK = 'input[mask="(000) 000-0000"]'


class PatientReferralPage(GridPage):
    """Page Object for the Patient Referral grid."""

    SECTION_NAME = "Patient Referral"
    COLUMNS = [
        "First Name",
        "Last Name",
        "Email",
        "Phone Number",
        "Reason",
        "Ref Provider",
        "Provider Email",
        "Provider Phone Number",
        "Action By",
        "Action Notes",
        "Action",
    ]
    RECORD_FIELDS = {
        "first_name": 0,
        "last_name": 1,
        "email": 2,
        "phone": 3,
        "reason": 4,
        "provider": 5,
        "provider_email": 6,
        "provider_phone": 7,
        "action_by": 8,
        "action_notes": 9,
    }
    REJECTED_STATUS = "Rejected"

    # ============================================================
    # Page Elements
    # ============================================================

    @property
    def dialog(self) -> Locator:
        return self.page.get_by_role("dialog")

    @property
    def dialog_header(self) -> Locator:
        return self.page.get_by_role("heading", name=re.compile("Add Note|Patient Referral", re.I))

    @property
    def dialog_close(self) -> Locator:
        return self.page.locator("i.fa.fa-times.fa-lg").first

    @property
    def note_textarea(self) -> Locator:
        return self.dialog.locator('textarea, [role="textbox"]').first

    @property
    def dialog_status_dropdown(self) -> Locator:
        return self.page.get_by_role("combobox").filter(
            has_text=re.compile("New|Status|Pending|Completed|Rejected")
        ).first

    @property
    def save_button(self) -> Locator:
        return self.page.get_by_role("button", name="Save")

    @property
    def success_message(self) -> Locator:
        return self.page.locator('.toast-title, [role="alert"]').filter(
            has_text=re.compile("Complete|Approve|Reject|Patient Referral", re.I)
        ).first

    # ============================================================
    # New Request Dialog
    # ============================================================

    @allure.step("Open New Request dialog")
    async def open_new_request_dialog(self) -> None:
        await expect(self.new_request_button).to_be_visible(timeout=5000)
        await self.new_request_button.click()
        await expect(self.dialog).to_be_visible(timeout=10000)
        await expect(self.dialog_header).to_be_visible(timeout=5000)

    async def get_dialog_header_text(self) -> str:
        await expect(self.dialog_header).to_be_visible(timeout=5000)
        return (await self.dialog_header.text_content() or "").strip()

    @allure.step("Close dialog")
    async def close_dialog(self) -> None:
        await expect(self.dialog_close).to_be_enabled(timeout=5000)
        await self.dialog_close.click()
        await expect(self.dialog).not_to_be_visible(timeout=5000)
        await expect(self.grid).to_be_visible(timeout=5000)

    async def _fill_and_check(self, field: Locator, value: str) -> None:
        await expect(field).to_be_visible(timeout=5000)
        await field.fill(value)
        await expect(field).to_have_value(value)

    async def fill_referral_form(self, referral: Dict[str, Any]) -> None:
        """
        Fill client and provider details plus the note.

        Args:
            referral: Payload from PortalDataFactory.patient_referral()
        """
        with allure.step(f"Fill referral: {referral['first_name']} {referral['last_name']}"):
            get = self.page.get_by_role
            await self._fill_and_check(get("textbox", name="Client First Name *"), referral["first_name"])
            await self._fill_and_check(get("textbox", name="Client Last Name *"), referral["last_name"])
            await self._fill_and_check(get("textbox", name="Client Email *"), referral["email"])
            await self.page.locator(PHONE_MASK).first.fill(referral["phone"])

            await self._fill_and_check(
                get("textbox", name="Provider First Name *"), referral["provider_first_name"]
            )
            await self._fill_and_check(
                get("textbox", name="Provider Last Name *"), referral["provider_last_name"]
            )
            await self._fill_and_check(get("textbox", name="Provider Email *"), referral["provider_email"])
            await self.page.locator(PHONE_MASK).nth(1).fill(referral["provider_phone"])

            note = get("textbox", name="Add Note")
            await expect(note).to_be_visible(timeout=5000)
            await note.fill(referral["note"])

    @allure.step("Save")
    async def save(self) -> None:
        await expect(self.save_button).to_be_enabled(timeout=5000)
        await self.save_button.click()
        await self.wait_for_loader(timeout=10000)

    async def create_new_request(self, referral: Dict[str, Any]) -> None:
        await self.open_new_request_dialog()
        await self.fill_referral_form(referral)
        await self.save()
        await expect(self.dialog).not_to_be_visible(timeout=5000)
        logger.info(f"Created referral {referral['first_name']} {referral['last_name']}")

    async def ensure_record_with_new_status_exists(self, factory: Optional[PortalDataFactory] = None) -> int:
        count = await self.get_grid_record_count()
        if count > 0:
            return count
        logger.info(f"No {self.DEFAULT_STATUS} referrals, creating one")
        await self.create_new_request((factory or PortalDataFactory()).patient_referral())
        await self.pause(1.5)
        return await self.get_grid_record_count()

    # ============================================================
    # Approve / Reject Dialog
    # ============================================================

    async def get_first_record_name(self) -> Dict[str, str]:
        cells = self.page.locator('ejs-grid [role="row"][data-uid]').first.locator('[role="gridcell"]')
        return {
            "first_name": (await cells.nth(0).text_content() or "").strip(),
            "last_name": (await cells.nth(1).text_content() or "").strip(),
        }

    async def open_approval_dialog(self, row_index: int = 0) -> None:
        with allure.step("Open approval dialog"):
            icon = self.page.locator(APPROVE_ICON).nth(row_index)
            await expect(icon).to_be_visible(timeout=5000)
            await icon.click()
            await expect(self.dialog).to_be_visible(timeout=10000)

    async def open_reject_dialog(self, row_index: int = 0) -> None:
        with allure.step("Open reject dialog"):
            icon = self.page.locator(REJECT_ICON).nth(row_index)
            await expect(icon).to_be_visible(timeout=5000)
            await icon.click()
            await expect(self.dialog).to_be_visible(timeout=10000)

    @allure.step("Verify note dialog controls")
    async def verify_note_dialog_controls(self) -> None:
        await expect(self.dialog).to_be_visible(timeout=10000)
        await expect(self.page.get_by_role("heading", name=re.compile("Add Note|Reason", re.I))).to_be_visible()
        await expect(self.note_textarea).to_be_enabled(timeout=5000)
        await expect(self.save_button).to_be_enabled(timeout=5000)
        await expect(self.dialog_close).to_be_enabled(timeout=5000)

    async def fill_note(self, note: str) -> None:
        with allure.step("Fill note"):
            await self.note_textarea.fill(note)
            await expect(self.note_textarea).to_have_value(note)

    async def select_second_dialog_status(self) -> str:
        """
        Pick the second option of the dialog status combobox.

        Returns:
            The selected status, or the default when there is only one option
        """
        await self.dialog_status_dropdown.click()
        options = self.page.get_by_role("option")
        await expect(options.first).to_be_visible(timeout=5000)
        if await options.count() < 2:
            await self.page.keyboard.press("Escape")
            return self.DEFAULT_STATUS

        second = options.nth(1)
        selected = (await second.text_content() or "").strip()
        await second.click()
        logger.info(f"Dialog status set to '{selected}'")
        return selected

    async def save_note_dialog(self) -> str:
        """Save the dialog and return the success message text."""
        await expect(self.save_button).to_be_visible(timeout=5000)
        await self.save_button.click()
        await self.wait_for_loader(timeout=10000)
        await expect(self.success_message).to_be_visible(timeout=5000)
        await expect(self.dialog).not_to_be_visible(timeout=5000)
        return (await self.success_message.text_content() or "").strip()

    async def approve_first_record(self, factory: PortalDataFactory, today: Optional[date] = None) -> Dict[str, str]:
        """
        Approve the first record with a generated note.

        Returns:
            first_name, last_name, status and note of the approved record
        """
        record = await self.get_first_record_name()
        note = factory.approval_note(today)
        with allure.step(f"Approve {record['first_name']} {record['last_name']}"):
            await self.open_approval_dialog()
            await self.fill_note(note)
            status = await self.select_second_dialog_status()
            await self.save_note_dialog()
        return {**record, "status": status, "note": note}

    async def reject_first_record(self, factory: PortalDataFactory) -> Dict[str, str]:
        record = await self.get_first_record_name()
        note = factory.rejection_note()
        with allure.step(f"Reject {record['first_name']} {record['last_name']}"):
            await self.open_reject_dialog()
            await self.fill_note(note)
            await self.save_note_dialog()
        return {**record, "status": self.REJECTED_STATUS, "note": note}

    async def verify_record_in_filtered_grid(self, record: Dict[str, str]) -> None:
        """
        Filter by the record's new status and check its action notes.
        """
        await self.select_status(record["status"])
        await self.search()
        row = self.find_row(record["first_name"], record["last_name"]).first
        await expect(row).to_be_visible(timeout=5000)
        notes = row.locator('[role="gridcell"]').nth(self.RECORD_FIELDS["action_notes"])
        await expect(notes).to_contain_text(record["note"][-40:])

    async def verify_action_column_icons(self, record_count: int = 3) -> None:
        rows = await self._visible_data_rows(limit=record_count)
        for row in rows:
            await expect(row.locator(APPROVE_ICON).first).to_be_enabled()
            await expect(row.locator(REJECT_ICON).first).to_be_enabled()


__all__ = [
    "PatientReferralPage",
]
