"""
================================================================================
Client Contacts Page Object
================================================================================

Client Contacts section of the Portal Approval page.

Key Features:
- New Request dialog (client contact form with masked phone)
- Complete / reject row actions through the Add Note/Reason dialog
- Grid data and action icon checks
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


COMPLETE_ICON = "i.fa.fa-check.ng-star-inserted"
REJECT_ICON = "i.fa.fa-times-circle.ml-10.ng-star-inserted"


class ClientContactsPage(GridPage):
    """Page Object for the Client Contacts grid."""

    SECTION_NAME = "Client Contacts"
    COLUMNS = [
        "First Name",
        "Last Name",
        "Email",
        "Phone Number",
        "Client Notes",
        "Action By",
        "Action Notes",
        "Action",
    ]
    OPTIONAL_COLUMNS = {"Client Notes"}
    RECORD_FIELDS = {
        "first_name": 0,
        "last_name": 1,
        "email": 2,
        "phone": 3,
        "client_notes": 4,
        "action_by": 5,
        "action_notes": 6,
    }
    COMPLETED_STATUS = "Completed-Appointment Scheduled"
    REJECTED_STATUS = "Rejected"

    # ============================================================
    # Page Elements
    # ============================================================

    @property
    def dialog(self) -> Locator:
        return self.page.locator("div.modal-content")

    @property
    def dialog_header(self) -> Locator:
        return self.page.get_by_role("heading", name="Client Contact")

    @property
    def dialog_close(self) -> Locator:
        return self.page.locator("i.fa.fa-times.fa-lg").first

    @property
    def first_name_input(self) -> Locator:
        return self.page.get_by_role("textbox", name="First Name *")

    @property
    def last_name_input(self) -> Locator:
        return self.page.get_by_role("textbox", name="Last Name *")

    @property
    def email_input(self) -> Locator:
        return self.page.get_by_role("textbox", name="Email *")

    @property
    def phone_input(self) -> Locator:
        return self.page.locator('div.e-input-group input[mask="(000) 000-0000"]').first

    @property
    def note_input(self) -> Locator:
        return self.page.get_by_role("textbox", name="Add Note *")

    @property
    def save_button(self) -> Locator:
        return self.page.get_by_role("button", name="Save")

    @property
    def note_dialog_header(self) -> Locator:
        return self.page.get_by_role("heading", name="Add Note/Reason")

    @property
    def reason_input(self) -> Locator:
        return self.page.get_by_role("textbox", name="Add Reason/Note")

    @property
    def dialog_status_dropdown(self) -> Locator:
        return self.page.get_by_role("dialog").locator('[role="combobox"]').first

    @property
    def reject_toast(self) -> Locator:
        return self.page.locator('.ngx-toastr.toast-success:has-text("Successfully Reject")').first

    # ============================================================
    # New Request Dialog
    # ============================================================

    @allure.step("Open New Request dialog")
    async def open_new_request_dialog(self) -> None:
        await expect(self.new_request_button).to_be_enabled()
        await self.new_request_button.click()
        await expect(self.dialog).to_be_visible(timeout=10000)
        await expect(self.dialog_header).to_be_visible()

    @allure.step("Close New Request dialog")
    async def close_dialog(self) -> None:
        await expect(self.dialog_close).to_be_visible()
        await self.dialog_close.click()
        await expect(self.dialog).not_to_be_visible(timeout=5000)

    async def fill_contact_form(self, contact: Dict[str, Any]) -> None:
        """
        Fill the Client Contact form.

        Args:
            contact: Payload from PortalDataFactory.client_contact()
        """
        with allure.step(f"Fill client contact: {contact['first_name']} {contact['last_name']}"):
            for field, value in (
                (self.first_name_input, contact["first_name"]),
                (self.last_name_input, contact["last_name"]),
                (self.email_input, contact["email"]),
            ):
                await expect(field).to_be_editable(timeout=5000)
                await field.fill(value)
                await expect(field).to_have_value(value)

            await self.phone_input.fill(contact["phone"])
            shown = await self.phone_input.input_value()
            if re.sub(r"\D", "", shown) != re.sub(r"\D", "", contact["phone"]):
                logger.warning(f"Phone shows '{shown}', expected digits {contact['phone']}")

            await expect(self.note_input).to_be_editable(timeout=5000)
            await self.note_input.fill(contact["note"])
            await expect(self.note_input).to_have_value(contact["note"])

    @allure.step("Save client contact")
    async def save(self) -> None:
        await expect(self.save_button).to_be_enabled(timeout=5000)
        await self.save_button.click()
        await self.wait_for_loader(timeout=5000)

    async def create_new_request(self, contact: Dict[str, Any]) -> None:
        await self.open_new_request_dialog()
        await self.fill_contact_form(contact)
        await self.save()
        await expect(self.dialog).not_to_be_visible(timeout=5000)
        logger.info(f"Created client contact {contact['first_name']} {contact['last_name']}")

    async def ensure_record_with_new_status_exists(self, factory: Optional[PortalDataFactory] = None) -> int:
        """
        Make sure the "New" grid has at least one record.

        Returns:
            Record count after the check
        """
        count = await self.get_grid_record_count()
        if count > 0:
            logger.info(f"Found {count} record(s) with {self.DEFAULT_STATUS} status")
            return count

        logger.info(f"No {self.DEFAULT_STATUS} records, creating one")
        factory = factory or PortalDataFactory()
        await self.create_new_request(factory.client_contact())
        await self.pause(1.5)
        return await self.get_grid_record_count()

    # ============================================================
    # Complete / Reject
    # ============================================================

    async def click_complete_icon(self, row_index: int = 0) -> None:
        icon = self.page.locator(COMPLETE_ICON).nth(row_index)
        await expect(icon).to_be_visible(timeout=5000)
        await icon.click()
        await expect(self.note_dialog_header).to_be_visible(timeout=10000)

    async def click_reject_icon(self, row_index: int = 0) -> None:
        icon = self.page.locator(REJECT_ICON).nth(row_index)
        await expect(icon).to_be_visible(timeout=5000)
        await icon.click()
        await expect(self.note_dialog_header).to_be_visible(timeout=10000)

    async def verify_note_dialog_default_status(self) -> None:
        await expect(self.dialog_status_dropdown).to_contain_text(self.DEFAULT_STATUS, timeout=5000)

    async def fill_reason(self, note: str) -> None:
        await expect(self.reason_input).to_be_editable(timeout=5000)
        await self.reason_input.fill(note)

    async def select_dialog_status(self, status: str) -> None:
        with allure.step(f"Select dialog status: {status}"):
            await self.dialog_status_dropdown.click()
            option = self.page.get_by_role("option", name=status)
            await expect(option).to_be_enabled(timeout=5000)
            await option.click()

    async def save_note_dialog(self) -> None:
        await expect(self.save_button).to_be_enabled(timeout=3000)
        await self.save_button.click()
        await self.wait_for_loader(timeout=5000)

    async def complete_record(
        self,
        note: str,
        status: str = COMPLETED_STATUS,
        row_index: int = 0,
    ) -> str:
        """
        Complete a record through the Add Note/Reason dialog.

        Returns:
            The success toast text
        """
        with allure.step(f"Complete record {row_index} as '{status}'"):
            await self.click_complete_icon(row_index)
            await self.verify_note_dialog_default_status()
            await self.fill_reason(note)
            await self.select_dialog_status(status)
            await self.save_note_dialog()
            return await self.wait_for_success_toast(timeout=10000)

    async def reject_record(self, note: str, row_index: int = 0) -> str:
        with allure.step(f"Reject record {row_index}"):
            await self.click_reject_icon(row_index)
            await self.fill_reason(note)
            await self.save_note_dialog()
            await expect(self.reject_toast).to_be_visible(timeout=10000)
            message = (await self.reject_toast.text_content() or "").strip()
            logger.info(f"Reject message: {message}")
            return message

    # ============================================================
    # Grid Content Checks
    # ============================================================

    async def verify_grid_column_data(self, record_count: int = 3) -> None:
        """Every required cell is filled and each row has an action icon."""
        rows = await self._visible_data_rows(limit=record_count)
        assert rows, "No data rows in the Client Contacts grid"

        for index, row in enumerate(rows):
            cells = row.locator('[role="gridcell"]')
            for cell_index, column in enumerate(self.COLUMNS):
                if column in self.OPTIONAL_COLUMNS or column.startswith("Action"):
                    continue
                text = (await cells.nth(cell_index).text_content() or "").strip()
                assert text, f"Row {index + 1}: '{column}' is empty"

            icons = row.locator(f"{COMPLETE_ICON}, {REJECT_ICON}")
            assert await icons.count() > 0, f"Row {index + 1}: no action icon"

    async def verify_action_column_icons(self, record_count: int = 3) -> None:
        rows = await self._visible_data_rows(limit=record_count)
        for index, row in enumerate(rows):
            with allure.step(f"Verify action icons in row {index + 1}"):
                await expect(row.locator(COMPLETE_ICON).first).to_be_visible()
                await expect(row.locator(REJECT_ICON).first).to_be_visible()

    async def verify_record_fields_populated(self, record: Dict[str, str]) -> None:
        for field in ("first_name", "last_name", "email", "phone"):
            assert record.get(field), f"{field} is empty for record {record}"
        digits = re.sub(r"\D", "", record["phone"])
        assert len(digits) == 10, f"Phone '{record['phone']}' does not hold 10 digits"
        assert "@" in record["email"], f"Email '{record['email']}' is not an address"


__all__ = [
    "ClientContactsPage",
]
