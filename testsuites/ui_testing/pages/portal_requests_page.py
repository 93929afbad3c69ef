"""
================================================================================
Portal Requests Page Object
================================================================================

Patient Portal section of the Portal Approval page: self-registration
requests submitted by patients.

Key Features:
- New Request dialog with date-of-birth picker
- Form validation checks (empty, partial, invalid email)
- Rejection dialog with predefined reasons
- Approval of matched patients and of unmatched ones via Select Patient
- Status filter, page size and page navigation

Author: Automation Team
License: MIT
================================================================================
"""

import re
from typing import Any, Dict, List, Optional, Tuple

import allure
from loguru import logger
from playwright.async_api import Locator, expect

from testsuites.ui_testing.framework.data_factory import PortalDataFactory
from testsuites.ui_testing.framework.grid_page import GridPage


REJECTION_REASONS = ("Expired Treatment Plan", "Patient Balance", "Other")
NOT_MATCHED_STATUS = "Not Mached"
MAX_PAGES = 10


class PortalRequestsPage(GridPage):
    """Page Object for the Patient Portal request grid."""

    SECTION_NAME = "Patient Portal"
    STATUS_CELL = 6
    RECORD_FIELDS = {
        "patient_id": 0,
        "first_name": 1,
        "last_name": 2,
        "status": STATUS_CELL,
    }

    # ============================================================
    # Page Elements
    # ============================================================

    @property
    def grid(self) -> Locator:
        return self.page.locator('[role="grid"]').first

    @property
    def search_input(self) -> Locator:
        return self.page.get_by_role("textbox").first

    @property
    def search_button(self) -> Locator:
        return self.page.get_by_role("button").filter(has_text=re.compile(r"\bSearch\b")).first

    @property
    def reset_button(self) -> Locator:
        return self.page.get_by_role("button").filter(has_text=re.compile(r"\bReset\b")).first

    @property
    def new_request_button(self) -> Locator:
        return self.page.locator("button").filter(has_text="New Request").first

    @property
    def dialog(self) -> Locator:
        return self.page.locator('ngb-modal-window, [role="dialog"]').first

    @property
    def dialog_title(self) -> Locator:
        return self.page.locator('[role="dialog"] h5').filter(has_text="Patient Portal Request")

    @property
    def dialog_close(self) -> Locator:
        return self.page.locator(".fa.fa-times").first

    @property
    def save_button(self) -> Locator:
        return self.page.locator("button").filter(has_text="Save").first

    def dialog_textbox(self, index: int) -> Locator:
        return self.page.get_by_role("dialog").get_by_role("textbox").nth(index)

    @property
    def data_rows(self) -> Locator:
        return self.rows.filter(has=self.page.locator('[role="gridcell"]'))

    # ============================================================
    # New Request Dialog
    # ============================================================

    @allure.step("Open Patient Portal Request dialog")
    async def open_new_request_dialog(self) -> None:
        await expect(self.new_request_button).to_be_enabled()
        await self.new_request_button.click()
        await expect(self.dialog_title).to_be_visible(timeout=10000)

    @allure.step("Close Patient Portal Request dialog")
    async def close_dialog(self) -> None:
        await self.dialog_close.click()
        await expect(self.dialog_title).not_to_be_visible(timeout=5000)

    async def select_date_of_birth(self, day: int = 15) -> None:
        """Pick ``day`` of January from the date picker."""
        with allure.step(f"Select date of birth: January {day}"):
            picker = self.page.get_by_role("button", name="select")
            await expect(picker).to_be_enabled()
            await picker.click()

            month_header = self.page.locator(
                '.ngb-dp-navigation-select, [aria-label*="title"], .ngb-dp-month-name'
            ).first
            if await self.actions.is_visible(month_header, timeout=2000):
                await month_header.click()

            january = self.page.get_by_role("gridcell", name=re.compile("jan", re.I)).first
            if await self.actions.is_visible(january, timeout=2000):
                await january.click()

            day_cell = self.page.get_by_role("gridcell", name=str(day)).first
            await expect(day_cell).to_be_visible(timeout=3000)
            await day_cell.click()

    async def fill_request_form(self, request: Dict[str, Any], dob_day: int = 15) -> None:
        """
        Fill the request form.

        Args:
            request: Payload from PortalDataFactory.portal_request()
            dob_day: Day of January used for the date of birth
        """
        await self.dialog_textbox(0).fill(request["first_name"])
        await self.dialog_textbox(1).fill(request["last_name"])
        await self.select_date_of_birth(dob_day)
        await self.dialog_textbox(2).fill(request["email"])
        await self.dialog_textbox(3).fill(request["phone"])

    @allure.step("Save Patient Portal Request")
    async def save(self) -> None:
        await expect(self.save_button).to_be_enabled()
        await self.save_button.click()
        await self.wait_for_loader(timeout=10000)

    async def create_new_request(self, request: Dict[str, Any]) -> None:
        await self.open_new_request_dialog()
        await self.fill_request_form(request)
        await self.save()
        logger.info(f"Created portal request {request['first_name']} {request['last_name']}")

    async def ensure_record_with_new_status_exists(self, factory: Optional[PortalDataFactory] = None) -> int:
        count = await self.get_grid_record_count()
        if count > 0:
            return count
        await self.create_new_request((factory or PortalDataFactory()).portal_request())
        await self.pause(1.5)
        return await self.get_grid_record_count()

    async def verify_record_status(
        self,
        first_name: str,
        last_name: str,
        expected: str = NOT_MATCHED_STATUS,
    ) -> None:
        row = self.find_row(first_name, last_name).first
        await expect(row).to_be_visible(timeout=8000)
        await expect(row.locator('[role="gridcell"]').nth(self.STATUS_CELL)).to_contain_text(expected)

    # ============================================================
    # Form Validation Checks
    # ============================================================

    async def _save_and_check_blocked(self) -> Tuple[bool, str]:
        """Click Save; report whether the dialog stayed open and any toast text."""
        await self.save_button.click()
        await self.pause(1.5)
        toast = self.page.locator("#toast-container")
        toast_text = ""
        if await toast.count():
            toast_text = (await toast.first.text_content() or "").strip()
        still_open = await self.dialog_title.is_visible()
        if still_open:
            await self.close_dialog()
        return still_open, toast_text

    async def check_empty_form_validation(self) -> Dict[str, Any]:
        with allure.step("Submit empty request form"):
            await self.open_new_request_dialog()
            blocked, message = await self._save_and_check_blocked()
        logger.info(f"Empty form {'blocked' if blocked else 'accepted'}: {message}")
        return {"blocked": blocked, "message": message}

    async def check_partial_form_validation(self, first_name: str) -> Dict[str, Any]:
        with allure.step(f"Submit request form with first name only: {first_name}"):
            await self.open_new_request_dialog()
            await self.dialog_textbox(0).fill(first_name)
            blocked, message = await self._save_and_check_blocked()
        logger.info(f"Partial form {'blocked' if blocked else 'accepted'}: {message}")
        return {"blocked": blocked, "message": message}

    async def check_invalid_email_validation(self, email: str = "invalid-email") -> Dict[str, Any]:
        with allure.step(f"Submit request form with email {email!r}"):
            await self.open_new_request_dialog()
            await self.fill_request_form({
                "first_name": "Test",
                "last_name": "User",
                "email": email,
                "phone": "(555) 123-4567",
            })
            blocked, message = await self._save_and_check_blocked()
        logger.info(f"Invalid email {'blocked' if blocked else 'accepted'}: {message}")
        return {"blocked": blocked, "message": message}

    # ============================================================
    # Row Actions
    # ============================================================

    def approve_button(self, row_index: int) -> Locator:
        row = self.data_rows.nth(row_index)
        return row.get_by_role("button", name=re.compile("approve", re.I)).or_(row.get_by_title("Approve")).first

    def reject_button(self, row_index: int) -> Locator:
        row = self.data_rows.nth(row_index)
        return row.get_by_role("button", name=re.compile("reject", re.I)).or_(row.get_by_title("Reject")).first

    async def get_action_button_state(self, row_index: int) -> Dict[str, bool]:
        approve = self.approve_button(row_index)
        reject = self.reject_button(row_index)
        return {
            "approve_visible": await approve.is_visible(),
            "reject_visible": await reject.is_visible(),
            "approve_enabled": await approve.is_enabled(),
            "reject_enabled": await reject.is_enabled(),
        }

    async def verify_all_rows_have_action_buttons(self) -> int:
        rows = await self._visible_data_rows()
        assert rows, "No data rows in the Patient Portal grid"
        for index in range(len(rows)):
            state = await self.get_action_button_state(index)
            assert all(state.values()), f"Row {index + 1}: action buttons {state}"
        return len(rows)

    async def find_row_by_status(self, predicate) -> Optional[Dict[str, Any]]:
        """First visible data row whose cells satisfy ``predicate(cells_text)``."""
        total = await self.data_rows.count()
        for index in range(total):
            row = self.data_rows.nth(index)
            if not await row.is_visible():
                continue
            texts = [t.strip() for t in await row.locator('[role="gridcell"]').all_text_contents()]
            if len(texts) > self.STATUS_CELL and predicate(texts):
                return {
                    "row_index": index,
                    "patient_id": texts[0],
                    "first_name": texts[1],
                    "last_name": texts[2],
                    "status": texts[self.STATUS_CELL],
                }
        return None

    async def find_matched_patient(self) -> Optional[Dict[str, Any]]:
        def is_matched(cells: List[str]) -> bool:
            status = cells[self.STATUS_CELL].lower()
            return "matched" in status and not status.startswith("not")

        return await self.find_row_by_status(is_matched)

    async def find_not_matched_patient(self) -> Optional[Dict[str, Any]]:
        return await self.find_row_by_status(lambda cells: cells[0] == "0")

    # ============================================================
    # Reject / Approve Dialog
    # ============================================================

    async def verify_reason_options(self) -> None:
        for reason in REJECTION_REASONS:
            label = self.dialog.locator("label").filter(has_text=reason)
            await expect(label).to_be_visible(timeout=3000)

    async def select_reason(self, reason: str) -> str:
        """Select a reason radio and return the text it pre-fills."""
        await self.dialog.locator("label").filter(has_text=reason).first.click()
        text_area = self.dialog.locator("textarea, input[type='text']").last
        await expect(text_area).to_be_visible()
        return await text_area.input_value()

    async def enter_custom_reason(self, reason: str) -> None:
        with allure.step("Enter custom reason"):
            await self.select_reason("Other")
            text_area = self.dialog.locator("textarea, input[type='text']").last
            await text_area.fill(reason)
            await expect(text_area).to_have_value(reason)

    async def submit_reason_dialog(self) -> Optional[str]:
        """
        Save the reason dialog.

        Returns:
            The notification text, or None when it was already dismissed
        """
        save = self.dialog.get_by_role("button", name=re.compile("save|submit|ok", re.I)).first
        await expect(save).to_be_enabled(timeout=2000)
        await save.click()
        await expect(self.dialog).to_be_hidden(timeout=5000)
        return await self.wait_for_toast(timeout=5000)

    async def reject_request(self, row_index: int, reason: str) -> Optional[str]:
        with allure.step(f"Reject portal request in row {row_index + 1}"):
            await self.reject_button(row_index).click()
            await expect(self.dialog).to_be_visible(timeout=5000)
            await self.verify_reason_options()
            await self.enter_custom_reason(reason)
            return await self.submit_reason_dialog()

    async def approve_matched_request(self, row_index: int, note: str) -> Optional[str]:
        with allure.step(f"Approve matched portal request in row {row_index + 1}"):
            await self.approve_button(row_index).click()
            await expect(self.dialog).to_be_visible(timeout=5000)
            await self.enter_custom_reason(note)
            return await self.submit_reason_dialog()

    # ============================================================
    # Select Patient (unmatched approval)
    # ============================================================

    @property
    def select_patient_heading(self) -> Locator:
        return self.page.get_by_text(re.compile("Select Patient", re.I)).first

    @property
    def select_patient_search(self) -> Locator:
        return self.page.get_by_role("dialog").locator('input[type="text"]').first

    async def open_select_patient(self, row_index: int) -> None:
        await self.approve_button(row_index).click()
        await expect(self.select_patient_heading).to_be_visible(timeout=8000)
        await expect(self.page.locator('[role="grid"]').last).to_be_visible(timeout=5000)

    async def close_select_patient(self) -> None:
        close = await self.actions.first_visible([
            'button[title="close"]',
            ".modal-close",
            'button:has-text("×")',
            self.page.get_by_text(re.compile("cancel", re.I)),
        ])
        assert close is not None, "Select Patient table has no close control"
        await close.click()
        await expect(self.select_patient_heading).not_to_be_visible(timeout=5000)

    async def search_select_patient(self, term: str) -> int:
        """Search the Select Patient table; returns the data row count."""
        await self.select_patient_search.fill(term)
        search = self.page.get_by_role("dialog").get_by_role("button", name=re.compile("search", re.I)).first
        if await search.is_visible():
            await search.click()
        await self.pause(1)
        rows = self.page.get_by_role("dialog").locator("tbody tr")
        return await rows.count()

    async def approve_first_selectable_patient(self, note: str) -> Optional[str]:
        with allure.step("Approve first patient in Select Patient table"):
            icon = self.page.get_by_role("dialog").locator("tbody tr:first-child td:nth-child(7) i").first
            await expect(icon).to_be_visible(timeout=5000)
            await icon.click()
            reason = self.page.get_by_role("dialog").locator("input[type='text'], textarea").last
            await expect(reason).to_be_visible(timeout=5000)
            await reason.fill(note)
            return await self.submit_reason_dialog()

    # ============================================================
    # Pagination
    # ============================================================

    async def count_rows_across_pages(self) -> Dict[str, int]:
        """Walk the pager from page 1 and count visible rows on every page."""
        total = await self.count_visible_rows()
        pages = 1
        while pages < MAX_PAGES:
            link = self.page.locator(f'.e-pager a:has-text("{pages + 1}")').first
            if not await link.is_visible():
                break
            await link.click()
            await self.wait_for_loader(timeout=10000)
            pages += 1
            total += await self.count_visible_rows()
        return {"total_rows": total, "pages": pages}

    async def check_page_sizes(self, sizes: Optional[List[int]] = None) -> Dict[int, int]:
        """
        Change the page size to each of ``sizes``.

        Returns:
            Visible rows per page size, empty when the dropdown is absent
        """
        shown: Dict[int, int] = {}
        for size in sizes or [20, 50, 75, 100]:
            if not await self.change_page_size(size):
                break
            shown[size] = await self.count_visible_rows()
            assert shown[size] <= size, f"{shown[size]} rows shown with page size {size}"
        return shown


__all__ = [
    "NOT_MATCHED_STATUS",
    "PortalRequestsPage",
    "REJECTION_REASONS",
]
