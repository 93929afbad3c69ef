"""
================================================================================
Grid Page Object
================================================================================

Shared behaviour of the Syncfusion ``ejs-grid`` screens on the Portal
Approval page (Client Contacts, Patient Referral, Patient Portal).

Each screen subclasses GridPage and sets its section name, columns and
the cell index of the fields it reads back from rows.

Key Features:
- Section navigation through the landing-page thumbnails
- Search / status filter / reset with loader handling
- Record count from the pager, the empty message or the visible rows
- Column sorting checks (three-click cycle) and record lookup by row text
- Pagination and page size

================================================================================
"""

import re
from typing import Any, Dict, List, Optional, Tuple

import allure
from loguru import logger
from playwright.async_api import Locator, expect

from .grid_helpers import (
    SORT_ASCENDING,
    SORT_DESCENDING,
    classify_sort_indicator,
    parse_item_count,
    parse_page_info,
    parse_thumbnail_count,
    verify_sorted,
)
from .page_base import PageBase


PAGE_SIZES = (20, 50, 75, 100)


class GridPage(PageBase):
    """
    Base Page Object for a portal request grid.

    Subclasses set:
        SECTION_NAME: Thumbnail / heading label
        COLUMNS: Expected column headers in order
        RECORD_FIELDS: field name -> gridcell index for get_record_data_by_index
    """

    URL_PATH = "/portal-approval"
    PORTAL_HEADING = "Patient Portal"
    SECTION_NAME = ""
    DEFAULT_STATUS = "New"
    COLUMNS: List[str] = []
    RECORD_FIELDS: Dict[str, int] = {
        "first_name": 0,
        "last_name": 1,
        "email": 2,
        "phone": 3,
    }

    # ============================================================
    # Page Elements
    # ============================================================

    @property
    def thumbnail(self) -> Locator:
        return self.page.locator(f'h5:has-text("{self.SECTION_NAME}")').first

    @property
    def section_heading(self) -> Locator:
        return self.page.locator(f'h6:has-text("{self.SECTION_NAME}")').first

    @property
    def thumbnail_tile(self) -> Locator:
        pattern = re.compile(rf"^\s*{re.escape(self.SECTION_NAME)}\s*\d*\s*$")
        return self.page.locator("div").filter(has_text=pattern).first

    @property
    def search_input(self) -> Locator:
        return self.page.get_by_role("textbox", name="Search")

    @property
    def status_dropdown(self) -> Locator:
        return self.page.get_by_role("combobox").filter(has_text=re.compile("New|Status")).first

    @property
    def search_button(self) -> Locator:
        return self.page.get_by_role("button", name="Search")

    @property
    def reset_button(self) -> Locator:
        return self.page.get_by_role("button", name="Reset")

    @property
    def new_request_button(self) -> Locator:
        return self.page.get_by_role("button", name="New Request")

    @property
    def grid(self) -> Locator:
        return self.page.locator("ejs-grid").first

    @property
    def rows(self) -> Locator:
        return self.page.locator('[role="row"]')

    @property
    def header_cells(self) -> Locator:
        return self.rows.first.locator('[role="columnheader"]')

    @property
    def pager(self) -> Locator:
        return self.page.locator(".e-pager, [class*='paginat']").first

    # ============================================================
    # Navigation
    # ============================================================

    @allure.step("Open Portal Approval page")
    async def open_portal_approval(self) -> None:
        await self.navigate_to(self.URL_PATH)
        await self.skip_mfa()
        await self.wait_for_url("**/portal-approval**")
        await self.wait_for_loader(timeout=10000)
        await expect(self.page.locator(f'h5:has-text("{self.PORTAL_HEADING}")').first).to_be_visible(
            timeout=self.navigation_timeout
        )

    async def open_section(self) -> None:
        with allure.step(f"Open {self.SECTION_NAME} section"):
            await expect(self.thumbnail).to_be_visible(timeout=self.navigation_timeout)
            await self.thumbnail.click()
            await self.wait_for_loader(timeout=5000)
            await expect(self.section_heading).to_be_visible(timeout=10000)
            logger.info(f"Opened {self.SECTION_NAME} section")

    async def open_portal_section(self) -> None:
        """Open the Portal Approval page and then this screen's section."""
        await self.open_portal_approval()
        await self.open_section()

    async def get_thumbnail_count(self) -> int:
        await expect(self.thumbnail_tile).to_be_visible(timeout=10000)
        text = (await self.thumbnail_tile.text_content() or "").strip()
        count = parse_thumbnail_count(text, self.SECTION_NAME)
        logger.info(f"{self.SECTION_NAME} thumbnail: {text!r} -> {count}")
        assert count is not None, f"{self.SECTION_NAME} thumbnail shows no count ({text!r})"
        return count

    # ============================================================
    # Controls
    # ============================================================

    @allure.step("Verify grid controls")
    async def verify_controls(self) -> None:
        for control in (
            self.search_input,
            self.status_dropdown,
            self.search_button,
            self.reset_button,
            self.new_request_button,
        ):
            await expect(control).to_be_visible()
            await expect(control).to_be_enabled()
        await self.verify_default_status()

    async def verify_default_status(self) -> None:
        await expect(self.status_dropdown).to_contain_text(self.DEFAULT_STATUS)

    @allure.step("Fill search: {text}")
    async def fill_search(self, text: str) -> None:
        await self.search_input.fill(text)
        await expect(self.search_input).to_have_value(text)

    async def search(self, text: Optional[str] = None) -> int:
        """
        Optionally fill the search box, click Search and return the record count.
        """
        if text is not None:
            await self.fill_search(text)
        with allure.step("Click Search"):
            await self.search_button.click()
            await self._wait_for_grid_refresh()
        return await self.get_grid_record_count()

    @allure.step("Click Reset")
    async def reset(self) -> None:
        await self.reset_button.click()
        await self._wait_for_grid_refresh()

    @allure.step("Select status: {status}")
    async def select_status(self, status: str) -> None:
        await self.status_dropdown.click()
        option = self.page.get_by_role("option", name=status, exact=True)
        await expect(option).to_be_visible(timeout=5000)
        await option.click(timeout=5000)
        await self.wait_for_loader(timeout=5000)
        await expect(self.status_dropdown).to_contain_text(status, timeout=5000)
        logger.info(f"Status '{status}' selected")

    async def get_available_status_options(self) -> List[str]:
        await self.status_dropdown.click()
        options = self.page.get_by_role("option")
        await expect(options.first).to_be_visible(timeout=5000)
        texts = [t.strip() for t in await options.all_text_contents()]
        await self.page.keyboard.press("Escape")
        logger.info(f"Status options: {', '.join(texts)}")
        return texts

    async def _wait_for_grid_refresh(self) -> None:
        loader = self.page.locator(".loader-wrapper").first
        try:
            await loader.wait_for(state="visible", timeout=2000)
        except Exception:
            logger.debug("No loader appeared")
        await self.wait_for_loader(timeout=10000)

    # ============================================================
    # Grid Data
    # ============================================================

    async def _visible_data_rows(self, limit: Optional[int] = None) -> List[Locator]:
        """Visible rows that carry gridcells (the header row has none)."""
        data_rows: List[Locator] = []
        total = await self.rows.count()
        for i in range(1, total):
            row = self.rows.nth(i)
            if not await row.is_visible():
                continue
            if await row.locator('[role="gridcell"]').count() == 0:
                continue
            data_rows.append(row)
            if limit is not None and len(data_rows) >= limit:
                break
        return data_rows

    async def get_grid_record_count(self) -> int:
        """
        Record count: pager "(N items)" first, then the empty-grid message,
        then the number of visible data rows.
        """
        pager_text = self.page.get_by_text(re.compile(r"\d+ of \d+ pages? \(\d+ items?", re.I)).first
        try:
            count = parse_item_count(await pager_text.text_content(timeout=3000))
            if count is not None:
                logger.info(f"Grid record count from pager: {count}")
                return count
        except Exception:
            logger.debug("Pager count not available")

        empty = self.page.get_by_text(re.compile("no records to display|no data", re.I)).first
        if await empty.is_visible():
            logger.info("Grid record count: 0 (empty message)")
            return 0

        count = len(await self._visible_data_rows())
        logger.info(f"Grid record count from rows: {count}")
        return count

    async def count_visible_rows(self) -> int:
        return len(await self._visible_data_rows())

    async def get_column_headers(self) -> List[str]:
        await expect(self.grid).to_be_visible(timeout=10000)
        headers = await self.grid.locator(".e-headertext").all_text_contents()
        return [h.strip() for h in headers]

    async def verify_grid_columns(self, columns: Optional[List[str]] = None) -> None:
        columns = columns or self.COLUMNS
        with allure.step(f"Verify grid columns: {', '.join(columns)}"):
            await expect(self.grid).to_be_visible(timeout=10000)
            for name in columns:
                header = self.grid.locator(".e-headertext").filter(
                    has_text=re.compile(rf"^\s*{re.escape(name)}\s*$")
                )
                await expect(header.first).to_be_visible()

    async def get_column_values(self, column_index: int, max_rows: int = 30) -> List[str]:
        values: List[str] = []
        total = await self.rows.count()
        for i in range(1, min(total, max_rows + 1)):
            cells = self.rows.nth(i).locator('[role="gridcell"]')
            if await cells.count() > column_index:
                values.append((await cells.nth(column_index).text_content() or "").strip())
        return values

    async def get_record_data_by_index(self, index: int = 0) -> Dict[str, str]:
        rows = await self._visible_data_rows(limit=index + 1)
        if len(rows) <= index:
            raise AssertionError(
                f"Record at index {index} not found - only {len(rows)} visible data rows available"
            )
        cells = rows[index].locator('[role="gridcell"]')
        record = {}
        for field, cell_index in self.RECORD_FIELDS.items():
            record[field] = (await cells.nth(cell_index).text_content() or "").strip()
        logger.debug(f"Record {index}: {record}")
        return record

    def find_row(self, *texts: str) -> Locator:
        """Rows containing every one of ``texts``."""
        row = self.rows
        for text in texts:
            if text:
                row = row.filter(has_text=text)
        return row

    async def verify_record_in_grid(self, *texts: str, timeout: int = 5000) -> None:
        with allure.step(f"Verify record in grid: {' / '.join(t for t in texts if t)}"):
            await expect(self.find_row(*texts).first).to_be_visible(timeout=timeout)

    async def is_record_in_grid(self, *texts: str, timeout: int = 2000) -> bool:
        try:
            await self.find_row(*texts).first.wait_for(state="visible", timeout=timeout)
            return True
        except Exception:
            return False

    async def store_initial_records(self, count: int = 3) -> List[Dict[str, str]]:
        available = min(count, await self.get_grid_record_count())
        records = [await self.get_record_data_by_index(i) for i in range(available)]
        logger.info(f"Stored {len(records)} initial records")
        return records

    # ============================================================
    # Filter / Reset Checks
    # ============================================================

    async def verify_status_filter_changes_grid(
        self,
        status: str,
        initial_records: List[Dict[str, str]],
    ) -> int:
        """
        Filter by ``status`` and check the grid changed.

        Fails only when every stored record is still listed. Resets the
        filter afterwards.

        Returns:
            Record count for the status
        """
        with allure.step(f"Verify status filter '{status}' changes grid"):
            await self.select_status(status)
            filtered_count = await self.search()
            logger.info(f"Records for status '{status}': {filtered_count}")

            if filtered_count > 0 and initial_records:
                still_listed = 0
                for record in initial_records:
                    if await self.is_record_in_grid(record["first_name"], record["last_name"]):
                        still_listed += 1
                if still_listed == len(initial_records):
                    raise AssertionError(
                        f"All {len(initial_records)} initial records were found in the grid "
                        f"filtered by '{status}'; the status filter did not change the records"
                    )

            await self.reset()
            return filtered_count

    async def verify_records_restored_after_reset(self, initial_records: List[Dict[str, str]]) -> None:
        for record in initial_records:
            await self.verify_record_in_grid(record["first_name"], record["last_name"])

    async def perform_complete_reset_check(self) -> Dict[str, Any]:
        """
        Change status and search text, press Reset and check the defaults
        and the record count come back.
        """
        initial_count = await self.get_grid_record_count()
        if initial_count == 0:
            return {"skipped": True, "reason": "No records available for reset test"}

        statuses = await self.get_available_status_options()
        selected = next((s for s in statuses if s != self.DEFAULT_STATUS), None)
        if selected is None:
            return {"skipped": True, "reason": "Only the default status is available"}

        await self.select_status(selected)
        filtered_count = await self.search()
        await self.fill_search("Test")

        await self.reset()
        reset_count = await self.get_grid_record_count()

        await expect(self.search_input).to_have_value("")
        await self.verify_default_status()
        assert reset_count == initial_count, (
            f"Record count after reset ({reset_count}) != initial count ({initial_count})"
        )

        return {
            "skipped": False,
            "initial_count": initial_count,
            "selected_status": selected,
            "filtered_count": filtered_count,
            "reset_count": reset_count,
        }

    async def verify_thumbnail_matches_grid(self) -> Dict[str, int]:
        thumbnail = await self.get_thumbnail_count()
        grid = await self.get_grid_record_count()
        assert thumbnail == grid, (
            f"{self.SECTION_NAME} thumbnail count ({thumbnail}) != "
            f"'{self.DEFAULT_STATUS}' records in grid ({grid})"
        )
        return {"thumbnail_count": thumbnail, "grid_count": grid}

    # ============================================================
    # Sorting
    # ============================================================

    async def click_column_header(self, column_index: int) -> None:
        header = self.header_cells.nth(column_index)
        await expect(header).to_be_visible(timeout=10000)
        name = (await header.text_content() or "").strip()
        with allure.step(f"Click column header: {name}"):
            await header.click(force=True)
            await self.pause(1)
            await self.wait_for_loader(timeout=5000)

    async def get_sort_indicator(self, column_index: int) -> str:
        header = self.header_cells.nth(column_index)
        class_names = await header.locator("[class]").evaluate_all(
            "els => els.map(e => e.getAttribute('class'))"
        )
        return classify_sort_indicator(class_names)

    async def verify_column_sorted(
        self,
        column_index: int,
        order: str = SORT_ASCENDING,
        max_rows: int = 10,
        column_name: str = "",
    ) -> bool:
        values = await self.get_column_values(column_index, max_rows)
        return verify_sorted(values, order, column_name or str(column_index))

    async def test_column_sorting(self, column_index: int, column_name: str) -> Dict[str, str]:
        """
        Click a header three times: ascending, descending, then cleared.
        Presses Reset at the end.

        Returns:
            Sort indicator seen after each click
        """
        indicators: Dict[str, str] = {}
        with allure.step(f"Sort column '{column_name}'"):
            await self.click_column_header(column_index)
            indicators["first"] = await self.get_sort_indicator(column_index)
            await self.verify_column_sorted(column_index, SORT_ASCENDING, column_name=column_name)

            await self.click_column_header(column_index)
            indicators["second"] = await self.get_sort_indicator(column_index)
            await self.verify_column_sorted(column_index, SORT_DESCENDING, column_name=column_name)

            await self.click_column_header(column_index)
            indicators["third"] = await self.get_sort_indicator(column_index)

            await self.reset()
        logger.info(f"Sort indicators for {column_name}: {indicators}")
        return indicators

    # ============================================================
    # Pagination
    # ============================================================

    async def get_page_info(self) -> Optional[Tuple[int, int]]:
        """Current and total page from the pager, None when no pager is shown."""
        if not await self.actions.is_visible(self.pager, timeout=2000):
            return None
        return parse_page_info(await self.pager.text_content())

    async def _verify_page_moved(self, before: Optional[Tuple[int, int]], step: int) -> None:
        after = await self.get_page_info()
        if before and after:
            assert after[0] == before[0] + step, f"Pager shows page {after[0]} of {after[1]}, expected {before[0] + step}"

    @allure.step("Go to next page")
    async def next_page(self) -> bool:
        before = await self.get_page_info()
        if before and before[0] >= before[1]:
            logger.info(f"Already on the last page ({before[0]} of {before[1]})")
            return False
        target = await self.actions.first_visible([
            ".e-pager .e-nextpage:not(.e-disable)",
            'a:has-text("2")',
            self.page.get_by_role("link", name=re.compile("2|next", re.I)),
        ])
        if target is None:
            logger.info("No next page available")
            return False
        await target.click()
        await self.wait_for_loader(timeout=10000)
        await self._verify_page_moved(before, 1)
        return True

    @allure.step("Go to previous page")
    async def previous_page(self) -> bool:
        before = await self.get_page_info()
        if before and before[0] <= 1:
            logger.info("Already on the first page")
            return False
        target = await self.actions.first_visible([
            ".e-pager .e-prevpage:not(.e-disable)",
            'a:has-text("1")',
            self.page.get_by_role("link", name=re.compile("1|prev", re.I)),
        ])
        if target is None:
            logger.info("No previous page available")
            return False
        await target.click()
        await self.wait_for_loader(timeout=10000)
        await self._verify_page_moved(before, -1)
        return True

    @allure.step("Change page size to {size}")
    async def change_page_size(self, size: int) -> bool:
        if size not in PAGE_SIZES:
            raise ValueError(f"Unsupported page size {size}; expected one of {PAGE_SIZES}")

        native = self.page.locator("select[name*='pageSize' i]").first
        if await native.is_visible():
            await native.select_option(str(size))
        else:
            dropdown = await self.actions.first_visible([
                ".e-pagerdropdown",
                self.page.get_by_role("combobox").filter(has_text=re.compile("20|50|75|100")),
            ])
            if dropdown is None:
                logger.info("Page size dropdown not shown")
                return False
            await dropdown.click()
            await self.page.get_by_role("option", name=str(size), exact=True).click()

        await self.wait_for_loader(timeout=10000)
        return True

    # ============================================================
    # Feedback
    # ============================================================

    async def wait_for_success_toast(self, text: Optional[str] = None, timeout: int = 5000) -> str:
        message = await self.wait_for_toast(text, timeout=timeout)
        assert message, f"Success message{f' containing {text!r}' if text else ''} was not shown"
        return message


__all__ = [
    "GridPage",
    "PAGE_SIZES",
]
