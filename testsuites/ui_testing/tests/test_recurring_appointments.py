"""
================================================================================
Recurring Appointments UI Tests (Async / Playwright)
================================================================================

Recurring Group-IOP series on the scheduler, created on the next business
day.

================================================================================
"""

from datetime import date

import allure
import pytest
import pytest_asyncio

from testsuites.ui_testing.framework.date_helpers import DEFAULT_SERIES_DAYS, default_series_end, within_days
from testsuites.ui_testing.pages.recurring_appointments_page import RecurringAppointmentsPage


@pytest_asyncio.fixture(loop_scope="session")
async def scheduler(recurring_appointments_page: RecurringAppointmentsPage) -> RecurringAppointmentsPage:
    await recurring_appointments_page.setup_scheduler_for_next_day()
    yield recurring_appointments_page
    await recurring_appointments_page.close_popup_safely()


@allure.epic("UI Testing")
@allure.feature("Scheduling")
@allure.story("Recurring Appointments")
@pytest.mark.asyncio(loop_scope="session")
class TestRecurringAppointments:
    """Recurring appointment series UI test suite (async)."""

    @allure.title("Series creates individual occurrences; cancelling one keeps the rest")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P1
    @pytest.mark.e2e
    async def test_series_and_cancel_one_occurrence(self, scheduler: RecurringAppointmentsPage):
        result = await scheduler.check_recurring_pattern_and_cancellation("Daily")

        assert result["initial_count"] > 1
        assert result["remaining_count"] > 0

    @allure.title("Edit Series changes the pattern of future occurrences")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P2
    @pytest.mark.regression_ui
    async def test_modify_pattern(self, scheduler: RecurringAppointmentsPage):
        if not await scheduler.check_modify_pattern_affects_future("Daily", frequency=1):
            pytest.skip("Edit Series is not offered for this occurrence")

        event = await scheduler.first_visible_event()
        if event is not None:
            await scheduler.delete_event(event)

    @allure.title(f"Default Until date is {DEFAULT_SERIES_DAYS} days ahead")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P2
    @pytest.mark.regression_ui
    async def test_default_until_is_52_days(self, scheduler: RecurringAppointmentsPage):
        today = date.today()

        shown = await scheduler.check_maximum_occurrences("Daily", today=today)

        assert within_days(shown, default_series_end(today)), f"Until shows {shown}"
