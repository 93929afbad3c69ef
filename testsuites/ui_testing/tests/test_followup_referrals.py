"""
================================================================================
Followup Referrals UI Tests (Async / Playwright)
================================================================================

Followup Referrals screen: dashboard widget, filters and reset, grid data,
sorting and the Add Followup Referral popup.

================================================================================
"""

import allure
import pytest
import pytest_asyncio

from testsuites.ui_testing.framework.data_factory import PortalDataFactory
from testsuites.ui_testing.pages.followup_referrals_page import FollowupReferralsPage


@pytest_asyncio.fixture(loop_scope="session")
async def referrals(followup_referrals_page: FollowupReferralsPage) -> FollowupReferralsPage:
    await followup_referrals_page.open_portal_section()
    return followup_referrals_page


@pytest_asyncio.fixture(loop_scope="session")
async def listed_referrals(referrals: FollowupReferralsPage) -> FollowupReferralsPage:
    if await referrals.get_grid_record_count() == 0:
        pytest.skip("No open followup referrals")
    return referrals


@allure.epic("UI Testing")
@allure.feature("Followup Referrals")
@pytest.mark.asyncio(loop_scope="session")
class TestFollowupReferrals:
    """Followup Referrals UI test suite (async)."""

    @allure.story("Navigation")
    @allure.title("Search, filter and action controls are shown and enabled")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.smoke_ui
    async def test_controls(self, referrals: FollowupReferralsPage):
        await referrals.verify_controls()
        await referrals.verify_grid_columns()

    @allure.story("Navigation")
    @allure.title("Dashboard widget shows a yellow count badge and opens the grid")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_dashboard_widget(self, followup_referrals_page: FollowupReferralsPage):
        await followup_referrals_page.navigate_to("/dashboard")
        await followup_referrals_page.skip_mfa()
        count = await followup_referrals_page.get_widget_count()
        await followup_referrals_page.verify_widget_badge_style()

        await followup_referrals_page.open_from_dashboard()

        assert count >= 0
        await followup_referrals_page.verify_grid_columns()

    @allure.story("Grid")
    @allure.title("Rows hold valid referral data and known action icons")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_grid_data_and_icons(self, listed_referrals: FollowupReferralsPage):
        assert await listed_referrals.verify_grid_column_data() > 0
        await listed_referrals.verify_action_column_icons()

    @allure.story("Sorting")
    @allure.title("Columns sort ascending, descending and back")
    @allure.severity(allure.severity_level.MINOR)
    @pytest.mark.P2
    @pytest.mark.regression_ui
    @pytest.mark.parametrize(
        "column_index,column_name",
        [(0, "Patient Id"), (1, "Patient Name"), (4, "Status"), (6, "Provider")],
    )
    async def test_column_sorting(self, listed_referrals: FollowupReferralsPage, column_index, column_name):
        if await listed_referrals.get_grid_record_count() < 5:
            pytest.skip("Sorting checks need at least 5 records")

        indicators = await listed_referrals.test_column_sorting(column_index, column_name)

        assert indicators["first"] == "asc"
        assert indicators["second"] == "desc"

    @allure.story("Search")
    @allure.title("Search By Patient finds the patient by first and by last name")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.smoke_ui
    async def test_patient_search(self, listed_referrals: FollowupReferralsPage):
        patient = await listed_referrals.get_first_patient()
        if not patient["first_name"]:
            pytest.skip("First record has no patient name")

        for name in (patient["first_name"], patient["last_name"]):
            with allure.step(f"Search '{name}'"):
                assert await listed_referrals.search(name) > 0
                await listed_referrals.verify_record_in_grid(name)
                await listed_referrals.reset()

    @allure.story("Filters")
    @allure.title("Providers filter narrows the grid and Reset clears it")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_providers_filter_and_reset(self, referrals: FollowupReferralsPage):
        providers = await referrals.get_dropdown_options(referrals.providers_dropdown)
        assert providers, "Providers drop-down is empty"

        await referrals.select_providers(providers[:1])
        if await referrals.search() > 0:
            await referrals.verify_column_matches("provider", providers[:1])

        await referrals.reset()
        await referrals.verify_filters_reset()

    @allure.story("Filters")
    @allure.title("Status filter narrows the grid and Reset restores Open")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_status_filter_and_reset(self, referrals: FollowupReferralsPage):
        statuses = await referrals.get_dropdown_options(referrals.status_dropdown)
        selected = next((s for s in statuses if s != FollowupReferralsPage.DEFAULT_STATUS), statuses[0])

        await referrals.select_status(selected)
        if await referrals.search() > 0:
            await referrals.verify_column_matches("status", [selected])

        await referrals.reset()
        await referrals.verify_filters_reset()

    @allure.story("Filters")
    @allure.title("Location, Assigned and patient text reset together")
    @allure.severity(allure.severity_level.MINOR)
    @pytest.mark.P2
    @pytest.mark.regression_ui
    async def test_location_and_assigned_reset(self, referrals: FollowupReferralsPage):
        locations = await referrals.get_dropdown_options(referrals.locations_dropdown)
        assigned = await referrals.get_dropdown_options(referrals.assigned_dropdown)
        if not locations or not assigned:
            pytest.skip("Location or Assigned options are not available")

        await referrals.select_locations(locations[:1])
        await referrals.select_assigned(assigned[-1])
        await referrals.search("a")

        await referrals.reset()
        await referrals.verify_filters_reset()

    @allure.story("Add Referral")
    @allure.title("Add popup shows its fields and closes with X and Cancel")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_add_popup_open_close(self, referrals: FollowupReferralsPage):
        await referrals.open_add_popup()
        await referrals.verify_add_popup()
        await referrals.close_popup()

        await referrals.open_add_popup()
        await referrals.close_popup(use_cancel=True)

    @allure.story("Add Referral")
    @allure.title("Patient autocomplete finds a listed patient by first and last name")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_add_popup_patient_search(self, listed_referrals: FollowupReferralsPage):
        patient = await listed_referrals.get_first_patient()
        await listed_referrals.open_add_popup()

        for name in (patient["first_name"], patient["last_name"]):
            results = await listed_referrals.search_patient(name)
            assert any(patient["patient_name"].lower() in r.lower() for r in results), (
                f"'{patient['patient_name']}' not offered for '{name}': {results[:5]}"
            )

        await listed_referrals.close_popup(use_cancel=True)

    @allure.story("Add Referral")
    @allure.title("Saved referral is listed in the grid")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.e2e
    async def test_add_referral(self, referrals: FollowupReferralsPage, data_factory: PortalDataFactory):
        result = {"success": False}
        for search_text in ("a", "e", "i", "o"):
            await referrals.open_add_popup()
            result = await referrals.add_referral(search_text, data_factory)
            if result["success"]:
                break
            await referrals.close_popup(use_cancel=True)

        assert result["success"], "No patient accepted a new followup referral"
        assert await referrals.is_referral_listed(result["patient"], result["description"])
