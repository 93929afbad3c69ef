"""
================================================================================
Client Contacts UI Tests (Async / Playwright)
================================================================================

Client Contacts section of the Portal Approval page: request creation,
search and status filter, complete and reject workflows, reset, grid data
and sorting.

Tests that need data create a "New" record first when the grid is empty.

================================================================================
"""

import allure
import pytest
import pytest_asyncio

from testsuites.ui_testing.framework.data_factory import PortalDataFactory
from testsuites.ui_testing.pages.client_contacts_page import ClientContactsPage


@pytest_asyncio.fixture(loop_scope="session")
async def contacts(client_contacts_page: ClientContactsPage) -> ClientContactsPage:
    await client_contacts_page.open_portal_section()
    return client_contacts_page


@pytest_asyncio.fixture(loop_scope="session")
async def seeded_contacts(contacts: ClientContactsPage, data_factory: PortalDataFactory) -> ClientContactsPage:
    count = await contacts.ensure_record_with_new_status_exists(data_factory)
    assert count > 0, "Could not create a Client Contacts record"
    return contacts


@allure.epic("UI Testing")
@allure.feature("Client Contacts")
@pytest.mark.asyncio(loop_scope="session")
class TestClientContacts:
    """Client Contacts UI test suite (async)."""

    @allure.story("Navigation")
    @allure.title("Section opens with all controls enabled")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.smoke_ui
    async def test_navigation_and_controls(self, contacts: ClientContactsPage):
        await contacts.verify_controls()
        await contacts.verify_grid_columns()
        headers = await contacts.get_column_headers()
        missing = set(ClientContactsPage.COLUMNS) - ClientContactsPage.OPTIONAL_COLUMNS - set(headers)
        assert not missing, f"Missing columns: {sorted(missing)}"
        await contacts.verify_thumbnail_matches_grid()

    @allure.story("New Request")
    @allure.title("New Request dialog opens and closes")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_new_request_dialog_open_close(self, contacts: ClientContactsPage):
        await contacts.open_new_request_dialog()
        await contacts.close_dialog()

    @allure.story("New Request")
    @allure.title("Created request is listed with status New")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.smoke_ui
    async def test_create_and_verify_request(self, contacts: ClientContactsPage, data_factory: PortalDataFactory):
        contact = data_factory.client_contact()

        await contacts.create_new_request(contact)
        await contacts.search(contact["email"])

        await contacts.verify_record_in_grid(contact["first_name"], contact["last_name"], contact["email"])

    @allure.story("Search")
    @allure.title("Search by first name finds the record")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_search(self, seeded_contacts: ClientContactsPage):
        record = await seeded_contacts.get_record_data_by_index(0)

        count = await seeded_contacts.search(record["first_name"])

        assert count >= 1
        await seeded_contacts.verify_record_in_grid(record["first_name"], record["last_name"])
        await seeded_contacts.reset()

    @allure.story("Status Filter")
    @allure.title("Status drop-down lists statuses and filters the grid")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_status_dropdown(self, seeded_contacts: ClientContactsPage):
        options = await seeded_contacts.get_available_status_options()
        assert ClientContactsPage.DEFAULT_STATUS in options

        initial_records = await seeded_contacts.store_initial_records()
        await seeded_contacts.verify_status_filter_changes_grid(
            ClientContactsPage.COMPLETED_STATUS, initial_records
        )

    @allure.story("Complete")
    @allure.title("Completing a record moves it to Completed-Appointment Scheduled")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.e2e
    async def test_complete_flow(self, seeded_contacts: ClientContactsPage, data_factory: PortalDataFactory):
        record = await seeded_contacts.get_record_data_by_index(0)
        note = data_factory.note("Completed by automation")

        message = await seeded_contacts.complete_record(note)
        assert message

        await seeded_contacts.select_status(ClientContactsPage.COMPLETED_STATUS)
        await seeded_contacts.search(record["email"])
        await seeded_contacts.verify_record_in_grid(record["first_name"], record["last_name"])

    @allure.story("Reject")
    @allure.title("Rejecting a record shows the reject message")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.e2e
    async def test_reject_flow(self, seeded_contacts: ClientContactsPage, data_factory: PortalDataFactory):
        record = await seeded_contacts.get_record_data_by_index(0)

        message = await seeded_contacts.reject_record(data_factory.rejection_note())
        assert "Reject" in message

        await seeded_contacts.select_status(ClientContactsPage.REJECTED_STATUS)
        await seeded_contacts.search(record["email"])
        await seeded_contacts.verify_record_in_grid(record["first_name"], record["last_name"])

    @allure.story("Reset")
    @allure.title("Reset restores search text, status and records")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression_ui
    async def test_reset(self, seeded_contacts: ClientContactsPage):
        initial_records = await seeded_contacts.store_initial_records()

        result = await seeded_contacts.perform_complete_reset_check()
        if result["skipped"]:
            pytest.skip(result["reason"])

        await seeded_contacts.verify_records_restored_after_reset(initial_records)

    @allure.story("Grid")
    @allure.title("Rows show data and action icons")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P2
    @pytest.mark.regression_ui
    async def test_grid_data_and_icons(self, seeded_contacts: ClientContactsPage):
        await seeded_contacts.verify_grid_column_data()
        await seeded_contacts.verify_action_column_icons()

    @allure.story("Sorting")
    @allure.title("Columns sort ascending, descending and back")
    @allure.severity(allure.severity_level.MINOR)
    @pytest.mark.P2
    @pytest.mark.regression_ui
    @pytest.mark.parametrize("column_index,column_name", [(0, "First Name"), (1, "Last Name"), (2, "Email")])
    async def test_column_sorting(self, seeded_contacts: ClientContactsPage, column_index, column_name):
        if await seeded_contacts.get_grid_record_count() < 2:
            pytest.skip("Not enough records to sort")

        indicators = await seeded_contacts.test_column_sorting(column_index, column_name)

        assert indicators["first"] == "asc"
        assert indicators["second"] == "desc"

    @allure.story("Grid")
    @allure.title("Each record holds name, email and phone")
    @allure.severity(allure.severity_level.MINOR)
    @pytest.mark.P3
    @pytest.mark.regression_ui
    async def test_column_data_per_record(self, seeded_contacts: ClientContactsPage):
        records = await seeded_contacts.store_initial_records()
        for record in records:
            with allure.step(f"Record {record['first_name']} {record['last_name']}"):
                await seeded_contacts.verify_record_fields_populated(record)
