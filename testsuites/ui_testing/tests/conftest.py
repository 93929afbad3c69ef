"""
================================================================================
UI Testing Pytest Configuration
================================================================================

This module configures pytest for UI tests, providing fixtures for browser
management, page objects, and test setup/teardown.

Key Features:
- One browser per session, a fresh context per test
- Page Object fixtures for all pages
- Signed-in pages restored from authState.json (or a fresh login)
- Screenshot, URL and API responses attached to Allure on failure

The browser lives on the session event loop, so UI test classes are marked
``@pytest.mark.asyncio(loop_scope="session")``.

================================================================================
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from loguru import logger
from playwright.async_api import BrowserContext, Page, expect

from portal_tools.common import init_logger
from testsuites.ui_testing.framework.auth_session import login_and_save_session
from testsuites.ui_testing.framework.browser_manager import BrowserManager, create_authenticated_page
from testsuites.ui_testing.framework.config_loader import ConfigLoader
from testsuites.ui_testing.framework.data_factory import PortalDataFactory
from testsuites.ui_testing.framework.page_base import BasePage, resolve_base_url
from testsuites.ui_testing.pages.client_contacts_page import ClientContactsPage
from testsuites.ui_testing.pages.dashboard_page import DashboardPage
from testsuites.ui_testing.pages.followup_referrals_page import FollowupReferralsPage
from testsuites.ui_testing.pages.login_page import LoginPage
from testsuites.ui_testing.pages.patient_referral_page import PatientReferralPage
from testsuites.ui_testing.pages.portal_requests_page import PortalRequestsPage
from testsuites.ui_testing.pages.probation_portal_page import ProbationPortalPage
from testsuites.ui_testing.pages.recurring_appointments_page import RecurringAppointmentsPage
from testsuites.ui_testing.pages.scheduling_page import SchedulingPage


# ================================================================================
# Pytest Configuration
# ================================================================================

def pytest_configure(config):
    """Configure pytest with UI markers."""
    config.addinivalue_line("markers", "smoke_ui: quick UI checks")
    config.addinivalue_line("markers", "regression_ui: full UI regression")
    config.addinivalue_line("markers", "gmail: needs the live Gmail inbox")


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Keep each phase report on the item so fixtures can see failures."""
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)


def _failed(request) -> bool:
    report = getattr(request.node, "rep_call", None)
    return bool(report and report.failed)


# ================================================================================
# Browser Fixtures
# ================================================================================

@pytest.fixture(scope="session")
def ui_config() -> ConfigLoader:
    init_logger()
    config = ConfigLoader()
    expect.set_options(timeout=int(config.get("timeouts.expect", 60000)))
    return config


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def browser_manager(ui_config: ConfigLoader) -> AsyncGenerator[BrowserManager, None]:
    """
    Session-scoped browser manager fixture.

    Provides a single browser for all tests in the session,
    reducing browser launch overhead.
    """
    async with BrowserManager() as manager:
        yield manager


@pytest_asyncio.fixture(loop_scope="session")
async def context(browser_manager: BrowserManager) -> AsyncGenerator[BrowserContext, None]:
    """Fresh context without a saved session (login tests)."""
    context = await browser_manager.new_context()
    yield context
    await context.close()


@pytest_asyncio.fixture(loop_scope="session")
async def page(request, context: BrowserContext) -> AsyncGenerator[Page, None]:
    page = await context.new_page()
    yield page
    if _failed(request) and not page.is_closed():
        await BasePage(page).capture_failure(request.node.name)
    await page.close()


@pytest_asyncio.fixture(loop_scope="session")
async def authenticated_page(request, browser_manager: BrowserManager) -> AsyncGenerator[Page, None]:
    """
    Page signed in to the portal.

    Restores authState.json; logs in and saves it when the session is
    missing or expired.
    """
    dashboard_url = f"{resolve_base_url()}/dashboard"
    context, page = await create_authenticated_page(
        browser_manager,
        dashboard_url,
        login_func=lambda p: login_and_save_session(p, state_path=browser_manager.auth_state_file),
    )
    yield page
    if _failed(request) and not page.is_closed():
        await BasePage(page).capture_failure(request.node.name)
    await context.close()


# ================================================================================
# Page Object Fixtures
# ================================================================================

@pytest.fixture
def login_page(page: Page) -> LoginPage:
    """LoginPage on a signed-out page."""
    return LoginPage(page)


@pytest.fixture
def dashboard_page(authenticated_page: Page) -> DashboardPage:
    return DashboardPage(authenticated_page)


@pytest.fixture
def client_contacts_page(authenticated_page: Page) -> ClientContactsPage:
    return ClientContactsPage(authenticated_page)


@pytest.fixture
def patient_referral_page(authenticated_page: Page) -> PatientReferralPage:
    return PatientReferralPage(authenticated_page)


@pytest.fixture
def portal_requests_page(authenticated_page: Page) -> PortalRequestsPage:
    return PortalRequestsPage(authenticated_page)


@pytest.fixture
def probation_portal_page(authenticated_page: Page) -> ProbationPortalPage:
    return ProbationPortalPage(authenticated_page)


@pytest.fixture
def followup_referrals_page(authenticated_page: Page) -> FollowupReferralsPage:
    return FollowupReferralsPage(authenticated_page)


@pytest.fixture
def scheduling_page(authenticated_page: Page) -> SchedulingPage:
    return SchedulingPage(authenticated_page)


@pytest.fixture
def recurring_appointments_page(authenticated_page: Page) -> RecurringAppointmentsPage:
    return RecurringAppointmentsPage(authenticated_page)


# ================================================================================
# Utility Fixtures
# ================================================================================

@pytest.fixture
def data_factory() -> PortalDataFactory:
    return PortalDataFactory()


@pytest.fixture
def test_data(ui_config: ConfigLoader):
    """
    Credentials and addresses for the UI tests, from configuration.
    """
    data = {
        "valid_user": {
            "username": ui_config.get("login.username", ""),
            "password": ui_config.get("login.password", ""),
        },
        "invalid_user": {
            "username": "invalid_user_automation",
            "password": "wrong_password",
        },
        "test_email": ui_config.get("test.email", ""),
        "sender_email": ui_config.get("sender.email", ""),
    }
    if not data["valid_user"]["username"]:
        logger.warning("LOGIN_USERNAME is not configured")
    return data
