"""
================================================================================
Login Page Object (Async / Playwright)
================================================================================

Sign-in, MFA skip and the forgot-password flow of the portal.

The password reset code is read from the test inbox through the Gmail API.
The Gmail client is synchronous, so the poll runs in a worker thread to
keep the event loop free.

================================================================================
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Optional

import allure
from loguru import logger
from playwright.async_api import expect

from portal_tools.gmail import GmailClient
from portal_tools.report_tools import attach_email_details, attach_text
from testsuites.ui_testing.framework.auth_session import auth_state_path, save_session
from testsuites.ui_testing.framework.page_base import PageBase


def password_reset_account(test_email: Optional[str], login_username: Optional[str]) -> Optional[str]:
    """
    Account the forgot-password flow may reset.

    Returns None when ``test.email`` is unset or names the suite's own
    login, whose password the other tests and the saved session depend on.
    """
    account = (test_email or "").strip()
    if not account:
        return None
    if account.lower() == (login_username or "").strip().lower():
        return None
    return account


class LoginPage(PageBase):
    """Login page object (async)."""

    URL_PATH = "/login"
    PAGE_TITLE = "Login"

    FORGOT_PASSWORD_HEADING = "Forgot your password"
    FORGOT_PASSWORD_INSTRUCTION = "Enter your Username to receive Verification Code on your email"
    VERIFY_INSTRUCTION = "Enter the Verification Code sent to your email and new password below"

    def __init__(self, page, base_url: str = "", gmail_client: Optional[GmailClient] = None):
        super().__init__(page, base_url)
        self._gmail_client = gmail_client

    @property
    def gmail(self) -> GmailClient:
        if self._gmail_client is None:
            self._gmail_client = GmailClient()
        return self._gmail_client

    @property
    def url(self) -> str:
        return self.config.get("login.url") or super().url

    # ============================================================
    # Sign In
    # ============================================================

    @allure.step("Open login page")
    async def open(self) -> "LoginPage":
        await self.navigate()
        await expect(self.page.get_by_role("button", name="Sign In")).to_be_visible(
            timeout=self.navigation_timeout
        )
        return self

    @allure.step("Login (username={username})")
    async def login(self, username: str, password: str) -> None:
        await self.fill("username_input", username)
        await self.fill("password_input", password)
        await self.click("sign_in_button")

    async def skip_mfa(self, timeout: int = 5000) -> bool:
        """Wait for the MFA screen to settle, click Skip when shown."""
        await self.pause(2)
        skipped = await super().skip_mfa(timeout=timeout)
        if skipped:
            await self.pause(2)
        return skipped

    @allure.step("Verify login error is displayed")
    async def verify_login_error(self) -> str:
        """
        Still on the login page with an error alert or toast.

        Returns:
            The error text
        """
        error = await self.smart.locate("login_error", timeout=10000)
        message = (await error.text_content() or "").strip()
        assert "/login" in self.page.url, f"Expected to stay on /login, now on {self.page.url}"
        logger.info(f"Login error: {message}")
        return message

    @allure.step("Verify login succeeded")
    async def verify_login_success(self) -> None:
        await self.wait_for_url("**/dashboard")
        assert "/login" not in self.page.url

    async def save_session(self, path: Optional[Path] = None) -> Path:
        with allure.step("Save authenticated session"):
            return await save_session(self.page, self.base_url, path or auth_state_path(self.config))

    async def navigate_to_dashboard(self) -> None:
        """Open the dashboard with the saved session."""
        await self.navigate_to("/dashboard")
        await self.skip_mfa()
        await self.wait_for_url("**/dashboard")

    # ============================================================
    # Forgot Password
    # ============================================================

    @allure.step("Open forgot password page")
    async def open_forgot_password(self) -> None:
        await self.page.get_by_role("link", name="Forgot password?").click()
        await self.wait_for_url("**/forgotpassword")
        await expect(self.page.get_by_role("heading", name=self.FORGOT_PASSWORD_HEADING)).to_be_visible()
        await expect(self.page.get_by_text(self.FORGOT_PASSWORD_INSTRUCTION)).to_be_visible()

    async def submit_password_reset_request(self, email: str) -> float:
        """
        Request a reset code for ``email``.

        Returns:
            Request time in epoch seconds, used to ignore older emails
        """
        with allure.step(f"Request password reset for {email}"):
            await self.page.locator("#email").fill(email)
            requested_at = time.time()
            await self.page.get_by_role("button", name="Reset my Password").click()

            await expect(self.page.get_by_text(self.VERIFY_INSTRUCTION)).to_be_visible(
                timeout=self.navigation_timeout
            )
            for selector in ("#code", "#password", "#confirmpwd"):
                await expect(self.page.locator(selector)).to_be_visible()
            await expect(self.page.get_by_role("button", name="Submit")).to_be_visible()
            await expect(self.page.get_by_role("link", name="Back to Sign In")).to_be_visible()
        return requested_at

    @allure.step("Back to Sign In")
    async def back_to_sign_in(self) -> None:
        await self.page.get_by_role("link", name="Back to Sign In").click()
        await self.wait_for_url("**/login")

    async def get_otp_from_email(self, sender: str, after_timestamp: Optional[float] = None) -> str:
        """
        Poll the inbox for the newest email from ``sender`` and read its code.

        Raises:
            AssertionError: The email holds no code
        """
        with allure.step(f"Read verification code from {sender}"):
            email = await asyncio.to_thread(self.gmail.wait_for_latest_email, sender, after_timestamp)
            code = self.gmail.read_otp(email)
            attach_email_details(email.headers, code)
        assert code, f"No verification code found in the latest email from {sender}"
        return code

    async def submit_otp_and_new_password(self, code: str, password: str) -> None:
        with allure.step("Submit verification code and new password"):
            await self.page.locator("#code").fill(code)
            await self.page.locator("#password").fill(password)
            await self.page.locator("#confirmpwd").fill(password)
            await self.page.get_by_role("button", name="Submit").click()

    @allure.step("Verify password reset succeeded")
    async def verify_password_reset_success(self) -> None:
        """Back on the login page, or a success toast was shown."""
        try:
            await self.wait_for_url("**/login", timeout=10000)
            return
        except Exception:
            logger.debug("Not redirected to /login, checking for a success toast")
        toast = await self.smart.locate("toast_success", timeout=5000)
        logger.info(f"Password reset: {(await toast.text_content() or '').strip()}")

    def record_new_password(self, username: str, password: str) -> None:
        """Keep the generated password in the log and the report."""
        logger.info(f"New password for {username}: {password}")
        attach_text(f"Account: {username}\nNew password: {password}", name="New Password")

    async def verify_login_with_new_password(self, username: str, password: str) -> None:
        with allure.step("Sign in with the new password"):
            if "/login" not in self.page.url:
                await self.open()
            await self.login(username, password)
            await self.skip_mfa()
            await self.verify_login_success()


__all__ = [
    "LoginPage",
    "password_reset_account",
]
