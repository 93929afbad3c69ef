"""
Gmail helpers for OTP retrieval.

Usage:
    from portal_tools.gmail import GmailClient

    code = GmailClient().get_otp_from_latest_email(
        "no-reply@portal.example.com", after_timestamp=requested_at
    )
"""

from portal_tools.gmail.gmail_client import (
    EmailMessage,
    GmailAuthError,
    GmailClient,
    GmailConfigurationError,
    GmailError,
    GmailInvalidGrantError,
    OtpNotFoundError,
    OtpPollConfig,
    authorize,
    build_query,
)
from portal_tools.gmail.otp import clean_email_text, decode_body, extract_otp

__all__ = [
    "EmailMessage",
    "GmailAuthError",
    "GmailClient",
    "GmailConfigurationError",
    "GmailError",
    "GmailInvalidGrantError",
    "OtpNotFoundError",
    "OtpPollConfig",
    "authorize",
    "build_query",
    "clean_email_text",
    "decode_body",
    "extract_otp",
]
