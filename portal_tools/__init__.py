"""
================================================================================
Portal Tools
================================================================================

Support utilities shared by the portal end-to-end suite.

Modules:
    - common: Shared configuration, environment loading and logging
    - gmail: Gmail inbox access and one-time code extraction
    - report_tools: Allure attachment and result summary helpers

Example:
    from portal_tools.gmail import GmailClient

    client = GmailClient()
    code = client.get_otp_from_latest_email("no-reply@portal.example.com")

================================================================================
"""

__version__ = "1.0.0"

__all__ = [
    "common",
    "gmail",
    "report_tools",
]
