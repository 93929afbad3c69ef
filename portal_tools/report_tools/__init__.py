"""Allure attachment and result summary helpers."""

from portal_tools.report_tools.allure_reports import (
    AllureReportProcessor,
    RunSummary,
    attach_email_details,
    attach_json,
    attach_text,
)

__all__ = [
    "AllureReportProcessor",
    "RunSummary",
    "attach_email_details",
    "attach_json",
    "attach_text",
]
