"""
================================================================================
Root Pytest Configuration
================================================================================

This module provides the root pytest configuration for the entire test suite.
It registers common markers and tags collected tests by folder.

================================================================================
"""

import pytest


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    # Priority markers
    config.addinivalue_line(
        "markers", "P0: Critical priority tests - must pass for deployment"
    )
    config.addinivalue_line(
        "markers", "P1: High priority tests - important functionality"
    )
    config.addinivalue_line(
        "markers", "P2: Medium priority tests - edge cases and minor features"
    )
    config.addinivalue_line(
        "markers", "P3: Low priority tests - extensive validation"
    )

    # Test type markers
    config.addinivalue_line(
        "markers", "smoke_ui: Quick UI verification tests"
    )
    config.addinivalue_line(
        "markers", "regression_ui: Full UI regression suite"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests simulating user flows"
    )
    config.addinivalue_line(
        "markers", "unit: Offline tests of helpers, no browser or network"
    )

    # Domain markers
    config.addinivalue_line(
        "markers", "ui: Browser tests against the portal"
    )
    config.addinivalue_line(
        "markers", "auth: Tests related to login and sessions"
    )
    config.addinivalue_line(
        "markers", "gmail: Tests that read the verification code from the Gmail inbox"
    )


def pytest_collection_modifyitems(config, items):
    """Auto-add the ``ui`` / ``unit`` marker from the test's folder."""
    for item in items:
        parts = item.path.parts
        if "ui_testing" in parts:
            item.add_marker(pytest.mark.ui)
        elif "unit" in parts:
            item.add_marker(pytest.mark.unit)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "Healthcare Portal E2E Automation",
        "=" * 60,
        "",
    ]
