"""
Repository-level pytest configuration.

Loads ``.env.local`` and ``.env`` before any test module reads settings, so
local runs and CI behave the same way. CI secrets already present in the
process environment always win over the dotenv files.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from portal_tools.common import load_environment


def pytest_configure(config):
    load_environment(Path(config.rootpath))


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent
