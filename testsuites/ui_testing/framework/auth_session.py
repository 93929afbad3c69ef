"""
Authenticated session persistence.

The portal keeps its auth token in ``localStorage``, which Playwright's
``storage_state`` only captures for origins it has visited in the same
context. After login the local storage is read explicitly and written under
the configured origin, so later contexts can start already signed in.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from loguru import logger
from playwright.async_api import Page

from .config_loader import ConfigLoader


PROJECT_ROOT = Path(__file__).resolve().parents[3]

READ_LOCAL_STORAGE_JS = """
() => {
    const items = {};
    for (let i = 0; i < window.localStorage.length; i++) {
        const key = window.localStorage.key(i);
        items[key] = window.localStorage.getItem(key);
    }
    return items;
}
"""


def auth_state_path(config: Optional[ConfigLoader] = None) -> Path:
    """Location of the saved session (``auth.state_file``, relative to the project root)."""
    config = config or ConfigLoader()
    path = Path(config.get("auth.state_file", "authState.json"))
    return path if path.is_absolute() else PROJECT_ROOT / path


def merge_local_storage(
    state: Mapping[str, Any],
    origin: str,
    items: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Return a copy of a storage state whose ``origins`` hold only ``origin``.

    Args:
        state: Result of ``context.storage_state()``
        origin: Portal origin, e.g. ``https://portal.example.com``
        items: localStorage key/value pairs read from the page

    Returns:
        New storage state dict; ``state`` is not modified
    """
    merged = copy.deepcopy(dict(state))
    merged.setdefault("cookies", [])
    merged["origins"] = [
        {
            "origin": origin.rstrip("/"),
            "localStorage": [
                {"name": str(name), "value": "" if value is None else str(value)}
                for name, value in items.items()
            ],
        }
    ]
    return merged


def write_auth_state(state: Mapping[str, Any], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(state, indent=2), encoding="utf-8")
    logger.info(f"Authentication state saved to: {path}")
    return path


async def read_local_storage(page: Page) -> Dict[str, str]:
    return await page.evaluate(READ_LOCAL_STORAGE_JS)


async def save_session(page: Page, origin: str, path: Path) -> Path:
    """Merge the page's localStorage into its context state and write it to ``path``."""
    items = await read_local_storage(page)
    state = await page.context.storage_state()
    return write_auth_state(merge_local_storage(state, origin, items), path)


async def login_and_save_session(
    page: Page,
    login_url: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    origin: Optional[str] = None,
    state_path: Optional[Path] = None,
) -> Path:
    """
    Sign in through the login form and persist the session.

    Missing arguments are read from configuration (LOGIN_URL,
    LOGIN_USERNAME, LOGIN_PASSWORD, BASE_ORIGIN).

    Returns:
        Path of the written state file

    Raises:
        ConfigurationError: A required setting is not configured
    """
    config = ConfigLoader()
    login_url = login_url or config.require("login.url")
    username = username or config.require("login.username")
    password = password or config.require("login.password")
    origin = origin or config.require("base.origin")
    state_path = Path(state_path) if state_path else auth_state_path(config)
    navigation_timeout = int(config.get("timeouts.navigation", 15000))

    logger.info(f"Logging in as {username}")
    await page.goto(login_url)
    await page.get_by_role("textbox", name="Username").fill(username)
    await page.get_by_role("textbox", name="Password").fill(password)
    await page.get_by_role("button", name="Sign In").click()

    skip = page.locator("button:has-text('Skip')").first
    try:
        await skip.wait_for(state="visible", timeout=5000)
        await skip.click()
        logger.info("MFA skipped")
    except Exception:
        logger.debug("MFA skip button not shown")

    await page.wait_for_url("**/dashboard", timeout=navigation_timeout)
    return await save_session(page, origin, state_path)


__all__ = [
    "auth_state_path",
    "login_and_save_session",
    "merge_local_storage",
    "read_local_storage",
    "save_session",
    "write_auth_state",
]
