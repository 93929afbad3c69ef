"""
================================================================================
Gmail OAuth Setup
================================================================================

One-time helper that obtains a Gmail refresh token for the test inbox.

Usage:
    python -m portal_tools.gmail.oauth_setup
    python -m portal_tools.gmail.oauth_setup --force --token-path token.json

Steps:
    1. Open the printed URL and grant read-only Gmail access
    2. Paste the ``code`` query parameter from the redirect URL
    3. Copy the printed GOOGLE_REFRESH_TOKEN line into .env.local

================================================================================
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from google_auth_oauthlib.flow import InstalledAppFlow
from loguru import logger

from portal_tools.common import PROJECT_ROOT, get_config, init_logger, load_environment
from portal_tools.gmail.gmail_client import (
    GMAIL_SCOPES,
    TOKEN_URI,
    GmailConfigurationError,
)


AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
DEFAULT_TOKEN_PATH = PROJECT_ROOT / "token.json"


def build_flow(client_id: str, client_secret: str, redirect_uri: str) -> InstalledAppFlow:
    """Create an installed-app flow for the read-only Gmail scope."""
    client_config = {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": [redirect_uri],
        }
    }
    return InstalledAppFlow.from_client_config(
        client_config, scopes=GMAIL_SCOPES, redirect_uri=redirect_uri
    )


def authorization_url(flow: InstalledAppFlow) -> str:
    # prompt=consent forces Google to return a refresh token every time
    url, _state = flow.authorization_url(access_type="offline", prompt="consent")
    return url


def exchange_code(flow: InstalledAppFlow, code: str):
    """Exchange the pasted authorization code for credentials."""
    flow.fetch_token(code=code.strip())
    return flow.credentials


def resolve_token_path(configured: Optional[str] = None) -> Path:
    """Configured token path; relative paths are taken from the project root."""
    path = Path(configured) if configured else DEFAULT_TOKEN_PATH
    return path if path.is_absolute() else PROJECT_ROOT / path


def save_token(credentials, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(credentials.to_json(), encoding="utf-8")
    logger.info(f"Token stored to {path}")
    return path


def _read_client_settings() -> dict:
    settings = {}
    for env_key, name in (
        ("GOOGLE_CLIENT_ID", "client_id"),
        ("GOOGLE_CLIENT_SECRET", "client_secret"),
        ("GOOGLE_REDIRECT_URI", "redirect_uri"),
    ):
        value = os.environ.get(env_key)
        if not value:
            raise GmailConfigurationError(
                f"{env_key} is not set in environment variables. "
                f"Please check your .env or .env.local file."
            )
        settings[name] = value
    return settings


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate a Gmail API refresh token for OTP retrieval",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Regenerate the token without asking when token.json already exists",
    )
    parser.add_argument(
        "--token-path",
        type=Path,
        default=None,
        help=f"Where to store the credentials JSON (default: {DEFAULT_TOKEN_PATH})",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = parse_args(argv)
    load_environment()
    init_logger()

    token_path = args.token_path or resolve_token_path(get_config("gmail.token_path"))

    if token_path.exists() and not args.force:
        answer = input(f"{token_path} already exists. Regenerate it? (y/N): ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Keeping existing token.")
            return 0

    try:
        settings = _read_client_settings()
    except GmailConfigurationError as e:
        logger.error(str(e))
        return 1

    flow = build_flow(**settings)

    print("\nAuthorize this app by visiting this URL:\n")
    print(authorization_url(flow))
    code = input("\nEnter the code from that page here: ")

    try:
        credentials = exchange_code(flow, code)
    except Exception as e:
        logger.error(f"Error retrieving access token: {e}")
        return 1

    save_token(credentials, token_path)

    print("\nAdd this line to your .env.local file:\n")
    print(f"GOOGLE_REFRESH_TOKEN={credentials.refresh_token}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
