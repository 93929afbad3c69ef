"""
================================================================================
Gmail Client
================================================================================

Read-only Gmail API access used by the password reset flow.

Features:
    - OAuth2 refresh-token authorization from environment variables
    - Newest-message lookup by sender / subject / time window
    - OTP polling with an initial wait, retries and a newer-mail recheck

Environment:
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI,
    GOOGLE_REFRESH_TOKEN (see ``python -m portal_tools.gmail.oauth_setup``)

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from loguru import logger

from portal_tools.common import get_config
from portal_tools.gmail.otp import clean_email_text, decode_body, extract_otp


GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

REQUIRED_ENV_VARS = (
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REDIRECT_URI",
    "GOOGLE_REFRESH_TOKEN",
)

INVALID_GRANT_HELP = (
    "invalid_grant: Your Google OAuth refresh token is invalid or expired. "
    "This usually happens when:\n"
    "  1. The refresh token has expired\n"
    "  2. The refresh token doesn't match the client ID/secret in your .env.local file\n"
    "  3. The token was revoked\n\n"
    "To fix this:\n"
    "  1. Verify GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN in .env.local\n"
    "  2. If using token.json, ensure it matches your current credentials\n"
    "  3. Regenerate the refresh token: python -m portal_tools.gmail.oauth_setup\n"
    "  4. Make sure .env.local is in the project root directory"
)


class GmailError(Exception):
    """Base class for Gmail helper failures."""
    pass


class GmailConfigurationError(GmailError):
    """Raised when a required OAuth environment variable is missing."""
    pass


class GmailAuthError(GmailError):
    """Raised when Gmail authorization fails or the refresh token is rejected."""
    pass


class GmailInvalidGrantError(GmailAuthError):
    """Raised when Google rejects the refresh token itself (``invalid_grant``)."""
    pass


class OtpNotFoundError(GmailError):
    """Raised when no email from the sender arrives within the retry budget."""
    pass


@dataclass
class OtpPollConfig:
    """
    Polling configuration for OTP retrieval.

    Attributes:
        initial_wait: Seconds to wait before the first inbox query
        max_retries: Maximum number of inbox queries
        retry_delay: Seconds between queries when nothing arrived or a query failed
        recheck_delay: Seconds to wait for an even newer email after a hit
        max_results: Messages fetched per query
    """
    initial_wait: float = 5.0
    max_retries: int = 6
    retry_delay: float = 3.0
    recheck_delay: float = 2.0
    max_results: int = 10

    @classmethod
    def from_config(cls) -> "OtpPollConfig":
        """Build from the ``gmail`` section of the tools config."""
        return cls(
            initial_wait=float(get_config("gmail.initial_wait", cls.initial_wait)),
            max_retries=int(get_config("gmail.max_retries", cls.max_retries)),
            retry_delay=float(get_config("gmail.retry_delay", cls.retry_delay)),
            recheck_delay=float(get_config("gmail.recheck_delay", cls.recheck_delay)),
            max_results=int(get_config("gmail.max_results", cls.max_results)),
        )


@dataclass
class EmailMessage:
    """A fetched Gmail message with decoded body and lower-cased headers."""
    id: str
    thread_id: str = ""
    snippet: str = ""
    body: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    internal_date: int = 0

    @property
    def subject(self) -> str:
        return self.headers.get("subject", "")

    @property
    def received_at(self) -> datetime:
        return datetime.fromtimestamp(self.internal_date / 1000, tz=timezone.utc)

    @classmethod
    def from_resource(cls, resource: Dict[str, Any]) -> "EmailMessage":
        """Build from a ``users.messages.get(format='full')`` resource."""
        headers = {
            header["name"].lower(): header.get("value", "")
            for header in (resource.get("payload") or {}).get("headers") or []
        }
        try:
            internal_date = int(resource.get("internalDate") or 0)
        except (TypeError, ValueError):
            internal_date = 0
        return cls(
            id=resource.get("id", ""),
            thread_id=resource.get("threadId", ""),
            snippet=resource.get("snippet", ""),
            body=decode_body(resource),
            headers=headers,
            internal_date=internal_date,
        )


def build_query(
    subject_contains: Optional[str] = None,
    from_email: Optional[str] = None,
    after_timestamp: Optional[float] = None,
) -> str:
    """
    Build a Gmail search query.

    Args:
        subject_contains: Subject fragment
        from_email: Sender address
        after_timestamp: Only messages after this epoch time (seconds)

    Returns:
        Query string; ``is:unread`` when no filter is given
    """
    terms: List[str] = []
    if subject_contains:
        terms.append(f"subject:{subject_contains}")
    if from_email:
        terms.append(f"from:{from_email}")
    if after_timestamp:
        terms.append(f"after:{int(after_timestamp)}")
    return " ".join(terms) or "is:unread"


def authorize() -> Credentials:
    """
    Build OAuth2 credentials from environment variables.

    Returns:
        Credentials holding the refresh token (access token is fetched lazily)

    Raises:
        GmailConfigurationError: A required variable is not set
    """
    values = {}
    for name in REQUIRED_ENV_VARS:
        value = os.environ.get(name)
        if not value:
            raise GmailConfigurationError(
                f"{name} is not set in environment variables. "
                f"Please check your .env or .env.local file."
            )
        values[name] = value

    return Credentials(
        token=None,
        refresh_token=values["GOOGLE_REFRESH_TOKEN"],
        client_id=values["GOOGLE_CLIENT_ID"],
        client_secret=values["GOOGLE_CLIENT_SECRET"],
        token_uri=TOKEN_URI,
        scopes=GMAIL_SCOPES,
    )


class GmailClient:
    """
    Gmail inbox reader.

    Usage:
        >>> client = GmailClient()
        >>> email = client.get_latest_email(from_email="no-reply@portal.example.com")
        >>> code = client.get_otp_from_latest_email("no-reply@portal.example.com")

    Both the API service and the sleep function can be injected, which keeps
    the polling loop testable without network access.
    """

    def __init__(
        self,
        service: Any = None,
        poll_config: Optional[OtpPollConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._service = service
        self.poll_config = poll_config or OtpPollConfig.from_config()
        self._sleep = sleep

    @property
    def service(self) -> Any:
        """Lazily built ``gmail v1`` service."""
        if self._service is None:
            try:
                credentials = authorize()
                self._service = build(
                    "gmail", "v1", credentials=credentials, cache_discovery=False
                )
            except GmailConfigurationError:
                raise
            except Exception as e:
                raise GmailAuthError(f"Failed to authorize Gmail API: {e}") from e
        return self._service

    def get_latest_email(
        self,
        subject_contains: Optional[str] = None,
        from_email: Optional[str] = None,
        max_results: int = 10,
        after_timestamp: Optional[float] = None,
    ) -> Optional[EmailMessage]:
        """
        Return the newest message matching the filters.

        Args:
            subject_contains: Subject fragment
            from_email: Sender address
            max_results: Messages listed per query
            after_timestamp: Only messages after this epoch time (seconds)

        Returns:
            Newest EmailMessage by internal date, or None when nothing matches

        Raises:
            GmailInvalidGrantError: The refresh token was rejected
            GmailAuthError: Any other authorization failure
        """
        query = build_query(subject_contains, from_email, after_timestamp)
        messages_api = self.service.users().messages()

        try:
            response = messages_api.list(
                userId="me", q=query, maxResults=max_results
            ).execute()
        except RefreshError as e:
            if "invalid_grant" in str(e):
                raise GmailInvalidGrantError(INVALID_GRANT_HELP) from e
            raise GmailAuthError(f"Failed to authorize Gmail API: {e}") from e

        refs = response.get("messages") or []
        if not refs:
            logger.warning(f"No emails found with query: {query}")
            return None

        emails = [
            EmailMessage.from_resource(
                messages_api.get(userId="me", id=ref["id"], format="full").execute()
            )
            for ref in refs
        ]
        emails.sort(key=lambda email: email.internal_date, reverse=True)
        return emails[0]

    def wait_for_latest_email(
        self,
        from_email: str,
        after_timestamp: Optional[float] = None,
    ) -> EmailMessage:
        """
        Poll until the newest email from ``from_email`` is stable.

        A newer hit triggers one more check after ``recheck_delay`` so that a
        second code sent moments later still wins. The same date seen twice
        confirms the result.

        Query failures (API errors, transport errors, socket errors and
        authorization hiccups) are retried; the final attempt re-raises.
        A missing credential or a rejected refresh token fails at once.

        Raises:
            OtpNotFoundError: Nothing arrived within ``max_retries`` queries
            GmailInvalidGrantError: The refresh token was rejected
        """
        poll = self.poll_config
        logger.info(f"Waiting for latest email from {from_email}...")
        if after_timestamp:
            logger.info(
                f"Filtering emails sent after: "
                f"{datetime.fromtimestamp(after_timestamp, tz=timezone.utc).isoformat()}"
            )
        self._sleep(poll.initial_wait)

        latest: Optional[EmailMessage] = None
        for attempt in range(1, poll.max_retries + 1):
            final_attempt = attempt == poll.max_retries
            try:
                current = self.get_latest_email(
                    from_email=from_email,
                    max_results=poll.max_results,
                    after_timestamp=after_timestamp,
                )
            except GmailInvalidGrantError:
                raise
            except (HttpError, TransportError, GmailAuthError, OSError) as e:
                if final_attempt:
                    raise
                logger.warning(f"Gmail query failed: {e!r}, retrying...")
                self._sleep(poll.retry_delay)
                continue

            if current is None:
                if final_attempt:
                    raise OtpNotFoundError(
                        f"No email found from sender: {from_email} "
                        f"after {poll.max_retries} attempts"
                    )
                logger.info(
                    f"No email found yet, retrying in {poll.retry_delay:g} seconds... "
                    f"(attempt {attempt}/{poll.max_retries})"
                )
                self._sleep(poll.retry_delay)
                continue

            if latest is None or current.internal_date > latest.internal_date:
                latest = current
                logger.info(
                    f"Found newer email dated: {current.received_at.isoformat()} "
                    f"({current.headers.get('date', 'N/A')})"
                )
                if final_attempt:
                    logger.info(f"Using latest email after {poll.max_retries} checks")
                    break
                self._sleep(poll.recheck_delay)
                continue

            logger.info(
                f"Confirmed latest email (no newer emails found), "
                f"dated {latest.received_at.isoformat()}"
            )
            break

        if latest is None:
            raise OtpNotFoundError(f"No email found from sender: {from_email}")
        return latest

    def read_otp(self, email: EmailMessage) -> Optional[str]:
        """Extract the code from the subject and cleaned body of ``email``."""
        clean_body = clean_email_text(email.body)
        content = f"{email.subject} {clean_body}"

        logger.info(
            "Latest email details:\n"
            f"  From: {email.headers.get('from', 'N/A')}\n"
            f"  To: {email.headers.get('to', 'N/A')}\n"
            f"  Subject: {email.subject or 'N/A'}\n"
            f"  Date: {email.headers.get('date', 'N/A')}"
        )
        logger.debug(f"Email body: {clean_body}")

        code = extract_otp(content)
        if code:
            logger.info(f"OTP code extracted: {code}")
        else:
            logger.warning("Could not extract OTP code from email")
        return code

    def get_otp_from_latest_email(
        self,
        from_email: str,
        after_timestamp: Optional[float] = None,
    ) -> Optional[str]:
        """
        Fetch the newest email from ``from_email`` and extract its code.

        Args:
            from_email: Sender of the verification email
            after_timestamp: Only consider emails after this epoch time (seconds)

        Returns:
            The 4-6 digit code, or None when the email holds none
        """
        return self.read_otp(self.wait_for_latest_email(from_email, after_timestamp))


__all__ = [
    "GMAIL_SCOPES",
    "GmailClient",
    "GmailError",
    "GmailConfigurationError",
    "GmailAuthError",
    "GmailInvalidGrantError",
    "OtpNotFoundError",
    "OtpPollConfig",
    "EmailMessage",
    "authorize",
    "build_query",
]
