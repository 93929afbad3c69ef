import base64
import socket
from types import SimpleNamespace

import pytest
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from portal_tools.gmail.gmail_client import (
    EmailMessage,
    GmailAuthError,
    GmailClient,
    GmailConfigurationError,
    GmailInvalidGrantError,
    OtpNotFoundError,
    OtpPollConfig,
    REQUIRED_ENV_VARS,
    authorize,
    build_query,
)


SENDER = "no-reply@portal.example.com"


def _message(message_id: str, internal_date: int, body: str, subject: str = "Password reset") -> dict:
    data = base64.urlsafe_b64encode(body.encode("utf-8")).decode("ascii").rstrip("=")
    return {
        "id": message_id,
        "threadId": f"t-{message_id}",
        "internalDate": str(internal_date),
        "payload": {
            "headers": [
                {"name": "From", "value": SENDER},
                {"name": "To", "value": "qa@example.com"},
                {"name": "Subject", "value": subject},
                {"name": "Date", "value": "Mon, 19 Oct 2026 10:00:00 +0000"},
            ],
            "body": {"data": data},
        },
    }


class _Response(dict):
    """Minimal stand-in for the httplib2 response carried by HttpError."""

    def __init__(self, status, reason):
        super().__init__(status=str(status))
        self.status = status
        self.reason = reason


class _Request:
    def __init__(self, result):
        self._result = result

    def execute(self):
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


class FakeMessages:
    """``users().messages()`` answering ``list`` calls from a script."""

    def __init__(self, list_results, store):
        self._list_results = list(list_results)
        self._store = store
        self.queries = []

    def list(self, userId, q, maxResults):
        self.queries.append(q)
        return _Request(self._list_results.pop(0))

    def get(self, userId, id, format):
        return _Request(self._store[id])


class FakeService:
    def __init__(self, list_results, messages=()):
        store = {m["id"]: m for m in messages}
        self.messages_api = FakeMessages(list_results, store)

    def users(self):
        return SimpleNamespace(messages=lambda: self.messages_api)


def _client(service, max_retries=6):
    sleeps = []
    poll = OtpPollConfig(initial_wait=5, max_retries=max_retries, retry_delay=3, recheck_delay=2)
    return GmailClient(service=service, poll_config=poll, sleep=sleeps.append), sleeps


def _refs(*ids):
    return {"messages": [{"id": i} for i in ids]}


def test_build_query():
    assert build_query() == "is:unread"
    assert build_query(from_email=SENDER) == f"from:{SENDER}"
    assert build_query("Reset", SENDER, 1760868000.7) == f"subject:Reset from:{SENDER} after:1760868000"


def test_authorize_requires_every_variable(monkeypatch):
    for name in REQUIRED_ENV_VARS:
        monkeypatch.setenv(name, "value")
    monkeypatch.delenv("GOOGLE_REFRESH_TOKEN")

    with pytest.raises(GmailConfigurationError, match="GOOGLE_REFRESH_TOKEN"):
        authorize()


def test_authorize_builds_refresh_token_credentials(monkeypatch):
    for name in REQUIRED_ENV_VARS:
        monkeypatch.setenv(name, f"{name.lower()}-value")

    credentials = authorize()

    assert credentials.refresh_token == "google_refresh_token-value"
    assert credentials.client_id == "google_client_id-value"


def test_email_message_from_resource():
    email = EmailMessage.from_resource(_message("m1", 1760868000000, "Code: 1234"))

    assert email.subject == "Password reset"
    assert email.headers["from"] == SENDER
    assert email.body == "Code: 1234"
    assert email.received_at.year == 2025


def test_get_latest_email_picks_newest():
    older = _message("old", 1000, "old")
    newer = _message("new", 2000, "new")
    client, _ = _client(FakeService([_refs("old", "new")], [older, newer]))

    email = client.get_latest_email(from_email=SENDER)

    assert email.id == "new"


def test_get_latest_email_none_when_empty():
    client, _ = _client(FakeService([{}]))
    assert client.get_latest_email(from_email=SENDER) is None


def test_invalid_grant_is_reported_with_help():
    service = FakeService([RefreshError("invalid_grant: Bad Request")])
    client, _ = _client(service)

    with pytest.raises(GmailAuthError, match="refresh token is invalid or expired"):
        client.get_latest_email(from_email=SENDER)


def test_wait_retries_until_email_arrives_then_confirms():
    msg = _message("m1", 1000, "Your verification code: 482913")
    service = FakeService([{}, {}, _refs("m1"), _refs("m1")], [msg])
    client, sleeps = _client(service)

    email = client.wait_for_latest_email(SENDER)

    assert email.id == "m1"
    assert sleeps == [5, 3, 3, 2]


def test_wait_prefers_newer_email_seen_on_recheck():
    first = _message("m1", 1000, "code: 1111")
    second = _message("m2", 2000, "code: 2222")
    service = FakeService([_refs("m1"), _refs("m1", "m2"), _refs("m2", "m1")], [first, second])
    client, sleeps = _client(service)

    assert client.get_otp_from_latest_email(SENDER) == "2222"
    assert sleeps == [5, 2, 2]


def test_wait_uses_latest_after_last_attempt():
    msg = _message("m1", 1000, "code: 1111")
    client, sleeps = _client(FakeService([{}, _refs("m1")], [msg]), max_retries=2)

    assert client.wait_for_latest_email(SENDER).id == "m1"
    assert sleeps == [5, 3]


def test_wait_raises_when_nothing_arrives():
    client, sleeps = _client(FakeService([{}, {}, {}]), max_retries=3)

    with pytest.raises(OtpNotFoundError, match="after 3 attempts"):
        client.wait_for_latest_email(SENDER)
    assert sleeps == [5, 3, 3]


def test_wait_retries_http_errors():
    msg = _message("m1", 1000, "code: 7777")
    error = HttpError(_Response(503, "Backend Error"), b"")
    service = FakeService([error, _refs("m1"), _refs("m1")], [msg])
    client, sleeps = _client(service)

    assert client.get_otp_from_latest_email(SENDER) == "7777"
    assert sleeps == [5, 3, 2]


@pytest.mark.parametrize(
    "error",
    [
        socket.timeout("timed out"),
        TransportError("connection reset"),
        ConnectionResetError(104, "reset"),
        RefreshError("temporarily unavailable"),
    ],
    ids=["socket-timeout", "transport", "connection-reset", "refresh-hiccup"],
)
def test_wait_retries_transient_errors(error):
    msg = _message("m1", 1000, "code: 7777")
    service = FakeService([error, _refs("m1"), _refs("m1")], [msg])
    client, sleeps = _client(service)

    assert client.get_otp_from_latest_email(SENDER) == "7777"
    assert sleeps == [5, 3, 2]


def test_wait_reraises_http_error_on_last_attempt():
    errors = [HttpError(_Response(503, "Backend Error"), b"") for _ in range(3)]
    client, sleeps = _client(FakeService(errors), max_retries=3)

    with pytest.raises(HttpError):
        client.wait_for_latest_email(SENDER)
    assert sleeps == [5, 3, 3]


def test_wait_without_attempts_raises_not_found():
    client, sleeps = _client(FakeService([]), max_retries=0)

    with pytest.raises(OtpNotFoundError):
        client.wait_for_latest_email(SENDER)
    assert sleeps == [5]


def test_wait_does_not_retry_missing_credentials(monkeypatch):
    for name in REQUIRED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    client, sleeps = _client(None)

    with pytest.raises(GmailConfigurationError):
        client.wait_for_latest_email(SENDER)
    assert sleeps == [5]


def test_wait_does_not_retry_invalid_grant():
    service = FakeService([RefreshError("invalid_grant")])
    client, sleeps = _client(service)

    with pytest.raises(GmailInvalidGrantError):
        client.wait_for_latest_email(SENDER)
    assert sleeps == [5]


def test_after_timestamp_is_part_of_the_query():
    msg = _message("m1", 1000, "code: 1234")
    service = FakeService([_refs("m1"), _refs("m1")], [msg])
    client, _ = _client(service)

    client.wait_for_latest_email(SENDER, after_timestamp=1760868000)

    assert service.messages_api.queries[0] == f"from:{SENDER} after:1760868000"


def test_read_otp_uses_subject_and_cleaned_body():
    client, _ = _client(FakeService([]))
    html = _message("m1", 1000, "<p>Use the code below</p><b>8080</b>", subject="Reset code: 314159")

    assert client.read_otp(EmailMessage.from_resource(html)) == "314159"


def test_read_otp_none_without_code():
    client, _ = _client(FakeService([]))
    email = EmailMessage.from_resource(_message("m1", 1000, "Welcome aboard", subject="Hello"))

    assert client.read_otp(email) is None
