import json

import pytest

from portal_tools.common import PROJECT_ROOT
from portal_tools.gmail import oauth_setup


class FakeCredentials:
    refresh_token = "1//refresh-token"

    def to_json(self):
        return json.dumps({"refresh_token": self.refresh_token})


class FakeFlow:
    def __init__(self):
        self.fetched_code = None
        self.credentials = FakeCredentials()
        self.url_kwargs = {}

    def authorization_url(self, **kwargs):
        self.url_kwargs = kwargs
        return "https://accounts.google.com/o/oauth2/auth?client_id=abc", "state"

    def fetch_token(self, code):
        self.fetched_code = code


@pytest.fixture
def oauth_env(monkeypatch):
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "client-id")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("GOOGLE_REDIRECT_URI", "http://localhost:8080/")


def test_parse_args_defaults():
    args = oauth_setup.parse_args([])
    assert args.force is False
    assert args.token_path is None


def test_authorization_url_requests_offline_consent():
    flow = FakeFlow()

    url = oauth_setup.authorization_url(flow)

    assert url.startswith("https://accounts.google.com/")
    assert flow.url_kwargs == {"access_type": "offline", "prompt": "consent"}


def test_build_flow_uses_installed_client_config():
    flow = oauth_setup.build_flow("client-id", "client-secret", "http://localhost:8080/")

    assert flow.client_config["client_id"] == "client-id"
    assert flow.client_config["token_uri"] == oauth_setup.TOKEN_URI
    assert flow.redirect_uri == "http://localhost:8080/"


def test_main_fails_without_client_settings(monkeypatch, tmp_path):
    for name in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REDIRECT_URI"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(oauth_setup, "load_environment", lambda: [])

    assert oauth_setup.main(["--token-path", str(tmp_path / "token.json")]) == 1


def test_main_keeps_existing_token(monkeypatch, tmp_path, oauth_env):
    token_path = tmp_path / "token.json"
    token_path.write_text("{}", encoding="utf-8")
    monkeypatch.setattr("builtins.input", lambda prompt="": "n")

    assert oauth_setup.main(["--token-path", str(token_path)]) == 0
    assert token_path.read_text(encoding="utf-8") == "{}"


def test_main_writes_token_and_prints_refresh_token(monkeypatch, tmp_path, capsys, oauth_env):
    flow = FakeFlow()
    token_path = tmp_path / "nested" / "token.json"
    monkeypatch.setattr(oauth_setup, "build_flow", lambda **settings: flow)
    monkeypatch.setattr("builtins.input", lambda prompt="": "  4/auth-code  ")

    assert oauth_setup.main(["--force", "--token-path", str(token_path)]) == 0

    assert flow.fetched_code == "4/auth-code"
    assert json.loads(token_path.read_text(encoding="utf-8"))["refresh_token"] == "1//refresh-token"
    assert "GOOGLE_REFRESH_TOKEN=1//refresh-token" in capsys.readouterr().out


def test_relative_token_path_is_under_project_root(tmp_path):
    assert oauth_setup.resolve_token_path("token.json") == PROJECT_ROOT / "token.json"
    assert oauth_setup.resolve_token_path(None) == oauth_setup.DEFAULT_TOKEN_PATH
    assert oauth_setup.resolve_token_path(str(tmp_path / "token.json")) == tmp_path / "token.json"


def test_main_uses_configured_token_path(monkeypatch, tmp_path, oauth_env):
    token_path = tmp_path / "secrets" / "token.json"
    token_path.parent.mkdir()
    token_path.write_text("{}", encoding="utf-8")
    prompts = []
    monkeypatch.setattr(oauth_setup, "PROJECT_ROOT", tmp_path)
    monkeypatch.setattr(oauth_setup, "get_config", lambda key, default=None: "secrets/token.json")
    monkeypatch.setattr("builtins.input", lambda prompt="": prompts.append(prompt) or "n")

    assert oauth_setup.main([]) == 0
    assert str(token_path) in prompts[0]
