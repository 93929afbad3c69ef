import pytest
import yaml

from testsuites.ui_testing.framework.config_loader import ConfigLoader, ConfigurationError
from testsuites.ui_testing.framework.page_base import resolve_base_url


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump({
            "login": {"url": "https://portal.example.com/login", "username": ""},
            "browser": {"headless": True},
            "viewport": {"width": 1500},
        }),
        encoding="utf-8",
    )
    yield path
    ConfigLoader.reset()


def test_env_override_and_defaults(monkeypatch, config_file):
    monkeypatch.delenv("LOGIN_URL", raising=False)
    monkeypatch.delenv("VIEWPORT_HEIGHT", raising=False)
    ConfigLoader.reset()
    loader = ConfigLoader(config_path=config_file)
    assert loader.get("login.url") == "https://portal.example.com/login"
    assert loader.get("viewport.height", 720) == 720

    ConfigLoader.reset()
    monkeypatch.setenv("LOGIN_URL", "https://staging.example.com/login")
    loader = ConfigLoader(config_path=config_file)
    assert loader.get("login.url") == "https://staging.example.com/login"


def test_env_values_follow_default_type(monkeypatch, config_file):
    monkeypatch.setenv("BROWSER_HEADLESS", "false")
    monkeypatch.setenv("VIEWPORT_WIDTH", "1280")
    ConfigLoader.reset()
    loader = ConfigLoader(config_path=config_file)

    assert loader.get("browser.headless", True) is False
    assert loader.get("viewport.width", 1500) == 1280


def test_require_names_the_variable(monkeypatch, config_file):
    monkeypatch.delenv("LOGIN_USERNAME", raising=False)
    ConfigLoader.reset()
    loader = ConfigLoader(config_path=config_file)

    with pytest.raises(ConfigurationError, match="LOGIN_USERNAME"):
        loader.require("login.username")


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("login: [unclosed", encoding="utf-8")
    ConfigLoader.reset()

    with pytest.raises(ConfigurationError):
        ConfigLoader(config_path=path)
    ConfigLoader.reset()


def test_reload_updates_values(monkeypatch, tmp_path):
    monkeypatch.delenv("TIMEOUTS_EXPECT", raising=False)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.dump({"timeouts": {"expect": 5000}}), encoding="utf-8")

    ConfigLoader.reset()
    loader = ConfigLoader(config_path=config_path)
    assert loader.get("timeouts.expect") == 5000

    config_path.write_text(yaml.dump({"timeouts": {"expect": 60000}}), encoding="utf-8")
    loader.reload()
    assert loader.get("timeouts.expect") == 60000
    ConfigLoader.reset()


def test_base_url_falls_back_to_login_origin(monkeypatch, config_file):
    monkeypatch.delenv("BASE_ORIGIN", raising=False)
    monkeypatch.delenv("LOGIN_URL", raising=False)
    ConfigLoader.reset()
    loader = ConfigLoader(config_path=config_file)
    assert resolve_base_url(loader) == "https://portal.example.com"

    monkeypatch.setenv("BASE_ORIGIN", "https://app.example.com/")
    assert resolve_base_url(loader) == "https://app.example.com"


def test_shipped_config_defaults(monkeypatch, project_root):
    for name in ("BROWSER_TYPE", "VIEWPORT_WIDTH", "TIMEOUTS_EXPECT", "AUTH_STATE_FILE"):
        monkeypatch.delenv(name, raising=False)
    ConfigLoader.reset()
    loader = ConfigLoader(config_path=project_root / "config" / "config.yaml")

    assert loader.get("browser.type") == "chromium"
    assert loader.get("viewport.width") == 1500
    assert loader.get("timeouts.expect") == 60000
    assert loader.get("auth.state_file") == "authState.json"
    ConfigLoader.reset()
