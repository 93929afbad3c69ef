import os

import pytest
import yaml
from loguru import logger

import portal_tools.common as common
from portal_tools.common import GlobalConfig, get_config, init_logger, load_environment


@pytest.fixture
def tools_config(tmp_path, monkeypatch):
    path = tmp_path / "tools_config.yaml"
    path.write_text(yaml.dump({"gmail": {"max_retries": 6, "initial_wait": 5}}), encoding="utf-8")
    monkeypatch.setattr(GlobalConfig, "CONFIG_PATHS", [path])
    GlobalConfig.reset()
    yield path
    GlobalConfig.reset()


def test_file_values_and_defaults(monkeypatch, tools_config):
    monkeypatch.delenv("GMAIL_MAX_RETRIES", raising=False)

    assert get_config("gmail.max_retries") == 6
    assert get_config("gmail.recheck_delay", 2) == 2


def test_environment_wins(monkeypatch, tools_config):
    monkeypatch.setenv("GMAIL_MAX_RETRIES", "3")

    assert get_config("gmail.max_retries") == "3"


def test_load_environment_keeps_existing_values(monkeypatch, tmp_path):
    (tmp_path / ".env.local").write_text("LOGIN_USERNAME=local-user\n", encoding="utf-8")
    (tmp_path / ".env").write_text("LOGIN_USERNAME=shared-user\nSENDER_EMAIL=no-reply@portal.example.com\n", encoding="utf-8")
    monkeypatch.setenv("LOGIN_PASSWORD", "from-ci")
    monkeypatch.delenv("LOGIN_USERNAME", raising=False)
    monkeypatch.delenv("SENDER_EMAIL", raising=False)

    loaded = load_environment(tmp_path, force=True)

    assert [p.name for p in loaded] == [".env.local", ".env"]
    assert os.environ["LOGIN_USERNAME"] == "local-user"
    assert os.environ["SENDER_EMAIL"] == "no-reply@portal.example.com"
    assert os.environ["LOGIN_PASSWORD"] == "from-ci"


def test_init_logger_writes_log_file(monkeypatch, tmp_path, tools_config):
    monkeypatch.setattr(common, "_logger_initialized", False)
    log_file = tmp_path / "logs" / "portal_tests.log"

    init_logger(level="DEBUG", log_file=str(log_file))
    logger.info("otp poll started")
    logger.remove()

    assert "otp poll started" in log_file.read_text(encoding="utf-8")
