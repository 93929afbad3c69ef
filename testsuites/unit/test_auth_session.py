import json

from testsuites.ui_testing.framework.auth_session import merge_local_storage, write_auth_state


STATE = {
    "cookies": [{"name": "sid", "value": "abc", "domain": "portal.example.com"}],
    "origins": [
        {"origin": "https://login.example.com", "localStorage": [{"name": "old", "value": "1"}]},
    ],
}


def test_merge_keeps_cookies_and_replaces_origins():
    merged = merge_local_storage(STATE, "https://portal.example.com/", {"token": "jwt", "expires": 3600})

    assert merged["cookies"] == STATE["cookies"]
    assert merged["origins"] == [
        {
            "origin": "https://portal.example.com",
            "localStorage": [
                {"name": "token", "value": "jwt"},
                {"name": "expires", "value": "3600"},
            ],
        }
    ]


def test_merge_does_not_modify_input():
    merge_local_storage(STATE, "https://portal.example.com", {"token": "jwt"})

    assert STATE["origins"][0]["origin"] == "https://login.example.com"


def test_merge_without_cookies_or_items():
    merged = merge_local_storage({}, "https://portal.example.com", {"empty": None})

    assert merged["cookies"] == []
    assert merged["origins"][0]["localStorage"] == [{"name": "empty", "value": ""}]


def test_write_auth_state_creates_parent(tmp_path):
    path = tmp_path / "state" / "authState.json"

    write_auth_state(merge_local_storage(STATE, "https://portal.example.com", {"a": "b"}), path)

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["origins"][0]["localStorage"] == [{"name": "a", "value": "b"}]
