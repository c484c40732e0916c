from __future__ import annotations

import pytest

from slotwatch.config import DEFAULT_API_URL, load_settings

_OPTIONAL_ENV = (
    "TELEGRAM_ADMIN_CHAT_ID",
    "API_URL",
    "WINDOW_MONTHS",
    "CHECK_INTERVAL_SECONDS",
    "STARTUP_DELAY_SECONDS",
    "MAX_LISTED_SLOTS",
    "HTTP_TIMEOUT_SECONDS",
    "FETCH_RETRY_ATTEMPTS",
    "USERS_DIR",
    "DIRECTORY_CACHE_FILE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _OPTIONAL_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "t")


def test_load_settings_defaults() -> None:
    settings = load_settings(dotenv_path=None)

    assert settings.telegram_bot_token == "t"
    assert settings.telegram_admin_chat_id is None
    assert settings.api_url == DEFAULT_API_URL
    assert settings.window_months == 3
    assert settings.check_interval_seconds == 600
    assert settings.max_listed_slots == 20
    assert settings.users_dir == "users"
    assert settings.directory_cache_file == "doctors.json"


def test_load_settings_requires_bot_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN")

    with pytest.raises(RuntimeError, match=r"TELEGRAM_BOT_TOKEN"):
        load_settings(dotenv_path=None)


def test_load_settings_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_ADMIN_CHAT_ID", " -1003 ")
    monkeypatch.setenv("CHECK_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("MAX_LISTED_SLOTS", "5")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("USERS_DIR", "/data/users")

    settings = load_settings(dotenv_path=None)
    assert settings.telegram_admin_chat_id == "-1003"
    assert settings.check_interval_seconds == 60
    assert settings.max_listed_slots == 5
    assert settings.http_timeout_seconds == 2.5
    assert settings.users_dir == "/data/users"


def test_load_settings_rejects_non_integer_admin_telegram_chat_id(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_ADMIN_CHAT_ID", "abc")

    with pytest.raises(RuntimeError, match=r"Invalid TELEGRAM_ADMIN_CHAT_ID"):
        load_settings(dotenv_path=None)


def test_load_settings_rejects_zero_admin_chat_id(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_ADMIN_CHAT_ID", "0")

    with pytest.raises(RuntimeError, match=r"not a valid chat id"):
        load_settings(dotenv_path=None)


@pytest.mark.parametrize(
    "name, value",
    [
        ("CHECK_INTERVAL_SECONDS", "0"),
        ("WINDOW_MONTHS", "0"),
        ("MAX_LISTED_SLOTS", "0"),
        ("FETCH_RETRY_ATTEMPTS", "0"),
        ("HTTP_TIMEOUT_SECONDS", "0"),
        ("CHECK_INTERVAL_SECONDS", "ten"),
    ],
)
def test_load_settings_rejects_invalid_numbers(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match=name):
        load_settings(dotenv_path=None)


def test_load_settings_does_not_override_existing_env_with_dotenv(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    # load_dotenv(override=False) must not overwrite already-set env vars.
    monkeypatch.setenv("USERS_DIR", "from-env")

    dotenv = tmp_path / ".env"
    dotenv.write_text("USERS_DIR=from-dotenv\n")

    settings = load_settings(dotenv_path=str(dotenv))
    assert settings.users_dir == "from-env"
