from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_API_URL = "https://z-api-lode.vot.by/getAllData"


def _parse_chat_id(name: str, raw: str) -> str:
    value = raw.strip()
    try:
        # Telegram chat ids are integers; groups/supergroups can be negative.
        int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {value!r}. Expected integer chat id.") from e

    if value == "0":
        raise RuntimeError(f"Invalid {name} value: '0' is not a valid chat id")
    return value


def _int_env(name: str, default: int, *, minimum: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {raw!r}. Expected integer.") from e
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}")
    return value


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    telegram_admin_chat_id: str | None = None

    api_url: str = DEFAULT_API_URL
    # Forward-looking window for directory and slot fetches.
    window_months: int = 3

    check_interval_seconds: int = 600
    startup_delay_seconds: int = 5

    # How many added/removed slots a single notification lists.
    max_listed_slots: int = 20

    http_timeout_seconds: float = 30.0
    fetch_retry_attempts: int = 2

    # users/<subscriber_id>/{doctors.json,settings.json}
    users_dir: str = "users"
    directory_cache_file: str = "doctors.json"


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    admin_raw = os.getenv("TELEGRAM_ADMIN_CHAT_ID", "").strip()
    admin_chat_id = _parse_chat_id("TELEGRAM_ADMIN_CHAT_ID", admin_raw) if admin_raw else None

    timeout_raw = os.getenv("HTTP_TIMEOUT_SECONDS", "30")
    try:
        http_timeout_seconds = float(timeout_raw)
    except ValueError as e:
        raise RuntimeError(f"Invalid HTTP_TIMEOUT_SECONDS value: {timeout_raw!r}") from e
    if http_timeout_seconds <= 0:
        raise RuntimeError("HTTP_TIMEOUT_SECONDS must be > 0")

    return Settings(
        telegram_bot_token=_require("TELEGRAM_BOT_TOKEN"),
        telegram_admin_chat_id=admin_chat_id,
        api_url=os.getenv("API_URL", DEFAULT_API_URL),
        window_months=_int_env("WINDOW_MONTHS", 3, minimum=1),
        check_interval_seconds=_int_env("CHECK_INTERVAL_SECONDS", 600, minimum=1),
        startup_delay_seconds=_int_env("STARTUP_DELAY_SECONDS", 5, minimum=0),
        max_listed_slots=_int_env("MAX_LISTED_SLOTS", 20, minimum=1),
        http_timeout_seconds=http_timeout_seconds,
        fetch_retry_attempts=_int_env("FETCH_RETRY_ATTEMPTS", 2, minimum=1),
        users_dir=os.getenv("USERS_DIR", "users"),
        directory_cache_file=os.getenv("DIRECTORY_CACHE_FILE", "doctors.json"),
    )
