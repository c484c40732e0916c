from __future__ import annotations

import httpx

from slotwatch.domain import DeliveryFailed

# Telegram rejects longer message texts.
MAX_MESSAGE_LENGTH = 4096


def send_telegram_message(*, bot_token: str, chat_id: str, text: str, timeout_seconds: float = 20.0) -> None:
    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
    payload = {
        "chat_id": chat_id,
        "text": text,
        "disable_web_page_preview": True,
    }

    with httpx.Client(timeout=timeout_seconds) as client:
        r = client.post(url, json=payload)
        r.raise_for_status()
        data = r.json()
        if not data.get("ok", False):
            raise RuntimeError(f"Telegram API error: {data}")


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split text on line boundaries into chunks of at most `limit` chars.

    A single line longer than `limit` is cut hard.
    """
    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]

        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate

    if current.strip():
        chunks.append(current)
    return chunks


class TelegramNotifier:
    """Sends subscriber notifications through the Telegram Bot API."""

    def __init__(self, *, bot_token: str, timeout_seconds: float = 20.0) -> None:
        self._bot_token = bot_token
        self._timeout_seconds = timeout_seconds

    def send(self, subscriber_id: str, text: str) -> None:
        try:
            for chunk in split_message(text):
                send_telegram_message(
                    bot_token=self._bot_token,
                    chat_id=subscriber_id,
                    text=chunk,
                    timeout_seconds=self._timeout_seconds,
                )
        except (httpx.HTTPError, RuntimeError, ValueError) as e:
            raise DeliveryFailed(f"{type(e).__name__}: {e}") from e
