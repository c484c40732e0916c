from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Any, Iterable

from slotwatch.domain import Practitioner, SlotTime, WatchListCorrupt
from slotwatch.resolver import resolve_strict

logger = logging.getLogger(__name__)

# Display name -> last known slots; an empty tuple means "no slots".
WatchList = dict[str, tuple[SlotTime, ...]]

WATCH_LIST_FILE = "doctors.json"
SETTINGS_FILE = "settings.json"


@dataclass(frozen=True)
class SubscriberPaths:
    watch_list: str
    settings: str


def subscriber_paths(users_dir: str, subscriber_id: str) -> SubscriberPaths:
    base = os.path.join(users_dir, str(subscriber_id))
    return SubscriberPaths(
        watch_list=os.path.join(base, WATCH_LIST_FILE),
        settings=os.path.join(base, SETTINGS_FILE),
    )


def write_json_atomic(path: str, data: Any) -> None:
    folder = os.path.dirname(os.path.abspath(path))
    if folder and not os.path.exists(folder):
        os.makedirs(folder, exist_ok=True)

    # Atomic write
    with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
        json.dump(data, tf, ensure_ascii=False, indent=2)
        tmp_name = tf.name

    os.replace(tmp_name, path)


def _read_json(path: str) -> Any:
    # Files edited by hand on Windows may carry a BOM.
    with open(path, "r", encoding="utf-8-sig") as f:
        return json.load(f)


def _parse_slots(name: str, raw: Any) -> tuple[SlotTime, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise WatchListCorrupt(f"Entry {name!r} is not a list of slots")
    try:
        return tuple(SlotTime(date=str(item["date"]), time=str(item["time"])) for item in raw)
    except (KeyError, TypeError) as e:
        raise WatchListCorrupt(f"Entry {name!r} has a malformed slot ({type(e).__name__}: {e})") from e


def watch_list_exists(path: str) -> bool:
    return os.path.exists(path)


def load_watch_list(path: str) -> WatchList:
    try:
        raw = _read_json(path)
    except (OSError, json.JSONDecodeError) as e:
        raise WatchListCorrupt(f"Failed to read {path}: {e}") from e

    if isinstance(raw, list):
        # Legacy format: a plain list of names.
        watch_list: WatchList = {str(name): () for name in raw}
        save_watch_list(path, watch_list)
        logger.info("Migrated legacy watch list %s (%d names)", path, len(watch_list))
        return watch_list

    if not isinstance(raw, dict):
        raise WatchListCorrupt(f"Unexpected watch list type in {path}: {type(raw).__name__}")

    return {str(name): _parse_slots(name, slots) for name, slots in raw.items()}


def save_watch_list(path: str, watch_list: WatchList) -> None:
    data = {name: ([s.to_json() for s in slots] if slots else None) for name, slots in watch_list.items()}
    write_json_atomic(path, data)


def load_subscriber_settings(path: str) -> dict[str, Any]:
    raw = _read_json(path)
    if not isinstance(raw, dict):
        raise ValueError(f"Unexpected settings type in {path}: {type(raw).__name__}")
    return raw


def save_subscriber_settings(path: str, data: dict[str, Any]) -> None:
    write_json_atomic(path, data)


def list_monitored_subscribers(users_dir: str) -> list[str]:
    if not os.path.isdir(users_dir):
        return []

    subscribers: list[str] = []
    for subscriber_id in sorted(os.listdir(users_dir)):
        path = subscriber_paths(users_dir, subscriber_id).settings
        if not os.path.exists(path):
            continue
        try:
            settings = load_subscriber_settings(path)
        except (OSError, ValueError) as e:
            logger.error("Failed to read settings for subscriber %s (%s)", subscriber_id, e)
            continue
        if settings.get("monitoring"):
            subscribers.append(subscriber_id)
    return subscribers


def ensure_subscriber(users_dir: str, subscriber_id: str, profile: dict[str, Any] | None = None) -> bool:
    """Create settings for a new subscriber with monitoring off. Returns True if created."""
    path = subscriber_paths(users_dir, subscriber_id).settings
    if os.path.exists(path):
        return False

    data = {"id": subscriber_id, **(profile or {}), "monitoring": False}
    save_subscriber_settings(path, data)
    logger.info("New subscriber %s", subscriber_id)
    return True


def toggle_monitoring(users_dir: str, subscriber_id: str) -> bool:
    path = subscriber_paths(users_dir, subscriber_id).settings
    try:
        data = load_subscriber_settings(path)
    except FileNotFoundError:
        data = {"id": subscriber_id, "monitoring": False}
    except ValueError as e:
        logger.error("Settings for subscriber %s are unreadable, resetting (%s)", subscriber_id, e)
        data = {"id": subscriber_id, "monitoring": False}

    data["monitoring"] = not data.get("monitoring", False)
    save_subscriber_settings(path, data)
    return data["monitoring"]


def _load_or_empty(path: str) -> WatchList:
    if not watch_list_exists(path):
        return {}
    return load_watch_list(path)


def add_watch(path: str, query: str, directory: Iterable[Practitioner]) -> tuple[str, bool]:
    """Start watching the practitioner matching `query` exactly.

    Raises PractitionerUnresolved when nothing matches. Returns the canonical
    display name and whether it was newly added.
    """
    practitioner = resolve_strict(query, list(directory))
    name = practitioner.display_name

    watch_list = _load_or_empty(path)
    if name in watch_list:
        return name, False

    watch_list[name] = ()
    save_watch_list(path, watch_list)
    return name, True


def remove_watches(path: str, query: str) -> list[str]:
    needle = query.lower().strip()
    watch_list = _load_or_empty(path)

    removed = [name for name in watch_list if needle in name.lower()]
    if removed:
        for name in removed:
            del watch_list[name]
        save_watch_list(path, watch_list)
    return removed
