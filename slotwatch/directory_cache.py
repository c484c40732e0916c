from __future__ import annotations

import json
import logging
import os
from typing import Callable

from slotwatch.config import Settings
from slotwatch.domain import CacheWriteFailed, DirectoryFetchFailed, Practitioner
from slotwatch.state_file import write_json_atomic
from slotwatch.upstream_api import fetch_practitioners

logger = logging.getLogger(__name__)

Fetcher = Callable[[Settings], list[Practitioner]]


def read_directory_cache(path: str) -> list[Practitioner] | None:
    """Return the cached roster, or None when there is no usable cache."""
    if not os.path.exists(path):
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Directory cache %s is unreadable, ignoring it (%s)", path, e)
        return None

    if not isinstance(raw, list):
        logger.warning("Directory cache %s is not a list, ignoring it", path)
        return None

    practitioners: list[Practitioner] = []
    for item in raw:
        try:
            practitioners.append(Practitioner.from_json(item))
        except (KeyError, TypeError, ValueError):
            continue
    return practitioners


def save_directory_cache(path: str, practitioners: list[Practitioner]) -> None:
    try:
        write_json_atomic(path, [p.to_json() for p in practitioners])
    except OSError as e:
        raise CacheWriteFailed(f"Failed to write {path}: {e}") from e


def load_directory(
    settings: Settings,
    *,
    force_refresh: bool = False,
    fetch: Fetcher | None = None,
) -> list[Practitioner]:
    """Return the practitioner roster for the configured window.

    Upstream is always asked first. The cache is rewritten only when there was
    no usable cache or the roster size changed; when upstream fails the cached
    roster (or an empty list) is returned instead.
    """
    fetch = fetch or fetch_practitioners
    path = settings.directory_cache_file

    cached = None if force_refresh else read_directory_cache(path)

    try:
        practitioners = fetch(settings)
    except DirectoryFetchFailed as e:
        logger.error("Failed to load practitioners from API (%s)", e)
        return cached if cached is not None else []

    if cached is None or len(cached) != len(practitioners):
        try:
            save_directory_cache(path, practitioners)
            logger.info("Directory cache %s updated (%d records)", path, len(practitioners))
        except CacheWriteFailed as e:
            logger.error("%s", e)

    return practitioners
