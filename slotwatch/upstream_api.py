from __future__ import annotations

import calendar
import datetime as dt
import logging
from typing import Any

import httpx
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from slotwatch.config import Settings
from slotwatch.domain import Availability, DirectoryFetchFailed, Practitioner, Slot, SlotFetchFailed

logger = logging.getLogger(__name__)

_FETCH_ERRORS = (httpx.HTTPError, ValueError)


def _add_months(moment: dt.datetime, months: int) -> dt.datetime:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _iso(moment: dt.datetime) -> str:
    # e.g. 2024-06-01T10:00:00.000Z
    return moment.astimezone(dt.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def fetch_window(now: dt.datetime | None = None, months: int = 3) -> tuple[str, str]:
    start = now or dt.datetime.now(dt.timezone.utc)
    return _iso(start), _iso(_add_months(start, months))


def _parse_records(items: Any, parse) -> list:
    if not isinstance(items, list):
        return []
    parsed = []
    for item in items:
        try:
            parsed.append(parse(item))
        except (KeyError, TypeError, ValueError):
            continue
    return parsed


def parse_availability(data: Any) -> Availability:
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected API response type: {type(data).__name__}")

    # Upstream names the slot list either `slots` or `tickets`.
    raw_slots = data.get("slots")
    if raw_slots is None:
        raw_slots = data.get("tickets")

    return Availability(
        practitioners=tuple(_parse_records(data.get("workers"), Practitioner.from_json)),
        slots=tuple(_parse_records(raw_slots, Slot.from_json)),
    )


def _short_exc(retry_state: RetryCallState) -> str | None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return None
    exc = retry_state.outcome.exception()
    if exc is None:
        return None
    msg = str(exc).strip()
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def _log_after_attempt(retry_state: RetryCallState) -> None:
    if retry_state.outcome is not None and retry_state.outcome.failed:
        logger.warning("Fetch attempt %s failed (%s)", retry_state.attempt_number, _short_exc(retry_state))


def _log_before_sleep(retry_state: RetryCallState) -> None:
    sleep_seconds = getattr(retry_state.next_action, "sleep", None)
    if sleep_seconds is None:
        logger.info("Retrying fetch, attempt %s", retry_state.attempt_number + 1)
        return
    logger.info("Retrying fetch in %.0f s, attempt %s", sleep_seconds, retry_state.attempt_number + 1)


def _get_availability(
    settings: Settings,
    start: str,
    end: str,
    transport: httpx.BaseTransport | None,
) -> Availability:
    with httpx.Client(timeout=settings.http_timeout_seconds, transport=transport) as client:
        r = client.get(settings.api_url, params={"start": start, "end": end})
        r.raise_for_status()
        return parse_availability(r.json())


def fetch_availability(
    settings: Settings,
    *,
    start: str | None = None,
    end: str | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Availability:
    """Fetch practitioners and slots for [start, end].

    The whole request is retried on transport, status and decode errors; the
    last error is re-raised.
    """
    if start is None or end is None:
        start, end = fetch_window(months=settings.window_months)

    decorated = retry(
        stop=stop_after_attempt(settings.fetch_retry_attempts),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(_FETCH_ERRORS),
        after=_log_after_attempt,
        before_sleep=_log_before_sleep,
        reraise=True,
    )(_get_availability)

    logger.info("Fetching availability: %s start=%s end=%s", settings.api_url, start, end)
    return decorated(settings, start, end, transport)


def fetch_practitioners(settings: Settings, *, transport: httpx.BaseTransport | None = None) -> list[Practitioner]:
    try:
        return list(fetch_availability(settings, transport=transport).practitioners)
    except _FETCH_ERRORS as e:
        raise DirectoryFetchFailed(f"{type(e).__name__}: {e}") from e


def fetch_slots(settings: Settings, *, transport: httpx.BaseTransport | None = None) -> list[Slot]:
    try:
        return list(fetch_availability(settings, transport=transport).slots)
    except _FETCH_ERRORS as e:
        raise SlotFetchFailed(f"{type(e).__name__}: {e}") from e