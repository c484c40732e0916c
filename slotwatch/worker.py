from __future__ import annotations

import logging
import time
from typing import Protocol, Sequence

from slotwatch import messages
from slotwatch.config import Settings
from slotwatch.diff import diff_slots
from slotwatch.directory_cache import load_directory
from slotwatch.domain import (
    DeliveryFailed,
    Practitioner,
    PractitionerUnresolved,
    Slot,
    SlotFetchFailed,
    SlotTime,
    WatchListCorrupt,
)
from slotwatch.resolver import resolve
from slotwatch.state_file import (
    list_monitored_subscribers,
    load_watch_list,
    save_watch_list,
    subscriber_paths,
    watch_list_exists,
)
from slotwatch.telegram_notifier import TelegramNotifier, send_telegram_message
from slotwatch.upstream_api import fetch_slots

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, subscriber_id: str, text: str) -> None: ...


def _notify(notifier: Notifier, subscriber_id: str, text: str) -> None:
    try:
        notifier.send(subscriber_id, text)
    except DeliveryFailed as e:
        # Best-effort: the snapshot is still saved and other subscribers still run.
        logger.warning("Failed to notify subscriber %s (%s)", subscriber_id, e)


def _send_status_message(settings: Settings, text: str) -> None:
    # Operator-facing lifecycle messages go only to the admin chat, when set.
    if not settings.telegram_admin_chat_id:
        return
    send_telegram_message(
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_admin_chat_id,
        text=text,
        timeout_seconds=settings.http_timeout_seconds,
    )


def current_slots_for(practitioner: Practitioner, slots: Sequence[Slot]) -> tuple[SlotTime, ...]:
    return tuple(SlotTime(date=s.date, time=s.time) for s in slots if s.practitioner_id == practitioner.id)


def reconcile_subscriber(
    settings: Settings,
    subscriber_id: str,
    directory: Sequence[Practitioner],
    slots: Sequence[Slot],
    notifier: Notifier,
) -> bool:
    """Diff each watched practitioner against its stored slots and notify.

    Returns True when the watch list was written back.
    """
    path = subscriber_paths(settings.users_dir, subscriber_id).watch_list
    if not watch_list_exists(path):
        return False

    watch_list = load_watch_list(path)
    limit = settings.max_listed_slots
    changed = False

    for name in list(watch_list):
        previous = watch_list[name]

        try:
            practitioner = resolve(name, directory)
        except PractitionerUnresolved:
            _notify(notifier, subscriber_id, messages.not_found(name))
            continue

        current = current_slots_for(practitioner, slots)
        diff = diff_slots(previous, current)

        if previous and not current:
            # Every stored slot is gone; this notice replaces the removed list.
            _notify(notifier, subscriber_id, messages.no_slots_left(practitioner))
        elif diff.removed:
            _notify(notifier, subscriber_id, messages.slots_removed(practitioner, diff.removed, limit))
        if diff.added:
            _notify(notifier, subscriber_id, messages.slots_added(practitioner, diff.added, limit))

        if current != previous:
            watch_list[name] = current
            changed = True

    if changed:
        save_watch_list(path, watch_list)
        logger.info("Watch list saved for subscriber %s", subscriber_id)
    return changed


def run_cycle(settings: Settings, *, notifier: Notifier | None = None) -> int:
    """Run one monitoring pass over every subscriber with monitoring enabled.

    When upstream data is unavailable the pass is skipped: stored snapshots
    stay as they are and nobody is notified. Returns the number of
    subscribers whose watch lists were reconciled.
    """
    subscribers = list_monitored_subscribers(settings.users_dir)
    logger.info("Subscribers with monitoring: %d", len(subscribers))
    if not subscribers:
        return 0

    # One point-in-time view shared by every subscriber in this cycle.
    directory = load_directory(settings)
    if not directory:
        # Every name would resolve to "not found" against an empty roster.
        logger.warning("Practitioner directory is empty, skipping monitoring cycle")
        return 0

    try:
        slots = fetch_slots(settings)
    except SlotFetchFailed as e:
        # An empty listing here would read as "all slots gone".
        logger.error("Failed to load slots from API, skipping monitoring cycle (%s)", e)
        return 0
    logger.info("Fetched practitioners=%d slots=%d", len(directory), len(slots))

    if notifier is None:
        notifier = TelegramNotifier(
            bot_token=settings.telegram_bot_token,
            timeout_seconds=settings.http_timeout_seconds,
        )

    processed = 0
    for subscriber_id in subscribers:
        if not watch_list_exists(subscriber_paths(settings.users_dir, subscriber_id).watch_list):
            continue
        try:
            reconcile_subscriber(settings, subscriber_id, directory, slots, notifier)
            processed += 1
        except WatchListCorrupt as e:
            logger.error("Skipping subscriber %s: corrupt watch list (%s)", subscriber_id, e)
        except Exception as e:
            logger.error("Failed to process subscriber %s (%s: %s)", subscriber_id, type(e).__name__, e, exc_info=True)

    logger.info("Monitoring cycle finished: reconciled=%d of %d", processed, len(subscribers))
    return processed


def run_forever(settings: Settings) -> None:
    logger.info("Worker started. Interval=%ss", settings.check_interval_seconds)
    time.sleep(settings.startup_delay_seconds)
    while True:
        try:
            run_cycle(settings)
        except Exception as e:
            logger.error("Monitoring cycle failed (%s: %s)", type(e).__name__, e, exc_info=True)
        time.sleep(settings.check_interval_seconds)
