import argparse
import logging

from slotwatch.config import Settings, load_settings
from slotwatch.directory_cache import load_directory
from slotwatch.domain import PractitionerUnresolved, WatchListCorrupt
from slotwatch.schedule import build_schedule_report
from slotwatch.state_file import (
    add_watch,
    ensure_subscriber,
    load_watch_list,
    remove_watches,
    subscriber_paths,
    toggle_monitoring,
    watch_list_exists,
)
from slotwatch.worker import _send_status_message, run_cycle, run_forever

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="slotwatch: practitioner slot watcher")
    parser.add_argument("--once", action="store_true", help="Run single monitoring cycle and exit")

    sub = parser.add_subparsers(dest="command")

    add = sub.add_parser("add", help="Watch a practitioner (surname [name [patronymic]] or id)")
    add.add_argument("user")
    add.add_argument("query")

    remove = sub.add_parser("remove", help="Stop watching every practitioner whose name contains QUERY")
    remove.add_argument("user")
    remove.add_argument("query")

    show = sub.add_parser("list", help="Show watched practitioners")
    show.add_argument("user")

    toggle = sub.add_parser("toggle", help="Enable/disable monitoring for a subscriber")
    toggle.add_argument("user")

    schedule = sub.add_parser("schedule", help="Show one week of slots for watched practitioners")
    schedule.add_argument("user")
    schedule.add_argument("--offset", type=int, default=0, help="Days from today (multiples of 7 page by week)")

    sub.add_parser("refresh-directory", help="Force re-download of the practitioner directory")
    return parser


def _watched_names(settings: Settings, user: str) -> list[str]:
    path = subscriber_paths(settings.users_dir, user).watch_list
    if not watch_list_exists(path):
        return []
    return list(load_watch_list(path))


def _run_command(settings: Settings, args: argparse.Namespace) -> int:
    if args.command == "add":
        ensure_subscriber(settings.users_dir, args.user)
        path = subscriber_paths(settings.users_dir, args.user).watch_list
        try:
            name, added = add_watch(path, args.query, load_directory(settings))
        except PractitionerUnresolved:
            print(f'Врач "{args.query}" не найден в базе')
            return 1
        print(f'Врач "{name}" добавлен' if added else f'Врач "{name}" уже есть в вашем списке')
        return 0

    if args.command == "remove":
        path = subscriber_paths(settings.users_dir, args.user).watch_list
        removed = remove_watches(path, args.query)
        if not removed:
            print("Врач не найден")
            return 1
        print(f"Удалено врачей: {len(removed)}")
        print("\n".join(removed))
        return 0

    if args.command == "list":
        names = _watched_names(settings, args.user)
        print("\n".join(names) if names else "Список пуст")
        return 0

    if args.command == "toggle":
        ensure_subscriber(settings.users_dir, args.user)
        enabled = toggle_monitoring(settings.users_dir, args.user)
        print("Включено" if enabled else "Выключено")
        return 0

    if args.command == "schedule":
        names = _watched_names(settings, args.user)
        if not names:
            print("Список ваших врачей пуст")
            return 0
        for text in build_schedule_report(settings, names, offset_days=args.offset):
            print(text)
            print()
        return 0

    if args.command == "refresh-directory":
        practitioners = load_directory(settings, force_refresh=True)
        print(f"Врачей в справочнике: {len(practitioners)}")
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main() -> int:
    args = _build_parser().parse_args()

    _setup_logging()
    settings = load_settings()

    command = getattr(args, "command", None)
    if command:
        try:
            return _run_command(settings, args)
        except WatchListCorrupt as e:
            logger.error("Watch list is corrupt (%s)", e)
            return 1

    # Уведомление о старте (best-effort)
    try:
        _send_status_message(
            settings,
            text=(
                "slotwatch запущен.\n"
                f"Режим: {'once' if args.once else 'forever'}\n"
                f"interval={settings.check_interval_seconds}s"
            ),
        )
    except Exception:
        logger.warning("Failed to send Telegram startup message", exc_info=True)

    try:
        if args.once:
            run_cycle(settings)
            return 0

        run_forever(settings)
        return 0

    except Exception as e:
        # Уведомление о краше (best-effort)
        try:
            _send_status_message(
                settings,
                text=(
                    "slotwatch завершился с ошибкой.\n"
                    f"Причина: {type(e).__name__}: {e}"
                ),
            )
        except Exception:
            logger.warning("Failed to send Telegram crash message", exc_info=True)
        raise

    finally:
        # Уведомление о выходе/остановке процесса (best-effort)
        try:
            _send_status_message(settings, text="slotwatch остановлен (выход из процесса).")
        except Exception:
            logger.warning("Failed to send Telegram shutdown message", exc_info=True)


if __name__ == "__main__":
    raise SystemExit(main())
