from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Callable, Sequence

from slotwatch import messages
from slotwatch.config import Settings
from slotwatch.domain import Availability, PractitionerUnresolved
from slotwatch.resolver import resolve
from slotwatch.upstream_api import fetch_availability

WEEK_DAYS = 7


@dataclass(frozen=True)
class Window:
    start: dt.date
    end: dt.date  # inclusive

    @property
    def label(self) -> str:
        return f"{self.start:%d.%m.%Y} - {self.end:%d.%m.%Y}"

    def contains(self, date_iso: str) -> bool:
        return self.start.isoformat() <= date_iso <= self.end.isoformat()

    def request_bounds(self) -> tuple[str, str]:
        start = dt.datetime.combine(self.start, dt.time.min).astimezone()
        end = dt.datetime.combine(self.end + dt.timedelta(days=1), dt.time.min).astimezone()
        return start.isoformat(), end.isoformat()


def week_window(today: dt.date | None = None, offset_days: int = 0) -> Window:
    start = (today or dt.date.today()) + dt.timedelta(days=max(offset_days, 0))
    return Window(start=start, end=start + dt.timedelta(days=WEEK_DAYS - 1))


def build_schedule_report(
    settings: Settings,
    names: Sequence[str],
    *,
    offset_days: int = 0,
    today: dt.date | None = None,
    fetch: Callable[..., Availability] | None = None,
) -> list[str]:
    """Render one week of slots for the given watched names.

    Returns a header followed by one message per name.
    """
    fetch = fetch or fetch_availability
    window = week_window(today, offset_days)
    start, end = window.request_bounds()
    availability = fetch(settings, start=start, end=end)
    directory = list(availability.practitioners)

    report = [f"Расписание на: {window.label}"]
    for name in names:
        try:
            practitioner = resolve(name, directory)
        except PractitionerUnresolved:
            report.append(messages.not_found(name.strip()))
            continue

        relevant = [
            s
            for s in availability.slots
            if s.practitioner_id == practitioner.id and window.contains(s.date)
        ]
        if not relevant:
            report.append(f"Нет слотов у {practitioner.short_name}")
            continue

        lines = "\n".join(f"{s.date} - {s.time}" for s in relevant)
        report.append(f"Слоты у {practitioner.short_name}:\n\n{lines}")
    return report
