from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Practitioner:
    """A practitioner record as returned by the upstream `workers` list."""

    id: int
    surname: str
    given_name: str | None = None
    patronymic: str | None = None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Practitioner:
        return cls(
            id=int(raw["id"]),
            surname=str(raw.get("surname") or ""),
            given_name=raw.get("name"),
            patronymic=raw.get("father"),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "surname": self.surname,
            "name": self.given_name,
            "father": self.patronymic,
        }

    @property
    def display_name(self) -> str:
        # Canonical watch-list key.
        return f"{self.surname} {self.given_name or ''} {self.patronymic or ''}".strip()

    @property
    def short_name(self) -> str:
        return f"{self.surname} {self.given_name or ''}".strip()


@dataclass(frozen=True)
class Slot:
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    practitioner_id: int

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Slot:
        return cls(
            date=str(raw["date"]),
            time=str(raw["time"]),
            practitioner_id=int(raw["worker_id"]),
        )


@dataclass(frozen=True)
class SlotTime:
    """A slot projected to one practitioner: only date and time are kept."""

    date: str
    time: str

    @property
    def key(self) -> str:
        return f"{self.date}_{self.time}"

    def to_json(self) -> dict[str, str]:
        return {"date": self.date, "time": self.time}


@dataclass(frozen=True)
class SlotDiff:
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()


@dataclass(frozen=True)
class Availability:
    practitioners: tuple[Practitioner, ...] = ()
    slots: tuple[Slot, ...] = ()


class SlotWatchError(RuntimeError):
    pass


class DirectoryFetchFailed(SlotWatchError):
    """Upstream did not return a usable practitioner roster."""


class SlotFetchFailed(SlotWatchError):
    """Upstream did not return a usable slot listing."""


class WatchListCorrupt(SlotWatchError):
    pass


class PractitionerUnresolved(SlotWatchError):
    """No directory entry matches the query.

    Callers choose the user-facing wording; the query is kept on the exception.
    """

    def __init__(self, query: str) -> None:
        super().__init__(f"Practitioner not found: {query!r}")
        self.query = query


class DeliveryFailed(SlotWatchError):
    pass


class CacheWriteFailed(SlotWatchError):
    pass
