from __future__ import annotations

from typing import Sequence

from slotwatch.domain import Practitioner

TRUNCATION_MARKER = "...и другие"


def format_slot_key(key: str) -> str:
    # 2024-06-01_10:00 -> 2024-06-01 10:00
    return key.replace("_", " ", 1)


def format_slot_keys(keys: Sequence[str], limit: int) -> str:
    lines = [format_slot_key(k) for k in keys[:limit]]
    if len(keys) > limit:
        lines.append(TRUNCATION_MARKER)
    return "\n".join(lines)


def not_found(name: str) -> str:
    return f'Врач "{name}" не найден'


def no_slots_left(practitioner: Practitioner) -> str:
    return f"У врача {practitioner.short_name} больше нет свободных слотов."


def slots_removed(practitioner: Practitioner, keys: Sequence[str], limit: int) -> str:
    return f"У врача {practitioner.short_name} удалены слоты:\n{format_slot_keys(keys, limit)}"


def slots_added(practitioner: Practitioner, keys: Sequence[str], limit: int) -> str:
    return f"У врача {practitioner.short_name} появились новые слоты:\n{format_slot_keys(keys, limit)}"
