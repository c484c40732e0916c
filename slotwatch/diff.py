from __future__ import annotations

from typing import Iterable

from slotwatch.domain import SlotDiff, SlotTime


def slot_keys(slots: Iterable[SlotTime] | None) -> dict[str, None]:
    # dict keeps first-seen order and collapses duplicates.
    return dict.fromkeys(s.key for s in (slots or ()))


def diff_slots(previous: Iterable[SlotTime] | None, current: Iterable[SlotTime] | None) -> SlotDiff:
    """Compare two slot snapshots by `date_time` key.

    `added` follows the order of `current`, `removed` the order of `previous`.
    """
    old = slot_keys(previous)
    new = slot_keys(current)
    return SlotDiff(
        added=tuple(k for k in new if k not in old),
        removed=tuple(k for k in old if k not in new),
    )
