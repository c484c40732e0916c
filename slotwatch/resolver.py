from __future__ import annotations

from typing import Sequence

from slotwatch.domain import Practitioner, PractitionerUnresolved


def tokenize(query: str) -> list[str]:
    return query.lower().strip().split()


def _is_numeric(query: str) -> bool:
    # Unicode digits like "²" are not ids.
    return query.isascii() and query.isdigit()


def _by_id(query: str, directory: Sequence[Practitioner]) -> Practitioner:
    for practitioner in directory:
        if str(practitioner.id) == query:
            return practitioner
    raise PractitionerUnresolved(query)


def _lower(value: str | None) -> str:
    return (value or "").lower()


def resolve(query: str, directory: Sequence[Practitioner]) -> Practitioner:
    """Find the first practitioner whose full name contains every query token.

    Tokens may match anywhere and in any order. A numeric query is an id.
    """
    normalized = query.lower().strip()
    if _is_numeric(normalized):
        return _by_id(normalized, directory)

    tokens = tokenize(query)
    for practitioner in directory:
        haystack = f"{practitioner.surname} {practitioner.given_name or ''} {practitioner.patronymic or ''}".lower()
        if all(token in haystack for token in tokens):
            return practitioner
    raise PractitionerUnresolved(query)


def resolve_strict(query: str, directory: Sequence[Practitioner]) -> Practitioner:
    """Find a practitioner by exact surname [given name [patronymic]]."""
    normalized = query.lower().strip()
    if _is_numeric(normalized):
        return _by_id(normalized, directory)

    tokens = tokenize(query)
    if not tokens:
        raise PractitionerUnresolved(query)

    for practitioner in directory:
        fields = (
            _lower(practitioner.surname),
            _lower(practitioner.given_name),
            _lower(practitioner.patronymic),
        )
        wanted = tokens[:3]
        if list(fields[: len(wanted)]) == wanted:
            return practitioner
    raise PractitionerUnresolved(query)
