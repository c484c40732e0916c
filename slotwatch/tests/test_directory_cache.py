from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from slotwatch.config import Settings
from slotwatch.directory_cache import load_directory, read_directory_cache
from slotwatch.domain import CacheWriteFailed, DirectoryFetchFailed, Practitioner

ROSTER = [
    Practitioner(id=1, surname="Иванов", given_name="Петр", patronymic="Сергеевич"),
    Practitioner(id=2, surname="Петрова", given_name="Анна", patronymic=None),
]


def _settings(tmp_path: Path) -> Settings:
    return Settings(telegram_bot_token="TEST_TOKEN", directory_cache_file=str(tmp_path / "doctors.json"))


def _write_cache(tmp_path: Path, data) -> Path:
    path = tmp_path / "doctors.json"
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
    return path


def _failing_fetch(settings: Settings):
    raise DirectoryFetchFailed("ConnectError: boom")


def test_first_fetch_writes_cache(tmp_path: Path) -> None:
    settings = _settings(tmp_path)

    assert load_directory(settings, fetch=lambda s: list(ROSTER)) == ROSTER

    assert read_directory_cache(settings.directory_cache_file) == ROSTER
    raw = json.loads((tmp_path / "doctors.json").read_text(encoding="utf-8"))
    assert raw[0] == {"id": 1, "surname": "Иванов", "name": "Петр", "father": "Сергеевич"}


def test_equal_counts_do_not_rewrite_cache(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    renamed = [Practitioner(id=1, surname="Сидоров"), Practitioner(id=3, surname="Орлова")]

    with patch("slotwatch.directory_cache.save_directory_cache") as save:
        load_directory(settings, fetch=lambda s: list(ROSTER))
        assert save.call_count == 1

    with patch("slotwatch.directory_cache.save_directory_cache") as save:
        _write_cache(tmp_path, [p.to_json() for p in ROSTER])
        # The fresh roster is still returned even when the write is skipped.
        assert load_directory(settings, fetch=lambda s: list(renamed)) == renamed
        assert load_directory(settings, fetch=lambda s: list(renamed)) == renamed
        save.assert_not_called()


def test_count_change_rewrites_cache(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    _write_cache(tmp_path, [ROSTER[0].to_json()])

    load_directory(settings, fetch=lambda s: list(ROSTER))

    assert read_directory_cache(settings.directory_cache_file) == ROSTER


def test_fetch_failure_returns_cache_unmodified(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    path = _write_cache(tmp_path, [p.to_json() for p in ROSTER])
    before = path.read_bytes()

    assert load_directory(settings, fetch=_failing_fetch) == ROSTER
    assert path.read_bytes() == before


def test_fetch_failure_without_cache_returns_empty(tmp_path: Path) -> None:
    assert load_directory(_settings(tmp_path), fetch=_failing_fetch) == []


def test_force_refresh_ignores_cache(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    _write_cache(tmp_path, [p.to_json() for p in ROSTER])

    assert load_directory(settings, force_refresh=True, fetch=_failing_fetch) == []

    with patch("slotwatch.directory_cache.save_directory_cache") as save:
        load_directory(settings, force_refresh=True, fetch=lambda s: list(ROSTER))
        save.assert_called_once()


def test_malformed_cache_is_treated_as_missing(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    _write_cache(tmp_path, {"workers": []})
    assert load_directory(settings, fetch=_failing_fetch) == []

    (tmp_path / "doctors.json").write_text("[{broken", encoding="utf-8")
    assert load_directory(settings, fetch=lambda s: list(ROSTER)) == ROSTER
    assert read_directory_cache(settings.directory_cache_file) == ROSTER


def test_cache_write_failure_still_returns_fetched_roster(tmp_path: Path) -> None:
    settings = _settings(tmp_path)

    with patch("slotwatch.directory_cache.save_directory_cache", side_effect=CacheWriteFailed("disk full")):
        assert load_directory(settings, fetch=lambda s: list(ROSTER)) == ROSTER


def test_default_fetcher_is_upstream(tmp_path: Path) -> None:
    settings = _settings(tmp_path)

    with patch("slotwatch.directory_cache.fetch_practitioners", return_value=list(ROSTER)) as fetch:
        assert load_directory(settings) == ROSTER
        fetch.assert_called_once_with(settings)
