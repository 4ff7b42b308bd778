"""Tests for ScheduleStore — atomic JSON persistence."""

import json
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from src.scheduler.errors import StoreCorruptError, StoreIOError
from src.scheduler.models import ScheduleRecord
from src.scheduler.store import ScheduleStore

DUE = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)


def _make_record(record_id: str = "r1", **kwargs) -> ScheduleRecord:
    defaults = {
        "destination": "9876543210",
        "body": "hello",
        "due_at": DUE,
        "created_at": DUE - timedelta(hours=1),
    }
    defaults.update(kwargs)
    return ScheduleRecord(id=record_id, **defaults)


# -- load ----------------------------------------------------------------------


def test_load_missing_file_is_empty(store: ScheduleStore) -> None:
    assert store.load() == []


def test_save_and_load(store: ScheduleStore) -> None:
    sent = _make_record("r2")
    sent.mark_sent(DUE + timedelta(seconds=5))
    store.save([_make_record("r1"), sent])

    loaded = store.load()
    assert [r.id for r in loaded] == ["r1", "r2"]
    assert loaded[0].is_pending
    assert loaded[0].sent_at is None
    assert loaded[1].is_sent
    assert loaded[1].sent_at == DUE + timedelta(seconds=5)


def test_save_replaces_whole_collection(store: ScheduleStore) -> None:
    store.save([_make_record("r1"), _make_record("r2")])
    store.save([_make_record("r3")])
    assert [r.id for r in store.load()] == ["r3"]


def test_save_writes_indented_json_list(store: ScheduleStore) -> None:
    store.save([_make_record()])
    raw = store.path.read_text()
    assert raw.startswith("[\n  {")
    assert json.loads(raw)[0]["id"] == "r1"


def test_save_creates_parent_directory(tmp_path: Path) -> None:
    store = ScheduleStore(path=tmp_path / "nested" / "dir" / "schedules.json")
    store.save([_make_record()])
    assert store.path.exists()


def test_save_leaves_no_temp_files(store: ScheduleStore) -> None:
    store.save([_make_record()])
    store.save([_make_record("r2")])
    assert sorted(p.name for p in store.path.parent.iterdir()) == ["schedules.json"]


def test_load_invalid_json_raises_corrupt(store: ScheduleStore) -> None:
    store.path.write_text("{not json")
    with pytest.raises(StoreCorruptError):
        store.load()


def test_load_non_list_raises_corrupt(store: ScheduleStore) -> None:
    store.path.write_text('{"id": "r1"}')
    with pytest.raises(StoreCorruptError, match="JSON list"):
        store.load()


def test_load_bad_record_raises_corrupt(store: ScheduleStore) -> None:
    store.path.write_text('[{"id": "r1", "destination": "x", "body": "y"}]')
    with pytest.raises(StoreCorruptError, match="record #0"):
        store.load()


def test_load_bad_timestamp_raises_corrupt(store: ScheduleStore) -> None:
    data = [_make_record().to_dict()]
    data[0]["dueAt"] = "tomorrow-ish"
    store.path.write_text(json.dumps(data))
    with pytest.raises(StoreCorruptError):
        store.load()


def test_load_legacy_file(store: ScheduleStore) -> None:
    store.path.write_text(
        json.dumps(
            [
                {
                    "id": "1717232400000",
                    "phone": "9876543210",
                    "message": "hi",
                    "timestamp": "2025-06-01T09:00:00.000Z",
                    "scheduledFor": "2025-06-01T14:30",
                    "sent": False,
                    "createdAt": "2025-05-31T10:00:00.000Z",
                }
            ]
        )
    )
    (record,) = store.load()
    assert record.id == "1717232400000"
    assert record.is_pending
    assert record.due_at == DUE


# -- save failures -------------------------------------------------------------


def test_save_failure_raises_io_error_and_keeps_old_file(store: ScheduleStore) -> None:
    store.save([_make_record("r1")])

    with (
        patch("src.scheduler.store.os.replace", side_effect=OSError("disk full")),
        pytest.raises(StoreIOError, match="disk full"),
    ):
        store.save([_make_record("r2")])

    assert [r.id for r in store.load()] == ["r1"]
    assert sorted(p.name for p in store.path.parent.iterdir()) == ["schedules.json"]


def test_load_unreadable_raises_io_error(store: ScheduleStore) -> None:
    store.path.mkdir()
    with pytest.raises(StoreIOError):
        store.load()


# -- quarantine ----------------------------------------------------------------


def test_quarantine_moves_file_aside(store: ScheduleStore) -> None:
    store.path.write_text("garbage")
    target = store.quarantine()

    assert target is not None
    assert target.name.startswith("schedules.json.corrupt-")
    assert target.read_text() == "garbage"
    assert not store.path.exists()
    assert store.load() == []


def test_quarantine_without_file(store: ScheduleStore) -> None:
    assert store.quarantine() is None


def test_default_path_comes_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("src.config.settings.schedules_path", Path("elsewhere/s.json"))
    assert ScheduleStore().path == Path("elsewhere/s.json")
    assert os.fspath(ScheduleStore(Path("x.json")).path) == "x.json"
