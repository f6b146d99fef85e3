from __future__ import annotations

import json
from collections.abc import Iterator
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from sensorstore import _durable
from sensorstore.models import TriggerEvent, TriggerKind
from sensorstore.triggers import TriggerLog


def _clock() -> Iterator[datetime]:
    start = datetime(2026, 1, 1, 12, 0, 0)
    step = 0
    while True:
        yield start + timedelta(seconds=step)
        step += 1


def _log(path: Path, max_events: int) -> TriggerLog:
    ticks = _clock()
    return TriggerLog(path, max_events=max_events, clock=lambda: next(ticks))


def _seed(path: Path, count: int) -> None:
    lines = [
        TriggerEvent(
            timestamp=f"2025-12-31 23:59:{i:02d}",
            sensor="seed",
            kind=TriggerKind.LOW,
            url=f"http://seed/{i}",
        ).to_log_line()
        for i in range(count)
    ]
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")


def _fail_replace(src: str, dst: object) -> None:
    raise OSError("simulated rename failure")


def test_record_builds_timestamped_event(tmp_path: Path) -> None:
    log = _log(tmp_path / "triggers.log", max_events=3)

    event = log.record("kitchen", "high", "http://relay/on")

    assert event.timestamp == "2026-01-01 12:00:00"
    assert event.kind is TriggerKind.HIGH
    assert json.loads(event.to_log_line()) == {
        "timestamp": "2026-01-01 12:00:00",
        "sensor": "kitchen",
        "type": "high",
        "url": "http://relay/on",
    }


def test_record_rejects_unknown_kind(tmp_path: Path) -> None:
    log = _log(tmp_path / "triggers.log", max_events=3)
    with pytest.raises(ValueError):
        log.record("kitchen", "sideways", "http://relay/on")


def test_memory_cap_evicts_oldest(tmp_path: Path) -> None:
    log = _log(tmp_path / "triggers.log", max_events=3)

    for i in range(4):
        log.record("kitchen", "high", f"http://relay/{i}")

    assert [event.url for event in log.list_all()] == [
        "http://relay/1",
        "http://relay/2",
        "http://relay/3",
    ]


def test_drain_trims_persisted_log_to_cap(tmp_path: Path) -> None:
    path = tmp_path / "triggers.log"
    _seed(path, 3)
    log = _log(path, max_events=3)

    log.record("kitchen", "high", "http://relay/new")
    assert log.drain() is True

    urls = [json.loads(line)["url"] for line in path.read_text(encoding="utf-8").splitlines()]
    assert urls == ["http://seed/1", "http://seed/2", "http://relay/new"]


def test_list_all_is_disk_then_memory(tmp_path: Path) -> None:
    path = tmp_path / "triggers.log"
    _seed(path, 2)
    log = _log(path, max_events=10)

    log.record("kitchen", "low", "http://relay/off")

    assert [event.url for event in log.list_all()] == [
        "http://seed/0",
        "http://seed/1",
        "http://relay/off",
    ]


def test_clear_before_any_flush(tmp_path: Path) -> None:
    log = _log(tmp_path / "triggers.log", max_events=3)
    log.record("kitchen", "high", "http://relay/on")

    assert log.clear() is True

    assert log.list_all() == []
    assert log.drain() is True
    assert (tmp_path / "triggers.log").read_text(encoding="utf-8") == ""


def test_clear_removes_persisted_events(tmp_path: Path) -> None:
    path = tmp_path / "triggers.log"
    _seed(path, 2)
    log = _log(path, max_events=3)

    assert log.clear() is True

    assert log.list_all() == []
    assert path.read_text(encoding="utf-8") == ""


def test_load_from_disk_restores_recent_events_without_duplicates(tmp_path: Path) -> None:
    path = tmp_path / "triggers.log"
    _seed(path, 5)
    log = _log(path, max_events=3)

    assert log.load_from_disk() == 3
    log.record("kitchen", "high", "http://relay/on")

    urls = [event.url for event in log.list_all()]
    assert urls == [f"http://seed/{i}" for i in range(5)] + ["http://relay/on"]

    assert log.drain() is True
    persisted = [json.loads(line)["url"] for line in path.read_text(encoding="utf-8").splitlines()]
    assert persisted == ["http://seed/3", "http://seed/4", "http://relay/on"]


def test_malformed_log_lines_are_skipped(tmp_path: Path) -> None:
    path = tmp_path / "triggers.log"
    _seed(path, 1)
    with path.open("a", encoding="utf-8") as handle:
        handle.write("not json\n")
        handle.write('{"timestamp": "x", "sensor": "s", "type": "sideways", "url": ""}\n')

    log = _log(path, max_events=5)

    assert [event.url for event in log.list_all()] == ["http://seed/0"]


def test_failed_drain_requeues_events(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "triggers.log"
    _seed(path, 1)
    before = path.read_bytes()
    log = _log(path, max_events=5)
    log.record("kitchen", "high", "http://relay/1")

    monkeypatch.setattr(_durable.os, "replace", _fail_replace)
    assert log.drain() is False
    assert path.read_bytes() == before

    log.record("kitchen", "low", "http://relay/2")
    monkeypatch.undo()
    assert log.drain() is True

    persisted = [json.loads(line)["url"] for line in path.read_text(encoding="utf-8").splitlines()]
    assert persisted == ["http://seed/0", "http://relay/1", "http://relay/2"]


def test_invalid_utf8_spoils_only_its_line(tmp_path: Path) -> None:
    path = tmp_path / "triggers.log"
    _seed(path, 2)
    with path.open("ab") as handle:
        handle.write(b"\xff\xfe garbage\n")
    log = _log(path, max_events=5)

    assert [event.url for event in log.list_all()] == ["http://seed/0", "http://seed/1"]

    log.record("kitchen", "high", "http://relay/on")
    assert log.drain() is True

    persisted = [json.loads(line)["url"] for line in path.read_text(encoding="utf-8").splitlines()]
    assert persisted == ["http://seed/0", "http://seed/1", "http://relay/on"]
