from __future__ import annotations

import json
from pathlib import Path

import pytest

from sensorstore.config import StoreConfig
from sensorstore.exceptions import StoreConfigError
from sensorstore.store import SensorStore


def _config(tmp_path: Path, **overrides: object) -> StoreConfig:
    return StoreConfig(data_dir=tmp_path / "data", flush_interval=3600, **overrides)  # type: ignore[arg-type]


def test_close_flushes_readings_and_triggers(tmp_path: Path) -> None:
    config = _config(tmp_path)

    with SensorStore(config) as store:
        assert store.is_open
        store.readings.put("s1", '{"temp":"20.0"}')
        store.triggers.record("s1", "high", "http://fan/on")
        assert not config.readings_path.exists()

    assert not store.is_open
    assert json.loads(config.readings_path.read_text(encoding="utf-8")) == {"s1": {"temp": "20.0"}}
    assert len(config.triggers_path.read_text(encoding="utf-8").splitlines()) == 1


def test_reopen_restores_state(tmp_path: Path) -> None:
    config = _config(tmp_path, max_trigger_events=2)

    with SensorStore(config) as store:
        store.readings.put("s1", '{"temp":"20.0"}')
        store.settings.set_desired("kitchen", 21.5)
        for i in range(3):
            store.triggers.record("s1", "low", f"http://heater/{i}")

    with SensorStore(config) as store:
        assert json.loads(store.readings.get("s1") or "") == {"temp": "20.0"}
        settings = store.settings.get("kitchen")
        assert settings is not None
        assert settings.desired == 21.5
        assert [event.url for event in store.triggers.list_all()] == [
            "http://heater/1",
            "http://heater/2",
        ]


def test_on_demand_flush(tmp_path: Path) -> None:
    config = _config(tmp_path)
    store = SensorStore(config)
    store.open()
    try:
        store.readings.put("s1", '{"temp":"20.0"}')
        assert store.flush() is True
        assert config.readings_path.exists()
    finally:
        store.close()


def test_open_fails_when_data_dir_is_a_file(tmp_path: Path) -> None:
    blocker = tmp_path / "data"
    blocker.write_text("", encoding="utf-8")
    store = SensorStore(_config(tmp_path))

    with pytest.raises(StoreConfigError):
        store.open()
    assert not store.is_open
