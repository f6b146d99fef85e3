"""Records held by the store: room settings and trigger events.

Readings are not modelled here: their payloads are opaque text blobs
(usually JSON objects) that the store keeps and returns as-is.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

#: Format of :attr:`TriggerEvent.timestamp`.
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


class TriggerKind(StrEnum):
    HIGH = "high"
    LOW = "low"


class TriggerEvent(BaseModel):
    """A fired trigger, as kept in the trigger log.

    One event serializes to one line of the trigger log file::

        {"timestamp": "2026-01-01 12:00:00", "sensor": "kitchen", "type": "high", "url": "http://..."}
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    timestamp: str
    sensor: str
    kind: TriggerKind = Field(alias="type")
    url: str = ""

    def to_log_line(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_log_line(cls, line: str) -> TriggerEvent:
        """Parse one trigger log line.

        Raises ``pydantic.ValidationError`` for anything that is not a
        well-formed event object.
        """
        return cls.model_validate_json(line)


class RoomSettings(BaseModel):
    """Per-room configuration: desired set-point and trigger callback URLs.

    Empty URL strings mean "no trigger configured" for that direction.
    """

    model_config = ConfigDict(extra="ignore")

    room: str
    desired: float | None = Field(default=None, allow_inf_nan=False)
    high: str = ""
    low: str = ""

    @field_validator("high", "low", mode="before")
    @classmethod
    def _none_is_unset(cls, value: Any) -> Any:
        return "" if value is None else value

    def url_for(self, kind: TriggerKind) -> str:
        return self.high if kind is TriggerKind.HIGH else self.low

    def to_record(self) -> dict[str, Any]:
        """Persisted form: ``{"desired": number|null, "high": str, "low": str}``."""
        return {"desired": self.desired, "high": self.high, "low": self.low}

    @classmethod
    def from_record(cls, room: str, record: Any) -> RoomSettings:
        """Validate one persisted settings entry.

        Raises ``pydantic.ValidationError`` when *record* is not a mapping
        or a field has the wrong type.
        """
        if not isinstance(record, dict):
            # Let pydantic produce a uniform ValidationError.
            return cls.model_validate(record)
        return cls.model_validate({**record, "room": room})
