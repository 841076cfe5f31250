# scada_gateway/models/readings.py
"""Records written by the gateway: readings and connection health."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

QUALITY_GOOD = 0
QUALITY_BAD = 1

ALARM_HIGH = "high"
ALARM_LOW = "low"
ALARM_OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class AlarmStatus:
    is_alarm: bool = False
    type: Optional[str] = None


NO_ALARM = AlarmStatus()


@dataclass(frozen=True)
class Reading:
    """One row of ``scada_readings``."""

    tag_mapping_id: Any
    raw_value: float
    scaled_value: float
    quality_code: int
    timestamp: datetime
    received_at: datetime
    is_alarm: bool = False
    alarm_type: Optional[str] = None
    source: str = "modbus"

    @property
    def is_good(self) -> bool:
        return self.quality_code == QUALITY_GOOD

    @classmethod
    def bad(cls, tag_mapping_id: Any, *, now: Optional[datetime] = None) -> "Reading":
        ts = now or datetime.now(timezone.utc)
        return cls(
            tag_mapping_id=tag_mapping_id,
            raw_value=0,
            scaled_value=0,
            quality_code=QUALITY_BAD,
            timestamp=ts,
            received_at=ts,
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "tag_mapping_id": self.tag_mapping_id,
            "raw_value": self.raw_value,
            "scaled_value": self.scaled_value,
            "quality_code": self.quality_code,
            "is_alarm": self.is_alarm,
            "alarm_type": self.alarm_type,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "received_at": self.received_at.isoformat(),
        }


@dataclass
class ConnectionHealth:
    """Status fields merged into ``scada_connection_health``.

    ``None`` means "leave the stored value alone": those keys are dropped
    from the upsert payload so an older ``last_successful_read`` survives a
    failed cycle.
    """

    connection_type: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    slave_address: Optional[int] = None
    is_connected: Optional[bool] = None
    last_successful_read: Optional[datetime] = None
    last_failed_read: Optional[datetime] = None
    consecutive_failures: Optional[int] = None
    error_message: Optional[str] = None
    clear_error: bool = False

    def to_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        for name in (
            "connection_type",
            "host",
            "port",
            "slave_address",
            "is_connected",
            "last_successful_read",
            "last_failed_read",
            "consecutive_failures",
            "error_message",
        ):
            value = getattr(self, name)
            if value is None:
                continue
            fields[name] = value.isoformat() if isinstance(value, datetime) else value
        if self.clear_error and self.error_message is None:
            fields["error_message"] = None
        return fields


__all__ = [
    "ALARM_HIGH",
    "ALARM_LOW",
    "ALARM_OUT_OF_RANGE",
    "AlarmStatus",
    "ConnectionHealth",
    "NO_ALARM",
    "QUALITY_BAD",
    "QUALITY_GOOD",
    "Reading",
]
