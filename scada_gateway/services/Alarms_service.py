"""Value scaling and alarm evaluation helpers."""

from __future__ import annotations

from typing import Optional

from scada_gateway.models.readings import (
    ALARM_HIGH,
    ALARM_LOW,
    ALARM_OUT_OF_RANGE,
    NO_ALARM,
    AlarmStatus,
)
from scada_gateway.models.tags import TagMapping


def scale_value(raw: float, factor: float, offset: float) -> float:
    return raw * factor + offset


def evaluate_alarm(tag: TagMapping, value: Optional[float]) -> AlarmStatus:
    """Determine the alarm state for a scaled reading.

    Hard thresholds are checked before the soft range, and only the first
    matching rule is reported: a value above ``alarm_high`` is ``high`` even
    when it is also outside ``[min_value, max_value]``.
    """

    if value is None:
        return NO_ALARM

    if tag.alarm_high is not None and value > tag.alarm_high:
        return AlarmStatus(True, ALARM_HIGH)
    if tag.alarm_low is not None and value < tag.alarm_low:
        return AlarmStatus(True, ALARM_LOW)
    if (tag.min_value is not None and value < tag.min_value) or (
        tag.max_value is not None and value > tag.max_value
    ):
        return AlarmStatus(True, ALARM_OUT_OF_RANGE)
    return NO_ALARM


__all__ = ["evaluate_alarm", "scale_value"]
