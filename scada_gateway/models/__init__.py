from .readings import (
    ALARM_HIGH,
    ALARM_LOW,
    ALARM_OUT_OF_RANGE,
    NO_ALARM,
    QUALITY_BAD,
    QUALITY_GOOD,
    AlarmStatus,
    ConnectionHealth,
    Reading,
)
from .rollups import HourlyRollup
from .tags import (
    DataType,
    FunctionCode,
    GeneratorLogTarget,
    LogTarget,
    NoLogTarget,
    TagMapping,
    TransformerLogTarget,
)

__all__ = [
    "ALARM_HIGH",
    "ALARM_LOW",
    "ALARM_OUT_OF_RANGE",
    "AlarmStatus",
    "ConnectionHealth",
    "DataType",
    "FunctionCode",
    "GeneratorLogTarget",
    "HourlyRollup",
    "LogTarget",
    "NO_ALARM",
    "NoLogTarget",
    "QUALITY_BAD",
    "QUALITY_GOOD",
    "Reading",
    "TagMapping",
    "TransformerLogTarget",
]
