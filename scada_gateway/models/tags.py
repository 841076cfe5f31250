# scada_gateway/models/tags.py
"""Tag mapping records loaded from ``scada_tag_mappings``."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Mapping, Optional, Union


class FunctionCode(IntEnum):
    COIL = 1
    DISCRETE_INPUT = 2
    HOLDING_REGISTER = 3
    INPUT_REGISTER = 4


class DataType(str, Enum):
    UINT16 = "uint16"
    INT16 = "int16"
    UINT32 = "uint32"
    INT32 = "int32"
    FLOAT32 = "float32"
    BOOLEAN = "boolean"

    @property
    def register_count(self) -> int:
        return 2 if self in (DataType.UINT32, DataType.INT32, DataType.FLOAT32) else 1


TRANSFORMER_LOGS = "transformer_logs"
GENERATOR_LOGS = "generator_logs"


@dataclass(frozen=True)
class NoLogTarget:
    """The tag only feeds ``scada_readings``."""


@dataclass(frozen=True)
class TransformerLogTarget:
    number: Optional[int]


@dataclass(frozen=True)
class GeneratorLogTarget:
    pass


LogTarget = Union[NoLogTarget, TransformerLogTarget, GeneratorLogTarget]


def resolve_log_target(target_table: Optional[str], transformer_number: Optional[int]) -> LogTarget:
    table = (target_table or "").strip().lower()
    if table == TRANSFORMER_LOGS:
        return TransformerLogTarget(number=transformer_number)
    if table == GENERATOR_LOGS:
        return GeneratorLogTarget()
    return NoLogTarget()


@dataclass(frozen=True)
class TagMapping:
    id: Any
    tag_name: str
    modbus_address: int
    modbus_function_code: int
    data_type: str = DataType.UINT16.value
    scaling_factor: float = 1.0
    offset: float = 0.0
    alarm_high: Optional[float] = None
    alarm_low: Optional[float] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    target_table: Optional[str] = None
    target_field: Optional[str] = None
    transformer_number: Optional[int] = None
    polling_priority: int = 0
    is_active: bool = True
    unit: Optional[str] = None
    slave_address: Optional[int] = None
    description: Optional[str] = None
    log_target: LogTarget = field(default=NoLogTarget(), compare=False)

    def __post_init__(self) -> None:
        # resolvido uma única vez; o caminho quente não compara strings
        if isinstance(self.log_target, NoLogTarget) and self.target_table:
            object.__setattr__(
                self,
                "log_target",
                resolve_log_target(self.target_table, self.transformer_number),
            )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TagMapping":
        """Build a tag from a PostgREST row, applying the gateway defaults."""

        if row.get("id") is None:
            raise ValueError("tag mapping sem id")
        if row.get("modbus_address") is None:
            raise ValueError(f"tag {row.get('id')} sem modbus_address")

        return cls(
            id=row["id"],
            tag_name=str(row.get("tag_name") or row["id"]),
            modbus_address=int(row["modbus_address"]),
            modbus_function_code=int(row.get("modbus_function_code") or FunctionCode.HOLDING_REGISTER),
            data_type=str(row.get("data_type") or DataType.UINT16.value).lower(),
            # 0 ou ausente equivalem a "sem escala"
            scaling_factor=float(row.get("scaling_factor") or 1),
            offset=float(row.get("offset") or 0),
            alarm_high=_optional_float(row.get("alarm_high")),
            alarm_low=_optional_float(row.get("alarm_low")),
            min_value=_optional_float(row.get("min_value")),
            max_value=_optional_float(row.get("max_value")),
            target_table=row.get("target_table") or None,
            target_field=row.get("target_field") or None,
            transformer_number=_optional_int(row.get("transformer_number")),
            polling_priority=_optional_int(row.get("polling_priority")) or 0,
            is_active=bool(row.get("is_active", True)),
            unit=row.get("unit") or None,
            slave_address=_optional_int(row.get("slave_address")),
            description=row.get("description") or None,
        )


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


__all__ = [
    "DataType",
    "FunctionCode",
    "GENERATOR_LOGS",
    "GeneratorLogTarget",
    "LogTarget",
    "NoLogTarget",
    "TRANSFORMER_LOGS",
    "TagMapping",
    "TransformerLogTarget",
    "resolve_log_target",
]
