"""Adapters de comunicação com o dispositivo de campo."""

from .base_adapters import BaseAdapter
from .factory import get_adapter
from .modbus_adapter import ModbusAdapter, decode_registers, register_count

__all__ = [
    "BaseAdapter",
    "ModbusAdapter",
    "decode_registers",
    "get_adapter",
    "register_count",
]
