"""Utilitários partilhados (logging e exceções)."""

from .exceptions import (
    GatewayError,
    ModbusConnectionError,
    NotConnectedError,
    PersistenceError,
    ReadError,
    RegistryError,
)
from .logs import logger, setup_logger

__all__ = [
    "GatewayError",
    "ModbusConnectionError",
    "NotConnectedError",
    "PersistenceError",
    "ReadError",
    "RegistryError",
    "logger",
    "setup_logger",
]
