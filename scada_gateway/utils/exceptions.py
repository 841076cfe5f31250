"""Error taxonomy shared by the gateway components."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for every error raised by the gateway."""


class ModbusConnectionError(GatewayError, ConnectionError):
    """The Modbus transport could not be established."""


class ReadError(GatewayError):
    """A single register read failed."""


class NotConnectedError(ReadError):
    """A read was attempted without an open transport."""


class RegistryError(GatewayError):
    """The tag mapping registry could not be fetched."""


class PersistenceError(GatewayError):
    """A write to the persistence backend failed."""


__all__ = [
    "GatewayError",
    "ModbusConnectionError",
    "NotConnectedError",
    "PersistenceError",
    "ReadError",
    "RegistryError",
]
