"""Infrastructure for field-protocol adapters.

This module defines :class:`BaseAdapter`, the contract the scan engine relies
on: one persistent transport per adapter, asynchronous ``connect`` /
``disconnect`` / ``read_register`` and a ``reconnect`` helper that replays the
last-used connection parameters after a fixed backoff window.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Number = Union[int, float]
SleepFn = Callable[[float], Awaitable[None]]

DEFAULT_RECONNECT_DELAY = 5.0


class BaseAdapter(ABC):
    """Base contract used by every protocol adapter.

    Concrete implementations must provide asynchronous ``connect`` and
    ``disconnect`` operations together with the logic required to read a
    single point.  The lock serialises requests so that at most one request
    is in flight on the bus at any time.
    """

    def __init__(
        self,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        sleep: Optional[SleepFn] = None,
    ):
        self.host: Optional[str] = None
        self.port: Optional[int] = None
        self.slave_id: int = 1
        self.reconnect_delay = reconnect_delay
        self._sleep: SleepFn = sleep or asyncio.sleep
        self._connected: bool = False
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Abstract API
    # ------------------------------------------------------------------
    @abstractmethod
    async def connect(self, host: str, port: int, slave_id: int) -> bool:
        """Establish the connection with the field device."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection; never raises."""

    @abstractmethod
    async def read_register(self, address: int, function_code: int, data_type: str) -> Number:
        """Read and decode a single point."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def reconnect(self) -> bool:
        """Drop the transport, wait the backoff window and connect again.

        Connection failures propagate to the caller.
        """

        if self.host is None or self.port is None:
            raise RuntimeError("reconnect() chamado antes de connect()")

        logger.info("Tentando reconectar a %s:%s...", self.host, self.port)
        await self.disconnect()
        await self._sleep(self.reconnect_delay)
        return await self.connect(self.host, self.port, self.slave_id)

    def is_connected(self) -> bool:
        return self._connected

    def _set_connected(self, state: bool) -> None:
        self._connected = state

    def _remember_target(self, host: str, port: int, slave_id: int) -> None:
        self.host = host
        self.port = int(port)
        self.slave_id = int(slave_id)
