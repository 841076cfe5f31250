"""Adapter implementation for Modbus TCP controllers."""

from __future__ import annotations

import asyncio
import logging
import struct
from typing import Any, Callable, List, Optional, Sequence

from pymodbus.client import AsyncModbusTcpClient
from pymodbus.exceptions import ModbusException

from scada_gateway.adapters.base_adapters import BaseAdapter, Number, SleepFn
from scada_gateway.models.tags import DataType, FunctionCode
from scada_gateway.utils.exceptions import ModbusConnectionError, NotConnectedError, ReadError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0

_STRUCT_FORMATS = {
    DataType.UINT16.value: ">H",
    DataType.INT16.value: ">h",
    DataType.UINT32.value: ">I",
    DataType.INT32.value: ">i",
    DataType.FLOAT32.value: ">f",
}


def register_count(data_type: str) -> int:
    """Number of 16-bit words needed for ``data_type``."""

    try:
        return DataType(str(data_type).lower()).register_count
    except ValueError:
        return 1


def decode_registers(registers: Sequence[int], data_type: str) -> Number:
    """Assemble big-endian words and reinterpret them as ``data_type``.

    Unknown data types return the first raw word unchanged.
    """

    if not registers:
        raise ReadError("Resposta Modbus sem registradores")

    dtype = str(data_type).lower()
    if dtype == DataType.BOOLEAN.value:
        return 1 if registers[0] != 0 else 0

    fmt = _STRUCT_FORMATS.get(dtype)
    if fmt is None:
        return registers[0]

    buffer = b"".join(struct.pack(">H", int(word) & 0xFFFF) for word in registers)
    try:
        return struct.unpack_from(fmt, buffer)[0]
    except struct.error as exc:
        raise ReadError(
            f"{len(registers)} registrador(es) insuficiente(s) para {dtype}"
        ) from exc


class ModbusAdapter(BaseAdapter):
    """Async Modbus TCP adapter built on top of :mod:`pymodbus`."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        reconnect_delay: float = 5.0,
        client_factory: Optional[Callable[..., Any]] = None,
        sleep: Optional[SleepFn] = None,
    ):
        super().__init__(reconnect_delay=reconnect_delay, sleep=sleep)
        self.timeout = max(float(timeout), 0.1)
        self.client: Optional[AsyncModbusTcpClient] = None
        self._client_factory = client_factory or AsyncModbusTcpClient

    async def connect(self, host: str, port: int, slave_id: int) -> bool:
        self._remember_target(host, port, slave_id)

        async with self._lock:
            await self._close_client()

            client = self._client_factory(
                host=self.host,
                port=self.port,
                timeout=self.timeout,
                retries=0,
            )
            try:
                connected = await client.connect()
            except Exception as exc:
                logger.error("Modbus connection failed %s:%s: %s", self.host, self.port, exc)
                self._set_connected(False)
                raise ModbusConnectionError(
                    f"Falha ao conectar em {self.host}:{self.port}: {exc}"
                ) from exc

            if not connected or not getattr(client, "connected", True):
                logger.error("Modbus connection failed %s:%s", self.host, self.port)
                self.client = client
                await self._close_client()
                raise ModbusConnectionError(f"Falha ao conectar em {self.host}:{self.port}")

            self.client = client
            self._set_connected(True)
            logger.info(
                "Modbus conectado a %s:%s (slave %s)", self.host, self.port, self.slave_id
            )
            return True

    async def disconnect(self) -> None:
        async with self._lock:
            was_connected = self.is_connected()
            await self._close_client()
            if was_connected:
                logger.info("Modbus desconectado de %s:%s", self.host, self.port)

    async def read_register(self, address: int, function_code: int, data_type: str) -> Number:
        if not self.is_connected() or self.client is None:
            raise NotConnectedError("Modbus não conectado")

        count = register_count(data_type)
        async with self._lock:
            try:
                response = await self._request(int(address), int(function_code), count)
            except ReadError:
                raise
            except (ModbusException, asyncio.TimeoutError, OSError) as exc:
                logger.error("Read register %s failed: %s", address, exc)
                raise ReadError(f"Leitura do registrador {address} falhou: {exc}") from exc

        if response is None or (hasattr(response, "isError") and response.isError()):
            raise ReadError(f"Resposta Modbus com erro no registrador {address}: {response}")

        if function_code in (FunctionCode.COIL, FunctionCode.DISCRETE_INPUT):
            bits = list(getattr(response, "bits", None) or [])
            if not bits:
                raise ReadError(f"Resposta Modbus sem bits no endereço {address}")
            return 1 if bits[0] else 0

        registers: List[int] = list(getattr(response, "registers", None) or [])
        if len(registers) < count:
            raise ReadError(
                f"Esperados {count} registradores em {address}, recebidos {len(registers)}"
            )
        return decode_registers(registers[:count], data_type)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _request(self, address: int, function_code: int, count: int) -> Any:
        client = self.client
        if function_code == FunctionCode.COIL:
            return await client.read_coils(address, count=1, device_id=self.slave_id)
        if function_code == FunctionCode.DISCRETE_INPUT:
            return await client.read_discrete_inputs(address, count=1, device_id=self.slave_id)
        if function_code == FunctionCode.HOLDING_REGISTER:
            return await client.read_holding_registers(address, count=count, device_id=self.slave_id)
        if function_code == FunctionCode.INPUT_REGISTER:
            return await client.read_input_registers(address, count=count, device_id=self.slave_id)
        raise ReadError(f"Unsupported function code: {function_code}")

    async def _close_client(self) -> None:
        try:
            if self.client is not None:
                close_fn = getattr(self.client, "close", None)
                if asyncio.iscoroutinefunction(close_fn):
                    await close_fn()
                elif callable(close_fn):
                    close_fn()
        except Exception:
            logger.exception("Erro ao desconectar do Modbus %s", self.host)
        finally:
            self._set_connected(False)
            self.client = None
