"""Factory utilitária para instanciar adapters de protocolo."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, Type

from scada_gateway.adapters.base_adapters import BaseAdapter
from scada_gateway.adapters.modbus_adapter import ModbusAdapter

if TYPE_CHECKING:  # pragma: no cover - apenas para tipagem
    from scada_gateway.app.settings import ModbusSettings

AdaptersMap = Dict[str, Type[BaseAdapter]]


def _default_adapters() -> AdaptersMap:
    return {
        "modbus": ModbusAdapter,
        "modbus_tcp": ModbusAdapter,
        "modbus-tcp": ModbusAdapter,
    }


def get_adapter(
    protocol: str,
    settings: "ModbusSettings",
    *,
    registry_factory: Callable[[], AdaptersMap] = _default_adapters,
) -> BaseAdapter:
    """Retorna uma instância de adapter para o protocolo solicitado."""

    if not protocol:
        raise ValueError("Protocolo não informado")

    registry = registry_factory()
    adapter_cls = registry.get(protocol.lower())
    if adapter_cls is None:
        supported = ", ".join(sorted(registry))
        raise ValueError(f"Protocolo {protocol!r} não suportado. Opções: {supported}")
    return adapter_cls(
        timeout=settings.timeout_s,
        reconnect_delay=settings.reconnect_delay_s,
    )
