#scada_gateway/app/__init__.py


from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from supabase import create_client

from scada_gateway.adapters.base_adapters import BaseAdapter
from scada_gateway.adapters.factory import get_adapter
from scada_gateway.app.settings import GatewaySettings, load_settings
from scada_gateway.manager.scan_engine import ScanEngine
from scada_gateway.repository.Tags_repository import TagMappingRepo
from scada_gateway.services.aggregation_service import AggregationService
from scada_gateway.services.data_ingestion_service import DataIngestionService, IngestionRepos
from scada_gateway.services.historian_service import HourlySampleBuffer
from scada_gateway.services.tag_registry_service import TagRegistry
from scada_gateway.utils.exceptions import GatewayError
from scada_gateway.utils.logs import logger


@dataclass
class GatewayContext:
    """Everything one gateway process owns, wired together."""

    settings: GatewaySettings
    client: Any
    adapter: BaseAdapter
    registry: TagRegistry
    sink: DataIngestionService
    buffer: HourlySampleBuffer
    engine: ScanEngine
    aggregation: AggregationService


def create_supabase_client(settings: GatewaySettings) -> Any:
    if not settings.supabase.is_configured():
        raise GatewayError("Missing Supabase credentials (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY)")
    return create_client(settings.supabase.url, settings.supabase.service_role_key)


def create_gateway(
    settings: Optional[GatewaySettings] = None,
    *,
    client: Any = None,
    adapter: Optional[BaseAdapter] = None,
) -> GatewayContext:

    logger.process("Montando gateway")
    settings = settings or load_settings()
    if client is None:
        client = create_supabase_client(settings)
    if adapter is None:
        adapter = get_adapter(settings.modbus.connection_type, settings.modbus)

    sink = DataIngestionService(IngestionRepos.for_client(client))
    registry = TagRegistry(
        TagMappingRepo(client),
        reload_interval=settings.polling.tag_reload_interval_s,
    )
    buffer = HourlySampleBuffer()
    engine = ScanEngine(
        adapter,
        registry,
        sink,
        connection_name=settings.modbus.connection_name,
        connection_type=settings.modbus.connection_type,
        interval=settings.polling.interval_s,
        max_consecutive_errors=settings.polling.max_consecutive_errors,
        buffer=buffer,
    )
    aggregation = AggregationService(sink, buffer)
    logger.info("gateway montado")

    return GatewayContext(
        settings=settings,
        client=client,
        adapter=adapter,
        registry=registry,
        sink=sink,
        buffer=buffer,
        engine=engine,
        aggregation=aggregation,
    )


__all__ = ["GatewayContext", "create_gateway", "create_supabase_client"]
