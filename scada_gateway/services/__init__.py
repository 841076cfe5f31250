from scada_gateway.services import Alarms_service
from scada_gateway.services.aggregation_service import AggregationService, next_run_at
from scada_gateway.services.data_ingestion_service import DataIngestionService, IngestionRepos
from scada_gateway.services.historian_service import HourlySampleBuffer, compute_rollups
from scada_gateway.services.tag_registry_service import TagRegistry

__all__ = [
    "Alarms_service",
    "AggregationService",
    "DataIngestionService",
    "HourlySampleBuffer",
    "IngestionRepos",
    "TagRegistry",
    "compute_rollups",
    "next_run_at",
]
