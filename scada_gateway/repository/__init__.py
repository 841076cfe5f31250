"""Repositórios Supabase usados pelo gateway."""

from .Base_repository import BaseRepo
from .Health_repository import ConnectionHealthRepo
from .OperationalLogs_repository import GeneratorLogRepo, TransformerLogRepo
from .Readings_repository import ReadingRepo
from .Rollups_repository import HourlyRollupRepo
from .Tags_repository import TagMappingRepo

__all__ = [
    "BaseRepo",
    "ConnectionHealthRepo",
    "GeneratorLogRepo",
    "HourlyRollupRepo",
    "ReadingRepo",
    "TagMappingRepo",
    "TransformerLogRepo",
]
