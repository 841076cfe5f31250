"""Repositório dos agregados horários (``scada_hourly_rollups``)."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from scada_gateway.models.rollups import HourlyRollup
from scada_gateway.repository.Base_repository import BaseRepo


class HourlyRollupRepo(BaseRepo):
    table_name = "scada_hourly_rollups"
    conflict_target = "tag_mapping_id,date,hour"

    def save_all(self, rollups: Iterable[HourlyRollup]) -> List[Dict[str, Any]]:
        return self.upsert_many([r.to_row() for r in rollups])
