"""Repositório da última leitura por tag (``scada_readings``)."""

from __future__ import annotations

from typing import Any, Dict, List

from scada_gateway.models.readings import Reading
from scada_gateway.repository.Base_repository import BaseRepo


class ReadingRepo(BaseRepo):
    # upsert por tag: só a leitura mais recente fica na tabela
    table_name = "scada_readings"
    conflict_target = "tag_mapping_id"

    def save(self, reading: Reading) -> List[Dict[str, Any]]:
        return self.upsert(reading.to_row())
