"""Repositórios dos logs operacionais horários (transformadores e gerador)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from scada_gateway.repository.Base_repository import BaseRepo

DATA_SOURCE = "scada"


def _hourly_payload(field: str, value: float, when: datetime) -> Dict[str, Any]:
    return {
        field: value,
        "data_source": DATA_SOURCE,
        "logged_at": when.isoformat(),
        "date": when.date().isoformat(),
        "hour": when.hour,
    }


class TransformerLogRepo(BaseRepo):
    table_name = "transformer_logs"
    conflict_target = "date,hour,transformer_number"

    def write_field(
        self,
        transformer_number: Optional[int],
        field: str,
        value: float,
        when: datetime,
    ) -> List[Dict[str, Any]]:
        payload = _hourly_payload(field, value, when)
        payload["transformer_number"] = transformer_number
        return self.upsert(payload)


class GeneratorLogRepo(BaseRepo):
    table_name = "generator_logs"
    conflict_target = "date,hour"

    def write_field(self, field: str, value: float, when: datetime) -> List[Dict[str, Any]]:
        return self.upsert(_hourly_payload(field, value, when))
