"""Repositório do registro de saúde da conexão (``scada_connection_health``)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping

from scada_gateway.repository.Base_repository import BaseRepo


class ConnectionHealthRepo(BaseRepo):
    table_name = "scada_connection_health"
    conflict_target = "connection_name"

    def merge(
        self,
        connection_name: str,
        fields: Mapping[str, Any],
        when: datetime,
    ) -> List[Dict[str, Any]]:
        payload = {"connection_name": connection_name, **fields, "updated_at": when.isoformat()}
        return self.upsert(payload)
