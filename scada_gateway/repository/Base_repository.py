"""Infraestrutura simples de repositórios sobre o cliente Supabase (PostgREST)."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx
from postgrest.exceptions import APIError

from scada_gateway.utils.exceptions import PersistenceError
from scada_gateway.utils.logs import logger

# falhas de transporte e respostas de erro do PostgREST
BACKEND_ERRORS = (APIError, httpx.HTTPError)


class BaseRepo:
    """Operações de leitura/upsert sobre uma tabela, com tratamento de erros consistente.

    Os métodos são síncronos (o cliente ``supabase`` é bloqueante); quem
    chama a partir do event loop deve usar um executor.
    """

    table_name: str = ""
    conflict_target: str = ""

    def __init__(self, client: Any, table_name: Optional[str] = None) -> None:
        self.client = client
        if table_name:
            self.table_name = table_name
        if not self.table_name:
            raise ValueError(f"{type(self).__name__} sem nome de tabela")

    # ------------------------------------------------------------------
    # Utilitários internos
    # ------------------------------------------------------------------
    def _table(self):
        return self.client.table(self.table_name)

    def _execute(self, query: Any, action: str) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except BACKEND_ERRORS as exc:
            message = getattr(exc, "message", None) or str(exc)
            logger.error("Erro em %s de %s: %s", action, self.table_name, message)
            raise PersistenceError(f"{action} {self.table_name}: {message}") from exc
        return list(getattr(response, "data", None) or [])

    # ------------------------------------------------------------------
    # Operações de leitura
    # ------------------------------------------------------------------
    def find_by(
        self,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
        **filters: Any,
    ) -> List[Dict[str, Any]]:
        query = self._table().select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        if order_by:
            query = query.order(order_by, desc=descending)
        return self._execute(query, "select")

    # ------------------------------------------------------------------
    # Operações de escrita
    # ------------------------------------------------------------------
    def upsert(
        self,
        payload: Mapping[str, Any],
        *,
        on_conflict: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        conflict = on_conflict or self.conflict_target
        query = self._table().upsert(
            dict(payload),
            on_conflict=conflict,
            ignore_duplicates=False,
        )
        return self._execute(query, "upsert")

    def upsert_many(self, payloads: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        if not payloads:
            return []
        query = self._table().upsert(
            [dict(p) for p in payloads],
            on_conflict=self.conflict_target,
            ignore_duplicates=False,
        )
        return self._execute(query, "upsert")
