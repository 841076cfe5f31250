"""Repositório de leitura das definições de tags (``scada_tag_mappings``)."""

from __future__ import annotations

from typing import Any, Dict, List

from scada_gateway.repository.Base_repository import BaseRepo
from scada_gateway.utils.exceptions import PersistenceError, RegistryError


class TagMappingRepo(BaseRepo):
    table_name = "scada_tag_mappings"

    def list_active(self) -> List[Dict[str, Any]]:
        """Tags activas ordenadas por ``polling_priority`` ascendente."""

        try:
            return self.find_by(is_active=True, order_by="polling_priority")
        except PersistenceError as exc:
            raise RegistryError(f"Failed to load tag mappings: {exc}") from exc
        except Exception as exc:
            # resposta inesperada do cliente também invalida o carregamento
            raise RegistryError(f"Failed to load tag mappings: {exc!r}") from exc
