"""In-memory snapshot of the active tag mappings."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, List, Optional, Tuple

from scada_gateway.models.readings import AlarmStatus
from scada_gateway.models.tags import TagMapping
from scada_gateway.repository.Tags_repository import TagMappingRepo
from scada_gateway.services import Alarms_service
from scada_gateway.utils.exceptions import RegistryError
from scada_gateway.utils.logs import logger

DEFAULT_RELOAD_INTERVAL = 300.0


class TagRegistry:
    """Holds the tag set polled by the scan engine.

    The snapshot is a tuple replaced wholesale on every successful load, so a
    cycle that captured the previous tuple keeps iterating it untouched.
    """

    def __init__(
        self,
        repo: TagMappingRepo,
        *,
        reload_interval: float = DEFAULT_RELOAD_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        executor: Optional[Any] = None,
    ) -> None:
        self.repo = repo
        self.reload_interval = reload_interval
        self._clock = clock
        self._executor = executor
        self._tags: Tuple[TagMapping, ...] = ()
        self._last_load: Optional[float] = None

    @property
    def active_tags(self) -> Tuple[TagMapping, ...]:
        return self._tags

    @property
    def active_tag_count(self) -> int:
        return len(self._tags)

    @property
    def last_load(self) -> Optional[float]:
        return self._last_load

    async def load_tag_mappings(self) -> int:
        """Fetch the active tags and swap the snapshot.

        Raises :class:`RegistryError` on fetch failure; the previous snapshot
        is left in place.
        """

        loop = asyncio.get_running_loop()
        try:
            rows = await loop.run_in_executor(self._executor, self.repo.list_active)
        except RegistryError:
            logger.error("Erro ao carregar mapeamentos de tags; mantendo %d tags anteriores", len(self._tags))
            raise

        self._tags = self._parse_rows(rows)
        self._last_load = self._clock()
        logger.info("Carregadas %d tags SCADA activas", len(self._tags))
        return len(self._tags)

    async def reload_if_needed(self) -> bool:
        """Reload when the snapshot is older than ``reload_interval``.

        Returns ``True`` when a fetch was attempted.  A failed periodic reload
        is logged and the stale set is kept.
        """

        if self._last_load is not None and (self._clock() - self._last_load) < self.reload_interval:
            return False
        try:
            await self.load_tag_mappings()
        except RegistryError as exc:
            logger.warning("Recarga de tags falhou, usando conjunto anterior: %s", exc)
        return True

    @staticmethod
    def scale_value(raw: float, factor: float, offset: float) -> float:
        return Alarms_service.scale_value(raw, factor, offset)

    @staticmethod
    def check_alarms(tag: TagMapping, scaled_value: float) -> AlarmStatus:
        return Alarms_service.evaluate_alarm(tag, scaled_value)

    @staticmethod
    def _parse_rows(rows: List[dict]) -> Tuple[TagMapping, ...]:
        tags: List[TagMapping] = []
        for row in rows:
            try:
                tag = TagMapping.from_row(row)
            except (TypeError, ValueError) as exc:
                logger.warning("Ignorando tag inválida %s: %s", row.get("id"), exc)
                continue
            if tag.is_active:
                tags.append(tag)
        return tuple(tags)


__all__ = ["TagRegistry"]
