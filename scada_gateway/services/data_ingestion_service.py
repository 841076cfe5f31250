"""Persistence sink: readings, operational logs, connection health and rollups.

Every public coroutine swallows :class:`PersistenceError` after logging it and
reports success as a boolean; a failed write must never stop the polling loop.
The blocking Supabase calls run on a dedicated single-worker executor so the
writes keep their submission order.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from scada_gateway.models.readings import ConnectionHealth, Reading
from scada_gateway.models.rollups import HourlyRollup
from scada_gateway.models.tags import GeneratorLogTarget, TagMapping, TransformerLogTarget
from scada_gateway.repository.Health_repository import ConnectionHealthRepo
from scada_gateway.repository.OperationalLogs_repository import GeneratorLogRepo, TransformerLogRepo
from scada_gateway.repository.Readings_repository import ReadingRepo
from scada_gateway.repository.Rollups_repository import HourlyRollupRepo
from scada_gateway.utils.exceptions import PersistenceError
from scada_gateway.utils.logs import logger


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class IngestionRepos:
    readings: ReadingRepo
    transformer_logs: TransformerLogRepo
    generator_logs: GeneratorLogRepo
    health: ConnectionHealthRepo
    rollups: HourlyRollupRepo

    @classmethod
    def for_client(cls, client: Any) -> "IngestionRepos":
        return cls(
            readings=ReadingRepo(client),
            transformer_logs=TransformerLogRepo(client),
            generator_logs=GeneratorLogRepo(client),
            health=ConnectionHealthRepo(client),
            rollups=HourlyRollupRepo(client),
        )


class DataIngestionService:
    def __init__(
        self,
        repos: IngestionRepos,
        *,
        executor: Optional[Executor] = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.repos = repos
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="supabase")
        self._owns_executor = executor is None
        self._clock = clock

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, func, *args)

    async def _write(self, action: str, func: Callable[..., Any], *args: Any) -> bool:
        try:
            await self._run(func, *args)
            return True
        except PersistenceError as exc:
            logger.error("%s failed: %s", action, exc)
        except Exception:
            logger.exception("Erro inesperado em %s", action)
        return False

    async def upsert_reading(self, reading: Reading) -> bool:
        return await self._write(
            f"Database upsert (tag {reading.tag_mapping_id})",
            self.repos.readings.save,
            reading,
        )

    async def update_operational_log(self, tag: TagMapping, scaled_value: float) -> bool:
        target = tag.log_target
        if not tag.target_field:
            return False

        now = self._clock()
        if isinstance(target, TransformerLogTarget):
            return await self._write(
                f"Transformer log update ({tag.tag_name})",
                self.repos.transformer_logs.write_field,
                target.number,
                tag.target_field,
                scaled_value,
                now,
            )
        if isinstance(target, GeneratorLogTarget):
            return await self._write(
                f"Generator log update ({tag.tag_name})",
                self.repos.generator_logs.write_field,
                tag.target_field,
                scaled_value,
                now,
            )
        return False

    async def update_connection_health(self, connection_name: str, status: ConnectionHealth) -> bool:
        return await self._write(
            "Connection health update",
            self.repos.health.merge,
            connection_name,
            status.to_fields(),
            datetime.now(timezone.utc),
        )

    async def save_rollups(self, rollups: Iterable[HourlyRollup]) -> bool:
        batch = list(rollups)
        if not batch:
            return True
        return await self._write(
            f"Rollup persistence ({len(batch)} registros)",
            self.repos.rollups.save_all,
            batch,
        )

    def close(self) -> None:
        if self._owns_executor and isinstance(self._executor, ThreadPoolExecutor):
            self._executor.shutdown(wait=True)


__all__ = ["DataIngestionService", "IngestionRepos"]
