"""Hourly rollup scheduler.

The timer is re-armed after every run for the next ``HH:00:30`` instant
instead of using a fixed one-hour period, so execution jitter never
accumulates from one hour to the next.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

from scada_gateway.models.rollups import HourlyRollup
from scada_gateway.services.data_ingestion_service import DataIngestionService
from scada_gateway.services.historian_service import HourlySampleBuffer, compute_rollups
from scada_gateway.utils.logs import logger

RUN_OFFSET = timedelta(seconds=30)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def next_run_at(now: datetime) -> datetime:
    """First ``HH:00:30`` strictly after ``now``."""

    candidate = now.replace(minute=0, second=0, microsecond=0) + RUN_OFFSET
    if candidate <= now:
        candidate += timedelta(hours=1)
    return candidate


def previous_hour(now: datetime) -> Tuple[date, int]:
    target = now.replace(minute=0, second=0, microsecond=0) - timedelta(hours=1)
    return target.date(), target.hour


class AggregationService:
    def __init__(
        self,
        sink: DataIngestionService,
        buffer: HourlySampleBuffer,
        *,
        clock: Callable[[], datetime] = _local_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.sink = sink
        self.buffer = buffer
        self._clock = clock
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._stop = False
        self.next_run: Optional[datetime] = None

    async def start(self) -> asyncio.Task:
        logger.info("Aggregation service starting...")
        self._stop = False
        self._task = asyncio.create_task(self._run_loop(), name="hourly-aggregation")
        return self._task

    async def stop(self) -> None:
        self._stop = True
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception:
                # a falha já foi reportada quando a tarefa terminou
                logger.debug("Tarefa de agregação terminou com erro", exc_info=True)
            self._task = None
            logger.info("Aggregation service stopped")

    def schedule_next(self) -> float:
        """Arm the next run and return the delay in seconds."""

        now = self._clock()
        self.next_run = next_run_at(now)
        logger.info("Next aggregation scheduled at %s", self.next_run.isoformat())
        return max((self.next_run - now).total_seconds(), 0.0)

    async def _run_loop(self) -> None:
        while not self._stop:
            delay = self.schedule_next()
            await self._sleep(delay)
            if self._stop:
                break
            await self.aggregate_last_hour()

    async def aggregate_last_hour(self, now: Optional[datetime] = None) -> List[HourlyRollup]:
        """Roll up the hour preceding ``now``; never raises.

        Samples leave the buffer only once their rollups were persisted, so a
        failed save is retried on the next run while the hour is still inside
        the retention window.  Returns the rollups actually saved.
        """

        logger.info("Running hourly aggregation...")
        moment = now or self._clock()
        day, hour = previous_hour(moment)
        saved: List[HourlyRollup] = []
        try:
            self.buffer.expire(day, hour)
            computed_at = datetime.now(timezone.utc)
            # horas anteriores cujo envio falhou são reenviadas primeiro
            for bucket_day, bucket_hour in self.buffer.closed_hours(day, hour):
                rollups = compute_rollups(
                    bucket_day, bucket_hour, self.buffer.peek(bucket_day, bucket_hour), computed_at
                )
                if rollups and not await self.sink.save_rollups(rollups):
                    logger.warning(
                        "Rollup de %s hora %d não gravado; nova tentativa na próxima execução",
                        bucket_day.isoformat(),
                        bucket_hour,
                    )
                    return saved
                self.buffer.drain(bucket_day, bucket_hour)
                logger.info(
                    "Aggregated data for %s Hour %d (%d tags)",
                    bucket_day.isoformat(),
                    bucket_hour,
                    len(rollups),
                )
                saved.extend(rollups)
            if not saved:
                logger.info("Nenhuma amostra para %s hora %d", day.isoformat(), hour)
            return saved
        except Exception as exc:
            logger.error("Aggregation failed: %s", exc)
            return []


__all__ = ["AggregationService", "next_run_at", "previous_hour"]
