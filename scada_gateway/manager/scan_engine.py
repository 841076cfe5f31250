import asyncio
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple

from scada_gateway.adapters.base_adapters import BaseAdapter
from scada_gateway.models.readings import ConnectionHealth, Reading, QUALITY_GOOD
from scada_gateway.models.tags import NoLogTarget, TagMapping
from scada_gateway.services.data_ingestion_service import DataIngestionService
from scada_gateway.services.historian_service import HourlySampleBuffer
from scada_gateway.services.tag_registry_service import TagRegistry
from scada_gateway.utils.exceptions import ReadError
from scada_gateway.utils.logs import logger


class CycleOutcome(str, Enum):
    IDLE = "idle"
    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    TOTAL_FAILURE = "total_failure"


class LinkState(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class TagResult:
    tag: TagMapping
    reading: Reading
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CycleReport:
    outcome: CycleOutcome
    results: Tuple[TagResult, ...] = ()

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if not r.ok)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------- Scan engine: um ciclo por intervalo, tags em sequência ----------
class ScanEngine:
    """Fixed-interval polling of the registry's tags through one adapter.

    Tags are read strictly one after another; a cycle never overlaps the
    next one.  Ticks that fall inside an overrunning cycle are skipped, not
    queued.  After ``max_consecutive_errors`` cycles in which every read
    failed, the adapter is asked to reconnect once and the counter resets.
    """

    def __init__(
        self,
        adapter: BaseAdapter,
        registry: TagRegistry,
        sink: DataIngestionService,
        *,
        connection_name: str = "modbus_primary",
        connection_type: str = "modbus_tcp",
        interval: float = 2.0,
        max_consecutive_errors: int = 5,
        buffer: Optional[HourlySampleBuffer] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.adapter = adapter
        self.registry = registry
        self.sink = sink
        self.connection_name = connection_name
        self.connection_type = connection_type
        self.interval = interval
        self.max_consecutive_errors = max_consecutive_errors
        self.buffer = buffer
        self._clock = clock
        self._sleep = sleep
        self._now = now
        self._task: Optional[asyncio.Task] = None
        self._stop = False
        self._idle = asyncio.Event()
        self._idle.set()
        self.consecutive_errors = 0
        self.skipped_ticks = 0
        self.last_report: Optional[CycleReport] = None

    @property
    def link_state(self) -> LinkState:
        return LinkState.HEALTHY if self.consecutive_errors == 0 else LinkState.DEGRADED

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Ciclo
    # ------------------------------------------------------------------
    async def poll_once(self) -> CycleReport:
        await self.registry.reload_if_needed()

        # snapshot: uma recarga durante o ciclo não afecta esta iteração
        tags = self.registry.active_tags
        if not tags:
            logger.debug("Nenhuma tag activa; ciclo ignorado")
            report = CycleReport(CycleOutcome.IDLE)
            self.last_report = report
            return report

        results: List[TagResult] = []
        for tag in tags:
            results.append(await self._poll_tag(tag))

        report = CycleReport(self._classify(results), tuple(results))
        self.last_report = report

        if report.success_count > 0:
            self.consecutive_errors = 0
        elif report.error_count > 0:
            self.consecutive_errors += 1

        await self._record_health(report)

        if self.consecutive_errors >= self.max_consecutive_errors:
            await self._escalate()
        return report

    async def _poll_tag(self, tag: TagMapping) -> TagResult:
        try:
            raw = await self.adapter.read_register(
                tag.modbus_address, tag.modbus_function_code, tag.data_type
            )
            scaled = self.registry.scale_value(raw, tag.scaling_factor, tag.offset)
            if not math.isfinite(scaled):
                raise ReadError(f"valor não finito: {scaled}")
            alarm = self.registry.check_alarms(tag, scaled)
            ts = self._now()
            reading = Reading(
                tag_mapping_id=tag.id,
                raw_value=raw,
                scaled_value=scaled,
                quality_code=QUALITY_GOOD,
                timestamp=ts,
                received_at=ts,
                is_alarm=alarm.is_alarm,
                alarm_type=alarm.type,
            )
        except Exception as e:
            logger.error("Error reading tag %s: %s", tag.tag_name, e)
            reading = Reading.bad(tag.id, now=self._now())
            await self._persist(tag, reading)
            return TagResult(tag, reading, e)

        if reading.is_alarm:
            logger.warning("Alarme %s na tag %s: %s", reading.alarm_type, tag.tag_name, scaled)
        await self._persist(tag, reading)
        return TagResult(tag, reading)

    async def _persist(self, tag: TagMapping, reading: Reading) -> None:
        await self.sink.upsert_reading(reading)
        if reading.is_good and tag.target_field and not isinstance(tag.log_target, NoLogTarget):
            await self.sink.update_operational_log(tag, reading.scaled_value)
        if self.buffer is not None:
            self.buffer.record(reading)

    @staticmethod
    def _classify(results: List[TagResult]) -> CycleOutcome:
        errors = sum(1 for r in results if not r.ok)
        if errors == 0:
            return CycleOutcome.SUCCESS
        if errors == len(results):
            return CycleOutcome.TOTAL_FAILURE
        return CycleOutcome.PARTIAL_FAILURE

    async def _record_health(self, report: CycleReport) -> None:
        now = self._now()
        last_error = next((r.error for r in reversed(report.results) if not r.ok), None)
        status = ConnectionHealth(
            connection_type=self.connection_type,
            host=self.adapter.host,
            port=self.adapter.port,
            slave_address=self.adapter.slave_id,
            is_connected=report.success_count > 0,
            last_successful_read=now if report.success_count else None,
            last_failed_read=now if report.error_count else None,
            consecutive_failures=self.consecutive_errors,
            error_message=str(last_error) if last_error is not None else None,
            clear_error=report.error_count == 0,
        )
        await self.sink.update_connection_health(self.connection_name, status)

    async def _escalate(self) -> None:
        logger.warning(
            "Too many consecutive errors (%d), attempting reconnection...",
            self.consecutive_errors,
        )
        try:
            await self.adapter.reconnect()
            logger.process("Reconexão bem sucedida a %s:%s", self.adapter.host, self.adapter.port)
        except Exception as e:
            logger.error("Reconnection failed: %s", e)
        self.consecutive_errors = 0

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------
    async def start(self):
        if self.is_running:
            return self._task
        self._stop = False
        self._task = asyncio.create_task(self._run_loop(), name="scan-engine")
        return self._task

    async def stop(self, grace: float = 30.0):
        """Refuse new cycles, let an in-flight one finish, then cancel the timer."""
        self._stop = True
        if self._task:
            if not self._idle.is_set():
                try:
                    await asyncio.wait_for(self._idle.wait(), timeout=grace)
                except asyncio.TimeoutError:
                    logger.warning("Ciclo em curso não terminou em %.0fs; cancelando", grace)
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Erro ao aguardar encerramento do scan engine")
            self._task = None
            logger.info("Scan engine stopped")

    async def _run_loop(self):
        logger.process(f"Polling tags every {int(self.interval * 1000)}ms")
        next_tick = self._clock() + self.interval

        while not self._stop:
            delay = next_tick - self._clock()
            if delay > 0:
                await self._sleep(delay)
            if self._stop:
                break

            self._idle.clear()
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Unexpected error in polling cycle: %s", e)
            finally:
                self._idle.set()

            next_tick = self._advance(next_tick, self._clock())


    def _advance(self, next_tick: float, now: float) -> float:
        """Next grid instant after ``now``; ticks swallowed by an overrun are skipped."""

        next_tick += self.interval
        if next_tick <= now:
            missed = int((now - next_tick) // self.interval) + 1
            self.skipped_ticks += missed
            logger.debug("Ciclo excedeu o intervalo; %d tick(s) ignorado(s)", missed)
            next_tick += missed * self.interval
        return next_tick


__all__ = ["CycleOutcome", "CycleReport", "LinkState", "ScanEngine", "TagResult"]
