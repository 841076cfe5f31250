"""Process lifecycle: startup, signal handling and orderly shutdown."""

from __future__ import annotations

import asyncio
import signal
import sys
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import ValidationError

from scada_gateway.app import GatewayContext, create_gateway
from scada_gateway.app.settings import GatewaySettings, load_settings
from scada_gateway.models.readings import ConnectionHealth
from scada_gateway.utils.logs import logger, setup_logger

ContextFactory = Callable[[GatewaySettings], GatewayContext]


class Gateway:
    def __init__(
        self,
        settings: GatewaySettings,
        *,
        context_factory: ContextFactory = create_gateway,
    ):
        self.settings = settings
        self._context_factory = context_factory
        self.context: Optional[GatewayContext] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._tasks: List[asyncio.Task] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------
    async def initialize(self) -> GatewayContext:
        """Load tags, connect the controller and record the initial health.

        Any failure after the context exists is written to the health table
        as ``is_connected=false`` before being re-raised.
        """

        logger.process("Initializing SCADA Polling Service...")
        ctx = self._context_factory(self.settings)
        self.context = ctx
        modbus = self.settings.modbus

        try:
            count = await ctx.registry.load_tag_mappings()
            logger.info("Loaded %d active SCADA tags", count)
            await ctx.adapter.connect(modbus.host, modbus.port, modbus.slave_id)
        except Exception as exc:
            await ctx.sink.update_connection_health(
                modbus.connection_name,
                ConnectionHealth(
                    connection_type=modbus.connection_type,
                    host=modbus.host,
                    port=modbus.port,
                    slave_address=modbus.slave_id,
                    is_connected=False,
                    last_failed_read=datetime.now(timezone.utc),
                    error_message=str(exc),
                ),
            )
            raise

        await ctx.sink.update_connection_health(
            modbus.connection_name,
            ConnectionHealth(
                connection_type=modbus.connection_type,
                host=modbus.host,
                port=modbus.port,
                slave_address=modbus.slave_id,
                is_connected=True,
                last_successful_read=datetime.now(timezone.utc),
                consecutive_failures=0,
                clear_error=True,
            ),
        )
        logger.process("SCADA Polling Service initialized successfully")
        return ctx

    # ------------------------------------------------------------------
    # Execução
    # ------------------------------------------------------------------
    async def run(self) -> int:
        # sinais já valem durante a inicialização (conexão pode demorar)
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        self._install_signal_handlers(loop)
        loop.set_exception_handler(self._on_loop_exception)

        try:
            await self.initialize()
        except Exception as exc:
            logger.error("Failed to start polling service: %s", exc)
            await self.shutdown()
            return 1

        if self._stop_event.is_set():
            logger.info("Encerramento pedido durante a inicialização")
            await self.shutdown()
            return 0

        ctx = self.context
        self._tasks = [await ctx.aggregation.start(), await ctx.engine.start()]
        for task in self._tasks:
            task.add_done_callback(self._on_task_done)

        await self._stop_event.wait()
        await self.shutdown()
        return 0

    def request_stop(self) -> None:
        if self._stop_event is not None and not self._stop_event.is_set():
            logger.info("Pedido de encerramento recebido")
            self._stop_event.set()

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None)):
            if sig is None:
                continue
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except NotImplementedError:  # pragma: no cover - Windows
                pass

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Uncaught exception in %s: %r", task.get_name(), exc)
            self.request_stop()

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        logger.error("Uncaught exception: %s", context.get("exception") or context.get("message"))
        self.request_stop()

    # ------------------------------------------------------------------
    # Encerramento
    # ------------------------------------------------------------------
    async def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        ctx = self.context
        if ctx is None:
            return

        logger.process("Shutting down SCADA Polling Service...")
        await ctx.engine.stop()
        await ctx.aggregation.stop()
        await ctx.adapter.disconnect()
        ctx.sink.close()
        logger.process("SCADA Polling Service stopped")


async def _run(settings: GatewaySettings) -> int:
    return await Gateway(settings).run()


def main() -> int:
    try:
        settings = load_settings()
    except ValidationError as exc:
        setup_logger()
        logger.error("Configuração inválida: %s", exc)
        return 1

    setup_logger(settings.log_level, log_dir=settings.log_dir)
    try:
        return asyncio.run(_run(settings))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":  # pragma: no cover - ponto de entrada do serviço
    sys.exit(main())
