import asyncio
import contextlib
import logging
from typing import Optional

from ..services.order_monitor import OrderMonitor


class MonitorSupervisor:
    """
    Background loop for the order monitor, started/stopped by the API lifespan.
    Runs check_all() every `interval_sec` seconds.
    """

    def __init__(self, monitor: OrderMonitor, interval_sec: float = 30):
        self._logger = logging.getLogger(self.__class__.__name__)
        self._monitor = monitor
        self._interval = float(interval_sec)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _loop(self):
        while True:
            try:
                summary = await self._monitor.check_all()
                if summary["total"]:
                    self._logger.info(
                        "monitor pass: %s tracked, %s executable", summary["total"], summary["executable"]
                    )
            except Exception as exc:
                self._logger.exception("monitor loop error: %s", exc)
            await asyncio.sleep(self._interval)

    async def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        self._logger.info("Order monitor started (every %ss)", self._interval)

    async def stop(self):
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
