"""
Polling Scheduler — fires every PollingTrigger on a fixed interval.

Runs as a background task inside the FastAPI lifespan. The scheduler only
posts; serialization per job is left to the SequentialExecutionQueue.
"""
from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from polling.trigger import PollingTrigger

logger = structlog.get_logger()


class PollingScheduler:

    def __init__(self, triggers: list[PollingTrigger], interval_s: float = 60):
        self.triggers = triggers
        self.interval_s = interval_s
        self._running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="polling_scheduler")
        logger.info("polling_scheduler_started",
                    interval_s=self.interval_s, jobs=len(self.triggers))

    async def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("polling_scheduler_stopped")

    def tick(self) -> dict[str, str]:
        """Post one poll cycle for every trigger. Returns job → queue decision."""
        return {t.job.display_name: t.on_post() for t in self.triggers}

    async def _loop(self) -> None:
        while self._running:
            try:
                self.tick()
            except Exception as e:
                logger.error("polling_tick_error", error=str(e))
            await asyncio.sleep(self.interval_s)
