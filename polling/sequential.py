"""
Sequential execution queue — at most one in-flight run per key.

  execute(key, fn) while idle      → starts fn now
  execute(key, fn) while running   → fn queued, runs when the current run ends
  execute(key, fn) while queued    → coalesced into the queued run

Requests are never dropped: a request that arrives during a run is always
followed by a complete run that starts after it.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Hashable

import structlog

logger = structlog.get_logger()

Runnable = Callable[[], Awaitable[object]]


class SequentialExecutionQueue:

    def __init__(self):
        self._running: dict[Hashable, asyncio.Task] = {}
        self._pending: dict[Hashable, Runnable] = {}

    def execute(self, key: Hashable, fn: Runnable) -> str:
        """Schedule ``fn`` under ``key``. Returns "started", "queued" or "coalesced"."""
        if key in self._pending:
            logger.debug("sequential_run_coalesced", key=str(key))
            return "coalesced"
        if key in self._running:
            self._pending[key] = fn
            logger.debug("sequential_run_queued", key=str(key))
            return "queued"
        self._running[key] = asyncio.create_task(self._drain(key, fn))
        return "started"

    def is_running(self, key: Hashable) -> bool:
        return key in self._running

    def has_pending(self, key: Hashable) -> bool:
        return key in self._pending

    async def wait_idle(self):
        """Wait until no key has a run in flight or queued."""
        while self._running:
            await asyncio.gather(*list(self._running.values()), return_exceptions=True)

    async def _drain(self, key: Hashable, fn: Runnable):
        try:
            while fn is not None:
                try:
                    await fn()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error("sequential_run_failed",
                                 key=str(key), error=str(e), exc_info=True)
                fn = self._pending.pop(key, None)
        finally:
            self._running.pop(key, None)
            self._pending.pop(key, None)
