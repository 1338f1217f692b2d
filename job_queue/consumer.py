"""
Queue Consumer — pulls messages from a queue and runs them through the
trigger processor.

Delete policy:
  - trigger() returned any outcome (including malformed) → delete the message
  - trigger() raised                                      → leave it; the queue
                                                            redelivers it later

Topology:
  ┌──────────────┐       ┌──────────────┐       ┌───────────────────┐
  │ SNS / client │──pub──▶│  SQS queue   │──────▶│  TriggerConsumer  │
  └──────────────┘       └──────────────┘       └─────────┬─────────┘
                                                          │ trigger(body)
                                                          ▼
                                                ┌───────────────────┐
                                                │ TriggerProcessor  │──▶ job.submit
                                                └───────────────────┘
"""
from __future__ import annotations

import asyncio
from typing import Optional

import structlog

from job_queue.message_queue import MessageQueue, QueueMessage
from trigger.processor import BaseTriggerProcessor

logger = structlog.get_logger()


class TriggerConsumer:
    """
    Consumes messages from one queue.

    Usage:
        consumer = TriggerConsumer(processor, queue)
        await consumer.start()              # blocks, runs until stop()
        await consumer.start_background()   # returns immediately, runs as task
        await consumer.stop()
    """

    def __init__(
        self,
        processor: BaseTriggerProcessor,
        queue: MessageQueue,
        max_messages: int = 10,
        wait_seconds: int = 20,
        concurrency: int = 4,
        idle_sleep_s: float = 1.0,
    ):
        self.processor = processor
        self.queue = queue
        self.max_messages = max_messages
        self.wait_seconds = wait_seconds
        self.concurrency = concurrency
        self.idle_sleep_s = idle_sleep_s
        self._semaphore = asyncio.Semaphore(concurrency)
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self.stats = {"received": 0, "processed": 0, "errors": 0}

    async def start(self):
        """Start consuming — blocks until stop() is called."""
        self._running = True
        logger.info("trigger_consumer_starting", concurrency=self.concurrency)
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("consumer_error", error=str(e))
                await asyncio.sleep(self.idle_sleep_s)

    async def start_background(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.start())
        return self._task

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("trigger_consumer_stopped", **self.stats)

    async def poll_once(self) -> int:
        """Receive one batch and process it. Returns the batch size."""
        messages = await self.queue.receive(self.max_messages, self.wait_seconds)
        if not messages:
            return 0
        self.stats["received"] += len(messages)
        await asyncio.gather(*(self._handle_message(m) for m in messages))
        return len(messages)

    async def _handle_message(self, message: QueueMessage):
        async with self._semaphore:
            try:
                outcome = await asyncio.to_thread(self.processor.trigger, message.body)
            except Exception as e:
                self.stats["errors"] += 1
                logger.error("message_processing_error",
                             message_id=message.message_id,
                             error=str(e))
                return

            self.stats["processed"] += 1
            logger.info("message_processed",
                        message_id=message.message_id,
                        outcome=outcome.kind.value,
                        job=outcome.job_name)
            await self.queue.delete(message)
