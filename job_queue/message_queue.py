"""
Message Queue — Abstract interface with SQS and in-memory backends.

The transport only has to hand over message bodies and delete them once the
trigger has produced an outcome. Anything not deleted is redelivered by the
queue after its visibility timeout; that is the only retry mechanism.

Message Schema (body):
  bare:       {"job": "<name>", "parameters": [{"name", "type", "value"}, ...]}
  enveloped:  {"Type": "Notification", "Message": "<bare form as JSON string>"}
"""
from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

logger = structlog.get_logger()


# ──────────────────────────────────────────────────────────────
#  Message Model
# ──────────────────────────────────────────────────────────────

@dataclass
class QueueMessage:
    """A message received from the queue."""
    body: str
    receipt_handle: str = ""
    message_id: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.message_id:
            self.message_id = f"msg_{uuid.uuid4().hex[:12]}"
        if not self.receipt_handle:
            self.receipt_handle = self.message_id


# ──────────────────────────────────────────────────────────────
#  Abstract Interface
# ──────────────────────────────────────────────────────────────

class MessageQueue(ABC):
    """Abstract message queue interface."""

    @abstractmethod
    async def receive(self, max_messages: int = 10, wait_seconds: int = 20) -> list[QueueMessage]:
        """Long-poll for up to ``max_messages`` messages."""
        ...

    @abstractmethod
    async def delete(self, message: QueueMessage):
        """Remove a processed message from the queue."""
        ...

    @abstractmethod
    async def close(self):
        """Gracefully shut down."""
        ...


# ──────────────────────────────────────────────────────────────
#  SQS Implementation
# ──────────────────────────────────────────────────────────────

class SqsMessageQueue(MessageQueue):
    """
    Production queue backed by Amazon SQS.

    boto3 is synchronous, so each call runs in a worker thread.
    """

    def __init__(self, client, queue_url: str):
        self._client = client
        self.queue_url = queue_url

    async def receive(self, max_messages: int = 10, wait_seconds: int = 20) -> list[QueueMessage]:
        resp = await asyncio.to_thread(
            self._client.receive_message,
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=max(1, min(max_messages, 10)),
            WaitTimeSeconds=max(0, min(wait_seconds, 20)),
        )
        messages = [
            QueueMessage(
                body=m.get("Body", ""),
                receipt_handle=m["ReceiptHandle"],
                message_id=m.get("MessageId", ""),
                attributes=m.get("Attributes", {}),
            )
            for m in resp.get("Messages", [])
        ]
        if messages:
            logger.debug("sqs_messages_received", queue=self.queue_url, count=len(messages))
        return messages

    async def delete(self, message: QueueMessage):
        await asyncio.to_thread(
            self._client.delete_message,
            QueueUrl=self.queue_url,
            ReceiptHandle=message.receipt_handle,
        )
        logger.debug("sqs_message_deleted", message_id=message.message_id)

    async def close(self):
        close = getattr(self._client, "close", None)
        if close:
            close()


# ──────────────────────────────────────────────────────────────
#  In-Memory Implementation (Development)
# ──────────────────────────────────────────────────────────────

class InMemoryMessageQueue(MessageQueue):
    """
    Development/test queue backed by asyncio primitives.
    Received messages stay in flight until deleted; ``requeue_inflight``
    simulates a visibility timeout expiring.
    """

    def __init__(self):
        self._queue: asyncio.Queue[QueueMessage] = asyncio.Queue()
        self._inflight: dict[str, QueueMessage] = {}
        self.deleted: list[QueueMessage] = []

    async def publish(self, body: str) -> QueueMessage:
        message = QueueMessage(body=body)
        await self._queue.put(message)
        logger.info("message_published", message_id=message.message_id)
        return message

    async def receive(self, max_messages: int = 10, wait_seconds: int = 20) -> list[QueueMessage]:
        try:
            first = await asyncio.wait_for(self._queue.get(), timeout=wait_seconds)
        except asyncio.TimeoutError:
            return []
        batch = [first]
        while len(batch) < max_messages and not self._queue.empty():
            batch.append(self._queue.get_nowait())
        for m in batch:
            self._inflight[m.receipt_handle] = m
        return batch

    async def delete(self, message: QueueMessage):
        if self._inflight.pop(message.receipt_handle, None) is not None:
            self.deleted.append(message)

    async def requeue_inflight(self) -> int:
        inflight = list(self._inflight.values())
        self._inflight.clear()
        for m in inflight:
            await self._queue.put(m)
        return len(inflight)

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def queue_length(self) -> int:
        return self._queue.qsize()

    async def close(self):
        pass


# ──────────────────────────────────────────────────────────────
#  Factory
# ──────────────────────────────────────────────────────────────

def create_message_queue(backend: str = "memory", profile=None) -> MessageQueue:
    """Factory: create the queue backend for a profile."""
    if backend == "sqs":
        if profile is None:
            raise ValueError("sqs backend requires a profile")
        return SqsMessageQueue(profile.client, profile.queue_url())
    return InMemoryMessageQueue()
