"""Tests for queue transports and the trigger consumer."""
import asyncio
import json
from unittest.mock import MagicMock

import pytest

from conftest import envelope
from job_queue.consumer import TriggerConsumer
from job_queue.message_queue import (
    InMemoryMessageQueue, QueueMessage, SqsMessageQueue, create_message_queue,
)
from models.schemas import DispatchOutcome, OutcomeKind


class TestInMemoryMessageQueue:
    @pytest.mark.asyncio
    async def test_publish_receive_delete(self):
        queue = InMemoryMessageQueue()
        await queue.publish('{"job": "deploy"}')
        [msg] = await queue.receive(wait_seconds=1)
        assert msg.body == '{"job": "deploy"}'
        assert queue.inflight_count == 1
        await queue.delete(msg)
        assert queue.inflight_count == 0
        assert queue.deleted == [msg]

    @pytest.mark.asyncio
    async def test_receive_timeout(self):
        assert await InMemoryMessageQueue().receive(wait_seconds=0.01) == []

    @pytest.mark.asyncio
    async def test_batch_limit(self):
        queue = InMemoryMessageQueue()
        for i in range(5):
            await queue.publish(f'{{"job": "j{i}"}}')
        batch = await queue.receive(max_messages=3, wait_seconds=1)
        assert len(batch) == 3
        assert await queue.queue_length() == 2

    @pytest.mark.asyncio
    async def test_requeue_inflight(self):
        queue = InMemoryMessageQueue()
        await queue.publish("x")
        await queue.receive(wait_seconds=1)
        assert await queue.requeue_inflight() == 1
        assert await queue.queue_length() == 1


class TestSqsMessageQueue:
    @pytest.mark.asyncio
    async def test_receive_maps_messages(self):
        client = MagicMock()
        client.receive_message.return_value = {"Messages": [
            {"Body": '{"job": "deploy"}', "ReceiptHandle": "rh-1", "MessageId": "m-1"},
        ]}
        queue = SqsMessageQueue(client, "https://sqs.us-east-1.amazonaws.com/1/q")
        [msg] = await queue.receive(max_messages=25, wait_seconds=60)
        assert msg.receipt_handle == "rh-1"
        assert msg.message_id == "m-1"
        client.receive_message.assert_called_once_with(
            QueueUrl="https://sqs.us-east-1.amazonaws.com/1/q",
            MaxNumberOfMessages=10,
            WaitTimeSeconds=20,
        )

    @pytest.mark.asyncio
    async def test_empty_receive(self):
        client = MagicMock()
        client.receive_message.return_value = {}
        assert await SqsMessageQueue(client, "u").receive() == []

    @pytest.mark.asyncio
    async def test_delete(self):
        client = MagicMock()
        queue = SqsMessageQueue(client, "u")
        await queue.delete(QueueMessage(body="", receipt_handle="rh-9"))
        client.delete_message.assert_called_once_with(QueueUrl="u", ReceiptHandle="rh-9")

    def test_factory(self):
        profile = MagicMock()
        profile.queue_url.return_value = "u"
        queue = create_message_queue("sqs", profile)
        assert isinstance(queue, SqsMessageQueue)
        assert queue.queue_url == "u"
        assert isinstance(create_message_queue("memory"), InMemoryMessageQueue)

    def test_factory_requires_profile(self):
        with pytest.raises(ValueError):
            create_message_queue("sqs")


class TestTriggerConsumer:
    @pytest.mark.asyncio
    async def test_dispatches_and_deletes(self, processor, deploy_job, deploy_payload):
        queue = InMemoryMessageQueue()
        await queue.publish(json.dumps(deploy_payload))
        await queue.publish(envelope(deploy_payload, quoted=True))
        consumer = TriggerConsumer(processor, queue, wait_seconds=1)

        assert await consumer.poll_once() == 2
        assert len(deploy_job.submissions) == 2
        assert len(queue.deleted) == 2
        assert consumer.stats == {"received": 2, "processed": 2, "errors": 0}

    @pytest.mark.asyncio
    async def test_malformed_message_is_deleted(self, processor, deploy_job):
        queue = InMemoryMessageQueue()
        await queue.publish("<<not json>>")
        await queue.publish('{"job": "missing"}')
        consumer = TriggerConsumer(processor, queue, wait_seconds=1)
        await consumer.poll_once()
        assert len(queue.deleted) == 2
        assert queue.inflight_count == 0
        assert deploy_job.submissions == []

    @pytest.mark.asyncio
    async def test_exception_leaves_message_for_redelivery(self):
        processor = MagicMock()
        processor.trigger.side_effect = RuntimeError("scheduler down")
        queue = InMemoryMessageQueue()
        await queue.publish('{"job": "deploy"}')
        consumer = TriggerConsumer(processor, queue, wait_seconds=1)
        await consumer.poll_once()
        assert queue.deleted == []
        assert queue.inflight_count == 1
        assert consumer.stats["errors"] == 1

    @pytest.mark.asyncio
    async def test_empty_poll(self, processor):
        consumer = TriggerConsumer(processor, InMemoryMessageQueue(), wait_seconds=0.01)
        assert await consumer.poll_once() == 0

    @pytest.mark.asyncio
    async def test_background_loop(self, processor, deploy_job):
        queue = InMemoryMessageQueue()
        consumer = TriggerConsumer(processor, queue, wait_seconds=0.05)
        await consumer.start_background()
        await queue.publish('{"job": "deploy"}')
        for _ in range(100):
            if queue.deleted:
                break
            await asyncio.sleep(0.01)
        await consumer.stop()
        assert len(deploy_job.submissions) == 1

    @pytest.mark.asyncio
    async def test_uses_returned_outcome(self):
        processor = MagicMock()
        processor.trigger.return_value = DispatchOutcome(kind=OutcomeKind.ALREADY_QUEUED,
                                                         job_name="deploy")
        queue = InMemoryMessageQueue()
        await queue.publish('{"job": "deploy"}')
        await TriggerConsumer(processor, queue, wait_seconds=1).poll_once()
        processor.trigger.assert_called_once_with('{"job": "deploy"}')
        assert len(queue.deleted) == 1
