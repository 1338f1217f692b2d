"""
Runtime — wires configuration into live components.

  Settings ─▶ JobRegistry (jobs from config)
           ─▶ ActivityLog
           ─▶ SqsProfile per configured queue (boto3 client built here, once)
           ─▶ TriggerProcessor + TriggerConsumer per profile
           ─▶ PollingTrigger per job with a poll source + PollingScheduler

With ``queue_backend: memory`` (the default) a single in-memory queue
stands in for SQS so the service runs without AWS credentials.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import structlog

from activity.log import ActivityLog
from config.settings import Settings
from job_queue.consumer import TriggerConsumer
from job_queue.message_queue import InMemoryMessageQueue, MessageQueue, create_message_queue
from jobs.registry import InMemoryJobRegistry, Job
from polling.scheduler import PollingScheduler
from polling.sequential import SequentialExecutionQueue
from polling.sources import FileChangeSource
from polling.trigger import PollingActivity, PollingTrigger
from profiles.sqs_profile import SqsProfile
from trigger.dispatcher import Dispatcher
from trigger.processor import TriggerProcessor

logger = structlog.get_logger()


@dataclass
class Runtime:
    settings: Settings
    registry: InMemoryJobRegistry
    activity_log: ActivityLog
    processor: TriggerProcessor
    dispatcher: Dispatcher
    profiles: list[SqsProfile] = field(default_factory=list)
    queues: list[MessageQueue] = field(default_factory=list)
    consumers: list[TriggerConsumer] = field(default_factory=list)
    polling_triggers: dict[str, PollingTrigger] = field(default_factory=dict)
    polling_queue: SequentialExecutionQueue = field(default_factory=SequentialExecutionQueue)
    scheduler: Optional[PollingScheduler] = None

    def polling_activity(self, job_name: str) -> Optional[PollingActivity]:
        trigger = self.polling_triggers.get(job_name)
        return PollingActivity(trigger) if trigger else None

    async def start(self):
        for consumer in self.consumers:
            await consumer.start_background()
        if self.scheduler:
            await self.scheduler.start()
        logger.info("runtime_started",
                    consumers=len(self.consumers),
                    polling_jobs=len(self.polling_triggers))

    async def stop(self):
        if self.scheduler:
            await self.scheduler.stop()
        for consumer in self.consumers:
            await consumer.stop()
        await self.polling_queue.wait_idle()
        for queue in self.queues:
            await queue.close()
        logger.info("runtime_stopped")


def build_registry(settings: Settings) -> InMemoryJobRegistry:
    registry = InMemoryJobRegistry()
    for jc in settings.jobs:
        registry.add(Job(
            display_name=jc.name,
            is_parameterized=jc.parameterized,
            triggers=frozenset(jc.triggers),
            disabled=jc.disabled,
            poll_source=FileChangeSource(jc.poll_path) if jc.poll_path else None,
        ))
    return registry


def build_runtime(settings: Settings, registry: InMemoryJobRegistry = None) -> Runtime:
    registry = registry or build_registry(settings)
    activity_log = ActivityLog(
        settings.activity.log_path,
        follow_interval_s=settings.activity.follow_interval_seconds,
    )
    dispatcher = Dispatcher()
    processor = TriggerProcessor(
        registry, activity_log, dispatcher=dispatcher, trigger_kind=settings.trigger_kind
    )
    runtime = Runtime(
        settings=settings,
        registry=registry,
        activity_log=activity_log,
        processor=processor,
        dispatcher=dispatcher,
    )

    if settings.queue_backend == "sqs":
        for pc in settings.profiles:
            profile = SqsProfile(pc.access_key_id, pc.secret_access_key, pc.sqs_queue, pc.region)
            runtime.profiles.append(profile)
            runtime.queues.append(create_message_queue("sqs", profile))
    else:
        runtime.queues.append(InMemoryMessageQueue())

    cc = settings.consumer
    for queue in runtime.queues:
        runtime.consumers.append(TriggerConsumer(
            processor, queue,
            max_messages=cc.max_messages,
            wait_seconds=cc.wait_seconds,
            concurrency=cc.concurrency,
            idle_sleep_s=cc.idle_sleep_seconds,
        ))

    for job in registry.snapshot():
        if isinstance(job, Job) and job.poll_source is not None:
            runtime.polling_triggers[job.display_name] = PollingTrigger(
                job, dispatcher, runtime.polling_queue,
                log_dir=settings.activity.polling_log_dir,
            )
    if settings.polling.enabled and runtime.polling_triggers:
        runtime.scheduler = PollingScheduler(
            list(runtime.polling_triggers.values()),
            interval_s=settings.polling.interval_seconds,
        )

    return runtime
