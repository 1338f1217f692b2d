"""
Trigger Processor — the single entry point for inbound queue messages.

Pipeline per message:
    normalize → require "job" → extract parameters → resolve → dispatch

  Received ─▶ Normalized ─▶ Validated ─▶ Resolved ─▶ Dispatched
      │            │                        │         AlreadyQueued
      └────────────┴─▶ MalformedPayload     │         DispatchRejected
                                            ├─▶ JobNotFound
                                            └─▶ JobNotEligible

Every outcome is returned to the caller and appended to the activity log.
None of them raise: the caller is a queue consumer that must go on to the
next message. The pipeline runs as the SYSTEM identity and restores the
caller's identity on every exit path.
"""
from __future__ import annotations

import abc
import time
from typing import Optional, Union

import structlog

from activity.log import ActivityLog
from jobs.registry import TRIGGER_KIND, JobRegistry
from models.schemas import ActivityEntry, DispatchOutcome, OutcomeKind
from security.context import SYSTEM, run_as
from trigger.dispatcher import Dispatcher
from trigger.errors import MalformedPayloadError
from trigger.normalizer import normalize
from trigger.parameters import extract_parameters
from trigger.resolver import INELIGIBLE_REASONS, JobResolver

logger = structlog.get_logger()


class BaseTriggerProcessor(abc.ABC):
    """Processes a payload to decide which job to trigger."""

    @abc.abstractmethod
    def trigger(self, payload: Union[str, bytes]) -> DispatchOutcome:
        ...


class TriggerProcessor(BaseTriggerProcessor):

    def __init__(
        self,
        registry: JobRegistry,
        activity_log: Optional[ActivityLog] = None,
        dispatcher: Optional[Dispatcher] = None,
        resolver: Optional[JobResolver] = None,
        trigger_kind: str = TRIGGER_KIND,
    ):
        self.registry = registry
        self.activity_log = activity_log
        self.dispatcher = dispatcher or Dispatcher()
        self.resolver = resolver or JobResolver(trigger_kind)

    def trigger(self, payload: Union[str, bytes]) -> DispatchOutcome:
        started = time.monotonic()
        try:
            with run_as(SYSTEM):
                outcome = self._process(payload)
        except Exception as e:
            logger.error("trigger_pipeline_error", error=str(e), exc_info=True)
            raise
        self._record(outcome, started)
        return outcome

    def _process(self, payload: Union[str, bytes]) -> DispatchOutcome:
        try:
            canonical = normalize(payload)
        except MalformedPayloadError as e:
            logger.warning("payload_malformed", error=str(e))
            return DispatchOutcome(kind=OutcomeKind.MALFORMED_PAYLOAD, reason=str(e))

        job_name = canonical.get("job")
        if not isinstance(job_name, str) or not job_name:
            logger.warning("payload_missing_job",
                           detail="Sqs message payload does not contain information "
                                  "about which job to trigger.")
            return DispatchOutcome(
                kind=OutcomeKind.MALFORMED_PAYLOAD,
                reason="payload has no 'job' field",
            )

        parameters = extract_parameters(canonical)

        resolved = self.resolver.resolve(job_name, self.registry.snapshot())
        if resolved is None:
            return DispatchOutcome(
                kind=OutcomeKind.JOB_NOT_FOUND,
                job_name=job_name,
                reason=f"no job named {job_name}",
                parameters=parameters,
            )
        if not resolved.is_eligible:
            return DispatchOutcome(
                kind=OutcomeKind.JOB_NOT_ELIGIBLE,
                job_name=resolved.name,
                reason=f"The job {resolved.name} is "
                       f"{INELIGIBLE_REASONS[resolved.eligibility]}.",
                parameters=parameters,
            )

        return self.dispatcher.dispatch(resolved.handle, parameters)

    def _record(self, outcome: DispatchOutcome, started: float):
        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info("trigger_processed",
                    outcome=outcome.kind.value,
                    job=outcome.job_name,
                    elapsed_ms=round(elapsed_ms, 1))
        if self.activity_log is None:
            return
        self.activity_log.append(ActivityEntry(
            kind=outcome.kind.value,
            job_name=outcome.job_name,
            elapsed_ms=elapsed_ms,
            detail=outcome.reason,
        ))
