"""
Dispatcher — submits a resolved job to the scheduler.

Every call builds a new DispatchCause. The scheduler refuses a submission
that equals one already pending, so a cause shared between two launches
would silently swallow the second; the per-call ``cause_id`` prevents that.
"""
from __future__ import annotations

from typing import Callable, Optional

import structlog

from jobs.registry import JobHandle
from models.schemas import DispatchCause, DispatchOutcome, OutcomeKind, ParameterValue
from trigger.errors import SubmissionRejectedError

logger = structlog.get_logger()

DEFAULT_REASON = "Triggered by SQS."

CauseFactory = Callable[[str], DispatchCause]


def new_cause(reason: str = DEFAULT_REASON) -> DispatchCause:
    return DispatchCause(origin="SQS", short_description=reason)


class Dispatcher:

    def __init__(self, cause_factory: Optional[CauseFactory] = None):
        self._cause_factory = cause_factory or new_cause

    def dispatch(
        self,
        job: JobHandle,
        parameters: list[ParameterValue],
        reason: str = DEFAULT_REASON,
    ) -> DispatchOutcome:
        cause = self._cause_factory(reason)
        name = job.display_name
        params = list(parameters)

        try:
            accepted = job.submit(cause, params)
        except SubmissionRejectedError as e:
            logger.warning("job_dispatch_rejected", job=name, reason=str(e))
            return DispatchOutcome(
                kind=OutcomeKind.DISPATCH_REJECTED,
                job_name=name,
                reason=f"Unable to schedule the job {name}: {e}",
                cause_id=cause.cause_id,
                parameters=params,
            )

        if not accepted:
            logger.info("job_already_queued", job=name, cause=str(cause))
            return DispatchOutcome(
                kind=OutcomeKind.ALREADY_QUEUED,
                job_name=name,
                reason="it was determined that this job has been queued already",
                cause_id=cause.cause_id,
                parameters=params,
            )

        logger.info("job_dispatched",
                    job=name,
                    cause=str(cause),
                    parameters=[p.name for p in params])
        return DispatchOutcome(
            kind=OutcomeKind.DISPATCHED,
            job_name=name,
            reason=reason,
            cause_id=cause.cause_id,
            parameters=params,
        )
