"""Error hierarchy for the trigger pipeline."""
from __future__ import annotations

from models.schemas import OutcomeKind


class TriggerError(Exception):
    """Base exception for pipeline failures that map to an outcome."""

    kind: OutcomeKind = OutcomeKind.MALFORMED_PAYLOAD

    def __init__(self, message: str, job_name: str = None):
        self.job_name = job_name
        super().__init__(message)


class MalformedPayloadError(TriggerError):
    kind = OutcomeKind.MALFORMED_PAYLOAD


class SubmissionRejectedError(TriggerError):
    """The scheduler refused a submission for a reason other than dedup."""
    kind = OutcomeKind.DISPATCH_REJECTED
