"""
Core data models for the SQS job trigger.
These are the value types passed between the normalizer, extractor,
resolver, dispatcher and the activity log.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ──────────────────────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────────────────────

class OutcomeKind(str, Enum):
    DISPATCHED = "dispatched"
    JOB_NOT_FOUND = "job_not_found"
    JOB_NOT_ELIGIBLE = "job_not_eligible"
    ALREADY_QUEUED = "already_queued"
    MALFORMED_PAYLOAD = "malformed_payload"
    DISPATCH_REJECTED = "dispatch_rejected"


class Eligibility(str, Enum):
    ELIGIBLE = "eligible"
    NOT_PARAMETERIZED = "not_parameterized"
    TRIGGER_NOT_CONFIGURED = "trigger_not_configured"


# ──────────────────────────────────────────────────────────────
#  Parameters — typed values handed to the scheduled job
# ──────────────────────────────────────────────────────────────

class StringParam(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["string"] = "string"
    name: str
    value: str

    def __init__(self, name: str = None, value: str = None, **data: Any):
        if name is not None:
            data["name"] = name
        if value is not None:
            data["value"] = value
        super().__init__(**data)


class BoolParam(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["boolean"] = "boolean"
    name: str
    value: bool

    def __init__(self, name: str = None, value: bool = None, **data: Any):
        if name is not None:
            data["name"] = name
        if value is not None:
            data["value"] = value
        super().__init__(**data)


ParameterValue = Annotated[Union[StringParam, BoolParam], Field(discriminator="type")]


# ──────────────────────────────────────────────────────────────
#  Dispatch cause — why a run was launched
# ──────────────────────────────────────────────────────────────

class DispatchCause(BaseModel):
    """
    Correlates a scheduled run with the message that launched it.

    The scheduler deduplicates pending work by equality of its cause, so
    every cause carries its own ``cause_id``; two launches with the same
    description still compare unequal.
    """
    model_config = ConfigDict(frozen=True)

    origin: str = "SQS"
    short_description: str = "Triggered by SQS."
    cause_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = Field(default_factory=utcnow)

    def __str__(self) -> str:
        return f"{self.short_description} [{self.cause_id[:12]}]"


# ──────────────────────────────────────────────────────────────
#  Resolution and outcomes
# ──────────────────────────────────────────────────────────────

class ResolvedJob(BaseModel):
    """A registry match tagged with its eligibility, computed once."""
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    handle: Any
    name: str
    eligibility: Eligibility

    @property
    def is_eligible(self) -> bool:
        return self.eligibility == Eligibility.ELIGIBLE


class DispatchOutcome(BaseModel):
    kind: OutcomeKind
    job_name: Optional[str] = None
    reason: str = ""
    cause_id: Optional[str] = None
    parameters: list[ParameterValue] = []

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.DISPATCHED, OutcomeKind.ALREADY_QUEUED)


class ActivityEntry(BaseModel):
    """One line of the append-only activity log."""
    timestamp: datetime = Field(default_factory=utcnow)
    kind: str
    job_name: Optional[str] = None
    elapsed_ms: Optional[float] = None
    detail: str = ""

    def render(self) -> str:
        parts = [self.timestamp.strftime("%Y-%m-%dT%H:%M:%S.%fZ"), self.kind]
        if self.job_name is not None:
            parts.append(f"job={self.job_name}")
        if self.elapsed_ms is not None:
            parts.append(f"elapsed_ms={self.elapsed_ms:.1f}")
        if self.detail:
            parts.append(f"- {self.detail}")
        return " ".join(parts)
