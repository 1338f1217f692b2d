"""
Job Resolver — maps a target job name to an eligible job handle.

Matching is an exact, case-sensitive comparison against display names;
names are not trimmed or normalized. When several jobs share a display
name the first one in registry order wins.
"""
from __future__ import annotations

from typing import Iterable, Optional

import structlog

from jobs.registry import TRIGGER_KIND, JobHandle
from models.schemas import Eligibility, ResolvedJob

logger = structlog.get_logger()


def classify(handle: JobHandle, trigger_kind: str = TRIGGER_KIND) -> Eligibility:
    if not handle.is_parameterized:
        return Eligibility.NOT_PARAMETERIZED
    if trigger_kind not in handle.triggers:
        return Eligibility.TRIGGER_NOT_CONFIGURED
    return Eligibility.ELIGIBLE


INELIGIBLE_REASONS = {
    Eligibility.NOT_PARAMETERIZED: "not configured as a parameterized job",
    Eligibility.TRIGGER_NOT_CONFIGURED: "not configured to use this trigger",
}


class JobResolver:
    """Resolves job names against a registry snapshot for one trigger kind."""

    def __init__(self, trigger_kind: str = TRIGGER_KIND):
        self.trigger_kind = trigger_kind

    def resolve(self, job_name: str, registry: Iterable[JobHandle]) -> Optional[ResolvedJob]:
        """
        Return the first handle whose display name equals ``job_name``,
        tagged with its eligibility, or None when nothing matches.
        """
        match: Optional[JobHandle] = None
        for handle in registry:
            if handle.display_name != job_name:
                continue
            if match is None:
                match = handle
            else:
                logger.debug("duplicate_job_name", job=job_name)

        if match is None:
            logger.warning("job_not_found", job=job_name)
            return None

        eligibility = classify(match, self.trigger_kind)
        if eligibility != Eligibility.ELIGIBLE:
            logger.warning("job_not_eligible",
                           job=job_name,
                           reason=INELIGIBLE_REASONS[eligibility])

        return ResolvedJob(handle=match, name=match.display_name, eligibility=eligibility)
