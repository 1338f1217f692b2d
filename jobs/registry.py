"""
Job Registry — the set of jobs a trigger can launch.

The real registry belongs to the scheduler that runs the jobs; the trigger
only reads a snapshot of it and calls ``submit`` on a handle. This module
defines that interface and an in-memory implementation used in development
and tests.

Scheduler semantics modelled by ``Job``:
  - ``submit`` enqueues a pending item and returns True
  - an item equal (same cause, same parameters) to one already pending is
    refused and ``submit`` returns False (dedup by equality)
  - a disabled job refuses every submission with SubmissionRejectedError
"""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, runtime_checkable

import structlog

from models.schemas import DispatchCause, ParameterValue
from trigger.errors import SubmissionRejectedError

logger = structlog.get_logger()

TRIGGER_KIND = "sqs"


# ──────────────────────────────────────────────────────────────
#  Interfaces
# ──────────────────────────────────────────────────────────────

@runtime_checkable
class PollSource(Protocol):
    def check_for_changes(self) -> bool:
        ...


@runtime_checkable
class JobHandle(Protocol):
    display_name: str
    is_parameterized: bool
    triggers: frozenset[str]

    def submit(self, cause: DispatchCause, parameters: list[ParameterValue]) -> bool:
        ...


class JobRegistry(Protocol):
    def snapshot(self) -> list[JobHandle]:
        ...


# ──────────────────────────────────────────────────────────────
#  In-memory scheduler stand-in
# ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class QueueItem:
    cause: DispatchCause
    parameters: tuple[ParameterValue, ...] = ()


@dataclass(eq=False)
class Job:
    """A schedulable job with its own pending queue."""
    display_name: str
    is_parameterized: bool = True
    triggers: frozenset[str] = frozenset({TRIGGER_KIND})
    disabled: bool = False
    poll_source: Optional[PollSource] = None
    pending: deque = field(default_factory=deque, repr=False)
    submissions: list[QueueItem] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self):
        self.triggers = frozenset(self.triggers)

    def submit(self, cause: DispatchCause, parameters: list[ParameterValue]) -> bool:
        if self.disabled:
            raise SubmissionRejectedError(
                f"Job {self.display_name} is disabled", job_name=self.display_name
            )
        item = QueueItem(cause=cause, parameters=tuple(parameters))
        with self._lock:
            self.submissions.append(item)
            if item in self.pending:
                logger.info("job_submission_deduplicated",
                            job=self.display_name, cause=str(cause))
                return False
            self.pending.append(item)
        logger.info("job_submission_queued",
                    job=self.display_name,
                    cause=str(cause),
                    parameters=len(item.parameters))
        return True

    def start_next(self) -> Optional[QueueItem]:
        """Take the oldest pending item off the queue, as an executor would."""
        with self._lock:
            return self.pending.popleft() if self.pending else None


class InMemoryJobRegistry:
    """
    Thread-safe registry of Job objects.

    Jobs may be added and removed at any time; ``snapshot`` returns a copy
    taken under the lock so a resolver always scans a consistent list.
    """

    def __init__(self, jobs: Iterable[JobHandle] = ()):
        self._jobs: list[JobHandle] = list(jobs)
        self._lock = threading.Lock()

    def add(self, job: JobHandle) -> JobHandle:
        with self._lock:
            self._jobs.append(job)
        logger.info("job_registered", job=job.display_name)
        return job

    def remove(self, name: str) -> int:
        with self._lock:
            before = len(self._jobs)
            self._jobs = [j for j in self._jobs if j.display_name != name]
            removed = before - len(self._jobs)
        if removed:
            logger.info("job_unregistered", job=name, count=removed)
        return removed

    def get(self, name: str) -> Optional[JobHandle]:
        return next((j for j in self.snapshot() if j.display_name == name), None)

    def snapshot(self) -> list[JobHandle]:
        with self._lock:
            return list(self._jobs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
