"""
Polling Trigger — re-checks a job's data source and launches it on change.

Independent of the message pipeline but sharing its Dispatcher. Each run
writes a fresh progress record to ``<log_dir>/<job>/sqs-polling.log``:

    Started on 2026-10-18 09:30:01
    Done. Took 0.41 sec
    Changes found
    Job queued

Runs for the same job go through a SequentialExecutionQueue so two polls of
one association never overlap.
"""
from __future__ import annotations

import asyncio
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import structlog

from jobs.registry import Job, PollSource
from models.schemas import OutcomeKind
from polling.sequential import SequentialExecutionQueue
from trigger.dispatcher import Dispatcher

logger = structlog.get_logger()

POLLING_LOG_NAME = "sqs-polling.log"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def is_safe_path_segment(name: str) -> bool:
    return bool(name) and name not in (".", "..") and not any(c in name for c in "/\\\0")


def format_time_span(ms: float) -> str:
    if ms < 1000:
        return f"{int(ms)} ms"
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.2f} sec"
    minutes, seconds = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes} min {seconds} sec"
    hours, minutes = divmod(minutes, 60)
    return f"{hours} hr {minutes} min"


class PollingTrigger:
    """Poll-and-maybe-dispatch for a single job."""

    def __init__(
        self,
        job: Job,
        dispatcher: Dispatcher,
        queue: SequentialExecutionQueue,
        log_dir: Union[str, Path] = "./data/jobs",
        source: Optional[PollSource] = None,
    ):
        self.job = job
        self.dispatcher = dispatcher
        self.queue = queue
        self.source = source or job.poll_source
        if self.source is None:
            raise ValueError(f"Job {job.display_name} has no poll source")
        if not is_safe_path_segment(job.display_name):
            raise ValueError(f"Job name {job.display_name!r} cannot be used as a log directory")
        self.log_file = Path(log_dir) / job.display_name / POLLING_LOG_NAME

    def on_post(self) -> str:
        """Schedule a poll cycle; see SequentialExecutionQueue.execute."""
        return self.queue.execute(self.job.display_name, self._run_async)

    async def _run_async(self):
        await asyncio.to_thread(self.run)

    def run(self) -> Optional[OutcomeKind]:
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, "w", encoding="utf-8") as record:
                return self._poll(record)
        except OSError as e:
            logger.error("polling_log_failed",
                         job=self.job.display_name, path=str(self.log_file), error=str(e))
            return None

    def _poll(self, record) -> Optional[OutcomeKind]:
        def emit(line: str):
            record.write(line + "\n")
            record.flush()

        start = time.monotonic()
        started_at = datetime.now().strftime(TIMESTAMP_FORMAT)
        emit(f"Started on {started_at}")
        has_changes = self.source.check_for_changes()
        emit(f"Done. Took {format_time_span((time.monotonic() - start) * 1000)}")

        if not has_changes:
            emit("No changes")
            return None

        emit("Changes found")
        outcome = self.dispatcher.dispatch(
            self.job, [], reason=f"SQS poll initiated on {started_at}"
        )
        if outcome.kind == OutcomeKind.DISPATCHED:
            emit("Job queued")
        elif outcome.kind == OutcomeKind.ALREADY_QUEUED:
            emit("Job NOT queued - it was determined that this job has been queued already.")
        else:
            emit(f"Job NOT queued - {outcome.reason}")
        logger.info("poll_cycle_complete",
                    job=self.job.display_name, outcome=outcome.kind.value)
        return outcome.kind


class PollingActivity:
    """Read-only view of a job's last polling record."""

    display_name = "SQS Activity Log"
    url_name = "SQSActivityLog"

    def __init__(self, trigger: PollingTrigger):
        self.trigger = trigger

    @property
    def owner(self) -> Job:
        return self.trigger.job

    def get_log(self) -> str:
        try:
            return self.trigger.log_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
