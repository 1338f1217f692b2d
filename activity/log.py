"""
Activity Log — append-only record of every trigger outcome.

Operators see what the trigger did only through this log, so it is
exposed for reading (last N lines, full dump) and live tailing. Writes
never raise: a failing sink is reported on the process logger and the
pipeline carries on with the next message.
"""
from __future__ import annotations

import asyncio
import threading
from collections import deque
from pathlib import Path
from typing import AsyncIterator, Optional, Union

import structlog

from models.schemas import ActivityEntry

logger = structlog.get_logger()


class ActivityLog:
    """Line-oriented, append-only activity log backed by a file."""

    def __init__(self, path: Union[str, Path], follow_interval_s: float = 0.5):
        self.path = Path(path)
        self.follow_interval_s = follow_interval_s
        self._lock = threading.Lock()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("activity_log_dir_failed", path=str(self.path), error=str(e))

    # ── Write ─────────────────────────────────────────

    def append(self, entry: Union[ActivityEntry, str]) -> bool:
        """Append one entry. Returns False if the sink failed."""
        if isinstance(entry, str):
            entry = ActivityEntry(kind="message", detail=entry)
        line = entry.render().replace("\n", " ")
        try:
            with self._lock, open(self.path, "a", encoding="utf-8",
                                     errors="backslashreplace") as f:
                f.write(line + "\n")
        except (OSError, UnicodeError) as e:
            logger.error("activity_log_write_failed",
                         path=str(self.path), error=str(e), line=line)
            return False
        return True

    # ── Read ──────────────────────────────────────────

    def read_all(self) -> str:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""

    def tail(self, lines: int = 50) -> list[str]:
        if lines <= 0:
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return [ln.rstrip("\n") for ln in deque(f, maxlen=lines)]
        except FileNotFoundError:
            return []

    def _read_from(self, offset: int) -> tuple[int, str]:
        """Return (new offset, text appended since ``offset``)."""
        try:
            size = self.path.stat().st_size
        except FileNotFoundError:
            return 0, ""
        if size < offset:
            offset = 0  # file replaced
        if size == offset:
            return offset, ""
        with open(self.path, "r", encoding="utf-8", errors="replace") as f:
            f.seek(offset)
            text = f.read()
            return f.tell(), text

    async def follow(self, from_start: bool = False,
                     stop: Optional[asyncio.Event] = None) -> AsyncIterator[str]:
        """Yield lines as they are appended. Runs until ``stop`` is set."""
        offset = 0
        if not from_start:
            offset, _ = await asyncio.to_thread(self._read_from, 0)
        buffer = ""
        while stop is None or not stop.is_set():
            offset, text = await asyncio.to_thread(self._read_from, offset)
            if text:
                buffer += text
                *complete, buffer = buffer.split("\n")
                for line in complete:
                    yield line
                continue
            await asyncio.sleep(self.follow_interval_s)
