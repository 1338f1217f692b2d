"""Poll sources — things a PollingTrigger can check for changes."""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional, Union

import structlog

logger = structlog.get_logger()


class FileChangeSource:
    """
    Reports a change when the watched file's content differs from the last
    check. The first check after start-up counts as a change if the file exists.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._last_digest: Optional[str] = None

    def _digest(self) -> Optional[str]:
        try:
            return hashlib.sha256(self.path.read_bytes()).hexdigest()
        except FileNotFoundError:
            return None

    def check_for_changes(self) -> bool:
        digest = self._digest()
        changed = digest is not None and digest != self._last_digest
        self._last_digest = digest
        if changed:
            logger.debug("poll_source_changed", path=str(self.path))
        return changed
