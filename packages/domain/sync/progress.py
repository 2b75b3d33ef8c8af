"""
Progress reporting for sync runs

A progress callback receives short human-readable messages at fixed points
of a run (before discovery, before each item's extraction, inference and
persistence, and after the run).
"""
from typing import Callable, List, Optional

import structlog

logger = structlog.get_logger()

ProgressCallback = Callable[[str], None]


class ProgressRecorder:
    """Keeps the messages of one run and mirrors them to the log"""

    def __init__(self, forward: Optional[ProgressCallback] = None):
        self.messages: List[str] = []
        self.forward = forward

    def __call__(self, message: str) -> None:
        self.messages.append(message)
        logger.info("sync_progress", message=message)
        if self.forward is not None:
            self.forward(message)

    @property
    def last(self) -> Optional[str]:
        return self.messages[-1] if self.messages else None
