"""Stage tracking and buffered output for a destroy run.

The StageLog records which stage the run is in and buffers the lines that
downstream consumers read once the run finishes. The "EOF" sentinel marks
the end of that stream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

EOF_SENTINEL = "EOF"


@dataclass
class StageLog:
    """Current stage plus buffered (level, message) output records."""

    stage: str = ""
    entries: list[tuple[int, str]] = field(default_factory=list)

    def set_stage(self, stage: str) -> None:
        """Move to a new stage."""
        logger.debug("Stage: %s", stage)
        self.stage = stage

    def add_to_buffer(self, level: int, message: str) -> None:
        """Buffer a line for downstream consumers."""
        self.entries.append((level, message))

    def close(self) -> None:
        """Signal the end of the output stream."""
        self.add_to_buffer(logging.INFO, EOF_SENTINEL)

    @property
    def closed(self) -> bool:
        return any(message == EOF_SENTINEL for _, message in self.entries)


__all__ = ["EOF_SENTINEL", "StageLog"]
