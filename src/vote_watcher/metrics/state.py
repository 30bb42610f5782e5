"""Latest voted height shared between the watcher service and the metrics endpoint."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field


@dataclass(slots=True)
class LatestVoteState:
    """
    Height of the most recent block the monitored validator voted on.

    One writer (the watcher service) and any number of readers (metric scrapes).
    Reads and writes are serialized by a lock, so a reader running in another
    thread sees either the previous or the new height, never a partial update.
    """

    _height: int | None = field(default=None, init=False)
    """Last recorded height, or None before the first vote is seen."""

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    """Guards `_height`."""

    def record(self, height: int) -> None:
        """
        Store a voted height.

        Overwrites unconditionally. A lower height than the current one is
        accepted, so out-of-order delivery moves the value backwards.
        """
        with self._lock:
            self._height = height

    def read(self) -> int | None:
        """Return the last recorded height, or None if no vote was ever recorded."""
        with self._lock:
            return self._height
