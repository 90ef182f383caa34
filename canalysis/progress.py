"""
canalysis.progress
==================

Advisory progress reporting for a read.

A read is split into weighted subtasks (one per file family, weights taken
from :class:`~canalysis.records.Family`); each subtask is further split into
equal steps, one per file.  Progress never affects the result of a read.
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

_log = logging.getLogger(__name__)

Listener = Callable[[float, str], None]


class Subtask:
    """A weighted slice of the overall progress, advanced in equal steps."""

    def __init__(self, tracker: "ProgressTracker", weight: float, label: str,
                 steps: int = 1) -> None:
        self.tracker = tracker
        self.weight = weight
        self.label = label
        self.steps = max(steps, 1)
        self.reported = 0.0

    def advance(self, count: int = 1) -> None:
        amount = min(self.weight * count / self.steps, self.weight - self.reported)
        if amount > 0:
            self.reported += amount
            self.tracker.add_progress(amount, self.label)

    def finish(self) -> None:
        remaining = self.weight - self.reported
        if remaining > 0:
            self.reported = self.weight
            self.tracker.add_progress(remaining, self.label)


class ProgressTracker:
    """Accumulates progress up to *total*.

    *listener*, when given, is called with ``(done, label)`` after every
    increment.
    """

    def __init__(self, total: float = 100.0, listener: Optional[Listener] = None) -> None:
        self.total = total
        self.listener = listener
        self._done = 0.0
        self._lock = threading.Lock()

    @property
    def done(self) -> float:
        return self._done

    @property
    def fraction(self) -> float:
        return min(self._done / self.total, 1.0) if self.total else 1.0

    def add_progress(self, amount: float, label: str = "") -> None:
        with self._lock:
            self._done = min(self._done + amount, self.total)
            done = self._done
        if self.listener is not None:
            self.listener(done, label)

    @contextmanager
    def subtask(self, weight: float, label: str, steps: int = 1) -> Iterator[Subtask]:
        """Run a block as a subtask; unreported steps are credited on exit."""
        task = Subtask(self, weight, label, steps)
        started = time.perf_counter()
        _log.debug("%s: started", label)
        try:
            yield task
        finally:
            task.finish()
            _log.info("%s: done in %.2fs (%.0f%%)", label,
                      time.perf_counter() - started, self.fraction * 100)
