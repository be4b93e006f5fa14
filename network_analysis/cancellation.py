"""
Cooperative cancellation for long-running graph computations.

The graph algorithms run in a worker thread, so they cannot be interrupted by
the event loop. Instead they call ``AnalysisDeadline.check`` at well-defined
points (once per PageRank iteration, once per community pass and once per DFS
branch) and stop by raising ``AnalysisCancelledError``.
"""

import threading
import time
from typing import Callable, Optional

from network_analysis.exceptions import AnalysisCancelledError


class AnalysisDeadline:
    """Deadline plus explicit cancellation flag shared with a worker thread."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got: {timeout_seconds}")
        self._clock = clock
        self._expires_at = None if timeout_seconds is None else clock() + timeout_seconds
        self._cancelled = threading.Event()

    @classmethod
    def unbounded(cls) -> "AnalysisDeadline":
        return cls(timeout_seconds=None)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self, stage: str) -> None:
        """Raise AnalysisCancelledError if the analysis must stop."""
        if self._cancelled.is_set():
            raise AnalysisCancelledError(f"Analysis cancelled during {stage}", stage)
        if self.expired:
            raise AnalysisCancelledError(f"Analysis deadline exceeded during {stage}", stage)
