"""Progress and timing tracker for a scan run.

Records named checkpoints relative to the start of a run, forwards batch
progress to listeners and counts retry activity. Purely observational:
nothing here feeds back into scheduling, and a failing listener never breaks
the pipeline.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ledgerscan.domain.events.scan_events import BatchCompleted, DomainEvent, LookupExhausted, RetryScheduled

logger = logging.getLogger(__name__)

ProgressListener = Callable[[BatchCompleted], None]


@dataclass
class RetryCounts:
    """Retry activity observed during a run.

    Attributes:
        scheduled: Retries waited for after a transient failure.
        exhausted: Lookups that failed on their final attempt.
    """

    scheduled: int = 0
    exhausted: int = 0


class PerformanceTracker:
    """Collects timing checkpoints, batch progress and retry counts."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter, log_progress: bool = True):
        """Initializes the tracker.

        Args:
            clock: Monotonic clock returning seconds (injectable for tests).
            log_progress: Whether batch progress is written to the log.
        """
        self._clock = clock
        self.log_progress = log_progress
        self._start_time: Optional[float] = None
        self._checkpoints: Dict[str, float] = {}
        self._retries = RetryCounts()
        self._listeners: List[ProgressListener] = []

    def start(self) -> None:
        """Starts (or restarts) the run clock and clears previous observations."""
        self._start_time = self._clock()
        self._checkpoints = {}
        self._retries = RetryCounts()

    def _elapsed(self) -> float:
        if self._start_time is None:
            self.start()
        return self._clock() - self._start_time

    def checkpoint(self, name: str) -> float:
        """Records `name` at the current elapsed time and returns that time in seconds."""
        elapsed = self._elapsed()
        self._checkpoints[name] = elapsed
        logger.debug(f"Checkpoint '{name}' at {elapsed:.2f}s")
        return elapsed

    @property
    def checkpoints(self) -> Dict[str, float]:
        """Checkpoint name mapped to seconds since start, in recording order."""
        return dict(self._checkpoints)

    @property
    def retries(self) -> RetryCounts:
        return RetryCounts(self._retries.scheduled, self._retries.exhausted)

    def total_time(self) -> float:
        """Seconds elapsed since start."""
        return self._elapsed()

    def subscribe(self, listener: ProgressListener) -> None:
        """Registers a callback invoked for every recorded batch."""
        self._listeners.append(listener)

    def record_batch(self, event: BatchCompleted) -> None:
        """Logs a batch progress observation and notifies listeners."""
        if self.log_progress:
            logger.info(
                f"{event.stage} progress: {event.progress_pct:.1f}% "
                f"({event.valid} valid/{event.processed} processed/{event.total} total)"
            )
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Progress listener failed: {e}", exc_info=True)

    def record_retry_event(self, event: DomainEvent) -> None:
        """Counts RetryScheduled and LookupExhausted events from the retry policies."""
        if isinstance(event, RetryScheduled):
            self._retries.scheduled += 1
        elif isinstance(event, LookupExhausted):
            self._retries.exhausted += 1
