"""Domain Events related to batched retrieval and resilience.

Emitted for observability only: when a batch completes, when a retry is
scheduled and when a lookup exhausts its attempts. Consumers must never
influence control flow through them.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class BatchCompleted(DomainEvent):
    """Event triggered after every item of a batch has finished."""
    stage: str  # e.g., 'holders', 'balances'
    batch_index: int  # zero-based
    batch_count: int
    processed: int  # items processed so far in the stage
    valid: int  # processed items that resolved to a value
    total: int
    skipped: int = 0
    failed: int = 0
    timestamp: float = field(default_factory=time.time)

    @property
    def progress_pct(self) -> float:
        """Percentage of the stage processed so far."""
        if self.total == 0:
            return 100.0
        return self.processed / self.total * 100


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a failed lookup will be retried after a delay."""
    description: str
    attempt_number: int  # one-based attempt that just failed
    delay_seconds: float
    error_type: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class LookupExhausted(DomainEvent):
    """Event triggered when a lookup fails on its final attempt."""
    description: str
    attempts: int
    error_type: str
    error_message: str
    timestamp: float = field(default_factory=time.time)
