"""Domain models for a holder scan run.

Covers the per-item lookup outcome, the per-stage run statistics, the scan
configuration consumed by the core and the final report handed to the UI.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from .common import OwnerSet, StageName, Wei
from .errors import ConfigurationError

T = TypeVar("T")


class LookupStatus(Enum):
    """Outcome category of a single remote lookup."""

    RESOLVED = "resolved"
    ABSENT = "absent"
    FAILED = "failed"


@dataclass(frozen=True)
class LookupResult(Generic[T]):
    """Result of looking up one work item.

    Attributes:
        item: The work item that was looked up.
        status: Resolved, absent (entity does not exist) or failed (retries exhausted).
        value: The resolved value, only set when status is RESOLVED.
        error: Description of the last error, only set when status is FAILED.
    """

    item: Any
    status: LookupStatus
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def resolved(cls, item: Any, value: T) -> "LookupResult[T]":
        return cls(item=item, status=LookupStatus.RESOLVED, value=value)

    @classmethod
    def absent(cls, item: Any) -> "LookupResult[T]":
        return cls(item=item, status=LookupStatus.ABSENT)

    @classmethod
    def failed(cls, item: Any, error: str) -> "LookupResult[T]":
        return cls(item=item, status=LookupStatus.FAILED, error=error)

    @property
    def is_resolved(self) -> bool:
        return self.status is LookupStatus.RESOLVED


@dataclass
class RunStats:
    """Counts for one pipeline stage, reset per invocation.

    Attributes:
        stage: Name of the stage the counts belong to.
        total: Number of work items submitted.
        processed: Number of items whose lookup finished (any outcome).
        resolved: Number of items that produced a value.
        skipped: Number of items reported as absent.
        failed: Number of items that exhausted their retry budget.
        batches: Number of batches driven to completion.
    """

    stage: StageName
    total: int = 0
    processed: int = 0
    resolved: int = 0
    skipped: int = 0
    failed: int = 0
    batches: int = 0

    @property
    def is_partial(self) -> bool:
        """True when some lookups failed and the stage result is incomplete."""
        return self.failed > 0


@dataclass
class BatchOutcome(Generic[T]):
    """Resolved values of a batched run, in batch order, plus its stats."""

    values: List[T]
    stats: RunStats
    failures: List[LookupResult] = field(default_factory=list)


@dataclass
class HolderResolution:
    """Unique owners of a collection and the stats of resolving them."""

    collection_size: int
    owners: OwnerSet
    stats: RunStats


@dataclass
class BalanceAggregation:
    """Exact sum of owner balances and the stats of fetching them."""

    total: Wei
    stats: RunStats

    @property
    def is_partial(self) -> bool:
        return self.stats.is_partial


@dataclass
class ScanConfig:
    """Tunables consumed by the core. Plain values, no behavior.

    Attributes:
        concurrent_requests: Global cap on in-flight remote calls for one run.
        owner_batch_size: Items per batch when resolving owners.
        balance_batch_size: Owners per batch when fetching balances.
        retry_attempts: Attempts per lookup before it is counted as failed.
        retry_delay_s: Base delay of the exponential backoff, in seconds.
        first_item_id: First identifier of the collection's addressing scheme.
        performance_logging: Whether progress and timing are rendered.
    """

    concurrent_requests: int = 25
    owner_batch_size: int = 150
    balance_batch_size: int = 75
    retry_attempts: int = 3
    retry_delay_s: float = 1.0
    first_item_id: int = 1
    performance_logging: bool = True

    def __post_init__(self) -> None:
        for name in ("concurrent_requests", "owner_batch_size", "balance_batch_size", "retry_attempts"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.retry_delay_s < 0:
            raise ConfigurationError(f"retry_delay_s must not be negative, got {self.retry_delay_s!r}")
        if self.first_item_id < 0:
            raise ConfigurationError(f"first_item_id must not be negative, got {self.first_item_id!r}")


@dataclass
class ScanReport:
    """Everything a caller needs to render the result of a full scan."""

    total_balance: Wei
    holder_count: int
    collection_size: int
    holder_stats: RunStats
    balance_stats: RunStats
    checkpoints: Dict[str, float] = field(default_factory=dict)
    elapsed_s: float = 0.0
    retries_scheduled: int = 0

    @property
    def is_partial(self) -> bool:
        """A partial success: the total excludes owners whose lookup failed."""
        return self.holder_stats.is_partial or self.balance_stats.is_partial
