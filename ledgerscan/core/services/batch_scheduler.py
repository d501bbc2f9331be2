"""Batch Scheduler: drives an ordered list of work items through the limiter.

Items are partitioned into consecutive batches. Batches run strictly one
after another; items inside a batch run concurrently, bounded by the shared
ConcurrencyLimiter rather than by the batch size. Counters and result lists
are only touched after a batch has been joined, never from inside a
running lookup.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterator, List, Optional, Sequence, TypeVar

from ledgerscan.domain.events.scan_events import BatchCompleted
from ledgerscan.domain.models.common import StageName
from ledgerscan.domain.models.errors import RetryExhaustedError
from ledgerscan.domain.models.scan import BatchOutcome, LookupResult, LookupStatus, RunStats
from ledgerscan.infrastructure.monitoring.performance_tracker import PerformanceTracker
from ledgerscan.infrastructure.resilience.concurrency_limiter import ConcurrencyLimiter
from ledgerscan.infrastructure.resilience.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

LookupFn = Callable[[Any], Awaitable[T]]


def chunk(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Splits items into consecutive slices of `size`; the last may be smaller."""
    if size < 1:
        raise ValueError(f"batch size must be at least 1, got {size}")
    for i in range(0, len(items), size):
        yield items[i : i + size]


class BatchScheduler:
    """Runs lookups batch by batch through a shared limiter and retry policy."""

    def __init__(
        self,
        limiter: ConcurrencyLimiter,
        retry_policy: RetryPolicy,
        tracker: Optional[PerformanceTracker] = None,
    ):
        self.limiter = limiter
        self.retry_policy = retry_policy
        self.tracker = tracker

    async def _lookup_one(self, lookup_fn: LookupFn, item: Any) -> LookupResult:
        description = f"{getattr(lookup_fn, '__name__', 'lookup')}({item})"
        try:
            return await self.retry_policy.execute(lookup_fn, item, item=item, description=description)
        except RetryExhaustedError as e:
            return LookupResult.failed(item, f"{type(e.original_exception).__name__}: {e.original_exception}")

    async def process_in_batches(
        self,
        items: Sequence[Any],
        batch_size: int,
        lookup_fn: LookupFn,
        stage: StageName = StageName("lookups"),
    ) -> BatchOutcome:
        """Looks up every item and returns the resolved values plus stats.

        Args:
            items: Ordered work items.
            batch_size: Items per batch. Shapes progress granularity, not results.
            lookup_fn: Async callable performing one remote lookup.
            stage: Name used for stats, logs and progress events.

        Returns:
            BatchOutcome with resolved values in batch order (completion order
            within a batch is irrelevant to consumers), the failed lookups and
            the RunStats of this invocation.
        """
        if batch_size < 1:
            raise ValueError(f"batch size must be at least 1, got {batch_size}")

        stats = RunStats(stage=stage, total=len(items))
        outcome = BatchOutcome(values=[], stats=stats)
        if not items:
            logger.info(f"Stage '{stage}': nothing to process")
            return outcome

        batches = list(chunk(items, batch_size))
        logger.info(f"Stage '{stage}': processing {len(items)} items in {len(batches)} batches of up to {batch_size}")

        for batch_index, batch in enumerate(batches):
            tasks = [self.limiter.submit(self._lookup_one, lookup_fn, item) for item in batch]
            results: List[LookupResult] = await asyncio.gather(*tasks)

            # Single-threaded accumulation at the batch barrier
            for result in results:
                if result.status is LookupStatus.RESOLVED:
                    outcome.values.append(result.value)
                    stats.resolved += 1
                elif result.status is LookupStatus.ABSENT:
                    stats.skipped += 1
                else:
                    stats.failed += 1
                    outcome.failures.append(result)
            stats.processed += len(batch)
            stats.batches += 1

            if self.tracker is not None:
                self.tracker.record_batch(BatchCompleted(
                    stage=stage,
                    batch_index=batch_index,
                    batch_count=len(batches),
                    processed=stats.processed,
                    valid=stats.resolved,
                    total=stats.total,
                    skipped=stats.skipped,
                    failed=stats.failed,
                ))

        if stats.skipped:
            logger.info(f"Stage '{stage}': skipped {stats.skipped} non-existent entities")
        if stats.failed:
            logger.warning(f"Stage '{stage}': {stats.failed} lookups failed after all retries")
        return outcome
