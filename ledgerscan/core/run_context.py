"""Per-invocation run context.

Holds the ledger client, the one concurrency limiter every pipeline of the
run shares, the retry policies, the tracker and the configuration. Created
for a single top-level invocation and discarded after its result is produced.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ledgerscan.domain.interfaces.ledger_client import LedgerClient
from ledgerscan.domain.models.scan import ScanConfig
from ledgerscan.infrastructure.monitoring.performance_tracker import PerformanceTracker
from ledgerscan.infrastructure.resilience.concurrency_limiter import ConcurrencyLimiter
from ledgerscan.infrastructure.resilience.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Dependencies shared by the holder and balance pipelines of one run.

    `retry_policy` serves the collection-size and owner lookups and honours
    the client's absent classification. `balance_retry_policy` never treats a
    failure as absent: every valid owner has a balance, so a balance lookup
    either resolves or fails.
    """

    client: LedgerClient
    config: ScanConfig
    limiter: ConcurrencyLimiter
    retry_policy: RetryPolicy
    balance_retry_policy: RetryPolicy
    tracker: PerformanceTracker = field(default_factory=PerformanceTracker)

    @classmethod
    def create(
        cls,
        client: LedgerClient,
        config: ScanConfig,
        tracker: Optional[PerformanceTracker] = None,
        retry_policy: Optional[RetryPolicy] = None,
        balance_retry_policy: Optional[RetryPolicy] = None,
    ) -> "RunContext":
        """Wires a context from a client and config.

        The owner retry policy classifies absent entities with the client's own
        `is_absent_error`, keeping transport error shapes out of the core. Both
        policies report their retry events to the tracker.
        """
        tracker = tracker or PerformanceTracker(log_progress=config.performance_logging)
        if retry_policy is None:
            retry_policy = RetryPolicy(
                max_attempts=config.retry_attempts,
                base_delay_s=config.retry_delay_s,
                is_absent=client.is_absent_error,
                on_event=tracker.record_retry_event,
            )
        if balance_retry_policy is None:
            balance_retry_policy = RetryPolicy(
                max_attempts=config.retry_attempts,
                base_delay_s=config.retry_delay_s,
                on_event=tracker.record_retry_event,
            )
        context = cls(
            client=client,
            config=config,
            limiter=ConcurrencyLimiter(config.concurrent_requests),
            retry_policy=retry_policy,
            balance_retry_policy=balance_retry_policy,
            tracker=tracker,
        )
        logger.debug(f"RunContext created: {config}")
        return context
