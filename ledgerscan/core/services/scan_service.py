"""Core service orchestrating a full holder scan.

Resolves the unique holders of the collection, then aggregates their
balances, recording timing checkpoints around each stage. Both stages share
the run context's limiter, so the remote load of a whole run is bounded by a
single configured constant.
"""

import logging
from typing import Optional

from ledgerscan.core.run_context import RunContext
from ledgerscan.core.services.balance_service import BalanceAggregationService
from ledgerscan.core.services.batch_scheduler import BatchScheduler
from ledgerscan.core.services.holder_service import HolderResolutionService
from ledgerscan.domain.models.scan import HolderResolution, ScanReport

logger = logging.getLogger(__name__)


class ScanService:
    """Runs the holder and balance pipelines for one run context."""

    def __init__(
        self,
        context: RunContext,
        holder_service: Optional[HolderResolutionService] = None,
        balance_service: Optional[BalanceAggregationService] = None,
    ):
        """Initializes the ScanService, building the pipelines from the context if not given."""
        self.context = context
        owner_scheduler = BatchScheduler(context.limiter, context.retry_policy, tracker=context.tracker)
        balance_scheduler = BatchScheduler(context.limiter, context.balance_retry_policy, tracker=context.tracker)
        self.holder_service = holder_service or HolderResolutionService(context, owner_scheduler)
        self.balance_service = balance_service or BalanceAggregationService(context, balance_scheduler)

    async def resolve_holders(self) -> HolderResolution:
        """Runs only the holder resolution stage."""
        tracker = self.context.tracker
        tracker.start()
        resolution = await self.holder_service.resolve_unique_holders()
        tracker.checkpoint("Holders Retrieved")
        return resolution

    async def run(self) -> ScanReport:
        """Runs both stages and returns the raw integer total plus stats.

        Raises:
            CollectionSizeUnavailableError: If the collection size cannot be resolved.
        """
        resolution = await self.resolve_holders()
        aggregation = await self.balance_service.aggregate_balances(resolution.owners)
        tracker = self.context.tracker
        tracker.checkpoint("Balances Retrieved")

        report = ScanReport(
            total_balance=aggregation.total,
            holder_count=len(resolution.owners),
            collection_size=resolution.collection_size,
            holder_stats=resolution.stats,
            balance_stats=aggregation.stats,
            checkpoints=tracker.checkpoints,
            elapsed_s=tracker.total_time(),
            retries_scheduled=tracker.retries.scheduled,
        )
        logger.info(
            f"Scan finished: {report.holder_count} holders, total={report.total_balance} "
            f"(partial={report.is_partial}) in {report.elapsed_s:.2f}s"
        )
        return report
