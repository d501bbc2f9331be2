"""Balance Aggregation Pipeline.

Fetches the balance of every unique owner and sums them with exact integer
arithmetic. Failed lookups contribute zero and are flagged in the stats.
"""

import logging
from typing import Iterable

from ledgerscan.core.run_context import RunContext
from ledgerscan.core.services.batch_scheduler import BatchScheduler
from ledgerscan.domain.models.common import BALANCES_STAGE, OwnerKey, Wei
from ledgerscan.domain.models.scan import BalanceAggregation

logger = logging.getLogger(__name__)


class BalanceAggregationService:
    """Sums owner balances in the smallest unit."""

    def __init__(self, context: RunContext, scheduler: BatchScheduler):
        self.context = context
        self.scheduler = scheduler

    async def lookup_balance(self, owner: OwnerKey) -> Wei:
        """Fetches one balance, rejecting anything but a non-negative integer.

        Raises:
            ValueError: If the client returned a negative or non-integer
                balance. The retry policy treats it like any transient error,
                so the owner ends up failed instead of lowering the total.
        """
        balance = await self.context.client.lookup_balance(owner)
        if not isinstance(balance, int) or isinstance(balance, bool) or balance < 0:
            raise ValueError(f"invalid balance {balance!r} for {owner}")
        return balance

    async def aggregate_balances(self, owners: Iterable[OwnerKey]) -> BalanceAggregation:
        """Returns the exact total of all resolvable balances and the stage stats.

        Args:
            owners: Unique owner keys. Sorted before batching so progress is
                reported in a deterministic order.
        """
        ordered = sorted(set(owners))
        logger.info(f"Processing {len(ordered)} unique holders")

        outcome = await self.scheduler.process_in_batches(
            ordered,
            self.context.config.balance_batch_size,
            self.lookup_balance,
            stage=BALANCES_STAGE,
        )

        total = 0
        for balance in outcome.values:
            total += balance

        if outcome.stats.failed:
            failed_owners = ", ".join(str(f.item) for f in outcome.failures[:5])
            logger.warning(
                f"Failed to get balance for {outcome.stats.failed} addresses "
                f"(first: {failed_owners}); total is partial"
            )
        return BalanceAggregation(total=Wei(total), stats=outcome.stats)
