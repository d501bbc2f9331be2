"""Holder Resolution Pipeline.

Maps every item of the collection to its owner and folds the owners into a
deduplicated set.
"""

import logging
from typing import Dict, Iterable, List

from ledgerscan.core.run_context import RunContext
from ledgerscan.core.services.batch_scheduler import BatchScheduler
from ledgerscan.domain.models.common import HOLDERS_STAGE, ItemId, OwnerKey, OwnerSet
from ledgerscan.domain.models.errors import CollectionSizeUnavailableError, RetryExhaustedError
from ledgerscan.domain.models.scan import HolderResolution

logger = logging.getLogger(__name__)


def fold_owners(values: Iterable[OwnerKey]) -> OwnerSet:
    """Folds owner keys into a set, treating keys that differ only in case as one.

    The first spelling seen for a key is kept, so checksummed addresses stay
    usable for balance lookups.
    """
    by_key: Dict[str, OwnerKey] = {}
    for owner in values:
        by_key.setdefault(owner.lower(), owner)
    return set(by_key.values())


class HolderResolutionService:
    """Resolves the unique owners of every item in a collection."""

    def __init__(self, context: RunContext, scheduler: BatchScheduler):
        self.context = context
        self.scheduler = scheduler

    async def get_collection_size(self) -> int:
        """Queries the collection size through the limiter and retry policy.

        Raises:
            CollectionSizeUnavailableError: If the query fails on every attempt
                or reports that the collection does not exist.
        """
        client = self.context.client
        try:
            result = await self.context.limiter.run(
                self.context.retry_policy.execute,
                client.get_collection_size,
            )
        except RetryExhaustedError as e:
            logger.error(f"Could not resolve collection size: {e.original_exception}")
            raise CollectionSizeUnavailableError(e.original_exception) from e.original_exception
        if not result.is_resolved:
            raise CollectionSizeUnavailableError(LookupError("collection reported as non-existent"))

        size = int(result.value)
        if size < 0:
            raise CollectionSizeUnavailableError(ValueError(f"negative collection size {size}"))
        return size

    def item_ids(self, size: int) -> List[ItemId]:
        """Every valid identifier: `size` sequential ids from the configured first id."""
        first = self.context.config.first_item_id
        return [ItemId(i) for i in range(first, first + size)]

    async def resolve_unique_holders(self) -> HolderResolution:
        """Returns the deduplicated owner set and the stats of resolving it."""
        size = await self.get_collection_size()
        logger.info(f"Collection size: {size}")

        outcome = await self.scheduler.process_in_batches(
            self.item_ids(size),
            self.context.config.owner_batch_size,
            self.context.client.lookup_owner,
            stage=HOLDERS_STAGE,
        )
        owners = fold_owners(outcome.values)

        logger.info(
            f"Resolved {len(owners)} unique holders from {outcome.stats.resolved} items "
            f"({outcome.stats.skipped} skipped, {outcome.stats.failed} failed)"
        )
        return HolderResolution(collection_size=size, owners=owners, stats=outcome.stats)
