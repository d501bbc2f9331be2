"""Interface for the Remote Ledger Client.

Defines the contract the pipelines need from a read-only ledger reached over
a network RPC interface: the size of an enumerable collection, the owner of
one item and the balance of one owner. Transport details (connections,
encoding, timeouts) live behind this port.
"""

import abc

from ledgerscan.domain.models.common import ItemId, OwnerKey, Wei
from ledgerscan.domain.models.errors import AbsentEntityError


class LedgerClient(abc.ABC):
    """Abstract Base Class for remote ledger lookups."""

    @abc.abstractmethod
    async def get_collection_size(self) -> int:
        """Returns the number of entities declared by the collection.

        Raises:
            Exception: If the size cannot be queried. The caller treats this as fatal.
        """
        pass

    @abc.abstractmethod
    async def lookup_owner(self, item_id: ItemId) -> OwnerKey:
        """Returns the case-normalized owner key of one item.

        Raises:
            Exception: A failure that `is_absent_error` classifies as absent when
                the item does not exist, any other failure is transient.
        """
        pass

    @abc.abstractmethod
    async def lookup_balance(self, owner: OwnerKey) -> Wei:
        """Returns the balance of an owner in the smallest unit.

        Every valid owner has a balance (possibly zero), so every failure is
        transient.
        """
        pass

    def is_absent_error(self, error: BaseException) -> bool:
        """Classifies a lookup failure as 'entity does not exist'.

        Implementations recognise their transport-specific error signature here
        so that the retry policy never parses transport error shapes itself.
        """
        return isinstance(error, AbsentEntityError)

    async def aclose(self) -> None:
        """Releases transport resources. No-op by default."""
        return None
