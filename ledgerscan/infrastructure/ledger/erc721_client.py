"""Ledger client for ERC-721 collections on an Ethereum JSON-RPC endpoint.

Implements the LedgerClient port: `totalSupply()` for the collection size,
`ownerOf(uint256)` for owner lookups and `eth_getBalance` for balances.
Calls are ABI encoded with eth-abi and addresses normalized with eth-utils.
"""

import logging
from typing import Any, Optional

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector, to_checksum_address

from ledgerscan.domain.interfaces.ledger_client import LedgerClient
from ledgerscan.domain.models.common import ItemId, OwnerKey, Wei
from ledgerscan.domain.models.errors import JsonRpcError
from ledgerscan.infrastructure.ledger.jsonrpc import JsonRpcTransport

logger = logging.getLogger(__name__)

TOTAL_SUPPLY_SELECTOR = function_signature_to_4byte_selector("totalSupply()")
OWNER_OF_SELECTOR = function_signature_to_4byte_selector("ownerOf(uint256)")
ERROR_STRING_SELECTOR = function_signature_to_4byte_selector("Error(string)")
# OpenZeppelin 5.x custom error
NONEXISTENT_TOKEN_SELECTOR = function_signature_to_4byte_selector("ERC721NonexistentToken(uint256)")

NONEXISTENT_TOKEN_REASONS = (
    "ERC721: owner query for nonexistent token",
    "ERC721: invalid token ID",
)


def _revert_data(error: JsonRpcError) -> Optional[str]:
    """Extracts the hex revert payload, which nodes nest differently."""
    data: Any = error.data
    if isinstance(data, dict):
        data = data.get("data") or data.get("result")
    if isinstance(data, str) and data.startswith("0x"):
        return data
    return None


def decode_revert_reason(error: JsonRpcError) -> Optional[str]:
    """Returns the `Error(string)` reason of a reverted call, if there is one."""
    data = _revert_data(error)
    if data is None:
        return None
    try:
        raw = decode_hex(data)
        if raw[:4] != ERROR_STRING_SELECTOR:
            return None
        (reason,) = decode(["string"], raw[4:])
    except (ValueError, DecodingError):
        logger.debug(f"Undecodable revert data: {data[:74]}")
        return None
    return reason


class Erc721LedgerClient(LedgerClient):
    """Reads ownership and balances for one ERC-721 contract."""

    def __init__(self, transport: JsonRpcTransport, contract_address: str, block_tag: str = "latest"):
        """Initializes the client.

        Args:
            transport: JSON-RPC transport to the node.
            contract_address: Address of the ERC-721 contract.
            block_tag: Block the calls are evaluated at ('latest' or a hex block number).
        """
        self.transport = transport
        self.contract_address = to_checksum_address(contract_address)
        self.block_tag = block_tag
        logger.info(f"Erc721LedgerClient initialized: contract={self.contract_address}, block={block_tag}")

    async def _eth_call(self, data: bytes) -> bytes:
        result = await self.transport.call(
            "eth_call",
            [{"to": self.contract_address, "data": encode_hex(data)}, self.block_tag],
        )
        return decode_hex(result)

    async def get_collection_size(self) -> int:
        raw = await self._eth_call(TOTAL_SUPPLY_SELECTOR)
        (size,) = decode(["uint256"], raw)
        return int(size)

    async def lookup_owner(self, item_id: ItemId) -> OwnerKey:
        raw = await self._eth_call(OWNER_OF_SELECTOR + encode(["uint256"], [item_id]))
        (owner,) = decode(["address"], raw)
        return OwnerKey(to_checksum_address(owner))

    async def lookup_balance(self, owner: OwnerKey) -> Wei:
        result = await self.transport.call("eth_getBalance", [owner, self.block_tag])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise ValueError(f"eth_getBalance returned a malformed quantity: {result!r}")
        return Wei(int(result, 16))

    def is_absent_error(self, error: BaseException) -> bool:
        if super().is_absent_error(error):
            return True
        if not isinstance(error, JsonRpcError):
            return False
        data = _revert_data(error)
        if data is not None and data[2:10].lower() == NONEXISTENT_TOKEN_SELECTOR.hex():
            return True
        texts = (decode_revert_reason(error) or "", error.message or "")
        return any(known in text for known in NONEXISTENT_TOKEN_REASONS for text in texts)

    async def aclose(self) -> None:
        await self.transport.aclose()
