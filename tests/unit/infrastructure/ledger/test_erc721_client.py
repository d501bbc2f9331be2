import json

import httpx
import pytest
from eth_abi import encode
from eth_utils import encode_hex, to_checksum_address

from ledgerscan.domain.models.errors import AbsentEntityError, JsonRpcError
from ledgerscan.infrastructure.ledger.erc721_client import (
    ERROR_STRING_SELECTOR,
    NONEXISTENT_TOKEN_SELECTOR,
    OWNER_OF_SELECTOR,
    TOTAL_SUPPLY_SELECTOR,
    Erc721LedgerClient,
    decode_revert_reason,
)
from ledgerscan.infrastructure.ledger.jsonrpc import JsonRpcTransport

RPC_URL = "https://rpc.example.test"
CONTRACT = "0xbc4ca0eda7647a8ab7c2061c2e118a18a936f13d"
OWNER = "0x" + "ab" * 20


def revert_with_reason(reason: str) -> str:
    return encode_hex(ERROR_STRING_SELECTOR + encode(["string"], [reason]))


class RpcStub:
    """Answers eth_call / eth_getBalance requests and records them."""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        outcome = self.handler(body["method"], body["params"])
        if isinstance(outcome, httpx.Response):
            return outcome
        key = "error" if isinstance(outcome, dict) and "code" in outcome else "result"
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], key: outcome})


def make_client(handler) -> tuple:
    stub = RpcStub(handler)
    http = httpx.AsyncClient(transport=httpx.MockTransport(stub))
    transport = JsonRpcTransport(RPC_URL, client=http)
    return Erc721LedgerClient(transport, CONTRACT), stub


@pytest.mark.asyncio
async def test_collection_size_calls_total_supply():
    client, stub = make_client(lambda method, params: encode_hex(encode(["uint256"], [10000])))

    assert await client.get_collection_size() == 10000

    request = stub.requests[0]
    assert request["method"] == "eth_call"
    assert request["params"][0]["to"] == "0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D"
    assert request["params"][0]["data"] == encode_hex(TOTAL_SUPPLY_SELECTOR)
    assert request["params"][1] == "latest"
    await client.aclose()


@pytest.mark.asyncio
async def test_lookup_owner_returns_checksummed_address():
    client, stub = make_client(lambda method, params: encode_hex(encode(["address"], [OWNER])))

    owner = await client.lookup_owner(42)

    assert owner == to_checksum_address(OWNER)
    assert stub.requests[0]["params"][0]["data"] == encode_hex(OWNER_OF_SELECTOR + encode(["uint256"], [42]))
    await client.aclose()


@pytest.mark.asyncio
async def test_lookup_balance_parses_hex_quantity():
    client, stub = make_client(lambda method, params: hex(5 * 10**18))

    assert await client.lookup_balance(OWNER) == 5 * 10**18
    assert stub.requests[0]["method"] == "eth_getBalance"
    assert stub.requests[0]["params"] == [OWNER, "latest"]
    await client.aclose()


@pytest.mark.asyncio
async def test_rpc_error_member_raises_json_rpc_error():
    data = revert_with_reason("ERC721: invalid token ID")
    client, _ = make_client(lambda method, params: {"code": 3, "message": "execution reverted", "data": data})

    with pytest.raises(JsonRpcError) as exc_info:
        await client.lookup_owner(99999)

    assert exc_info.value.code == 3
    assert client.is_absent_error(exc_info.value)
    await client.aclose()


@pytest.mark.asyncio
async def test_http_failure_is_transient():
    client, _ = make_client(lambda method, params: httpx.Response(503, text="busy"))

    with pytest.raises(httpx.HTTPStatusError) as exc_info:
        await client.lookup_owner(1)

    assert not client.is_absent_error(exc_info.value)
    await client.aclose()


@pytest.mark.asyncio
async def test_missing_result_raises():
    client, _ = make_client(lambda method, params: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1}))

    with pytest.raises(JsonRpcError):
        await client.lookup_balance(OWNER)
    await client.aclose()


@pytest.mark.parametrize("error, absent", [
    (JsonRpcError(3, "execution reverted", revert_with_reason("ERC721: owner query for nonexistent token")), True),
    (JsonRpcError(3, "execution reverted", {"data": revert_with_reason("ERC721: invalid token ID")}), True),
    (JsonRpcError(3, "execution reverted", encode_hex(NONEXISTENT_TOKEN_SELECTOR + encode(["uint256"], [7]))), True),
    (JsonRpcError(-32000, "execution reverted: ERC721: owner query for nonexistent token"), True),
    (JsonRpcError(3, "execution reverted", revert_with_reason("Pausable: paused")), False),
    (JsonRpcError(-32005, "rate limited"), False),
    (AbsentEntityError("gone"), True),
    (httpx.ConnectTimeout("timeout"), False),
])
def test_absent_classification(error, absent):
    client = Erc721LedgerClient(JsonRpcTransport(RPC_URL, client=httpx.AsyncClient()), CONTRACT)

    assert client.is_absent_error(error) is absent


def test_decode_revert_reason():
    assert decode_revert_reason(JsonRpcError(3, "reverted", revert_with_reason("nope"))) == "nope"
    assert decode_revert_reason(JsonRpcError(3, "reverted", "0xdeadbeef")) is None
    assert decode_revert_reason(JsonRpcError(3, "reverted")) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", ["-0x3", "12", 12, None])
async def test_lookup_balance_rejects_malformed_quantity(quantity):
    client, _ = make_client(lambda method, params: quantity)

    with pytest.raises(ValueError):
        await client.lookup_balance(OWNER)
    await client.aclose()
