"""JSON-RPC 2.0 transport over HTTP.

Thin async wrapper around an httpx client. Network errors, timeouts and
non-2xx responses are raised as-is so the retry policy treats them as
transient; an `error` member in the response is raised as JsonRpcError.
"""

import itertools
import logging
from typing import Any, List, Optional

import httpx

from ledgerscan.domain.models.errors import JsonRpcError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_MAX_CONNECTIONS = 25


class JsonRpcTransport:
    """Posts JSON-RPC requests to a single endpoint."""

    def __init__(
        self,
        url: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initializes the transport.

        Args:
            url: The JSON-RPC endpoint.
            timeout_s: Hard timeout applied to every call.
            max_connections: Connection pool size, normally the concurrency limit.
            client: Pre-built httpx client (tests pass one with a MockTransport).
        """
        self.url = url
        self._ids = itertools.count(1)
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
        )
        logger.info(f"JsonRpcTransport initialized for {url} (timeout={timeout_s}s, max_connections={max_connections})")

    async def call(self, method: str, params: List[Any]) -> Any:
        """Sends one request and returns its `result` member.

        Raises:
            JsonRpcError: If the endpoint answered with an error member.
            httpx.HTTPError: On transport failures, timeouts or bad HTTP status.
        """
        request_id = next(self._ids)
        payload = {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}
        logger.debug(f"RPC -> {method} id={request_id}")
        response = await self._client.post(self.url, json=payload)
        response.raise_for_status()
        body = response.json()
        if body.get("error") is not None:
            error = body["error"]
            raise JsonRpcError(
                code=error.get("code", 0),
                message=error.get("message", ""),
                data=error.get("data"),
            )
        if "result" not in body:
            raise JsonRpcError(code=0, message=f"Response to {method} has neither result nor error")
        return body["result"]

    async def aclose(self) -> None:
        await self._client.aclose()
