"""Error taxonomy shared by the pipelines and the ledger adapters.

Per-item failures (absent entities, exhausted retries) are recovered locally
and downgraded to statistics. Only precondition failures such as
CollectionSizeUnavailableError propagate to the caller.
"""

from typing import Any, Optional


class LedgerScanError(Exception):
    """Base class for all ledgerscan errors."""


class ConfigurationError(LedgerScanError):
    """Raised when a configuration value is missing or invalid."""


class AbsentEntityError(LedgerScanError):
    """The queried entity does not exist. A valid outcome, not a failure."""


class RetryExhaustedError(LedgerScanError):
    """Exception raised when a single lookup fails on every attempt."""

    def __init__(self, original_exception: Exception, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(f"Max attempts ({attempts}) exhausted. Last error: {original_exception!r}")


class CollectionSizeUnavailableError(LedgerScanError):
    """Fatal: the collection size could not be resolved, so no work is possible."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Collection size unavailable: {cause}")


class JsonRpcError(LedgerScanError):
    """Error member returned by a JSON-RPC endpoint."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC error {code}: {message}")
