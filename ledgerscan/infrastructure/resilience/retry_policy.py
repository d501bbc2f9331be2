"""Service for executing remote lookups with bounded retries.

Implements exponential backoff for transient errors (network failures,
rate limiting, unknown RPC errors). A failure the ledger client classifies
as "entity does not exist" short-circuits the loop: it is valid domain
information, not an error.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ledgerscan.domain.events.scan_events import DomainEvent, LookupExhausted, RetryScheduled
from ledgerscan.domain.models.errors import RetryExhaustedError
from ledgerscan.domain.models.scan import LookupResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_S = 1.0


def _never_absent(error: BaseException) -> bool:
    return False


class RetryPolicy:
    """Wraps a single remote call with bounded exponential-backoff retry."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_s: float = DEFAULT_BASE_DELAY_S,
        is_absent: Callable[[BaseException], bool] = _never_absent,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_event: Optional[Callable[[DomainEvent], None]] = None,
    ):
        """Initializes the RetryPolicy.

        Args:
            max_attempts: Total number of tries per call, including the first.
            base_delay_s: Delay before the first retry. Doubles on every retry.
            is_absent: Classifier for the "entity does not exist" signature,
                normally `LedgerClient.is_absent_error`.
            sleep: Awaitable used for backoff waits (injectable for tests).
            on_event: Optional observer for retry events.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if base_delay_s < 0:
            raise ValueError(f"base_delay_s must not be negative, got {base_delay_s}")
        self.max_attempts = max_attempts
        self.base_delay_s = base_delay_s
        self.is_absent = is_absent
        self._sleep = sleep
        self._on_event = on_event

        logger.info(f"RetryPolicy initialized: max_attempts={max_attempts}, base_delay={base_delay_s}s")

    def backoff_delay(self, attempt_index: int) -> float:
        """Delay to wait after the zero-based attempt `attempt_index` failed."""
        return self.base_delay_s * (2 ** attempt_index)

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self._on_event is None:
            return
        try:
            self._on_event(event)
        except Exception as e:
            logger.warning(f"Retry event observer failed: {e}", exc_info=True)

    async def execute(
        self,
        operation: Callable[..., Awaitable[Any]],
        *args: Any,
        item: Any = None,
        description: Optional[str] = None,
    ) -> LookupResult:
        """Executes an async operation with retries.

        Args:
            operation: The async callable (remote lookup) to execute.
            *args: Positional arguments for the operation.
            item: The work item recorded on the returned LookupResult.
            description: Name used in logs and events (defaults to the callable's name).

        Returns:
            A resolved LookupResult holding the value, or an absent LookupResult
            when the entity does not exist.

        Raises:
            RetryExhaustedError: If every attempt failed with a transient error.
        """
        name = description or getattr(operation, "__name__", repr(operation))
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            try:
                value = await operation(*args)
                return LookupResult.resolved(item, value)
            except Exception as e:
                if self.is_absent(e):
                    logger.debug(f"{name}: entity does not exist, not retrying")
                    return LookupResult.absent(item)

                last_exception = e
                if attempt + 1 < self.max_attempts:
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        f"Transient error in {name} on attempt {attempt + 1}/{self.max_attempts}: "
                        f"{type(e).__name__}: {e}. Waiting {delay:.2f}s..."
                    )
                    self._dispatch(RetryScheduled(
                        description=name,
                        attempt_number=attempt + 1,
                        delay_seconds=delay,
                        error_type=type(e).__name__,
                    ))
                    await self._sleep(delay)

        logger.error(f"Max attempts ({self.max_attempts}) reached for {name}. Last error: {last_exception}")
        self._dispatch(LookupExhausted(
            description=name,
            attempts=self.max_attempts,
            error_type=type(last_exception).__name__,
            error_message=str(last_exception),
        ))
        raise RetryExhaustedError(last_exception, self.max_attempts)
