"""
Retry supervisor for network operations.

Every request against AcFun goes through supervise(): on any failure the
whole operation is re-run after a delay. The default policy retries forever
every 2 seconds.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from .logger import get_logger

T = TypeVar("T")

logger = get_logger('retry')


class RetryExhausted(Exception):
    """Raised when a capped retry policy runs out of attempts."""

    def __init__(self, operation_name: str, attempts: int):
        super().__init__(f"{operation_name} failed after {attempts} attempts")
        self.operation_name = operation_name
        self.attempts = attempts


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to retry a failing operation."""
    delay: float = 2.0
    max_attempts: Optional[int] = None  # None = forever
    backoff: float = 1.0
    max_delay: float = 60.0

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry that follows the given (1-based) attempt."""
        if self.backoff <= 1.0:
            return self.delay
        return min(self.delay * self.backoff ** (attempt - 1), self.max_delay)


DEFAULT_POLICY = RetryPolicy()


async def supervise(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    policy: RetryPolicy = DEFAULT_POLICY,
    context: Optional[Dict[str, Any]] = None
) -> T:
    """
    Run an operation, re-running it from the start until it succeeds.

    Args:
        operation: Async zero-argument callable. Called once per attempt.
        operation_name: Logged as the ``operation`` field.
        policy: Retry policy.
        context: Extra log fields for every record, e.g. ``{'cursor': ...}``.

    Returns:
        Result of the first successful attempt.

    Raises:
        RetryExhausted: If policy.max_attempts is reached.
    """
    attempt = 0
    while True:
        attempt += 1
        extra = {**(context or {}), 'operation': operation_name, 'attempt': attempt}
        try:
            result = await operation()
        except Exception as e:
            if policy.max_attempts is not None and attempt >= policy.max_attempts:
                logger.error(f"Giving up: {e!r}", extra=extra)
                raise RetryExhausted(operation_name, attempt) from e

            delay = policy.delay_for(attempt)
            logger.warning(f"Failed: {e!r}, retrying in {delay:.1f}s", extra=extra)
            logger.debug("Traceback of failed attempt", exc_info=True, extra=extra)
            await asyncio.sleep(delay)
            continue

        if attempt > 1:
            logger.info("Succeeded after retrying", extra=extra)
        return result
