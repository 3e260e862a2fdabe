"""
Retry policy for collection-store writes.

Exponential backoff with a bounded number of attempts; only failures
classified as transient are retried.
"""
import asyncio
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .database.base import TransientDatabaseError
from ..core.config import DB_MAX_ATTEMPTS, DB_RETRY_BASE_DELAY
from ..core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    TransientDatabaseError,
    ConnectionError,
    TimeoutError,
)


class RetryExhaustedError(Exception):
    """Raised when every attempt failed with a transient error."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class RetryPolicy:
    """
    Bounded exponential backoff.

    With the defaults (3 attempts, 1s base) a call is retried after 2s and
    then 4s before giving up.
    """

    def __init__(
        self,
        max_attempts: int = DB_MAX_ATTEMPTS,
        base_delay: float = DB_RETRY_BASE_DELAY,
        max_delay: float = 30.0,
        backoff_multiplier: float = 2.0,
        transient_errors: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_multiplier = backoff_multiplier
        self.transient_errors = transient_errors
        self._sleep = sleep or asyncio.sleep

    def is_transient(self, error: BaseException) -> bool:
        return isinstance(error, self.transient_errors)

    def calculate_retry_delay(self, retry_count: int) -> float:
        """
        Delay before the next attempt.

        Args:
            retry_count: Number of the attempt that just failed (1-indexed)
        """
        delay = self.base_delay * (self.backoff_multiplier ** retry_count)
        return min(delay, self.max_delay)

    async def call(self, operation: Callable[[], Awaitable[T]], description: str = "operation") -> T:
        """
        Run ``operation`` until it succeeds or attempts run out.

        Raises:
            RetryExhaustedError: When the last attempt failed transiently
            Exception: Non-transient errors propagate on first occurrence
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except self.transient_errors as e:
                if attempt >= self.max_attempts:
                    logger.error(f"{description} failed after {attempt} attempts: {e}")
                    raise RetryExhaustedError(attempt, e) from e
                delay = self.calculate_retry_delay(attempt)
                logger.warning(
                    f"{description} failed (attempt {attempt}/{self.max_attempts}): {e}; "
                    f"retrying in {delay:.2f}s"
                )
                await self._sleep(delay)
