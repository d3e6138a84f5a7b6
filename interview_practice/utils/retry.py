"""Exponential backoff retry policy for upstream calls."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, List, TypeVar

from .exceptions import ValidationError
from .logging import get_logger

T = TypeVar("T")

RETRYABLE_MARKERS = ("timeout", "connection", "network", "500", "502", "503", "504")

logger = get_logger("reliability.retry")


@dataclass
class RetryOutcome(Generic[T]):
    """Successful result of a retried operation."""

    value: T
    attempts: int
    failures: List[Exception] = field(default_factory=list)


@dataclass
class RetryPolicy:
    """Retry an async operation with capped exponential backoff.

    ``max_retries`` is the total number of attempts. After the last failed
    attempt the underlying error is re-raised unchanged.
    """

    max_retries: int = 3
    initial_delay: float = 1.0  # seconds
    backoff_multiplier: float = 2.0
    max_delay: float = 10.0  # seconds
    retry_only_retryable: bool = False
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, repr=False, compare=False)

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValidationError("max_retries must be at least 1", field_name="max_retries")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValidationError("Retry delays must not be negative", field_name="initial_delay")
        if self.backoff_multiplier < 1.0:
            raise ValidationError("backoff_multiplier must be at least 1.0", field_name="backoff_multiplier")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetryPolicy":
        """Create RetryPolicy from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__ and k != "sleep"})

    async def run(self, operation: Callable[[], Awaitable[T]]) -> RetryOutcome[T]:
        """Execute ``operation`` with retries and report the failures seen.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt

        Returns:
            RetryOutcome holding the value, attempt count and prior failures.

        Raises:
            Exception: The last error, unchanged, once attempts are exhausted
                (or immediately for a non-retryable error when
                ``retry_only_retryable`` is set).
        """
        failures: List[Exception] = []
        delay = self.initial_delay

        while True:
            try:
                value = await operation()
                return RetryOutcome(value=value, attempts=len(failures) + 1, failures=failures)
            except Exception as e:
                failures.append(e)
                attempts = len(failures)

                if attempts >= self.max_retries:
                    logger.error(f"Request failed after {attempts} attempts: {e}")
                    raise

                if self.retry_only_retryable and not self.is_retryable(e):
                    logger.error(f"Request failed with non-retryable error: {e}")
                    raise

                logger.warning(
                    f"Request failed (attempt {attempts}/{self.max_retries}): {e}. "
                    f"Retrying in {delay:.2f}s..."
                )
                await self.sleep(delay)
                delay = min(delay * self.backoff_multiplier, self.max_delay)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Execute ``operation`` with retries and return its value."""
        outcome = await self.run(operation)
        return outcome.value

    @staticmethod
    def is_retryable(error: BaseException) -> bool:
        """Classify an error as transient from its text.

        Matches timeouts, connection and network failures and 5xx status
        codes. Informational unless ``retry_only_retryable`` is set.
        """
        error_text = str(error).lower()
        if isinstance(error, asyncio.TimeoutError):
            return True
        return any(marker in error_text for marker in RETRYABLE_MARKERS)
