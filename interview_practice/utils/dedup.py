"""Request deduplication for calls into the text-generation service."""

import asyncio
from typing import Awaitable, Callable, Dict, TypeVar

from .logging import get_logger

T = TypeVar("T")


class RequestDeduplicator:
    """Runs at most one in-flight operation per key.

    Concurrent callers with the same key await the result (or exception) of
    the single execution. Once it settles the key is dropped, so a later,
    non-concurrent call runs the operation again. This is a concurrency-window
    dedup, not a cache.
    """

    def __init__(self):
        self._pending: Dict[str, "asyncio.Future"] = {}
        self.logger = get_logger("reliability.dedup")

    async def deduplicate(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Execute ``operation`` unless an identical request is already pending.

        Args:
            key: Canonical request key
            operation: Zero-argument coroutine factory performing the work

        Returns:
            The result of the single execution for this key.
        """
        # Lookup and registration happen with no await in between, so two
        # tasks on the same loop can never both become the leader for a key.
        existing = self._pending.get(key)
        if existing is not None:
            self.logger.debug(f"Waiting for in-flight request with key {key[:16]}")
            # shield: a cancelled waiter must not cancel the shared result
            return await asyncio.shield(existing)

        future = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        self.logger.debug(f"Executing request with key {key[:16]}")

        try:
            result = await operation()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Waiters may not exist; mark the exception as retrieved.
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            if self._pending.get(key) is future:
                del self._pending[key]

    def is_pending(self, key: str) -> bool:
        """Check whether a request with this key is in flight."""
        return key in self._pending

    @property
    def pending_count(self) -> int:
        """Number of in-flight keys."""
        return len(self._pending)

    def clear(self) -> None:
        """Forget all pending keys.

        Callers already waiting keep waiting on their execution; new callers
        start a fresh one.
        """
        self._pending.clear()
