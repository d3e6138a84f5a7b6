"""Language model access: client contract plus retry and deduplication."""

import hashlib
import json
import time
from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Optional

from ..utils.dedup import RequestDeduplicator
from ..utils.logging import get_logger, log_performance
from ..utils.retry import RetryPolicy


Message = Dict[str, str]


class LanguageModelClient(ABC):
    """Abstract contract for an OpenAI-compatible chat completion service."""

    provider_name: str = "unknown"

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> str:
        """Return the completion text for a list of chat messages.

        Args:
            messages: Chat messages as ``{"role": ..., "content": ...}`` dicts
            temperature: Sampling temperature
            max_tokens: Optional completion length limit
            model: Optional model override for this call

        Raises:
            UpstreamCallFailedError: If the service call fails
        """

    async def chat_completion_stream(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Yield the completion in chunks. Defaults to a single chunk."""
        yield await self.chat_completion(messages, temperature=temperature, max_tokens=max_tokens, model=model)

    async def close(self) -> None:
        """Release network resources."""


class LLMManager:
    """Routes chat requests to the configured client.

    Every call goes through the retry policy. Identical concurrent calls
    (same model, messages and sampling parameters) are collapsed into one
    upstream request unless ``dedup`` is disabled.
    """

    def __init__(self, client: LanguageModelClient, retry_policy: Optional[RetryPolicy] = None,
                 deduplicator: Optional[RequestDeduplicator] = None):
        """Initialize the manager.

        Args:
            client: Language model client
            retry_policy: Retry policy, defaults to 3 attempts with exponential backoff
            deduplicator: Request deduplicator shared by agent calls
        """
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.deduplicator = deduplicator or RequestDeduplicator()
        self.logger = get_logger("llm.manager")

    @staticmethod
    def request_key(messages: List[Message], model: Optional[str], temperature: float,
                    max_tokens: Optional[int]) -> str:
        """Canonical key for a chat request."""
        payload = json.dumps(
            {"model": model, "messages": messages, "temperature": temperature, "max_tokens": max_tokens},
            sort_keys=True,
            ensure_ascii=False,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    async def chat(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        dedup: bool = True,
    ) -> str:
        """Send a chat request with retries and optional deduplication.

        Raises:
            Exception: The last upstream error once retries are exhausted
        """
        async def call_with_retry() -> str:
            start_time = time.time()
            outcome = await self.retry_policy.run(
                lambda: self.client.chat_completion(
                    messages, temperature=temperature, max_tokens=max_tokens, model=model
                )
            )
            log_performance(
                "llm_chat_completion",
                time.time() - start_time,
                {"provider": self.client.provider_name, "model": model, "attempts": outcome.attempts},
            )
            return outcome.value

        if not dedup:
            return await call_with_retry()

        key = self.request_key(messages, model, temperature, max_tokens)
        return await self.deduplicator.deduplicate(key, call_with_retry)

    async def prompt(self, system_prompt: str, user_prompt: str, model: Optional[str] = None,
                     temperature: float = 0.7, max_tokens: Optional[int] = None, dedup: bool = True) -> str:
        """Send a system prompt and a single user message."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return await self.chat(messages, model=model, temperature=temperature, max_tokens=max_tokens, dedup=dedup)

    async def close(self) -> None:
        self.deduplicator.clear()
        await self.client.close()
