"""SiliconFlow provider implementation for the Interview Practice core."""

import asyncio
import json
import os
import re
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp
from pydantic import BaseModel, Field

from ..services.llm_manager import LanguageModelClient, Message
from ..utils.exceptions import ConfigurationError, StructuredOutputParseError, UpstreamCallFailedError
from ..utils.logging import get_logger


DEFAULT_BASE_URL = "https://api.siliconflow.cn/v1"
DEFAULT_MODEL = "Qwen/Qwen3-8B"
DEFAULT_TIMEOUT = 60

_LIST_PREFIX = re.compile(r"^[\d.\-\s]+")


class ChatCompletionRequest(BaseModel):
    """OpenAI-compatible chat completion request."""
    model: str = Field(..., description="Model to use for generation")
    messages: List[Dict[str, str]] = Field(..., description="List of messages")
    temperature: float = Field(default=0.7, description="Sampling temperature")
    max_tokens: Optional[int] = Field(default=None, description="Maximum tokens to generate")
    stream: bool = Field(default=False, description="Whether to stream the response")


def extract_json_array(text: str) -> List[str]:
    """Pull a list of strings out of a model response.

    Tries the whole text as a JSON array, then the outermost ``[...]`` span,
    then falls back to one item per line with list numbering stripped.

    Raises:
        StructuredOutputParseError: If nothing usable is found
    """
    for candidate in (text, _bracket_span(text)):
        if candidate is None:
            continue
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, TypeError):
            continue
        if isinstance(parsed, list) and all(isinstance(item, str) for item in parsed):
            return parsed

    items = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("[") or line.startswith("]") or len(line) <= 5:
            continue
        item = _LIST_PREFIX.sub("", line).strip().strip('"').strip()
        if item:
            items.append(item)

    if not items:
        raise StructuredOutputParseError("Failed to extract questions from response", raw_response=text[:200])
    return items


def _bracket_span(text: str) -> Optional[str]:
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or start >= end:
        return None
    return text[start:end + 1]


class SiliconFlowClient(LanguageModelClient):
    """Async client for the SiliconFlow chat completion API."""

    provider_name = "siliconflow"

    def __init__(self, api_key: str, base_url: str = DEFAULT_BASE_URL, model: str = DEFAULT_MODEL,
                 timeout: float = DEFAULT_TIMEOUT, session: Optional[aiohttp.ClientSession] = None):
        """Initialize the client.

        Args:
            api_key: SiliconFlow API key
            base_url: API base URL
            model: Default model, overridable per call
            timeout: Total request timeout in seconds
            session: Optional shared aiohttp session

        Raises:
            ConfigurationError: If the API key is empty
        """
        if not api_key:
            raise ConfigurationError("SiliconFlow API key is required", config_key="SILICONFLOW_API_KEY")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self.logger = get_logger("llm.provider.siliconflow")

    @classmethod
    def from_env(cls) -> "SiliconFlowClient":
        """Create a client from SILICONFLOW_* environment variables."""
        api_key = os.getenv("SILICONFLOW_API_KEY")
        if not api_key:
            raise ConfigurationError("SILICONFLOW_API_KEY not found in environment", config_key="SILICONFLOW_API_KEY")
        return cls(
            api_key=api_key,
            base_url=os.getenv("SILICONFLOW_BASE_URL", DEFAULT_BASE_URL),
            model=os.getenv("SILICONFLOW_MODEL", DEFAULT_MODEL),
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SiliconFlowClient":
        """Create a client from a provider configuration dictionary."""
        return cls(
            api_key=config.get("api_key", ""),
            base_url=config.get("base_url") or DEFAULT_BASE_URL,
            model=config.get("model") or DEFAULT_MODEL,
            timeout=config.get("timeout", DEFAULT_TIMEOUT),
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self._session

    def _build_request(self, messages: List[Message], temperature: float, max_tokens: Optional[int],
                       model: Optional[str], stream: bool = False) -> Dict[str, Any]:
        request = ChatCompletionRequest(
            model=model or self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            stream=stream,
        )
        return request.model_dump(exclude_none=True)

    async def chat_completion(self, messages: List[Message], temperature: float = 0.7,
                              max_tokens: Optional[int] = None, model: Optional[str] = None) -> str:
        url = f"{self.base_url}/chat/completions"
        payload = self._build_request(messages, temperature, max_tokens, model)

        try:
            async with self._get_session().post(url, json=payload, headers=self._headers()) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise UpstreamCallFailedError(
                        f"API request failed with status {response.status}: {error_text}",
                        provider_name=self.provider_name,
                        status_code=response.status,
                    )
                data = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise UpstreamCallFailedError(
                f"Request to SiliconFlow API timeout after {self.timeout}s", provider_name=self.provider_name
            ) from e
        except aiohttp.ClientError as e:
            raise UpstreamCallFailedError(
                f"Failed to send request to SiliconFlow API (connection error): {e}", provider_name=self.provider_name
            ) from e

        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamCallFailedError(
                "No choices in API response", provider_name=self.provider_name, details={"response": str(data)[:200]}
            ) from e

    async def chat_completion_stream(self, messages: List[Message], temperature: float = 0.7,
                                     max_tokens: Optional[int] = None,
                                     model: Optional[str] = None) -> AsyncIterator[str]:
        """Stream completion chunks from the server-sent event response."""
        url = f"{self.base_url}/chat/completions"
        payload = self._build_request(messages, temperature, max_tokens, model, stream=True)

        try:
            async with self._get_session().post(url, json=payload, headers=self._headers()) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise UpstreamCallFailedError(
                        f"API request failed with status {response.status}: {error_text}",
                        provider_name=self.provider_name,
                        status_code=response.status,
                    )
                async for raw_line in response.content:
                    line = raw_line.decode("utf-8").strip()
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError:
                        self.logger.warning(f"Skipping malformed stream chunk: {data[:100]}")
                        continue
                    choices = chunk.get("choices") or []
                    content = choices[0].get("delta", {}).get("content") if choices else None
                    if content:
                        yield content
        except asyncio.TimeoutError as e:
            raise UpstreamCallFailedError(
                f"Stream from SiliconFlow API timeout after {self.timeout}s", provider_name=self.provider_name
            ) from e
        except aiohttp.ClientError as e:
            raise UpstreamCallFailedError(
                f"Stream from SiliconFlow API failed (connection error): {e}", provider_name=self.provider_name
            ) from e

    async def generate_questions(self, resume: str, job_description: str, count: int) -> List[str]:
        """Generate interview questions for a resume and job description.

        Raises:
            UpstreamCallFailedError: If the API call fails
            StructuredOutputParseError: If no questions can be extracted
        """
        system_prompt = (
            "You are an experienced interviewer. You MUST respond with ONLY a valid JSON array, "
            "no additional text or explanations."
        )
        user_prompt = (
            f"Based on the following resume and job description, generate exactly {count} relevant "
            f"interview questions.\n\nResume:\n{resume}\n\nJob Description:\n{job_description}\n\n"
            "IMPORTANT: Return ONLY a JSON array of strings. No explanations, no markdown, just the array. "
            'Format: ["question1", "question2", ...]'
        )
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        response = await self.chat_completion(messages, temperature=0.8, max_tokens=2000)
        self.logger.debug(f"Question generation response: {response[:200]}")
        questions = extract_json_array(response)
        if len(questions) != count:
            self.logger.warning(f"Expected {count} questions, got {len(questions)}")
        return questions

    async def generate_best_answer(self, question: str, job_description: str) -> str:
        """Generate a reference answer for an interview question."""
        system_prompt = (
            "You are a senior candidate who consistently gives excellent interview answers. "
            "Answer in plain text without markdown."
        )
        user_prompt = (
            f"Job Description:\n{job_description}\n\nInterview Question: {question}\n\n"
            "Write a model answer of 150-300 words. Be specific, structured and use a concrete example."
        )
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        answer = await self.chat_completion(messages, temperature=0.7, max_tokens=1500)
        return answer.strip()

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
