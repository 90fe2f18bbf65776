"""Async OpenAI completion client with fallback and retry logic."""

import asyncio
import time
from typing import Any, Protocol

import httpx
import orjson
from openai import AsyncOpenAI
from pydantic import BaseModel

from ..config import ModelSettings, Settings, get_settings
from ..errors import ConfigurationError, LLMError
from ..logging import get_logger, log_error
from ..processing.relevance import term_score
from ..rubrics import ITEMS_HEADER
from ..utils import retry_async

logger = get_logger(__name__)


class ChatMessage(BaseModel):
    """Chat message for LLM interaction."""
    role: str
    content: str


class LLMResponse(BaseModel):
    """LLM response wrapper."""
    content: str
    model: str
    usage: dict[str, Any] | None = None
    response_time: float | None = None


class CompletionService(Protocol):
    """Anything that turns a system + user prompt into response text."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


class CompletionClient:
    """Async OpenAI chat-completions client with model fallback and retries."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.model_settings: ModelSettings = self.settings.llm

        if not self.settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required for the completion service")

        self._client = AsyncOpenAI(
            api_key=self.settings.openai_api_key,
            http_client=httpx.AsyncClient(timeout=self.model_settings.timeout_seconds),
        )
        logger.info("OpenAI client initialized", model=self.settings.model_name)

    @property
    def models_to_try(self) -> list[str]:
        if self.settings.llm_model_override:
            return [self.settings.llm_model_override]
        return [self.settings.openai_model, *self.settings.fallback_models]

    async def _make_request(self, model: str, messages: list[ChatMessage]) -> LLMResponse:
        """Make request to OpenAI API."""
        start_time = time.time()

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                temperature=self.model_settings.temperature,
                max_tokens=self.model_settings.max_tokens,
                timeout=self.model_settings.timeout_seconds,
            )
        except Exception as e:
            raise LLMError(f"OpenAI API error for model {model}: {e}") from e

        response_time = time.time() - start_time
        content = response.choices[0].message.content if response.choices else None

        if not content:
            raise LLMError(f"Empty response content from {model}")

        return LLMResponse(
            content=content,
            model=model,
            usage={
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            } if response.usage else None,
            response_time=response_time,
        )

    async def chat(self, messages: list[ChatMessage]) -> LLMResponse:
        """Send chat messages, retrying each model before falling back to the next.

        Raises:
            LLMError: If all models and retries fail
        """
        if not messages:
            raise LLMError("No messages provided")

        last_error: Exception | None = None

        for model in self.models_to_try:
            logger.debug("Trying model", model=model)

            async def make_request(model: str = model) -> LLMResponse:
                return await self._make_request(model, messages)

            try:
                response = await retry_async(
                    make_request,
                    max_retries=self.model_settings.retry_attempts,
                    backoff_factor=self.model_settings.backoff_factor,
                    exceptions=(LLMError, httpx.RequestError, httpx.TimeoutException),
                )
            except (LLMError, httpx.RequestError, httpx.TimeoutException) as e:
                last_error = e
                logger.warning("Model failed after retries", **log_error(e, model=model))
                continue

            logger.info(
                "LLM request successful",
                model=model,
                response_time=response.response_time,
                usage=response.usage,
            )
            return response

        raise LLMError(f"All models failed: {last_error}") from last_error

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        response = await self.chat([
            ChatMessage(role="system", content=system_prompt),
            ChatMessage(role="user", content=user_prompt),
        ])
        return response.content


class MockCompletionClient:
    """Offline completion service.

    Rates every item in the prompt by its term score, so runs are
    deterministic and need no credentials.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls = 0

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)

        _, _, payload = user_prompt.partition(ITEMS_HEADER)
        try:
            batch = orjson.loads(payload.strip() or "[]")
        except orjson.JSONDecodeError as e:
            raise LLMError(f"Mock client could not read items: {e}") from e

        ratings = []
        for entry in batch:
            result = term_score(entry.get("title", ""), entry.get("summary") or "", entry.get("tags") or [])
            ratings.append({
                "id": entry.get("id"),
                "score": round(result.term_score, 1),
                "reasoning": f"Mock rating from term match ({result.primary_category})",
            })

        return orjson.dumps({"ratings": ratings}).decode()


def create_completion_client(settings: Settings | None = None) -> CompletionService:
    """Factory function to create a completion client.

    Raises:
        ConfigurationError: If the real client is requested without credentials
    """
    settings = settings or get_settings()
    if settings.mock:
        return MockCompletionClient()
    return CompletionClient(settings)
