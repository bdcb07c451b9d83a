"""
LLM Client Infrastructure
==========================

Wrappers for LLM providers (Z.AI, OpenAI) behind one interface.

The model-assisted classifier only needs chat completion; anything that
goes wrong here is raised as ``LLMException`` and handled by the
classifier's fallback boundary.
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI
from zai import ZaiClient

from shipwatch.config import Settings, settings as default_settings
from shipwatch.core import ConfigurationException, LLMException
from shipwatch.shared.infrastructure.grafana import get_grafana_exporter
from shipwatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """Interface for LLM client operations."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 400,
        operation: str = "update_analysis"
    ) -> ChatCompletionResult:
        """Generate chat completion."""


async def _export_usage(result: ChatCompletionResult, operation: str) -> None:
    exporter = get_grafana_exporter()
    if exporter.is_enabled():
        await exporter.export_llm_metrics(
            model=result.model,
            prompt_tokens=result.prompt_tokens,
            completion_tokens=result.completion_tokens,
            latency_ms=result.latency_ms,
            operation=operation
        )


class ZAIILLMClient(ILLMClient):
    """
    Z.AI SDK client for GLM models.

    The SDK is synchronous, so calls run in a worker thread.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key or default_settings.zai_api_key
        if not self._api_key:
            raise ConfigurationException("Z.AI API key not configured")

        self._client = ZaiClient(api_key=self._api_key)
        self._model = model or default_settings.llm_model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 400,
        operation: str = "update_analysis"
    ) -> ChatCompletionResult:
        start_time = time.perf_counter()

        try:
            response = await asyncio.to_thread(
                self._client.chat.completions.create,
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
            content = response.choices[0].message.content or ""
        except Exception as e:
            raise LLMException(f"Chat completion failed: {e}")

        # Z.AI doesn't reliably return token usage, so we estimate
        result = ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=len(str(messages)) // 4,
            completion_tokens=len(content) // 4,
            latency_ms=int((time.perf_counter() - start_time) * 1000)
        )
        await _export_usage(result, operation)
        return result


class OpenAILLMClient(ILLMClient):
    """OpenAI client for GPT models."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self._api_key = api_key or default_settings.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(api_key=self._api_key)
        self._model = model or default_settings.llm_model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 400,
        operation: str = "update_analysis"
    ) -> ChatCompletionResult:
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
            content = response.choices[0].message.content or ""
            usage = response.usage
        except Exception as e:
            raise LLMException(f"Chat completion failed: {e}")

        result = ChatCompletionResult(
            content=content,
            model=self._model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=int((time.perf_counter() - start_time) * 1000)
        )
        await _export_usage(result, operation)
        return result


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for local runs.

    Flags an issue only when the update mentions customs, otherwise
    reports a normal update.
    """

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.1,
        max_tokens: int = 400,
        operation: str = "update_analysis"
    ) -> ChatCompletionResult:
        user_content = str(messages[-1].get("content", "")) if messages else ""
        if "customs" in user_content.lower():
            analysis = {
                "hasIssue": True,
                "issueType": "customs_hold",
                "severity": "high",
                "reason": "Mock: update mentions customs",
                "location": None,
                "isResolved": False,
                "carrier": "unknown",
                "route": None,
            }
        else:
            analysis = {
                "hasIssue": False,
                "issueType": "none",
                "severity": "low",
                "reason": "Mock: normal update",
                "location": None,
                "isResolved": False,
                "carrier": "unknown",
                "route": None,
            }
        content = f"```json\n{json.dumps(analysis, indent=2)}\n```"

        return ChatCompletionResult(
            content=content,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=1
        )


def create_llm_client(config: Settings) -> Optional[ILLMClient]:
    """
    Build the configured LLM client.

    Returns None (model-assisted classification disabled) when the chosen
    provider has no credentials.
    """
    if config.llm_provider == "mock":
        return MockLLMClient()

    try:
        if config.llm_provider == "openai":
            return OpenAILLMClient(config.openai_api_key, config.llm_model)
        return ZAIILLMClient(config.zai_api_key, config.llm_model)
    except ConfigurationException as e:
        logger.warning(
            "Model-assisted classification disabled",
            extra={"provider": config.llm_provider, "reason": e.message}
        )
        return None
