"""
LLM Client Infrastructure
==========================

Wrappers for LLM providers (Ollama, OpenAI-compatible) providing a clean
interface for answer generation.

This module abstracts the LLM client implementation following the
Dependency Inversion Principle - the triage pipeline depends on
``IInferenceGateway``, not on a concrete provider.
"""

import json
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from openai import AsyncOpenAI

from ticket_triage.config import ESCALATION_SENTINEL, Settings
from ticket_triage.core import ConfigurationException, InferenceGatewayError
from ticket_triage.shared.infrastructure.logging import get_logger
from ticket_triage.triage.domain import DEFAULT_GENERATION_OPTIONS, GenerationOptions

logger = get_logger(__name__)

# OpenAI rejects more than four stop sequences
OPENAI_MAX_STOP_SEQUENCES = 4


class GenerationResult:
    """Result of a text generation."""

    def __init__(self, content: str, model: str, latency_ms: int):
        self.content = content
        self.model = model
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        options: GenerationOptions = DEFAULT_GENERATION_OPTIONS
    ) -> GenerationResult:
        """Generate text for a prompt."""

    async def close(self) -> None:
        """Release network resources, if any."""


class OllamaLLMClient(ILLMClient):
    """
    Ollama client using the non-streaming ``/api/generate`` endpoint.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._url = f"{base_url.rstrip('/')}/api/generate"
        self._model = model
        self._timeout = timeout
        self._http_client = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._http_client

    def _build_payload(self, prompt: str, options: GenerationOptions) -> dict:
        return {
            "model": self._model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": options.temperature,
                "top_p": options.top_p,
                "top_k": options.top_k,
                "num_predict": options.max_tokens,
                "repeat_penalty": options.repeat_penalty,
                "stop": list(options.stop),
            },
        }

    @staticmethod
    def _extract_text(response: httpx.Response) -> str:
        """
        Pull the generated text out of an Ollama response body.

        Raises:
            InferenceGatewayError: if the body has no usable text
        """
        try:
            data: Any = response.json()
        except ValueError:
            return response.text.strip()

        if isinstance(data, str):
            return data.strip()
        if isinstance(data, dict) and isinstance(data.get("response"), str):
            return data["response"].strip()

        raise InferenceGatewayError(
            "Unexpected response body",
            {"body": json.dumps(data)[:500]}
        )

    async def generate(
        self,
        prompt: str,
        options: GenerationOptions = DEFAULT_GENERATION_OPTIONS
    ) -> GenerationResult:
        """
        Generate an answer with Ollama.

        Raises:
            InferenceGatewayError: on transport failure, non-2xx status or a
                malformed body
        """
        payload = self._build_payload(prompt, options)
        logger.debug(
            "Sending prompt to Ollama",
            extra={
                "model": self._model,
                "temperature": options.temperature,
                "prompt_length": len(prompt)
            }
        )

        start_time = time.perf_counter()
        try:
            response = await self._get_client().post(self._url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise InferenceGatewayError(
                f"Ollama returned HTTP {e.response.status_code}",
                {"status_code": e.response.status_code}
            ) from e
        except httpx.HTTPError as e:
            raise InferenceGatewayError(f"Ollama request failed: {type(e).__name__}") from e

        content = self._extract_text(response)
        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Ollama answer generated",
            extra={"model": self._model, "latency_ms": latency_ms, "answer_length": len(content)}
        )
        return GenerationResult(content=content, model=self._model, latency_ms=latency_ms)

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation for chat models.

    Also works against OpenAI-compatible servers (Groq, vLLM) through
    ``base_url``.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: Optional[str] = None,
        timeout: float = 60.0
    ):
        if not api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self._model = model

    async def generate(
        self,
        prompt: str,
        options: GenerationOptions = DEFAULT_GENERATION_OPTIONS
    ) -> GenerationResult:
        """
        Generate an answer using chat completions.

        Raises:
            InferenceGatewayError: If completion fails
        """
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=options.temperature,
                top_p=options.top_p,
                max_tokens=options.max_tokens,
                stop=list(options.stop)[:OPENAI_MAX_STOP_SEQUENCES]
            )
            content = response.choices[0].message.content
        except Exception as e:
            raise InferenceGatewayError(f"Chat completion failed: {str(e)}") from e

        if content is None:
            raise InferenceGatewayError("Chat completion returned no content")

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "OpenAI answer generated",
            extra={"model": self._model, "latency_ms": latency_ms, "answer_length": len(content)}
        )
        return GenerationResult(content=content.strip(), model=self._model, latency_ms=latency_ms)

    async def close(self) -> None:
        await self._client.close()


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for local development.

    Returns predictable responses without calling external APIs: questions
    mentioning salaries, passwords of other users or private data escalate,
    everything else gets a canned answer.
    """

    ESCALATION_KEYWORDS = ("salary", "salario", "confidential", "private", "personal data")

    async def generate(
        self,
        prompt: str,
        options: GenerationOptions = DEFAULT_GENERATION_OPTIONS
    ) -> GenerationResult:
        lowered = prompt.lower()
        question = lowered.split("user question:", 1)[-1]
        if any(keyword in question for keyword in self.ESCALATION_KEYWORDS):
            content = ESCALATION_SENTINEL
        else:
            content = (
                "Open Settings > Account, choose the option you need and follow the "
                "on-screen steps. If the problem persists, sign out and back in."
            )
        return GenerationResult(content=content, model="mock-model", latency_ms=0)


def create_llm_client(settings: Settings) -> ILLMClient:
    """Build the LLM client selected by settings."""
    if settings.mock_llm:
        logger.warning("Using mock LLM client")
        return MockLLMClient()
    if settings.llm_provider == "openai":
        return OpenAILLMClient(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout_seconds
        )
    return OllamaLLMClient(
        base_url=settings.ollama_url,
        model=settings.llm_model,
        timeout=settings.llm_timeout_seconds
    )
