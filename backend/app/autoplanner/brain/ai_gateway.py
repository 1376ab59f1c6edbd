"""
AI Gateway
==========

Thin HTTP gateway to the LLM providers that back the decision oracle.

- Anthropic Messages API, OpenAI Chat Completions, local Ollama
- API keys and endpoints from the environment
- Failures come back as AIResponse(success=False), never as exceptions
- Tracks request/token counts for the run summary
"""

import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..config import PlannerConfig

logger = logging.getLogger(__name__)


class AIProvider(Enum):
    """Supported AI providers"""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"


DEFAULT_MODELS = {
    AIProvider.OPENAI: "gpt-4o-mini",
    AIProvider.ANTHROPIC: "claude-3-haiku-20240307",
    AIProvider.OLLAMA: "mistral",
}

MODEL_ENV_VARS = {
    AIProvider.OPENAI: "OPENAI_MODEL",
    AIProvider.ANTHROPIC: "ANTHROPIC_MODEL",
    AIProvider.OLLAMA: "OLLAMA_MODEL",
}


@dataclass
class AIRequest:
    """A request for AI assistance"""
    request_type: str  # element_selection, notable_elements
    prompt: str
    max_tokens: int = 150
    temperature: float = 0.2
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AIResponse:
    """Response from AI"""
    success: bool
    content: str
    tokens_used: int
    latency_ms: int = 0
    error: Optional[str] = None


class AIGateway:
    """
    Gateway for AI API calls.

    Responsibilities:
    - Provider selection and model resolution
    - Request dispatch over httpx
    - Usage metrics
    """

    ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
    OPENAI_URL = "https://api.openai.com/v1/chat/completions"

    def __init__(
        self,
        provider: Optional[AIProvider] = None,
        model: Optional[str] = None,
        config: Optional[PlannerConfig] = None,
        timeout: float = 30.0
    ):
        self.config = config or PlannerConfig()
        if provider is None:
            provider = self._provider_from_config(self.config)
        self.provider = provider
        self.model = model or self.config.ai_model or os.getenv(MODEL_ENV_VARS[provider]) or DEFAULT_MODELS[provider]
        self.timeout = timeout

        # Statistics
        self.total_requests = 0
        self.failed_requests = 0
        self.total_tokens = 0

    @staticmethod
    def _provider_from_config(config: PlannerConfig) -> AIProvider:
        name = (config.ai_provider or "").lower()
        try:
            return AIProvider(name)
        except ValueError:
            if name:
                logger.warning(f"[AI-GATE] Unknown provider '{name}', using ollama")
            return AIProvider.OLLAMA

    def is_configured(self) -> bool:
        """Whether the provider has the credentials it needs"""
        if self.provider == AIProvider.ANTHROPIC:
            return bool(os.getenv("ANTHROPIC_API_KEY"))
        if self.provider == AIProvider.OPENAI:
            return bool(os.getenv("OPENAI_API_KEY"))
        return True

    async def request(self, request: AIRequest) -> AIResponse:
        """
        Make an AI request.

        This is the main entry point for AI calls.
        """
        self.total_requests += 1
        start_time = time.time()

        try:
            if self.provider == AIProvider.ANTHROPIC:
                response = await self._call_anthropic(request)
            elif self.provider == AIProvider.OPENAI:
                response = await self._call_openai(request)
            else:
                response = await self._call_ollama(request)
        except Exception as e:
            logger.error(f"[AI-GATE] {self.provider.value} call failed: {e}")
            response = AIResponse(success=False, content="", tokens_used=0, error=str(e))

        response.latency_ms = int((time.time() - start_time) * 1000)
        self.total_tokens += response.tokens_used
        if not response.success:
            self.failed_requests += 1
            logger.warning(f"[AI-GATE] {request.request_type} failed: {response.error}")
        else:
            logger.debug(
                f"[AI-GATE] {request.request_type} answered in {response.latency_ms}ms "
                f"({response.tokens_used} tokens)"
            )
        return response

    async def _call_anthropic(self, request: AIRequest) -> AIResponse:
        """Call Anthropic Claude API"""
        import httpx

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            return AIResponse(success=False, content="", tokens_used=0, error="ANTHROPIC_API_KEY not set")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                self.ANTHROPIC_URL,
                headers={
                    "x-api-key": api_key,
                    "anthropic-version": "2023-06-01",
                    "content-type": "application/json"
                },
                json={
                    "model": self.model,
                    "max_tokens": request.max_tokens,
                    "temperature": request.temperature,
                    "messages": [{"role": "user", "content": request.prompt}]
                }
            )

        if response.status_code != 200:
            return AIResponse(success=False, content="", tokens_used=0, error=f"API error: {response.status_code}")

        data = response.json()
        content = "".join(block.get("text", "") for block in data.get("content", []))
        usage = data.get("usage", {})
        tokens = usage.get("input_tokens", 0) + usage.get("output_tokens", 0)
        return AIResponse(success=True, content=content, tokens_used=tokens)

    async def _call_openai(self, request: AIRequest) -> AIResponse:
        """Call OpenAI API"""
        import httpx

        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            return AIResponse(success=False, content="", tokens_used=0, error="OPENAI_API_KEY not set")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                os.getenv("OPENAI_BASE_URL", self.OPENAI_URL),
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json"
                },
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": request.prompt}],
                    "max_tokens": request.max_tokens,
                    "temperature": request.temperature
                }
            )

        if response.status_code != 200:
            return AIResponse(success=False, content="", tokens_used=0, error=f"API error: {response.status_code}")

        data = response.json()
        content = data["choices"][0]["message"]["content"] or ""
        tokens = data.get("usage", {}).get("total_tokens", 0)
        return AIResponse(success=True, content=content, tokens_used=tokens)

    async def _call_ollama(self, request: AIRequest) -> AIResponse:
        """Call Ollama local API"""
        import httpx

        ollama_url = os.getenv("OLLAMA_URL", "http://localhost:11434")

        async with httpx.AsyncClient(timeout=max(self.timeout, 60.0)) as client:
            response = await client.post(
                f"{ollama_url}/api/generate",
                json={
                    "model": self.model,
                    "prompt": request.prompt,
                    "stream": False,
                    "options": {"temperature": request.temperature}
                }
            )

        if response.status_code != 200:
            return AIResponse(success=False, content="", tokens_used=0, error=f"Ollama error: {response.status_code}")

        data = response.json()
        content = data.get("response", "")
        # Ollama doesn't report exact tokens, estimate
        tokens = len(request.prompt.split()) + len(content.split())
        return AIResponse(success=True, content=content, tokens_used=tokens)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "model": self.model,
            "total_requests": self.total_requests,
            "failed_requests": self.failed_requests,
            "total_tokens": self.total_tokens,
        }
