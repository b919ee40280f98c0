"""
LiteLLM Completion Service

CompletionService implementation backed by ``litellm.acompletion``. Two
providers are supported:

- openrouter: hosted models, requires an API key and a model name
- ollama: local or self-hosted models, no key required

The service sends one system instruction plus one user message per call and
maps every provider or transport error to CompletionRequestFailed.
"""

import time
from typing import Any, Dict, List, Optional

import litellm
import structlog

from easy_orchestrator.core.domain.errors import CompletionRequestFailed, CompletionUnavailable
from easy_orchestrator.core.interfaces.llm import CompletionResponse

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OLLAMA_BASE_URL = "http://localhost:11434"
OLLAMA_DEFAULT_MODEL = "llama3.1"

SUPPORTED_PROVIDERS = ("openrouter", "ollama")


class LiteLLMCompletionService:
    """
    Completion backend for OpenRouter or Ollama through LiteLLM.

    Args:
        provider: "openrouter" or "ollama"
        model: Provider model name (e.g. "openai/gpt-4o-mini", "llama3.1")
        api_key: OpenRouter API key
        base_url: Override for the provider endpoint
        temperature: Default sampling temperature
        max_tokens: Default token ceiling
        timeout: Request timeout in seconds
        app_url: Attribution URL sent to OpenRouter (HTTP-Referer)
        app_title: Attribution title sent to OpenRouter (X-Title)

    Raises:
        CompletionUnavailable: Unknown provider, or OpenRouter without key/model
    """

    def __init__(
        self,
        provider: str = "openrouter",
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        timeout: int = 60,
        app_url: Optional[str] = None,
        app_title: str = "Easy Orchestrator",
    ):
        self.logger = structlog.get_logger().bind(component="litellm_service")
        self.provider = (provider or "openrouter").lower()

        if self.provider not in SUPPORTED_PROVIDERS:
            raise CompletionUnavailable(f"Unsupported LLM provider: {provider}")

        if self.provider == "openrouter":
            if not api_key:
                raise CompletionUnavailable("OpenRouter API key is not set.")
            if not model:
                raise CompletionUnavailable("OpenRouter model is not set.")
            self.base_url = base_url or OPENROUTER_BASE_URL
        else:
            self.base_url = base_url or OLLAMA_BASE_URL
            model = model or OLLAMA_DEFAULT_MODEL

        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.app_url = app_url
        self.app_title = app_title

        self.logger.info("llm_service_initialized", provider=self.provider, model=self.model)

    @property
    def litellm_model(self) -> str:
        """Model id with the LiteLLM provider prefix."""
        return f"{self.provider}/{self.model}"

    def _build_messages(self, system_prompt: str, user_message: str) -> List[Dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})
        return messages

    def _request_params(self, temperature: Optional[float], max_tokens: Optional[int]) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": self.max_tokens if max_tokens is None else max_tokens,
            "api_base": self.base_url,
            "timeout": self.timeout,
        }
        if self.api_key:
            params["api_key"] = self.api_key
        if self.provider == "openrouter":
            headers = {"X-Title": self.app_title}
            if self.app_url:
                headers["HTTP-Referer"] = self.app_url
            params["extra_headers"] = headers
        return params

    async def generate_response(
        self,
        system_prompt: str,
        user_message: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> CompletionResponse:
        """
        Generate a completion for one system/user message pair.

        Raises:
            CompletionRequestFailed: Provider, transport or response-shape error
        """
        messages = self._build_messages(system_prompt, user_message)
        start_time = time.time()

        self.logger.info(
            "llm_completion_started",
            model=self.litellm_model,
            message_count=len(messages),
        )

        try:
            response = await litellm.acompletion(
                model=self.litellm_model,
                messages=messages,
                **self._request_params(temperature, max_tokens),
            )
            choice = response.choices[0]
            content = choice.message.content
        except Exception as e:
            self.logger.error(
                "llm_completion_failed",
                model=self.litellm_model,
                error_type=type(e).__name__,
                error=str(e)[:200],
            )
            raise CompletionRequestFailed(
                f"{self.provider} API call failed: {e}",
                status_code=getattr(e, "status_code", None),
            ) from e

        if content is None:
            raise CompletionRequestFailed(f"Invalid response format from {self.provider} API")

        usage = getattr(response, "usage", None) or {}
        if isinstance(usage, dict):
            token_stats = usage
        else:
            token_stats = {
                "total_tokens": getattr(usage, "total_tokens", 0),
                "prompt_tokens": getattr(usage, "prompt_tokens", 0),
                "completion_tokens": getattr(usage, "completion_tokens", 0),
            }

        self.logger.info(
            "llm_completion_success",
            model=self.litellm_model,
            tokens=token_stats.get("total_tokens", 0),
            latency_ms=int((time.time() - start_time) * 1000),
        )

        return CompletionResponse(
            content=content,
            usage=token_stats,
            model=getattr(response, "model", None) or self.model,
            finish_reason=getattr(choice, "finish_reason", None),
        )
