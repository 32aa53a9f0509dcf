"""
OpenAI client for signal detection and momentum analysis.

The SDK is imported lazily so the package imports cleanly without an API
key. SDK errors are mapped onto ExternalServiceError so the shared retry
predicate can classify them, and every call goes through ``with_retry``.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

from signal_pipeline.config.settings import Settings, get_settings
from signal_pipeline.extraction.errors import (
    ExternalServiceError,
    RateLimitError,
    ServiceNotConfiguredError,
)
from signal_pipeline.extraction.retry import RetryPolicy, with_retry
from signal_pipeline.observability.metrics import get_metrics
from signal_pipeline.signals.config import SignalsConfig
from signal_pipeline.signals.schemas import TokenUsage

logger = logging.getLogger(__name__)

SERVICE = "openai"


@dataclass
class LLMResponse:
    text: str
    usage: TokenUsage


def estimate_tokens(text: str) -> int:
    """Rough token count (4 characters per token) for providers that omit usage."""
    return len(text) // 4


class SignalLLMClient:
    """JSON-mode chat completions with retries.

    Args:
        config: Signals configuration (model, timeout, temperature)
        settings: Application settings holding the API key
        retry_policy: Retry behaviour; defaults from settings
    """

    def __init__(
        self,
        config: SignalsConfig | None = None,
        settings: Settings | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._config = config or SignalsConfig()
        self._settings = settings or get_settings()
        self._retry_policy = retry_policy or RetryPolicy.from_settings(self._settings)
        self._client: Any = None

    @property
    def is_configured(self) -> bool:
        return self._settings.openai_api_key is not None

    def _get_client(self) -> Any:
        """Lazy-initialize OpenAI async client."""
        if self._client is None:
            if not self.is_configured:
                raise ServiceNotConfiguredError(SERVICE)

            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self._settings.openai_api_key.get_secret_value(),
                base_url=self._settings.openai_base_url,
                timeout=self._config.llm_timeout,
                # Retries are handled by with_retry
                max_retries=0,
            )
        return self._client

    async def complete_json(
        self,
        system_prompt: str,
        prompt: str,
        operation: str = "detection",
    ) -> LLMResponse:
        """
        Run one JSON-mode completion.

        Args:
            system_prompt: System message
            prompt: User message
            operation: Label for logs and token metrics

        Returns:
            Raw response text and token usage

        Raises:
            ServiceNotConfiguredError: No API key
            ExternalServiceError: The call failed after retries
        """
        response = await with_retry(
            lambda: self._create(system_prompt, prompt),
            self._retry_policy,
            operation=f"{SERVICE} {operation}",
        )

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""

        usage = response.usage
        if usage is not None:
            token_usage = TokenUsage(
                prompt_tokens=usage.prompt_tokens or 0,
                completion_tokens=usage.completion_tokens or 0,
            )
        else:
            token_usage = TokenUsage(
                prompt_tokens=estimate_tokens(system_prompt + prompt),
                completion_tokens=estimate_tokens(text),
                estimated=True,
            )

        get_metrics().record_tokens(
            operation, token_usage.prompt_tokens, token_usage.completion_tokens
        )
        return LLMResponse(text=text, usage=token_usage)

    async def _create(self, system_prompt: str, prompt: str) -> Any:
        import openai

        client = self._get_client()
        start = time.perf_counter()
        try:
            return await client.chat.completions.create(
                model=self._config.openai_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=self._config.temperature,
                response_format={"type": "json_object"},
            )
        except openai.RateLimitError as e:
            raise RateLimitError(f"{SERVICE} rate limited: {e}", service=SERVICE) from e
        except openai.APIStatusError as e:
            raise ExternalServiceError(
                f"{SERVICE} returned {e.status_code}: {e.message}",
                status_code=e.status_code,
                service=SERVICE,
            ) from e
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            raise ExternalServiceError(
                f"{SERVICE} connection failed: {e}", service=SERVICE, retryable=True
            ) from e
        finally:
            get_metrics().record_external_latency(SERVICE, time.perf_counter() - start)

    async def close(self) -> None:
        """Clean up the SDK client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
