"""AI provider client for minutes generation via LiteLLM.

MinutesProvider is the one-method contract the generator depends on:
``generate_content(prompt) -> ProviderResponse``. LiteLLMProvider implements
it on top of ``litellm.acompletion`` so OpenAI, Gemini and Anthropic models
are interchangeable via the GENERATION_MODEL setting.

LiteLLM's own retries are disabled (``num_retries=0``); timeouts and retries
belong to the InvocationGuard. Provider exceptions are translated into the
minutes error taxonomy:
- AuthenticationError -> ConfigurationError (never retried)
- RateLimitError      -> ProviderError with retry_after_ms when advertised
- anything else       -> ProviderError
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import litellm
import structlog
from pydantic import BaseModel, Field

from src.scribe.config import get_settings
from src.scribe.core.monitoring import track_llm_call
from src.scribe.minutes.errors import ConfigurationError, ProviderError

logger = structlog.get_logger(__name__)


class ProviderResponse(BaseModel):
    """Text payload returned by the provider for one prompt."""

    text: str
    model: str = ""
    usage: dict[str, int] = Field(default_factory=dict)


@runtime_checkable
class MinutesProvider(Protocol):
    """Contract for any AI provider able to turn a prompt into text."""

    model: str

    def ensure_configured(self) -> None:
        """Raise ConfigurationError if the provider cannot be called."""
        ...

    async def generate_content(self, prompt: str) -> ProviderResponse:
        """Send ``prompt`` and return the model's text."""
        ...


class LiteLLMProvider:
    """MinutesProvider backed by ``litellm.acompletion``.

    Args:
        model: LiteLLM model string; defaults to GENERATION_MODEL.
        api_key: Credential override; defaults to the key matching the
            model's provider prefix.
        temperature: Sampling temperature.
        max_tokens: Maximum tokens in the response.
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 4096,
    ) -> None:
        settings = get_settings()
        self.model = model or settings.GENERATION_MODEL
        self._api_key = api_key if api_key is not None else settings.api_key_for_model(self.model)
        self._temperature = temperature
        self._max_tokens = max_tokens

    def ensure_configured(self) -> None:
        if not self._api_key:
            raise ConfigurationError(f"No API key configured for model {self.model}")

    async def generate_content(self, prompt: str) -> ProviderResponse:
        """Execute one completion call.

        Args:
            prompt: Full prompt text.

        Returns:
            ProviderResponse with the first choice's text ("" if empty).

        Raises:
            ConfigurationError: The provider rejected the credential.
            ProviderError: Any other provider or transport failure.
        """
        async with track_llm_call(self.model) as tracker:
            try:
                response = await litellm.acompletion(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    api_key=self._api_key,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                    response_format={"type": "json_object"},
                    drop_params=True,
                    num_retries=0,
                )
            except litellm.AuthenticationError as exc:
                raise ConfigurationError(
                    f"Provider rejected credentials for model {self.model}"
                ) from exc
            except litellm.RateLimitError as exc:
                retry_after_ms = _retry_after_ms(exc)
                logger.warning(
                    "llm_rate_limited",
                    model=self.model,
                    retry_after_ms=retry_after_ms,
                )
                raise ProviderError(
                    "Provider rate limit exceeded",
                    status_code=429,
                    retry_after_ms=retry_after_ms,
                ) from exc
            except Exception as exc:
                raise ProviderError(
                    f"Provider call failed: {exc}",
                    status_code=getattr(exc, "status_code", None),
                ) from exc

            usage: dict[str, int] = {}
            if getattr(response, "usage", None):
                usage = {
                    "prompt_tokens": response.usage.prompt_tokens or 0,
                    "completion_tokens": response.usage.completion_tokens or 0,
                    "total_tokens": response.usage.total_tokens or 0,
                }
                tracker["prompt_tokens"] = usage["prompt_tokens"]
                tracker["completion_tokens"] = usage["completion_tokens"]

        return ProviderResponse(
            text=response.choices[0].message.content or "",
            model=getattr(response, "model", None) or self.model,
            usage=usage,
        )


def _retry_after_ms(exc: Exception) -> int | None:
    """Read a ``retry-after`` (seconds) header off a rate-limit exception."""
    headers = getattr(exc, "litellm_response_headers", None)
    if headers is None:
        response = getattr(exc, "response", None)
        headers = getattr(response, "headers", None)
    if not headers:
        return None

    raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        return int(float(raw) * 1000)
    except (TypeError, ValueError):
        return None
