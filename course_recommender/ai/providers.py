"""
Text-generation provider clients.

Providers:
  - ``OpenAIProvider``  — any OpenAI-compatible ``/chat/completions`` endpoint.
  - ``GeminiProvider``  — Google Generative Language ``:generateContent``.

Both expose the single ``generate(prompt) -> str`` call used by the
recommendation enricher. Transport errors, non-2xx responses and
unexpected response shapes are all raised as ``AIProviderError`` so the
caller can degrade with one ``except`` clause.

Usage::

    provider = build_ai_provider(config.ai)
    if provider is not None:
        text = provider.generate("Why should Ana take 'Advanced Excel'?")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional

import httpx

from course_recommender.ai.tokens import EnvTokenProvider, TokenProvider
from course_recommender.config import AIConfig
from course_recommender.errors import AIProviderError

logger = logging.getLogger(__name__)


class AIProvider(ABC):
    """Abstract text-generation client."""

    name: ClassVar[str]

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Return generated text for ``prompt``.

        Raises:
            AIProviderError: On any transport or response failure.
        """

    def close(self) -> None:
        """Release pooled connections. Default: no-op."""


class _HttpProvider(AIProvider):
    """Shared httpx plumbing for JSON-over-HTTP providers."""

    DEFAULT_BASE_URL: ClassVar[str] = ""

    def __init__(
        self,
        model: str,
        token_provider: TokenProvider,
        base_url: str = "",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.model = model
        self.token_provider = token_provider
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._client = httpx.Client(timeout=timeout_seconds, transport=transport)

    def close(self) -> None:
        self._client.close()

    def _post_json(self, url: str, headers: dict[str, str], body: dict[str, Any]) -> Any:
        try:
            resp = self._client.post(url, headers=headers, json=body)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            raise AIProviderError(
                f"{self.name} returned HTTP {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise AIProviderError(f"{self.name} request failed: {exc}") from exc
        except ValueError as exc:
            raise AIProviderError(f"{self.name} returned a non-JSON body.") from exc


class OpenAIProvider(_HttpProvider):
    """OpenAI-compatible chat completions client.

    Endpoint::

        POST {base_url}/chat/completions
        Authorization: Bearer <token>
        {"model": ..., "messages": [{"role": "user", "content": prompt}]}
    """

    name: ClassVar[str] = "openai"
    DEFAULT_BASE_URL: ClassVar[str] = "https://api.openai.com/v1"

    max_tokens: int = 80
    temperature: float = 0.8

    def generate(self, prompt: str) -> str:
        data = self._post_json(
            f"{self.base_url}/chat/completions",
            headers={"Authorization": f"Bearer {self.token_provider.get_token()}"},
            body={
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
            },
        )
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AIProviderError("openai response has no choices[0].message.content.") from exc
        return _clean(text, self.name)


class GeminiProvider(_HttpProvider):
    """Google Generative Language client.

    Endpoint::

        POST {base_url}/models/{model}:generateContent
        x-goog-api-key: <token>
        {"contents": [{"parts": [{"text": prompt}]}]}
    """

    name: ClassVar[str] = "gemini"
    DEFAULT_BASE_URL: ClassVar[str] = "https://generativelanguage.googleapis.com/v1beta"

    def generate(self, prompt: str) -> str:
        data = self._post_json(
            f"{self.base_url}/models/{self.model}:generateContent",
            headers={"x-goog-api-key": self.token_provider.get_token()},
            body={"contents": [{"parts": [{"text": prompt}]}]},
        )
        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise AIProviderError("gemini response has no candidates[0].content.parts.") from exc
        return _clean(text, self.name)


_PROVIDERS: dict[str, type[_HttpProvider]] = {
    OpenAIProvider.name: OpenAIProvider,
    GeminiProvider.name: GeminiProvider,
}


def build_ai_provider(
    config: AIConfig,
    token_provider: Optional[TokenProvider] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Optional[AIProvider]:
    """Instantiate the provider named in ``config.provider``.

    Args:
        config:         ``AIConfig`` section.
        token_provider: Credential source; defaults to ``EnvTokenProvider``
                        reading ``config.api_key_env``.
        transport:      Optional httpx transport (``httpx.MockTransport`` in tests).

    Returns:
        The provider, or ``None`` when ``provider = "none"``.
    """
    if config.provider == "none":
        return None

    provider_cls = _PROVIDERS[config.provider]
    logger.info("AI enrichment enabled: provider=%s model=%s", config.provider, config.model)
    return provider_cls(
        model=config.model,
        token_provider=token_provider or EnvTokenProvider(config.api_key_env),
        base_url=config.base_url,
        timeout_seconds=config.timeout_seconds,
        transport=transport,
    )


def _clean(text: Any, provider: str) -> str:
    if not isinstance(text, str) or not text.strip():
        raise AIProviderError(f"{provider} returned empty text.")
    return text.strip()
