"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When ``openai_base_url`` is configured (TogetherAI, Fireworks, Groq and
other OpenAI-compatible APIs) the client points there instead.

Images go through ``image_url`` data URIs; PDFs through the ``file``
content part, which only OpenAI's own endpoint is known to accept.
"""

from __future__ import annotations

import base64

import openai
import structlog

from smartlens.config.settings import Settings
from smartlens.interfaces.llm_provider import ILLMProvider
from smartlens.providers.llm.media_types import PDF, resolve_media_type
from smartlens.utils.errors import CredentialError, LLMError, LLMTimeoutError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible API.

    Uses ``gpt-4o`` for document reading and ``gpt-4o-mini`` for analysis by
    default; both can be overridden via settings.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(settings.llm_request_timeout_seconds, connect=5.0),
            "max_retries": 0,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._text_model = settings.openai_text_model or "gpt-4o-mini"
        self._vision_model = settings.openai_vision_model or "gpt-4o"
        # Custom endpoints only get vision when a vision model is named.
        self._has_vision = bool(settings.openai_vision_model) or not settings.openai_base_url
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIError as exc:
            raise self._wrap_error(exc, "completion") from exc

        content = response.choices[0].message.content
        if content is None:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=self._text_model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    async def vision_extract(self, data: bytes, prompt: str, media_type: str | None = None) -> str:
        if not self._has_vision:
            raise LLMError(
                message="Vision not supported by this provider configuration",
                provider_name=self.get_provider_name(),
            )
        media_type = resolve_media_type(data, media_type)
        b64 = base64.b64encode(data).decode("utf-8")
        data_uri = f"data:{media_type};base64,{b64}"
        if media_type == PDF:
            document_part = {
                "type": "file",
                "file": {"filename": "document.pdf", "file_data": data_uri},
            }
        else:
            document_part = {"type": "image_url", "image_url": {"url": data_uri}}

        try:
            response = await self._client.chat.completions.create(
                model=self._vision_model,
                messages=[
                    {
                        "role": "user",
                        "content": [{"type": "text", "text": prompt}, document_part],
                    }
                ],
                temperature=0.0,
                max_tokens=8000,
            )
        except openai.APIError as exc:
            raise self._wrap_error(exc, "vision") from exc

        content = response.choices[0].message.content
        if content is None:
            raise LLMError(
                message=f"{self._provider_label} vision returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_vision_extract",
            model=self._vision_model,
            provider=self._provider_label,
            media_type=media_type,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def supports_vision(self) -> bool:
        return self._has_vision

    def is_available(self) -> bool:
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return self._provider_label

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _wrap_error(self, exc: openai.APIError, call: str) -> LLMError:
        name = self.get_provider_name()
        if isinstance(exc, openai.APITimeoutError):
            return LLMTimeoutError(f"{self._provider_label} {call} request timed out", provider_name=name)
        if isinstance(exc, openai.RateLimitError):
            # insufficient_quota arrives as a 429 too; the message keeps the code.
            return RateLimitError(f"{self._provider_label} rate limit: {exc}", provider_name=name)
        if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return CredentialError(f"{self._provider_label} rejected the API key: {exc}", provider_name=name)
        return LLMError(f"{self._provider_label} {call} API error: {exc}", provider_name=name)
