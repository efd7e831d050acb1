"""Anthropic LLM provider adapter.

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.
Serves both the vision fallback (images and PDFs) and document analysis.

Differences from the OpenAI adapter:
    - System prompt is a separate parameter, not a message in the list
    - Images use an "image" content block, PDFs a "document" block, both
      with inline base64 sources
    - Response content is a list of blocks; text blocks are joined
"""

from __future__ import annotations

import base64

import anthropic
import structlog

from smartlens.config.settings import Settings
from smartlens.interfaces.llm_provider import ILLMProvider
from smartlens.providers.llm.media_types import PDF, resolve_media_type
from smartlens.utils.errors import CredentialError, LLMError, LLMTimeoutError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Claude API.

    One model handles both text and document inputs.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.anthropic_api_key
        self._client = anthropic.AsyncAnthropic(
            api_key=self._api_key,
            timeout=settings.llm_request_timeout_seconds,
            # Retries are the user's call (re-upload), never the SDK's.
            max_retries=0,
        )
        self._model = settings.anthropic_model

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
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
            )
        except anthropic.APIError as exc:
            raise self._wrap_error(exc, "completion") from exc

        result = self._join_text(response, "completion")
        logger.info(
            "anthropic_completion",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return result

    async def vision_extract(self, data: bytes, prompt: str, media_type: str | None = None) -> str:
        media_type = resolve_media_type(data, media_type)
        b64 = base64.b64encode(data).decode("utf-8")
        block_type = "document" if media_type == PDF else "image"
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=8000,
                temperature=0.0,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": block_type,
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": b64,
                                },
                            },
                            {"type": "text", "text": prompt},
                        ],
                    }
                ],
            )
        except anthropic.APIError as exc:
            raise self._wrap_error(exc, "vision") from exc

        result = self._join_text(response, "vision")
        logger.info(
            "anthropic_vision_extract",
            model=self._model,
            media_type=media_type,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return result

    def supports_vision(self) -> bool:
        return True

    def is_available(self) -> bool:
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return "anthropic"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _join_text(self, response: anthropic.types.Message, call: str) -> str:
        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks:
            raise LLMError(
                message=f"Anthropic {call} returned no text content",
                provider_name=self.get_provider_name(),
            )
        return "\n".join(text_blocks)

    def _wrap_error(self, exc: anthropic.APIError, call: str) -> LLMError:
        name = self.get_provider_name()
        if isinstance(exc, anthropic.APITimeoutError):
            return LLMTimeoutError(f"Anthropic {call} request timed out", provider_name=name)
        if isinstance(exc, anthropic.RateLimitError):
            return RateLimitError(f"Anthropic rate limit: {exc}", provider_name=name)
        if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
            return CredentialError(f"Anthropic rejected the API key: {exc}", provider_name=name)
        return LLMError(f"Anthropic {call} API error: {exc}", provider_name=name)
